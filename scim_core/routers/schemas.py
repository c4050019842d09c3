"""Schemas роутер для SCIM API"""

from fastapi import APIRouter, Depends, Request

from ..models.auth import Scope
from ..models.scim import ListResponse
from ..utils.exceptions import ResourceNotFoundError
from ..utils.responses import SCIMResponse
from .dependencies import require_scopes

router = APIRouter(tags=["schemas"], dependencies=[Depends(require_scopes(Scope.READ))])


@router.get("/Schemas")
async def get_schemas(request: Request) -> SCIMResponse:
    """Все зарегистрированные схемы (RFC 7643 §7)"""
    registry = request.app.state.registry
    resources = [registry.schema_to_wire(schema) for schema in registry.list()]
    response = ListResponse(totalResults=len(resources), itemsPerPage=len(resources), Resources=resources)
    return SCIMResponse(content=response.model_dump())


@router.get("/Schemas/{schema_id}")
async def get_schema(request: Request, schema_id: str) -> SCIMResponse:
    """Схема по URI"""
    registry = request.app.state.registry
    schema = registry.get(schema_id)
    if schema is None:
        raise ResourceNotFoundError(schema_id, "Schema")
    return SCIMResponse(content=registry.schema_to_wire(schema))
