"""ResourceTypes роутер для SCIM API"""

from fastapi import APIRouter, Depends, Request

from ..models.auth import Scope
from ..models.scim import ListResponse
from ..utils.exceptions import ResourceNotFoundError
from ..utils.responses import SCIMResponse
from .dependencies import require_scopes

router = APIRouter(tags=["resource-types"], dependencies=[Depends(require_scopes(Scope.READ))])


@router.get("/ResourceTypes")
async def get_resource_types(request: Request) -> SCIMResponse:
    """Возвращает список поддерживаемых типов ресурсов согласно RFC 7644"""
    registry = request.app.state.registry
    resources = [registry.resource_type_to_wire(rt) for rt in registry.list_resource_types()]
    response = ListResponse(totalResults=len(resources), itemsPerPage=len(resources), Resources=resources)
    return SCIMResponse(content=response.model_dump())


@router.get("/ResourceTypes/{name}")
async def get_resource_type(request: Request, name: str) -> SCIMResponse:
    """Возвращает тип ресурса по имени"""
    registry = request.app.state.registry
    resource_type = registry.get_resource_type(name)
    if resource_type is None:
        raise ResourceNotFoundError(name, "ResourceType")
    return SCIMResponse(content=registry.resource_type_to_wire(resource_type))
