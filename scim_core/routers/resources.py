"""Общий роутер CRUD + PATCH для типов ресурсов SCIM"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query, Request, Response

from ..config import settings
from ..models.auth import Scope
from ..models.scim import ListResponse
from ..services.operations import ResourceService
from ..services.storage import PaginationOptions, SortOptions, SortOrder
from ..utils.exceptions import SCIMError
from ..utils.responses import SCIMResponse
from .dependencies import get_service, read_json, require_scopes

logger = logging.getLogger(__name__)


def _split(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def _page_size(count: Optional[int]) -> int:
    """count: отрицательный -> 0, не больше filter_max_results"""
    if count is None:
        count = settings.default_page_size
    return min(max(count, 0), settings.filter_max_results)


def _resource_response(
    service: ResourceService,
    record,
    status_code: int = 200,
    attributes: Optional[List[str]] = None,
    excluded_attributes: Optional[List[str]] = None
) -> SCIMResponse:
    document = service.to_wire(record)
    headers = {"Location": document["meta"]["location"]}
    version = service.version(record)
    if version and settings.etag_supported:
        headers["ETag"] = version
    return SCIMResponse(
        status_code=status_code,
        content=service.project(document, attributes, excluded_attributes),
        headers=headers
    )


def create_resource_router(resource_type: str, endpoint: str, tag: str) -> APIRouter:
    """Роутер для /Users, /Groups и других коллекций"""
    router = APIRouter(prefix=endpoint, tags=[tag])

    def service_for(request: Request) -> ResourceService:
        return get_service(request, resource_type)

    @router.get("", dependencies=[Depends(require_scopes(Scope.READ))])
    async def list_resources(
        request: Request,
        filter: Optional[str] = Query(None, description="SCIM filter expression"),
        attributes: Optional[str] = Query(None, description="Comma-separated list of attributes to return"),
        excluded_attributes: Optional[str] = Query(None, alias="excludedAttributes", description="Comma-separated list of attributes to exclude"),
        sort_by: Optional[str] = Query(None, alias="sortBy", description="Attribute to sort by"),
        sort_order: Optional[str] = Query(None, alias="sortOrder", description="Sort order: ascending or descending"),
        start_index: int = Query(1, alias="startIndex", description="1-based index of the first result"),
        count: Optional[int] = Query(None, description="Number of results per page")
    ) -> SCIMResponse:
        """Список ресурсов с фильтрацией, сортировкой и пагинацией"""
        service = service_for(request)

        if filter and not settings.filter_supported:
            raise SCIMError("Filtering is not supported", status_code=400, scim_type="invalidFilter")

        order = SortOrder.ASCENDING
        if sort_order:
            if sort_order.lower() not in (SortOrder.ASCENDING.value, SortOrder.DESCENDING.value):
                raise SCIMError(f"Invalid sortOrder {sort_order!r}", status_code=400, scim_type="invalidValue")
            order = SortOrder(sort_order.lower())
        sort = SortOptions(sort_by=sort_by, sort_order=order) if settings.sort_supported else None

        pagination = PaginationOptions(start_index=max(start_index, 1), count=_page_size(count))
        records, total = service.list(filter, sort, pagination)

        attributes_list = _split(attributes)
        excluded_list = _split(excluded_attributes)
        resources = [
            service.project(service.to_wire(record), attributes_list, excluded_list)
            for record in records
        ]
        logger.debug(f"Returning {len(resources)} of {total} {resource_type} resources")

        response = ListResponse(
            totalResults=total,
            startIndex=pagination.start_index,
            itemsPerPage=len(resources),
            Resources=resources
        )
        return SCIMResponse(content=response.model_dump())

    @router.get("/{resource_id}", dependencies=[Depends(require_scopes(Scope.READ))])
    async def get_resource(
        request: Request,
        resource_id: str,
        attributes: Optional[str] = Query(None, description="Comma-separated list of attributes to return"),
        excluded_attributes: Optional[str] = Query(None, alias="excludedAttributes", description="Comma-separated list of attributes to exclude")
    ) -> SCIMResponse:
        """Получение ресурса по ID"""
        service = service_for(request)
        record = service.get(resource_id)
        return _resource_response(service, record, 200, _split(attributes), _split(excluded_attributes))

    @router.post("", status_code=201, dependencies=[Depends(require_scopes(Scope.WRITE))])
    async def create_resource(request: Request) -> SCIMResponse:
        """Создание ресурса"""
        service = service_for(request)
        document = await read_json(request)
        record = service.create(document)
        return _resource_response(service, record, 201)

    @router.put("/{resource_id}", dependencies=[Depends(require_scopes(Scope.WRITE))])
    async def replace_resource(
        request: Request,
        resource_id: str,
        if_match: Optional[str] = Header(None, alias="If-Match")
    ) -> SCIMResponse:
        """Полная замена ресурса"""
        service = service_for(request)
        document = await read_json(request)
        record = service.replace(resource_id, document, expected_version=if_match)
        return _resource_response(service, record)

    @router.patch("/{resource_id}", dependencies=[Depends(require_scopes(Scope.WRITE))])
    async def patch_resource(
        request: Request,
        resource_id: str,
        if_match: Optional[str] = Header(None, alias="If-Match")
    ) -> SCIMResponse:
        """Частичное изменение ресурса (RFC 7644 §3.5.2)"""
        if not settings.patch_supported:
            raise SCIMError("PATCH is not supported", status_code=501)
        service = service_for(request)
        document = await read_json(request)
        record = service.patch(resource_id, document, expected_version=if_match)
        return _resource_response(service, record)

    @router.delete("/{resource_id}", status_code=204, dependencies=[Depends(require_scopes(Scope.WRITE))])
    async def delete_resource(
        request: Request,
        resource_id: str,
        if_match: Optional[str] = Header(None, alias="If-Match")
    ) -> Response:
        """Удаление ресурса"""
        service = service_for(request)
        service.delete(resource_id, expected_version=if_match)
        return Response(status_code=204)

    return router
