"""SCIM модели сообщений согласно RFC 7644"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from enum import Enum


class SCIMSchema(str, Enum):
    """SCIM схемы сообщений"""
    LIST_RESPONSE = "urn:ietf:params:scim:api:messages:2.0:ListResponse"
    PATCH_OP = "urn:ietf:params:scim:api:messages:2.0:PatchOp"
    ERROR = "urn:ietf:params:scim:api:messages:2.0:Error"
    SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:Schema"
    RESOURCE_TYPE = "urn:ietf:params:scim:schemas:core:2.0:ResourceType"
    SERVICE_PROVIDER_CONFIG = "urn:ietf:params:scim:schemas:core:2.0:ServiceProviderConfig"


class ListResponse(BaseModel):
    """Ответ со списком ресурсов SCIM"""
    schemas: List[str] = Field(default_factory=lambda: [SCIMSchema.LIST_RESPONSE.value])
    totalResults: int
    startIndex: int = 1
    itemsPerPage: int
    Resources: List[Dict[str, Any]] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Ошибка SCIM (RFC 7644 §3.12); status передаётся строкой"""
    schemas: List[str] = Field(default_factory=lambda: [SCIMSchema.ERROR.value])
    status: str
    scimType: Optional[str] = None
    detail: Optional[str] = None
