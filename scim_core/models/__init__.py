"""Модели данных SCIM Core"""

from .schema import (
    AttributeType, Mutability, Returned, Uniqueness,
    AttributeSchema, ResourceSchema, SchemaExtension, ResourceType,
)
from .filters import (
    FilterOperator, FilterNode, AttributePath, Comparison, Presence, And, Or, Not, serialize,
)
from .patch import PatchOp, PatchOperation
from .records import ScimRecord, UserRecord, GroupRecord
from .scim import SCIMSchema, ListResponse, ErrorResponse

__all__ = [
    "AttributeType",
    "Mutability",
    "Returned",
    "Uniqueness",
    "AttributeSchema",
    "ResourceSchema",
    "SchemaExtension",
    "ResourceType",
    "FilterOperator",
    "FilterNode",
    "AttributePath",
    "Comparison",
    "Presence",
    "And",
    "Or",
    "Not",
    "serialize",
    "PatchOp",
    "PatchOperation",
    "ScimRecord",
    "UserRecord",
    "GroupRecord",
    "SCIMSchema",
    "ListResponse",
    "ErrorResponse",
]
