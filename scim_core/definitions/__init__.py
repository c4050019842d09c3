"""Встроенные определения схем и типов ресурсов"""

from ..models.schema import ResourceType, SchemaExtension
from ..services.registry import SchemaRegistry
from .common import common_attributes
from .enterprise_user import ENTERPRISE_USER_SCHEMA, enterprise_user_attributes
from .group import GROUP_SCHEMA, group_attributes
from .user import USER_SCHEMA, user_attributes

USER_RESOURCE_TYPE = ResourceType(
    id="User",
    name="User",
    endpoint="/Users",
    description="User Account",
    schema_uri=USER_SCHEMA,
    extensions=(SchemaExtension(schema_uri=ENTERPRISE_USER_SCHEMA, required=False),),
)

GROUP_RESOURCE_TYPE = ResourceType(
    id="Group",
    name="Group",
    endpoint="/Groups",
    description="Group",
    schema_uri=GROUP_SCHEMA,
)


def build_default_registry() -> SchemaRegistry:
    """Реестр со схемами User, EnterpriseUser и Group"""
    registry = SchemaRegistry(common_attributes=common_attributes())
    registry.register(USER_SCHEMA, "User", "User Account", user_attributes())
    registry.register(ENTERPRISE_USER_SCHEMA, "EnterpriseUser", "Enterprise User", enterprise_user_attributes())
    registry.register(GROUP_SCHEMA, "Group", "Group", group_attributes())
    registry.register_resource_type(USER_RESOURCE_TYPE)
    registry.register_resource_type(GROUP_RESOURCE_TYPE)
    return registry


__all__ = [
    "USER_SCHEMA",
    "ENTERPRISE_USER_SCHEMA",
    "GROUP_SCHEMA",
    "USER_RESOURCE_TYPE",
    "GROUP_RESOURCE_TYPE",
    "build_default_registry",
]
