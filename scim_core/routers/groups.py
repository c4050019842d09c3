"""Groups роутер для SCIM API"""

from .resources import create_resource_router

router = create_resource_router("Group", "/Groups", "groups")
