"""Users роутер для SCIM API"""

from .resources import create_resource_router

router = create_resource_router("User", "/Users", "users")
