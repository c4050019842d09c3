import copy
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from scim_core.definitions import (
    ENTERPRISE_USER_SCHEMA, GROUP_RESOURCE_TYPE, USER_RESOURCE_TYPE, USER_SCHEMA, build_default_registry
)
from scim_core.main import create_app
from scim_core.services.auth import StaticTokenAuthProvider
from scim_core.services.filter_engine import FilterEngine
from scim_core.services.mapper import GroupMapper, UserMapper
from scim_core.services.operations import ResourceService
from scim_core.services.patch_engine import PatchEngine
from scim_core.services.storage import InMemoryStorage
from scim_core.services.validator import SchemaValidator


BJENSEN = {
    "schemas": [USER_SCHEMA, ENTERPRISE_USER_SCHEMA],
    "id": "2819c223-7f76-453a-919d-413861904646",
    "externalId": "bjensen",
    "userName": "bjensen",
    "name": {"givenName": "Barbara", "familyName": "Jensen"},
    "displayName": "Babs Jensen",
    "active": True,
    "emails": [
        {"value": "bjensen@example.com", "type": "work", "primary": True},
        {"value": "babs@jensen.org", "type": "home"},
    ],
    ENTERPRISE_USER_SCHEMA: {"employeeNumber": "701984", "department": "Tour Operations"},
    "meta": {
        "resourceType": "User",
        "created": "2010-01-23T04:56:22Z",
        "lastModified": "2011-05-13T04:42:34Z",
    },
}


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def user_type():
    return USER_RESOURCE_TYPE


@pytest.fixture
def group_type():
    return GROUP_RESOURCE_TYPE


@pytest.fixture
def bjensen():
    return copy.deepcopy(BJENSEN)


@pytest.fixture
def validator(registry, user_type):
    return SchemaValidator(registry, user_type)


@pytest.fixture
def filter_engine(registry, user_type):
    return FilterEngine(registry, user_type)


@pytest.fixture
def patch_engine(registry, user_type):
    return PatchEngine(registry, user_type)


@pytest.fixture
def user_service(registry, user_type):
    mapper = UserMapper()
    return ResourceService(registry, user_type, mapper, InMemoryStorage(registry, user_type, mapper))


@pytest.fixture
def group_service(registry, group_type):
    mapper = GroupMapper()
    return ResourceService(registry, group_type, mapper, InMemoryStorage(registry, group_type, mapper))


@pytest.fixture
def users(user_service):
    """alice, bob и carmen98 в хранилище"""
    created = {}
    for user_name, title in (("alice", "Engineer"), ("bob", None), ("carmen98", "Manager")):
        document = {"schemas": [USER_SCHEMA], "userName": user_name}
        if title:
            document["title"] = title
        created[user_name] = user_service.create(document)
    return created


@pytest.fixture
def auth_provider():
    return StaticTokenAuthProvider(
        tokens={
            "reader-token": ["scim:read"],
            "admin-token": ["scim:read", "scim:write"],
        },
        credentials={"provisioner": "s3cret"}
    )


# Приложение без аутентификации
@pytest.fixture
def app():
    return create_app(auth_provider=None)


@pytest_asyncio.fixture(scope="function")
async def async_client(app):
    async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test"
    ) as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def secured_client(auth_provider):
    app = create_app(auth_provider=auth_provider)
    async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test"
    ) as client:
        yield client
