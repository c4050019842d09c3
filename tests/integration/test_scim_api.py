import pytest
from httpx import AsyncClient

from scim_core.definitions import ENTERPRISE_USER_SCHEMA, GROUP_SCHEMA, USER_SCHEMA
from scim_core.models.scim import SCIMSchema

API = "/scim/v2"
ERROR_SCHEMA = SCIMSchema.ERROR.value
PATCH_OP = SCIMSchema.PATCH_OP.value


async def create_user(client: AsyncClient, user_name: str, **attributes) -> dict:
    body = {"schemas": [USER_SCHEMA], "userName": user_name, **attributes}
    response = await client.post(f"{API}/Users", json=body)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    response = await async_client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["schemas"] == 3
    assert body["resourceTypes"] == 2


@pytest.mark.asyncio
async def test_create_user(async_client: AsyncClient):
    response = await async_client.post(f"{API}/Users", json={
        "schemas": [USER_SCHEMA],
        "userName": "bjensen",
        "password": "t1meMa$heen",
        "name": {"givenName": "Barbara", "familyName": "Jensen"},
        "emails": [{"value": "bjensen@example.com", "type": "work", "primary": True}],
    })
    assert response.status_code == 201
    assert response.headers["content-type"].startswith("application/scim+json")
    body = response.json()
    assert body["userName"] == "bjensen"
    assert "password" not in body
    assert response.headers["Location"] == body["meta"]["location"]
    assert body["meta"]["location"].endswith(f"{API}/Users/{body['id']}")
    assert response.headers["ETag"] == body["meta"]["version"]
    assert body["meta"]["version"].startswith('W/"')


@pytest.mark.asyncio
async def test_get_user(async_client: AsyncClient):
    created = await create_user(async_client, "bjensen", title="Tour Guide")
    response = await async_client.get(f"{API}/Users/{created['id']}")
    assert response.status_code == 200
    assert response.json()["title"] == "Tour Guide"
    assert response.headers["ETag"] == created["meta"]["version"]


@pytest.mark.asyncio
async def test_get_user_with_attributes(async_client: AsyncClient):
    created = await create_user(async_client, "bjensen", title="Tour Guide", nickName="Babs")
    response = await async_client.get(f"{API}/Users/{created['id']}", params={"attributes": "userName"})
    body = response.json()
    assert set(body) == {"schemas", "id", "meta", "userName"}

    response = await async_client.get(f"{API}/Users/{created['id']}", params={"excludedAttributes": "title,nickName"})
    body = response.json()
    assert "title" not in body and "nickName" not in body
    assert body["userName"] == "bjensen"


@pytest.mark.asyncio
async def test_missing_user(async_client: AsyncClient):
    response = await async_client.get(f"{API}/Users/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {
        "schemas": [ERROR_SCHEMA],
        "status": "404",
        "detail": "User does-not-exist not found",
    }


@pytest.mark.asyncio
async def test_invalid_document(async_client: AsyncClient):
    response = await async_client.post(f"{API}/Users", json={"schemas": [USER_SCHEMA], "active": "yes"})
    assert response.status_code == 400
    body = response.json()
    assert body["schemas"] == [ERROR_SCHEMA]
    assert body["status"] == "400"
    assert body["scimType"] == "invalidValue"
    assert "userName" in body["detail"]


@pytest.mark.asyncio
async def test_invalid_json(async_client: AsyncClient):
    response = await async_client.post(
        f"{API}/Users", content=b"{not json", headers={"Content-Type": "application/scim+json"}
    )
    assert response.status_code == 400
    assert response.json()["scimType"] == "invalidSyntax"


@pytest.mark.asyncio
async def test_duplicate_user_name(async_client: AsyncClient):
    await create_user(async_client, "bjensen")
    response = await async_client.post(f"{API}/Users", json={"schemas": [USER_SCHEMA], "userName": "BJensen"})
    assert response.status_code == 409
    assert response.json()["scimType"] == "uniqueness"


@pytest.mark.asyncio
async def test_list_with_filter_sort_and_paging(async_client: AsyncClient):
    for user_name in ("carmen98", "alice", "bob"):
        await create_user(async_client, user_name)

    response = await async_client.get(f"{API}/Users", params={"filter": 'userName sw "a" or userName eq "bob"'})
    body = response.json()
    assert response.status_code == 200
    assert body["schemas"] == [SCIMSchema.LIST_RESPONSE.value]
    assert body["totalResults"] == 2
    assert sorted(r["userName"] for r in body["Resources"]) == ["alice", "bob"]

    response = await async_client.get(f"{API}/Users", params={
        "sortBy": "userName", "sortOrder": "descending", "startIndex": 2, "count": 1
    })
    body = response.json()
    assert body["totalResults"] == 3
    assert body["startIndex"] == 2
    assert body["itemsPerPage"] == 1
    assert [r["userName"] for r in body["Resources"]] == ["bob"]


@pytest.mark.asyncio
async def test_list_clamps_paging_parameters(async_client: AsyncClient):
    await create_user(async_client, "alice")
    response = await async_client.get(f"{API}/Users", params={"startIndex": 0, "count": -5})
    body = response.json()
    assert body["startIndex"] == 1
    assert body["itemsPerPage"] == 0
    assert body["totalResults"] == 1


@pytest.mark.asyncio
async def test_invalid_filter(async_client: AsyncClient):
    response = await async_client.get(f"{API}/Users", params={"filter": 'userName eq "bjensen" extra'})
    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "400"
    assert body["scimType"] == "invalidFilter"
    assert "position 23" in body["detail"]


@pytest.mark.asyncio
async def test_invalid_sort_order(async_client: AsyncClient):
    response = await async_client.get(f"{API}/Users", params={"sortBy": "userName", "sortOrder": "sideways"})
    assert response.status_code == 400
    assert response.json()["scimType"] == "invalidValue"


@pytest.mark.asyncio
async def test_patch_user(async_client: AsyncClient):
    created = await create_user(async_client, "bjensen", title="Tour Guide")
    response = await async_client.patch(f"{API}/Users/{created['id']}", json={
        "schemas": [PATCH_OP],
        "Operations": [
            {"op": "replace", "path": "title", "value": "Tour Lead"},
            {"op": "add", "path": 'emails[type eq "work"].value', "value": "bjensen@example.com"},
            {"op": "add", "value": {ENTERPRISE_USER_SCHEMA: {"department": "Tour Operations"}}},
        ],
    }, headers={"If-Match": created["meta"]["version"]})
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["title"] == "Tour Lead"
    assert body["emails"] == [{"type": "work", "value": "bjensen@example.com"}]
    assert body[ENTERPRISE_USER_SCHEMA] == {"department": "Tour Operations"}
    assert body["schemas"] == [USER_SCHEMA, ENTERPRISE_USER_SCHEMA]
    assert body["meta"]["created"] == created["meta"]["created"]
    assert body["meta"]["version"] != created["meta"]["version"]
    assert response.headers["ETag"] == body["meta"]["version"]


@pytest.mark.asyncio
async def test_patch_with_stale_etag(async_client: AsyncClient):
    created = await create_user(async_client, "bjensen")
    response = await async_client.patch(f"{API}/Users/{created['id']}", json={
        "schemas": [PATCH_OP],
        "Operations": [{"op": "replace", "path": "title", "value": "Tour Lead"}],
    }, headers={"If-Match": 'W/"0123456789abcdef"'})
    assert response.status_code == 412
    assert response.json()["status"] == "412"


@pytest.mark.asyncio
async def test_patch_errors(async_client: AsyncClient):
    created = await create_user(async_client, "bjensen")
    url = f"{API}/Users/{created['id']}"

    response = await async_client.patch(url, json={
        "schemas": [PATCH_OP],
        "Operations": [{"op": "remove", "path": "userName"}],
    })
    assert response.status_code == 400
    assert response.json()["scimType"] == "mutability"

    response = await async_client.patch(url, json={
        "schemas": [PATCH_OP],
        "Operations": [{"op": "replace", "path": 'emails[type eq "home"].value', "value": "x@example.com"}],
    })
    assert response.status_code == 400
    assert response.json()["scimType"] == "noTarget"

    response = await async_client.patch(url, json={
        "schemas": [PATCH_OP],
        "Operations": [{"op": "add", "path": "favoriteColor", "value": "blue"}],
    })
    assert response.status_code == 400
    assert response.json()["scimType"] == "invalidPath"


@pytest.mark.asyncio
async def test_replace_user(async_client: AsyncClient):
    created = await create_user(async_client, "bjensen", title="Tour Guide")
    response = await async_client.put(f"{API}/Users/{created['id']}", json={
        "schemas": [USER_SCHEMA], "userName": "bjensen", "displayName": "Babs Jensen"
    })
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == created["id"]
    assert body["displayName"] == "Babs Jensen"
    assert "title" not in body


@pytest.mark.asyncio
async def test_delete_user(async_client: AsyncClient):
    created = await create_user(async_client, "bjensen")
    response = await async_client.delete(f"{API}/Users/{created['id']}")
    assert response.status_code == 204
    response = await async_client.get(f"{API}/Users/{created['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_group_lifecycle(async_client: AsyncClient):
    user = await create_user(async_client, "bjensen")
    response = await async_client.post(f"{API}/Groups", json={
        "schemas": [GROUP_SCHEMA],
        "displayName": "Tour Guides",
        "members": [{"value": user["id"], "type": "User"}],
    })
    assert response.status_code == 201
    group = response.json()
    assert group["meta"]["resourceType"] == "Group"

    response = await async_client.get(f"{API}/Groups", params={"filter": f'members.value eq "{user["id"]}"'})
    assert response.json()["totalResults"] == 1

    response = await async_client.patch(f"{API}/Groups/{group['id']}", json={
        "schemas": [PATCH_OP],
        "Operations": [{"op": "remove", "path": f'members[value eq "{user["id"]}"]'}],
    })
    assert response.status_code == 200
    assert "members" not in response.json()


@pytest.mark.asyncio
async def test_unknown_route(async_client: AsyncClient):
    response = await async_client.get(f"{API}/Widgets")
    assert response.status_code == 404
    assert response.json()["schemas"] == [ERROR_SCHEMA]
