import pytest

from scim_core.definitions import ENTERPRISE_USER_SCHEMA, GROUP_SCHEMA, USER_SCHEMA
from scim_core.models.scim import SCIMSchema
from scim_core.services.storage import PaginationOptions
from scim_core.utils.exceptions import (
    InvalidFilterError, MutabilityError, PreconditionFailedError, ResourceNotFoundError, ValidationFailed
)

PATCH_OP = SCIMSchema.PATCH_OP.value


def patch_body(*ops):
    return {"schemas": [PATCH_OP], "Operations": list(ops)}


def test_create_assigns_id_and_meta(user_service):
    record = user_service.create({"schemas": [USER_SCHEMA], "userName": "bjensen", "id": "client-id"})
    assert record.id and record.id != "client-id"
    assert record.meta_created is not None
    assert record.meta_created == record.meta_last_modified

    document = user_service.to_wire(record)
    assert document["meta"]["location"].endswith(f"/Users/{record.id}")
    assert document["meta"]["resourceType"] == "User"
    assert document["meta"]["version"] == user_service.version(record)


def test_create_rejects_invalid_document(user_service):
    with pytest.raises(ValidationFailed):
        user_service.create({"schemas": [USER_SCHEMA], "displayName": "No user name"})


def test_list_with_filter(user_service, users):
    records, total = user_service.list('title pr', None, PaginationOptions())
    assert total == 2
    assert sorted(r.user_name for r in records) == ["alice", "carmen98"]


def test_list_rejects_unknown_filter_attribute(user_service, users):
    with pytest.raises(InvalidFilterError):
        user_service.list('favoriteColor eq "blue"')


def test_patch_title_changes_version(user_service, users):
    alice = users["alice"]
    version = user_service.version(alice)

    patched = user_service.patch(alice.id, patch_body({"op": "replace", "path": "title", "value": "Architect"}))

    assert patched.title == "Architect"
    assert patched.meta_created == alice.meta_created
    assert patched.meta_last_modified > alice.meta_last_modified
    assert user_service.version(patched) != version
    assert user_service.get(alice.id).title == "Architect"


def test_patch_adds_filtered_email(user_service, users):
    bob = users["bob"]
    patched = user_service.patch(bob.id, patch_body(
        {"op": "add", "path": 'emails[type eq "work"].value', "value": "bob@example.com"}
    ))
    assert patched.emails == [{"type": "work", "value": "bob@example.com"}]

    patched = user_service.patch(bob.id, patch_body(
        {"op": "add", "path": 'emails[type eq "work"].value', "value": "robert@example.com"}
    ))
    assert patched.emails == [{"type": "work", "value": "robert@example.com"}]


def test_patch_extension(user_service, users):
    bob = users["bob"]
    patched = user_service.patch(bob.id, patch_body(
        {"op": "add", "path": f"{ENTERPRISE_USER_SCHEMA}:employeeNumber", "value": "42"}
    ))
    assert patched.extensions == {ENTERPRISE_USER_SCHEMA: {"employeeNumber": "42"}}
    assert user_service.to_wire(patched)["schemas"] == [USER_SCHEMA, ENTERPRISE_USER_SCHEMA]


def test_patch_with_stale_version(user_service, users):
    with pytest.raises(PreconditionFailedError):
        user_service.patch(
            users["alice"].id,
            patch_body({"op": "replace", "path": "title", "value": "Architect"}),
            expected_version='W/"stale"'
        )
    assert user_service.get(users["alice"].id).title == "Engineer"


def test_patch_missing_resource(user_service):
    with pytest.raises(ResourceNotFoundError):
        user_service.patch("missing", patch_body({"op": "replace", "path": "title", "value": "x"}))


def test_replace_keeps_created(user_service, users):
    carmen = users["carmen98"]
    replaced = user_service.replace(carmen.id, {"schemas": [USER_SCHEMA], "userName": "carmen98", "nickName": "Car"})
    assert replaced.id == carmen.id
    assert replaced.title is None
    assert replaced.nick_name == "Car"
    assert replaced.meta_created == carmen.meta_created


def test_delete(user_service, users):
    user_service.delete(users["bob"].id)
    with pytest.raises(ResourceNotFoundError):
        user_service.get(users["bob"].id)


def test_group_members_patch(group_service, users):
    group = group_service.create({"schemas": [GROUP_SCHEMA], "displayName": "Tour Guides"})
    patched = group_service.patch(group.id, patch_body({
        "op": "add",
        "path": "members",
        "value": [{"value": users["alice"].id, "type": "User"}, {"value": users["bob"].id, "type": "User"}],
    }))
    assert [m["value"] for m in patched.members] == [users["alice"].id, users["bob"].id]

    patched = group_service.patch(group.id, patch_body(
        {"op": "remove", "path": f'members[value eq "{users["alice"].id}"]'}
    ))
    assert [m["value"] for m in patched.members] == [users["bob"].id]


def test_patch_cannot_clear_required_attribute(user_service, users):
    alice = users["alice"]
    with pytest.raises(MutabilityError):
        user_service.patch(alice.id, patch_body({"op": "replace", "path": "userName", "value": None}))
    with pytest.raises(MutabilityError):
        user_service.patch(alice.id, patch_body({"op": "replace", "value": {"userName": None}}))
    assert user_service.get(alice.id).user_name == "alice"
