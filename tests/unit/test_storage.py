import pytest

from scim_core.definitions import USER_SCHEMA
from scim_core.services.filter_parser import parse_filter
from scim_core.services.storage import PaginationOptions, SortOptions, SortOrder, versions_match
from scim_core.utils.exceptions import PreconditionFailedError, ResourceNotFoundError, UniquenessError


def user_names(records):
    return [r.user_name for r in records]


def test_list_without_filter(user_service, users):
    records, total = user_service.storage.list(None)
    assert total == 3
    assert sorted(user_names(records)) == ["alice", "bob", "carmen98"]


def test_list_with_filter(user_service, users):
    records, total = user_service.storage.list(parse_filter('userName sw "a" or title eq "manager"'))
    assert total == 2
    assert sorted(user_names(records)) == ["alice", "carmen98"]


def test_sort_ascending_and_descending(user_service, users):
    records, _ = user_service.storage.list(None, SortOptions(sort_by="userName"))
    assert user_names(records) == ["alice", "bob", "carmen98"]
    records, _ = user_service.storage.list(None, SortOptions(sort_by="userName", sort_order=SortOrder.DESCENDING))
    assert user_names(records) == ["carmen98", "bob", "alice"]


def test_missing_sort_values_come_last(user_service, users):
    records, _ = user_service.storage.list(None, SortOptions(sort_by="title", sort_order=SortOrder.DESCENDING))
    assert user_names(records) == ["carmen98", "alice", "bob"]


def test_pagination(user_service, users):
    sort = SortOptions(sort_by="userName")
    records, total = user_service.storage.list(None, sort, PaginationOptions(start_index=2, count=1))
    assert total == 3
    assert user_names(records) == ["bob"]

    records, total = user_service.storage.list(None, sort, PaginationOptions(start_index=3, count=10))
    assert user_names(records) == ["carmen98"]

    records, total = user_service.storage.list(None, sort, PaginationOptions(start_index=1, count=0))
    assert records == []
    assert total == 3


def test_get_returns_copy(user_service, users):
    record = user_service.storage.get(users["alice"].id)
    record.title = "Changed"
    assert user_service.storage.get(users["alice"].id).title == "Engineer"


def test_get_missing(user_service):
    with pytest.raises(ResourceNotFoundError) as exc_info:
        user_service.storage.get("missing")
    assert exc_info.value.status_code == 404


def test_user_name_is_unique_ignoring_case(user_service, users):
    with pytest.raises(UniquenessError) as exc_info:
        user_service.create({"schemas": [USER_SCHEMA], "userName": "ALICE"})
    assert exc_info.value.status_code == 409
    assert exc_info.value.scim_type == "uniqueness"


def test_update_checks_version(user_service, users):
    alice = users["alice"]
    storage = user_service.storage
    with pytest.raises(PreconditionFailedError):
        storage.update(alice.id, alice, expected_version='W/"stale"')
    storage.update(alice.id, alice, expected_version=user_service.version(alice))
    storage.update(alice.id, alice, expected_version="*")


def test_delete(user_service, users):
    storage = user_service.storage
    storage.delete(users["bob"].id)
    assert not storage.exists(users["bob"].id)
    with pytest.raises(ResourceNotFoundError):
        storage.delete(users["bob"].id)


def test_versions_match():
    assert versions_match('W/"abc"', None)
    assert versions_match('W/"abc"', "*")
    assert versions_match('W/"abc"', '"abc"')
    assert versions_match('W/"abc"', '"xyz", W/"abc"')
    assert not versions_match('W/"abc"', 'W/"xyz"')
    assert not versions_match(None, 'W/"abc"')
