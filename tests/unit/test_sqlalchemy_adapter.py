from datetime import datetime

import pytest
from sqlalchemy import Boolean, Column, DateTime, MetaData, String, Table, create_engine, insert, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from scim_core.adapters import SQLAlchemyFilterAdapter
from scim_core.definitions import USER_SCHEMA
from scim_core.services.filter_engine import FilterEngine
from scim_core.services.filter_parser import parse_filter
from scim_core.services.query_adapter import FieldMapping
from scim_core.utils.exceptions import UnsupportedAttributeError, UnsupportedFilterShapeError

metadata = MetaData()

users_table = Table(
    "scim_users",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_name", String, nullable=False),
    Column("title", String),
    Column("family_name", String),
    Column("email", String),
    Column("active", Boolean),
    Column("last_modified", DateTime),
)

MAPPING = FieldMapping(fields={
    "id": "id",
    "userName": "user_name",
    "title": "title",
    "name.familyName": "family_name",
    "emails.value": "email",
    "emails": "email",
    "active": "active",
    "meta.lastModified": "last_modified",
})

ROWS = [
    {
        "id": "1", "user_name": "alice", "title": "Engineer", "family_name": "Liddell",
        "email": "alice@example.com", "active": True, "last_modified": datetime(2024, 3, 1, 12, 0, 0),
    },
    {
        "id": "2", "user_name": "bob", "title": None, "family_name": "Builder",
        "email": "bob@builder.org", "active": False, "last_modified": datetime(2023, 6, 15, 8, 30, 0),
    },
    {
        "id": "3", "user_name": "carmen98", "title": "", "family_name": None,
        "email": "Carmen98@Example.com", "active": None, "last_modified": None,
    },
]


def to_wire(row):
    """Тот же пользователь в виде SCIM документа"""
    document = {"schemas": [USER_SCHEMA], "id": row["id"], "userName": row["user_name"]}
    if row["title"] is not None:
        document["title"] = row["title"]
    if row["family_name"] is not None:
        document["name"] = {"familyName": row["family_name"]}
    if row["email"] is not None:
        document["emails"] = [{"value": row["email"], "type": "work"}]
    if row["active"] is not None:
        document["active"] = row["active"]
    if row["last_modified"] is not None:
        document["meta"] = {"lastModified": row["last_modified"].isoformat() + "Z"}
    return document


@pytest.fixture
def connection():
    engine = create_engine("sqlite://")
    metadata.create_all(engine)
    with engine.connect() as conn:
        conn.execute(insert(users_table), ROWS)
        yield conn
    engine.dispose()


@pytest.fixture
def adapter(registry, user_type):
    return SQLAlchemyFilterAdapter(users_table, MAPPING, registry, user_type)


def select_ids(connection, adapter, text):
    query = adapter.apply(select(users_table.c.id), parse_filter(text))
    return {row.id for row in connection.execute(query)}


def test_equality_and_or(connection, adapter):
    assert select_ids(connection, adapter, 'userName eq "alice"') == {"1"}
    assert select_ids(connection, adapter, 'userName sw "a" or userName eq "bob"') == {"1", "2"}


def test_comparison_is_case_insensitive(connection, adapter):
    assert select_ids(connection, adapter, 'userName eq "ALICE"') == {"1"}
    assert select_ids(connection, adapter, 'emails.value ew "example.com"') == {"1", "3"}


def test_presence_treats_null_and_empty_as_absent(connection, adapter):
    assert select_ids(connection, adapter, "title pr") == {"1"}
    assert select_ids(connection, adapter, "not (title pr)") == {"2", "3"}


def test_ne_includes_absent_values(connection, adapter):
    assert select_ids(connection, adapter, 'title ne "Engineer"') == {"2", "3"}
    assert select_ids(connection, adapter, "active eq null") == {"3"}


def test_like_wildcards_are_escaped(connection, adapter):
    assert select_ids(connection, adapter, 'userName co "%"') == set()
    assert select_ids(connection, adapter, 'userName co "_"') == set()


def test_no_filter_returns_query_unchanged(adapter):
    query = select(users_table.c.id)
    assert adapter.apply(query, None) is query


def test_unmapped_attribute(adapter):
    with pytest.raises(UnsupportedAttributeError) as exc_info:
        adapter.translate(parse_filter('emails.type eq "work"'))
    assert exc_info.value.scim_type == "invalidFilter"


def test_mapping_to_missing_column(registry, user_type):
    adapter = SQLAlchemyFilterAdapter(users_table, FieldMapping(fields={"nickName": "nick_name"}), registry, user_type)
    with pytest.raises(UnsupportedAttributeError):
        adapter.translate(parse_filter('nickName eq "Babs"'))


def test_value_filter_is_not_supported(adapter):
    with pytest.raises(UnsupportedFilterShapeError):
        adapter.translate(parse_filter('emails[type eq "work" and value co "@example.com"]'))


@pytest.mark.parametrize("text", ['active gt false', 'active le true', 'userName ge true'])
def test_ordering_on_booleans_is_not_supported(adapter, registry, user_type, text):
    with pytest.raises(UnsupportedFilterShapeError) as exc_info:
        adapter.translate(parse_filter(text))
    assert exc_info.value.scim_type == "invalidFilter"
    # FilterEngine не находит ни одного ресурса для такого фильтра
    engine = FilterEngine(registry, user_type)
    assert not any(engine.matches(to_wire(r), parse_filter(text)) for r in ROWS)


@pytest.mark.parametrize("text", ['active co "t"', 'meta.lastModified sw "2024"', 'userName co 5'])
def test_substring_operators_require_strings(adapter, text):
    with pytest.raises(UnsupportedFilterShapeError):
        adapter.translate(parse_filter(text))


def test_core_schema_urn_is_accepted(connection, adapter):
    assert select_ids(connection, adapter, f'{USER_SCHEMA}:userName eq "bob"') == {"2"}


@pytest.mark.parametrize("text", [
    'userName eq "alice"',
    'userName eq "ALICE"',
    'userName ne "alice"',
    'userName sw "CAR"',
    'userName ew "98"',
    'userName co "o"',
    'userName gt "b"',
    'userName le "bob"',
    'userName sw "a" or userName eq "bob"',
    'title pr',
    'title eq null',
    'title ne null',
    'title ne "Engineer"',
    'not (title eq "Engineer")',
    'name.familyName sw "b" and active eq false',
    'emails.value co "EXAMPLE"',
    'emails co "builder"',
    'active eq true',
    'active ne true',
    'meta.lastModified gt "2024-01-01T00:00:00Z"',
    'meta.lastModified lt "2024-01-01T00:00:00Z"',
    'meta.lastModified pr',
])
def test_same_results_as_filter_engine(connection, adapter, registry, user_type, text):
    engine = FilterEngine(registry, user_type)
    expected = {r["id"] for r in ROWS if engine.matches(to_wire(r), parse_filter(text))}
    assert select_ids(connection, adapter, text) == expected


class Base(DeclarativeBase):
    pass


class GroupRow(Base):
    __tablename__ = "scim_groups"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    display_name: Mapped[str] = mapped_column(String)


def test_declarative_model_source(registry, group_type):
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    adapter = SQLAlchemyFilterAdapter(GroupRow, FieldMapping(fields={"displayName": "display_name"}), registry, group_type)
    with engine.connect() as conn:
        conn.execute(insert(GroupRow), [{"id": "g1", "display_name": "Tour Guides"}, {"id": "g2", "display_name": "Admins"}])
        query = adapter.apply(select(GroupRow.id), parse_filter('displayName co "guide"'))
        assert [row.id for row in conn.execute(query)] == ["g1"]
    engine.dispose()
