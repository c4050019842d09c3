import pytest

from scim_core.definitions import ENTERPRISE_USER_SCHEMA, GROUP_SCHEMA, USER_SCHEMA
from scim_core.models.schema import AttributeType, Mutability, ResourceType, Returned, Uniqueness
from scim_core.services.filter_parser import parse_path
from scim_core.services.registry import SchemaRegistry
from scim_core.services.schema_builder import attribute, complex_attribute, find_duplicates, sub_attribute
from scim_core.utils.exceptions import SchemaDefinitionError


def test_builder_defaults():
    attr = attribute("nickName")
    assert attr.type == AttributeType.STRING
    assert attr.mutability == Mutability.READ_WRITE
    assert attr.returned == Returned.DEFAULT
    assert attr.uniqueness is None
    assert attr.effective_uniqueness == Uniqueness.NONE
    assert not attr.multi_valued and not attr.required and not attr.case_exact


def test_schemas_are_immutable():
    attr = attribute("nickName")
    with pytest.raises(Exception):
        attr.name = "other"


def test_string_attribute_wire_format():
    wire = attribute("userName", required=True, uniqueness="server", description="Unique identifier").to_wire()
    assert wire == {
        "name": "userName",
        "type": "string",
        "multiValued": False,
        "description": "Unique identifier",
        "required": True,
        "caseExact": False,
        "mutability": "readWrite",
        "returned": "default",
        "uniqueness": "server",
    }


def test_boolean_attribute_omits_uniqueness_unless_set():
    assert "uniqueness" not in attribute("active", "boolean").to_wire()
    assert "caseExact" not in attribute("active", "boolean").to_wire()
    assert attribute("active", "boolean", uniqueness="none").to_wire()["uniqueness"] == "none"


def test_complex_attribute_wire_format():
    emails = complex_attribute("emails", [
        sub_attribute("value"),
        sub_attribute("primary", "boolean"),
        sub_attribute("type", canonical_values=["work", "home"]),
    ], multi_valued=True)
    wire = emails.to_wire()
    assert wire["type"] == "complex"
    assert wire["multiValued"] is True
    assert "caseExact" not in wire
    subs = {s["name"]: s for s in wire["subAttributes"]}
    assert subs["primary"]["uniqueness"] == "none"
    assert subs["type"]["canonicalValues"] == ["work", "home"]
    assert "subAttributes" not in subs["value"]


def test_reference_attribute_wire_format():
    wire = attribute("profileUrl", "reference", reference_types=["external"]).to_wire()
    assert wire["referenceTypes"] == ["external"]
    assert wire["caseExact"] is False


def test_find_duplicates_is_case_insensitive():
    attrs = [
        attribute("userName"),
        attribute("USERNAME"),
        complex_attribute("name", [sub_attribute("givenName"), sub_attribute("givenname")]),
    ]
    assert find_duplicates(attrs) == ["USERNAME", "name.givenname"]


def test_register_rejects_duplicates():
    registry = SchemaRegistry()
    with pytest.raises(SchemaDefinitionError):
        registry.register("urn:example:Thing", "Thing", "", [attribute("a"), attribute("A")])


def test_register_rejects_sub_attributes_on_simple_attribute():
    registry = SchemaRegistry()
    with pytest.raises(SchemaDefinitionError):
        registry.register("urn:example:Thing", "Thing", "", [
            attribute("a", sub_attributes=[sub_attribute("b")])
        ])


def test_register_rejects_nested_complex():
    registry = SchemaRegistry()
    inner = complex_attribute("inner", [sub_attribute("x")])
    with pytest.raises(SchemaDefinitionError):
        registry.register("urn:example:Thing", "Thing", "", [complex_attribute("outer", [inner])])


def test_register_rejects_same_uri_twice():
    registry = SchemaRegistry()
    registry.register("urn:example:Thing", "Thing", "", [attribute("a")])
    with pytest.raises(SchemaDefinitionError):
        registry.register("URN:EXAMPLE:THING", "Thing", "", [attribute("a")])


def test_resource_type_requires_registered_schemas():
    registry = SchemaRegistry()
    with pytest.raises(SchemaDefinitionError):
        registry.register_resource_type(
            ResourceType(id="Thing", name="Thing", endpoint="/Things", schema_uri="urn:example:Thing")
        )


def test_default_registry_contents(registry):
    assert {s.id for s in registry.list()} == {USER_SCHEMA, ENTERPRISE_USER_SCHEMA, GROUP_SCHEMA}
    assert [rt.name for rt in registry.list_resource_types()] == ["User", "Group"]
    assert registry.get(USER_SCHEMA.upper()).name == "User"
    assert registry.get_resource_type("user").endpoint == "/Users"


def test_attribute_order_is_preserved(registry):
    names = [a.name for a in registry.get(USER_SCHEMA).attributes]
    assert names[:3] == ["userName", "name", "displayName"]


def test_resolve_paths(registry, user_type):
    resolved = registry.resolve(user_type, parse_path("NAME.givenname"))
    assert resolved.schema.id == USER_SCHEMA
    assert resolved.target.name == "givenName"

    resolved = registry.resolve(user_type, parse_path("meta.lastModified"))
    assert resolved.schema is None
    assert resolved.target.type == AttributeType.DATE_TIME

    resolved = registry.resolve(user_type, parse_path("department"))
    assert resolved.schema.id == ENTERPRISE_USER_SCHEMA

    resolved = registry.resolve(user_type, parse_path(f"{ENTERPRISE_USER_SCHEMA}:manager.value"))
    assert resolved.attribute.name == "manager"
    assert resolved.sub_attribute.name == "value"

    assert registry.resolve(user_type, parse_path("unknown")) is None
    assert registry.resolve(user_type, parse_path("name.unknown")) is None
    assert registry.resolve(user_type, parse_path(f"{GROUP_SCHEMA}:displayName")) is None


def test_find_attribute(registry, user_type):
    assert registry.find_attribute(user_type, "emails.type").canonical_values == ("work", "home", "other")
    assert registry.find_attribute(user_type, "nothing") is None


def test_schema_document(registry):
    wire = registry.schema_to_wire(registry.get(USER_SCHEMA))
    assert wire["schemas"] == ["urn:ietf:params:scim:schemas:core:2.0:Schema"]
    assert wire["id"] == USER_SCHEMA
    assert wire["meta"]["location"].endswith(f"/Schemas/{USER_SCHEMA}")
    password = next(a for a in wire["attributes"] if a["name"] == "password")
    assert password["returned"] == "never"
    assert password["mutability"] == "writeOnly"


def test_resource_type_document(registry, user_type):
    wire = registry.resource_type_to_wire(user_type)
    assert wire["schema"] == USER_SCHEMA
    assert wire["schemaExtensions"] == [{"schema": ENTERPRISE_USER_SCHEMA, "required": False}]
    assert wire["meta"]["location"].endswith("/ResourceTypes/User")
