"""Схема Group (RFC 7643 §4.2)"""

from typing import List

from ..models.schema import AttributeSchema
from ..services.schema_builder import attribute, complex_attribute, sub_attribute

GROUP_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:Group"


def group_attributes() -> List[AttributeSchema]:
    return [
        attribute("displayName", "string",
                  description="A human-readable name for the Group",
                  required=True),
        complex_attribute("members", [
            sub_attribute("value", "string", mutability="immutable",
                          description="Identifier of the member of this Group"),
            sub_attribute("$ref", "reference", reference_types=["User", "Group"], mutability="immutable",
                          description="The URI corresponding to a SCIM resource that is a member"),
            sub_attribute("type", "string", canonical_values=["User", "Group"], mutability="immutable",
                          description="A label indicating the type of resource"),
            sub_attribute("display", "string", mutability="readOnly",
                          description="A human-readable name for the member"),
        ], multi_valued=True, description="A list of members of the Group"),
    ]
