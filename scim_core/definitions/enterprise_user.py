"""Расширение Enterprise User (RFC 7643 §4.3)"""

from typing import List

from ..models.schema import AttributeSchema
from ..services.schema_builder import attribute, complex_attribute, sub_attribute

ENTERPRISE_USER_SCHEMA = "urn:ietf:params:scim:schemas:extension:enterprise:2.0:User"


def enterprise_user_attributes() -> List[AttributeSchema]:
    return [
        attribute("employeeNumber", "string",
                  description="Numeric or alphanumeric identifier assigned to a person"),
        attribute("costCenter", "string", description="Identifies the name of a cost center"),
        attribute("organization", "string", description="Identifies the name of an organization"),
        attribute("division", "string", description="Identifies the name of a division"),
        attribute("department", "string", description="Identifies the name of a department"),
        complex_attribute("manager", [
            sub_attribute("value", "string",
                          description="The id of the SCIM resource representing the User's manager"),
            sub_attribute("$ref", "reference", reference_types=["User"],
                          description="The URI of the SCIM resource representing the User's manager"),
            sub_attribute("displayName", "string", mutability="readOnly",
                          description="The displayName of the User's manager"),
        ], description="The User's manager"),
    ]
