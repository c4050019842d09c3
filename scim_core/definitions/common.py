"""Общие атрибуты всех ресурсов (RFC 7643 §3.1)"""

from typing import List

from ..models.schema import AttributeSchema
from ..services.schema_builder import attribute, complex_attribute, sub_attribute


def common_attributes() -> List[AttributeSchema]:
    return [
        attribute("id", "string", case_exact=True, mutability="readOnly", returned="always",
                  uniqueness="server", description="Unique identifier for the SCIM resource"),
        attribute("externalId", "string", case_exact=True,
                  description="Identifier defined by the provisioning client"),
        complex_attribute("meta", [
            sub_attribute("resourceType", "string", case_exact=True, mutability="readOnly"),
            sub_attribute("created", "dateTime", mutability="readOnly"),
            sub_attribute("lastModified", "dateTime", mutability="readOnly"),
            sub_attribute("location", "reference", reference_types=["uri"], mutability="readOnly"),
            sub_attribute("version", "string", case_exact=True, mutability="readOnly"),
        ], mutability="readOnly", returned="always", description="Resource metadata"),
    ]
