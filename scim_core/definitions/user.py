"""Схема User (RFC 7643 §4.1)"""

from typing import List

from ..models.schema import AttributeSchema
from ..services.schema_builder import attribute, complex_attribute, sub_attribute

USER_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:User"


def _primary():
    return sub_attribute(
        "primary", "boolean",
        description="A Boolean value indicating the 'primary' or preferred attribute"
    )


def _display():
    return sub_attribute(
        "display", "string",
        description="A human readable name, primarily used for display purposes"
    )


def _type(canonical_values):
    return sub_attribute(
        "type", "string",
        description="A label indicating the attribute's function",
        canonical_values=canonical_values
    )


def user_attributes() -> List[AttributeSchema]:
    return [
        attribute(
            "userName", "string",
            description="Unique identifier for the User",
            required=True,
            uniqueness="server"
        ),
        complex_attribute("name", [
            sub_attribute("formatted", "string", description="The full name"),
            sub_attribute("familyName", "string", description="The family name"),
            sub_attribute("givenName", "string", description="The given name"),
            sub_attribute("middleName", "string", description="The middle name(s)"),
            sub_attribute("honorificPrefix", "string", description="The honorific prefix(es)"),
            sub_attribute("honorificSuffix", "string", description="The honorific suffix(es)"),
        ], description="The components of the user's real name"),
        attribute("displayName", "string", description="The name of the User, suitable for display"),
        attribute("nickName", "string", description="The casual way to address the user"),
        attribute("profileUrl", "reference", reference_types=["external"],
                  description="A fully qualified URL pointing to a page representing the User's online profile"),
        complex_attribute("emails", [
            sub_attribute("value", "string", description="Email addresses for the user"),
            _display(),
            _type(["work", "home", "other"]),
            _primary(),
        ], multi_valued=True, description="Email addresses for the user"),
        attribute("active", "boolean", description="A Boolean value indicating the User's administrative status"),
        attribute("title", "string", description="The user's title, such as Vice President"),
        attribute("userType", "string",
                  description="Used to identify the relationship between the organization and the user"),
        attribute("preferredLanguage", "string",
                  description="Indicates the User's preferred written or spoken language"),
        attribute("locale", "string", description="Used to indicate the User's default location"),
        attribute("timezone", "string",
                  description="The User's time zone in the 'Olson' time zone database format"),
        attribute("password", "string", mutability="writeOnly", returned="never",
                  description="The User's cleartext password"),
        complex_attribute("phoneNumbers", [
            sub_attribute("value", "string", description="Phone number of the User"),
            _display(),
            _type(["work", "home", "mobile", "fax", "pager", "other"]),
            _primary(),
        ], multi_valued=True, description="Phone numbers for the User"),
        complex_attribute("addresses", [
            sub_attribute("formatted", "string",
                          description="The full mailing address, formatted for display or use with a mailing label"),
            sub_attribute("streetAddress", "string", description="The full street address component"),
            sub_attribute("locality", "string", description="The city or locality component"),
            sub_attribute("region", "string", description="The state or region component"),
            sub_attribute("postalCode", "string", description="The zipcode or postal code component"),
            sub_attribute("country", "string", description="The country name component"),
            _type(["work", "home", "other"]),
            _primary(),
        ], multi_valued=True, description="A physical mailing address for this User"),
        complex_attribute("photos", [
            sub_attribute("value", "reference", reference_types=["external"],
                          description="URL of a photo of the User"),
            _display(),
            _type(["photo", "thumbnail"]),
            _primary(),
        ], multi_valued=True, description="URLs of photos of the User"),
        complex_attribute("groups", [
            sub_attribute("value", "string", mutability="readOnly",
                          description="The identifier of the User's group"),
            sub_attribute("$ref", "reference", reference_types=["Group"], mutability="readOnly",
                          description="The URI of the corresponding 'Group' resource"),
            sub_attribute("display", "string", mutability="readOnly",
                          description="A human-readable name, primarily used for display purposes"),
            sub_attribute("type", "string", mutability="readOnly",
                          canonical_values=["direct", "indirect"],
                          description="A label indicating the attribute's function"),
        ], multi_valued=True, mutability="readOnly",
            description="A list of groups to which the user belongs"),
    ]
