"""Отображение между wire-документами SCIM и доменными записями"""

import hashlib
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Type

from ..definitions import USER_RESOURCE_TYPE, GROUP_RESOURCE_TYPE
from ..models.records import ScimRecord, UserRecord, GroupRecord
from ..models.schema import ResourceType
from ..utils.helpers import format_datetime, get_value, is_empty, parse_datetime

logger = logging.getLogger(__name__)


class ResourceMapper(ABC):
    """Контракт маппера одного типа ресурса

    Метаданные (created, lastModified, version) можно переопределить,
    по умолчанию они берутся из полей meta_* записи.
    """

    resource_type_name: str = "Resource"

    @abstractmethod
    def from_scim(self, document: Dict[str, Any]) -> ScimRecord:
        """wire-документ -> доменная запись (отсутствующие поля получают значения по умолчанию)"""

    @abstractmethod
    def to_scim(
        self,
        record: ScimRecord,
        location: Optional[str] = None,
        resource_type: Optional[str] = None
    ) -> Dict[str, Any]:
        """доменная запись -> wire-документ с блоком meta"""

    def get_meta_created(self, record: Any) -> Optional[datetime]:
        return getattr(record, "meta_created", None)

    def get_meta_last_modified(self, record: Any) -> Optional[datetime]:
        return getattr(record, "meta_last_modified", None)

    def get_meta_version(self, record: Any) -> Optional[str]:
        """Слабый ETag: md5 от ISO-8601 представления lastModified"""
        last_modified = self.get_meta_last_modified(record)
        if last_modified is None:
            return None
        digest = hashlib.md5(format_datetime(last_modified).encode("utf-8")).hexdigest()
        return f'W/"{digest}"'

    def format_meta(
        self,
        record: Any,
        location: Optional[str] = None,
        resource_type: Optional[str] = None
    ) -> Dict[str, Any]:
        meta = {
            "resourceType": resource_type or self.resource_type_name,
            "created": format_datetime(self.get_meta_created(record)),
            "lastModified": format_datetime(self.get_meta_last_modified(record)),
            "location": location,
            "version": self.get_meta_version(record),
        }
        return {key: value for key, value in meta.items() if value is not None}


class SchemaMapper(ResourceMapper):
    """Маппер по таблице полей: camelCase атрибуты <-> snake_case поля записи"""

    record_class: Type[ScimRecord] = ScimRecord
    resource_type: Optional[ResourceType] = None
    # (wire имя, поле записи)
    fields: List[Tuple[str, str]] = []

    def from_scim(self, document: Dict[str, Any]) -> ScimRecord:
        data: Dict[str, Any] = {}

        for wire_name, field_name in [("id", "id"), ("externalId", "external_id")] + self.fields:
            value = get_value(document, wire_name)
            if value is not None:
                data[field_name] = value

        schemas = get_value(document, "schemas")
        data["schemas"] = list(schemas) if schemas else [self.resource_type.schema_uri]

        extensions = {}
        for ext in self.resource_type.extensions:
            payload = get_value(document, ext.schema_uri)
            if isinstance(payload, dict) and payload:
                extensions[ext.schema_uri] = dict(payload)
        data["extensions"] = extensions

        meta = get_value(document, "meta")
        if isinstance(meta, dict):
            data["meta_created"] = parse_datetime(get_value(meta, "created"))
            data["meta_last_modified"] = parse_datetime(get_value(meta, "lastModified"))

        return self.record_class(**data)

    def to_scim(
        self,
        record: ScimRecord,
        location: Optional[str] = None,
        resource_type: Optional[str] = None
    ) -> Dict[str, Any]:
        document: Dict[str, Any] = {"schemas": self._schemas(record)}

        for wire_name, field_name in [("id", "id"), ("externalId", "external_id")] + self.fields:
            value = getattr(record, field_name, None)
            if not is_empty(value):
                document[wire_name] = value

        for uri, payload in record.extensions.items():
            if payload:
                document[uri] = dict(payload)

        document["meta"] = self.format_meta(record, location=location, resource_type=resource_type)
        return document

    def _schemas(self, record: ScimRecord) -> List[str]:
        schemas = [self.resource_type.schema_uri]
        for ext in self.resource_type.extensions:
            if record.extensions.get(ext.schema_uri):
                schemas.append(ext.schema_uri)
        return schemas


class UserMapper(SchemaMapper):
    """Маппер пользователей по умолчанию"""

    record_class = UserRecord
    resource_type_name = "User"
    fields = [
        ("userName", "user_name"),
        ("name", "name"),
        ("displayName", "display_name"),
        ("nickName", "nick_name"),
        ("profileUrl", "profile_url"),
        ("title", "title"),
        ("userType", "user_type"),
        ("preferredLanguage", "preferred_language"),
        ("locale", "locale"),
        ("timezone", "timezone"),
        ("active", "active"),
        ("password", "password"),
        ("emails", "emails"),
        ("phoneNumbers", "phone_numbers"),
        ("addresses", "addresses"),
        ("photos", "photos"),
        ("groups", "groups"),
    ]

    def __init__(self, resource_type: Optional[ResourceType] = None):
        self.resource_type = resource_type or USER_RESOURCE_TYPE


class GroupMapper(SchemaMapper):
    """Маппер групп по умолчанию"""

    record_class = GroupRecord
    resource_type_name = "Group"
    fields = [
        ("displayName", "display_name"),
        ("members", "members"),
    ]

    def __init__(self, resource_type: Optional[ResourceType] = None):
        self.resource_type = resource_type or GROUP_RESOURCE_TYPE
