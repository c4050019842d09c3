"""Модели SCIM схем согласно RFC 7643 §7"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any, Tuple
from enum import Enum


class AttributeType(str, Enum):
    """Типы данных атрибутов SCIM"""
    STRING = "string"
    BOOLEAN = "boolean"
    COMPLEX = "complex"
    REFERENCE = "reference"
    DATE_TIME = "dateTime"
    BINARY = "binary"
    INTEGER = "integer"
    DECIMAL = "decimal"


class Mutability(str, Enum):
    """Когда клиент может изменять атрибут"""
    READ_WRITE = "readWrite"
    READ_ONLY = "readOnly"
    WRITE_ONLY = "writeOnly"
    IMMUTABLE = "immutable"


class Returned(str, Enum):
    """Когда атрибут возвращается в ответе"""
    DEFAULT = "default"
    ALWAYS = "always"
    NEVER = "never"
    REQUEST = "request"


class Uniqueness(str, Enum):
    """Уникальность значения атрибута"""
    NONE = "none"
    SERVER = "server"
    GLOBAL = "global"


STRING_TYPES = (AttributeType.STRING, AttributeType.REFERENCE)


class AttributeSchema(BaseModel):
    """Описание атрибута (или под-атрибута) схемы"""

    model_config = ConfigDict(frozen=True)

    name: str
    type: AttributeType = AttributeType.STRING
    multi_valued: bool = False
    description: str = ""
    required: bool = False
    case_exact: bool = False
    mutability: Mutability = Mutability.READ_WRITE
    returned: Returned = Returned.DEFAULT
    # None означает "не задано явно": для boolean верхнего уровня ключ не выводится
    uniqueness: Optional[Uniqueness] = None
    canonical_values: Optional[Tuple[str, ...]] = None
    reference_types: Optional[Tuple[str, ...]] = None
    sub_attributes: Tuple["AttributeSchema", ...] = ()

    @property
    def is_complex(self) -> bool:
        return self.type == AttributeType.COMPLEX

    @property
    def effective_uniqueness(self) -> Uniqueness:
        return self.uniqueness or Uniqueness.NONE

    def get_sub_attribute(self, name: str) -> Optional["AttributeSchema"]:
        """Ищет под-атрибут без учёта регистра"""
        lowered = name.lower()
        for sub in self.sub_attributes:
            if sub.name.lower() == lowered:
                return sub
        return None

    def to_wire(self, sub_attribute: bool = False) -> Dict[str, Any]:
        """Представление атрибута в формате RFC 7643 §7"""
        wire: Dict[str, Any] = {
            "name": self.name,
            "type": self.type.value,
            "multiValued": self.multi_valued,
            "description": self.description,
            "required": self.required,
        }

        if self.type == AttributeType.COMPLEX and not sub_attribute:
            wire["subAttributes"] = [s.to_wire(sub_attribute=True) for s in self.sub_attributes]

        if self.type == AttributeType.REFERENCE and self.reference_types is not None:
            wire["referenceTypes"] = list(self.reference_types)

        if self.type in STRING_TYPES:
            wire["caseExact"] = self.case_exact

        if self.canonical_values is not None:
            wire["canonicalValues"] = list(self.canonical_values)

        wire["mutability"] = self.mutability.value
        wire["returned"] = self.returned.value

        # boolean верхнего уровня получает uniqueness только если его задали явно
        if self.type != AttributeType.BOOLEAN or sub_attribute or self.uniqueness is not None:
            wire["uniqueness"] = self.effective_uniqueness.value

        return wire


class ResourceSchema(BaseModel):
    """Схема ресурса: URI, имя, описание и атрибуты в порядке объявления"""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    description: str = ""
    attributes: Tuple[AttributeSchema, ...] = ()

    def get_attribute(self, name: str) -> Optional[AttributeSchema]:
        """Ищет атрибут верхнего уровня без учёта регистра"""
        lowered = name.lower()
        for attribute in self.attributes:
            if attribute.name.lower() == lowered:
                return attribute
        return None

    def to_wire(self, location: Optional[str] = None) -> Dict[str, Any]:
        """Документ схемы для /Schemas"""
        meta: Dict[str, Any] = {"resourceType": "Schema"}
        if location:
            meta["location"] = location
        return {
            "schemas": ["urn:ietf:params:scim:schemas:core:2.0:Schema"],
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "attributes": [a.to_wire() for a in self.attributes],
            "meta": meta,
        }


class SchemaExtension(BaseModel):
    """Расширение схемы, подключённое к типу ресурса"""

    model_config = ConfigDict(frozen=True)

    schema_uri: str
    required: bool = False


class ResourceType(BaseModel):
    """Тип ресурса (RFC 7643 §6): основная схема и её расширения"""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    endpoint: str
    description: str = ""
    schema_uri: str
    extensions: Tuple[SchemaExtension, ...] = ()

    @property
    def schema_uris(self) -> List[str]:
        return [self.schema_uri] + [e.schema_uri for e in self.extensions]

    def to_wire(self, location: Optional[str] = None) -> Dict[str, Any]:
        wire: Dict[str, Any] = {
            "schemas": ["urn:ietf:params:scim:schemas:core:2.0:ResourceType"],
            "id": self.id,
            "name": self.name,
            "endpoint": self.endpoint,
            "description": self.description,
            "schema": self.schema_uri,
        }
        if self.extensions:
            wire["schemaExtensions"] = [
                {"schema": e.schema_uri, "required": e.required} for e in self.extensions
            ]
        meta: Dict[str, Any] = {"resourceType": "ResourceType"}
        if location:
            meta["location"] = location
        wire["meta"] = meta
        return wire


AttributeSchema.model_rebuild()
