"""Реестр SCIM схем и типов ресурсов"""

import logging
from typing import Optional, List, Dict, Iterable, NamedTuple

from ..config import resource_url, scim_base_url
from ..models.filters import AttributePath
from ..models.schema import AttributeSchema, ResourceSchema, ResourceType
from ..utils.exceptions import SchemaDefinitionError
from .filter_parser import parse_path
from .schema_builder import find_duplicates

logger = logging.getLogger(__name__)


class ResolvedAttribute(NamedTuple):
    """Результат разрешения пути атрибута по схемам типа ресурса"""
    schema: Optional[ResourceSchema]  # None для общих атрибутов (id, externalId, meta)
    attribute: AttributeSchema
    sub_attribute: Optional[AttributeSchema] = None

    @property
    def target(self) -> AttributeSchema:
        return self.sub_attribute or self.attribute


class SchemaRegistry:
    """Реестр схем: заполняется один раз при старте, далее только чтение

    Схемы неизменяемы, поэтому конкурентное чтение без блокировок безопасно.
    """

    def __init__(self, common_attributes: Iterable[AttributeSchema] = ()):
        self._schemas: Dict[str, ResourceSchema] = {}
        self._resource_types: Dict[str, ResourceType] = {}
        self._common = tuple(common_attributes)

    @property
    def common_attributes(self):
        return self._common

    def register(
        self,
        uri: str,
        name: str,
        description: str,
        attributes: List[AttributeSchema]
    ) -> ResourceSchema:
        """Регистрирует схему; ошибки декларации обнаруживаются сразу"""
        if not uri:
            raise SchemaDefinitionError("Schema URI is required")
        if uri.lower() in self._schemas:
            raise SchemaDefinitionError(f"Schema {uri} is already registered")

        duplicates = find_duplicates(list(attributes))
        if duplicates:
            raise SchemaDefinitionError(
                f"Duplicate attribute names in schema {uri}: {', '.join(duplicates)}"
            )

        for attr in attributes:
            if attr.sub_attributes and not attr.is_complex:
                raise SchemaDefinitionError(
                    f"Attribute {attr.name} in schema {uri} has sub-attributes but is not complex"
                )
            for sub in attr.sub_attributes:
                if sub.is_complex:
                    raise SchemaDefinitionError(
                        f"Sub-attribute {attr.name}.{sub.name} in schema {uri} cannot be complex"
                    )

        schema = ResourceSchema(id=uri, name=name, description=description, attributes=tuple(attributes))
        self._schemas[uri.lower()] = schema
        logger.debug(f"Registered schema {uri} with {len(schema.attributes)} attributes")
        return schema

    def register_resource_type(self, resource_type: ResourceType) -> ResourceType:
        """Регистрирует тип ресурса; все его схемы должны быть уже зарегистрированы"""
        for uri in resource_type.schema_uris:
            if not self.has(uri):
                raise SchemaDefinitionError(
                    f"Resource type {resource_type.name} references unknown schema {uri}"
                )
        if resource_type.name.lower() in self._resource_types:
            raise SchemaDefinitionError(f"Resource type {resource_type.name} is already registered")
        self._resource_types[resource_type.name.lower()] = resource_type
        return resource_type

    def get(self, uri: str) -> Optional[ResourceSchema]:
        return self._schemas.get(uri.lower())

    def has(self, uri: str) -> bool:
        return uri.lower() in self._schemas

    def list(self) -> List[ResourceSchema]:
        return list(self._schemas.values())

    def get_resource_type(self, name: str) -> Optional[ResourceType]:
        return self._resource_types.get(name.lower())

    def list_resource_types(self) -> List[ResourceType]:
        return list(self._resource_types.values())

    def core_schema(self, resource_type: ResourceType) -> ResourceSchema:
        return self._schemas[resource_type.schema_uri.lower()]

    def extension_schemas(self, resource_type: ResourceType) -> List[ResourceSchema]:
        return [self._schemas[e.schema_uri.lower()] for e in resource_type.extensions]

    def schema_to_wire(self, schema: ResourceSchema) -> dict:
        return schema.to_wire(location=f"{scim_base_url()}/Schemas/{schema.id}")

    def resource_type_to_wire(self, resource_type: ResourceType) -> dict:
        return resource_type.to_wire(location=resource_url("ResourceTypes", resource_type.name))

    def get_common_attribute(self, name: str) -> Optional[AttributeSchema]:
        lowered = name.lower()
        for attr in self._common:
            if attr.name.lower() == lowered:
                return attr
        return None

    def find_extension(self, resource_type: ResourceType, uri: str) -> Optional[ResourceSchema]:
        """Схема расширения по URN (без учёта регистра)"""
        for ext in resource_type.extensions:
            if ext.schema_uri.lower() == uri.lower():
                return self._schemas[ext.schema_uri.lower()]
        return None

    def resolve(self, resource_type: ResourceType, path: AttributePath) -> Optional[ResolvedAttribute]:
        """Находит атрибут по пути без учёта регистра

        С URN-префиксом ищем только в указанной схеме; без префикса ищем
        в основной схеме, затем среди общих атрибутов, затем в расширениях.
        """
        candidates: List[Optional[ResourceSchema]]
        if path.schema_urn:
            schema = None
            for uri in resource_type.schema_uris:
                if uri.lower() == path.schema_urn.lower():
                    schema = self._schemas[uri.lower()]
            if schema is None:
                return None
            candidates = [schema]
        else:
            candidates = [self.core_schema(resource_type), None] + self.extension_schemas(resource_type)

        for schema in candidates:
            attr = schema.get_attribute(path.attribute) if schema is not None else self.get_common_attribute(path.attribute)
            if attr is None:
                continue
            if path.sub_attribute is None:
                return ResolvedAttribute(schema, attr)
            sub = attr.get_sub_attribute(path.sub_attribute) if attr.is_complex else None
            if sub is None:
                return None
            return ResolvedAttribute(schema, attr, sub)

        return None

    def find_attribute(self, resource_type: ResourceType, path) -> Optional[AttributeSchema]:
        """Схема атрибута по пути (строка или AttributePath)"""
        if isinstance(path, str):
            path = parse_path(path)
        resolved = self.resolve(resource_type, path)
        return resolved.target if resolved else None
