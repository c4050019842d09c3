"""Контракт трансляции AST фильтра в предикаты хранилища"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.filters import (
    FilterNode, AttributePath, Comparison, Presence, And, Or, Not, FilterOperator
)
from ..models.schema import AttributeSchema, AttributeType, ResourceType
from ..utils.exceptions import UnsupportedAttributeError, UnsupportedFilterShapeError
from ..utils.helpers import parse_datetime
from .registry import SchemaRegistry

logger = logging.getLogger(__name__)


class FieldMapping(BaseModel):
    """Отображение путей SCIM атрибутов на поля хранилища

    Ключи сравниваются без учёта регистра: {"userName": "user_name",
    "name.familyName": "family_name"}.
    """
    fields: Dict[str, str] = Field(default_factory=dict)

    @field_validator("fields")
    @classmethod
    def lowercase_keys(cls, v: Dict[str, str]) -> Dict[str, str]:
        return {key.lower(): value for key, value in v.items()}

    def resolve(self, path: str) -> str:
        """Поле хранилища для пути; для неизвестного пути UnsupportedAttributeError"""
        field = self.fields.get(path.lower())
        if field is None:
            raise UnsupportedAttributeError(path)
        return field


class QueryAdapter(ABC):
    """Базовый адаптер: обходит AST и вызывает операции конкретного хранилища

    Непокрытый путь никогда не пропускается молча: пропущенное условие
    вернуло бы слишком широкую выборку.
    """

    def __init__(
        self,
        mapping: FieldMapping,
        registry: Optional[SchemaRegistry] = None,
        resource_type: Optional[ResourceType] = None
    ):
        self.mapping = mapping
        self.registry = registry
        self.resource_type = resource_type

    def apply(self, query: Any, node: Optional[FilterNode]) -> Any:
        """Добавляет фильтр к запросу хранилища"""
        if node is None:
            return query
        return self.filter_query(query, self.translate(node))

    def translate(self, node: FilterNode) -> Any:
        """Предикат хранилища для узла AST"""
        if isinstance(node, And):
            return self.and_(self.translate(node.left), self.translate(node.right))
        if isinstance(node, Or):
            return self.or_(self.translate(node.left), self.translate(node.right))
        if isinstance(node, Not):
            return self.not_(self.translate(node.inner))

        if isinstance(node, (Comparison, Presence)) and node.path.value_filter is not None:
            return self.value_filter(node)

        if isinstance(node, Presence):
            return self.present(self.field(node.path), self.attribute_schema(node.path))

        if isinstance(node, Comparison):
            return self._translate_comparison(node)

        raise UnsupportedFilterShapeError(f"Unsupported filter node {type(node).__name__}")

    def _translate_comparison(self, node: Comparison) -> Any:
        field = self.field(node.path)
        schema = self.attribute_schema(node.path)
        value = node.value

        # Сравнение с null: eq означает отсутствие, ne означает присутствие
        if value is None:
            present = self.present(field, schema)
            if node.op == FilterOperator.EQ:
                return self.not_(present)
            if node.op == FilterOperator.NE:
                return present
            # всегда ложно
            return self.and_(present, self.not_(present))

        if schema is not None and schema.type == AttributeType.DATE_TIME and isinstance(value, str):
            value = parse_datetime(value) or value

        handlers = {
            FilterOperator.EQ: self.equals,
            FilterOperator.NE: self.not_equals,
            FilterOperator.CO: self.contains,
            FilterOperator.SW: self.starts_with,
            FilterOperator.EW: self.ends_with,
            FilterOperator.GT: self.greater_than,
            FilterOperator.GE: self.greater_or_equal,
            FilterOperator.LT: self.less_than,
            FilterOperator.LE: self.less_or_equal,
        }
        return handlers[node.op](field, value, schema)

    def field(self, path: AttributePath) -> str:
        """Поле хранилища для пути (URN основной схемы можно опускать)"""
        key = path.dotted
        if path.schema_urn and self.resource_type is not None and \
                path.schema_urn.lower() == self.resource_type.schema_uri.lower():
            key = AttributePath(attribute=path.attribute, sub_attribute=path.sub_attribute).dotted
        return self.mapping.resolve(key)

    def attribute_schema(self, path: AttributePath) -> Optional[AttributeSchema]:
        if self.registry is None or self.resource_type is None:
            return None
        resolved = self.registry.resolve(self.resource_type, path)
        if resolved is None:
            return None
        target = resolved.target
        # Сложный атрибут без под-атрибута сравнивается по value
        if target.is_complex:
            return target.get_sub_attribute("value")
        return target

    def value_filter(self, node: FilterNode) -> Any:
        """Value filter: существует элемент, удовлетворяющий под-фильтру"""
        raise UnsupportedFilterShapeError(
            f"{type(self).__name__} cannot express value filter {node.path}"
        )

    @abstractmethod
    def equals(self, field: str, value: Any, schema: Optional[AttributeSchema]) -> Any:
        pass

    @abstractmethod
    def not_equals(self, field: str, value: Any, schema: Optional[AttributeSchema]) -> Any:
        pass

    @abstractmethod
    def contains(self, field: str, value: Any, schema: Optional[AttributeSchema]) -> Any:
        pass

    @abstractmethod
    def starts_with(self, field: str, value: Any, schema: Optional[AttributeSchema]) -> Any:
        pass

    @abstractmethod
    def ends_with(self, field: str, value: Any, schema: Optional[AttributeSchema]) -> Any:
        pass

    @abstractmethod
    def greater_than(self, field: str, value: Any, schema: Optional[AttributeSchema]) -> Any:
        pass

    @abstractmethod
    def greater_or_equal(self, field: str, value: Any, schema: Optional[AttributeSchema]) -> Any:
        pass

    @abstractmethod
    def less_than(self, field: str, value: Any, schema: Optional[AttributeSchema]) -> Any:
        pass

    @abstractmethod
    def less_or_equal(self, field: str, value: Any, schema: Optional[AttributeSchema]) -> Any:
        pass

    @abstractmethod
    def present(self, field: str, schema: Optional[AttributeSchema]) -> Any:
        pass

    @abstractmethod
    def and_(self, left: Any, right: Any) -> Any:
        pass

    @abstractmethod
    def or_(self, left: Any, right: Any) -> Any:
        pass

    @abstractmethod
    def not_(self, inner: Any) -> Any:
        pass

    @abstractmethod
    def filter_query(self, query: Any, predicate: Any) -> Any:
        """Применяет готовый предикат к запросу"""
        pass
