"""Модели AST для SCIM фильтров и путей атрибутов"""

import json
from pydantic import BaseModel, ConfigDict
from typing import Optional, Any, Union
from enum import Enum


class FilterOperator(str, Enum):
    """Операторы сравнения SCIM"""
    EQ = "eq"  # равно
    NE = "ne"  # не равно
    CO = "co"  # содержит
    SW = "sw"  # начинается с
    EW = "ew"  # заканчивается на
    GT = "gt"  # больше
    GE = "ge"  # больше или равно
    LT = "lt"  # меньше
    LE = "le"  # меньше или равно


# Операторы, работающие только со строковым представлением
STRING_OPERATORS = frozenset({FilterOperator.CO, FilterOperator.SW, FilterOperator.EW})
ORDERING_OPERATORS = frozenset({FilterOperator.GT, FilterOperator.GE, FilterOperator.LT, FilterOperator.LE})


class LogicalOperator(str, Enum):
    """Логические операторы"""
    AND = "and"
    OR = "or"
    NOT = "not"


class FilterNode(BaseModel):
    """Базовый класс для узлов AST фильтра (неизменяемые)"""

    model_config = ConfigDict(frozen=True, extra="forbid")


class AttributePath(BaseModel):
    """Путь атрибута: [urn:]attr[.sub] или attr[filter][.sub]"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    schema_urn: Optional[str] = None  # urn:...:User (без завершающего двоеточия)
    attribute: str  # emails
    sub_attribute: Optional[str] = None  # value
    value_filter: Optional[FilterNode] = None  # type eq "work"

    @property
    def full_attribute(self) -> str:
        """Имя атрибута вместе с префиксом схемы"""
        if self.schema_urn:
            return f"{self.schema_urn}:{self.attribute}"
        return self.attribute

    @property
    def dotted(self) -> str:
        """Путь без value filter, например emails.value"""
        if self.sub_attribute:
            return f"{self.full_attribute}.{self.sub_attribute}"
        return self.full_attribute

    def __str__(self):
        result = self.full_attribute
        if self.value_filter is not None:
            result += f"[{self.value_filter}]"
        if self.sub_attribute:
            result += f".{self.sub_attribute}"
        return result


def format_value(value: Any) -> str:
    """Представление compValue в синтаксисе фильтра"""
    return json.dumps(value)


class Comparison(FilterNode):
    """Выражение сравнения: path op value"""
    op: FilterOperator
    path: AttributePath
    value: Any = None

    def __str__(self):
        return f"{self.path} {self.op.value} {format_value(self.value)}"


class Presence(FilterNode):
    """Проверка присутствия: path pr"""
    path: AttributePath

    def __str__(self):
        return f"{self.path} pr"


class And(FilterNode):
    """Логическое И"""
    left: FilterNode
    right: FilterNode

    def __str__(self):
        return f"({self.left} and {self.right})"


class Or(FilterNode):
    """Логическое ИЛИ"""
    left: FilterNode
    right: FilterNode

    def __str__(self):
        return f"({self.left} or {self.right})"


class Not(FilterNode):
    """Логическое НЕ"""
    inner: FilterNode

    def __str__(self):
        return f"not ({self.inner})"


FilterExpression = Union[Comparison, Presence, And, Or, Not]


def serialize(node: FilterNode) -> str:
    """Каноническая строка фильтра; повторный разбор даёт тот же AST"""
    return str(node)


AttributePath.model_rebuild()
Comparison.model_rebuild()
Presence.model_rebuild()
And.model_rebuild()
Or.model_rebuild()
Not.model_rebuild()
