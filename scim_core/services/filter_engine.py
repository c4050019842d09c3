"""Движок для применения SCIM фильтров к wire-документам в памяти

Эталонный адаптер запросов: вычисляет AST напрямую над словарями ресурсов.
Любой адаптер хранилища должен выбирать то же подмножество ресурсов.
"""

import logging
from decimal import Decimal
from typing import List, Any, Dict, Optional, Tuple

from ..models.filters import (
    FilterNode, AttributePath, Comparison, Presence, And, Or, Not,
    FilterOperator, STRING_OPERATORS
)
from ..models.schema import AttributeSchema, AttributeType, ResourceType
from ..utils.exceptions import FilterEvaluationError
from ..utils.helpers import get_value, is_empty, parse_datetime
from .registry import SchemaRegistry

logger = logging.getLogger(__name__)


class _Scope:
    """Контекст вычисления внутри value filter: элементы сложного атрибута"""

    def __init__(self, attribute: Optional[AttributeSchema]):
        self.attribute = attribute


class FilterEngine:
    """Движок для применения SCIM фильтров к данным"""

    def __init__(self, registry: Optional[SchemaRegistry] = None, resource_type: Optional[ResourceType] = None):
        self.registry = registry
        self.resource_type = resource_type

    def apply_filter(self, resources: List[Dict[str, Any]], filter_expr: Optional[FilterNode]) -> List[Dict[str, Any]]:
        """Применяет фильтр к списку SCIM ресурсов (ошибки вычисления не глушатся)"""
        if filter_expr is None:
            return list(resources)
        return [resource for resource in resources if self.matches(resource, filter_expr)]

    def matches(self, resource: Dict[str, Any], filter_expr: FilterNode) -> bool:
        """Удовлетворяет ли ресурс фильтру"""
        return self._evaluate(resource, filter_expr, None)

    def matches_element(
        self,
        element: Dict[str, Any],
        filter_expr: FilterNode,
        attribute: Optional[AttributeSchema] = None
    ) -> bool:
        """Удовлетворяет ли элемент многозначного сложного атрибута value filter"""
        return self._evaluate(element, filter_expr, _Scope(attribute))

    def values(self, resource: Dict[str, Any], path: AttributePath) -> List[Any]:
        """Значения по пути (для сортировки): многозначные атрибуты разворачиваются"""
        values, _ = self._collect(resource, path, None, for_comparison=True)
        return [v for v in values if v is not None]

    def _evaluate(self, resource: Dict[str, Any], expr: FilterNode, scope: Optional[_Scope]) -> bool:
        """Оценивает выражение фильтра для SCIM ресурса"""
        if isinstance(expr, Comparison):
            return self._evaluate_comparison(resource, expr, scope)

        if isinstance(expr, Presence):
            return self._evaluate_presence(resource, expr, scope)

        if isinstance(expr, And):
            # Ранний выход для AND
            if not self._evaluate(resource, expr.left, scope):
                return False
            return self._evaluate(resource, expr.right, scope)

        if isinstance(expr, Or):
            # Ранний выход для OR
            if self._evaluate(resource, expr.left, scope):
                return True
            return self._evaluate(resource, expr.right, scope)

        if isinstance(expr, Not):
            return not self._evaluate(resource, expr.inner, scope)

        raise FilterEvaluationError(f"Unknown expression type: {type(expr).__name__}")

    def _evaluate_presence(self, resource: Dict[str, Any], expr: Presence, scope: Optional[_Scope]) -> bool:
        values, _ = self._collect(resource, expr.path, scope, for_comparison=False)
        return any(not is_empty(v) for v in values)

    def _evaluate_comparison(self, resource: Dict[str, Any], expr: Comparison, scope: Optional[_Scope]) -> bool:
        values, schema = self._collect(resource, expr.path, scope, for_comparison=True)
        values = [v for v in values if v is not None]

        # Сравнение с null: eq: атрибут отсутствует, ne: присутствует
        if expr.value is None:
            present = any(not is_empty(v) for v in values)
            if expr.op == FilterOperator.EQ:
                return not present
            if expr.op == FilterOperator.NE:
                return present
            return False

        if expr.op == FilterOperator.NE:
            return not any(self._compare(v, FilterOperator.EQ, expr.value, schema) for v in values)

        return any(self._compare(v, expr.op, expr.value, schema) for v in values)

    def _locate(self, resource: Dict[str, Any], path: AttributePath) -> Tuple[Any, Optional[AttributeSchema]]:
        """Значение атрибута верхнего уровня с учётом схем расширений"""
        if self.registry is not None and self.resource_type is not None:
            resolved = self.registry.resolve(
                self.resource_type,
                AttributePath(schema_urn=path.schema_urn, attribute=path.attribute)
            )
            if resolved is None:
                return None, None
            container = resource
            if resolved.schema is not None and resolved.schema.id != self.resource_type.schema_uri:
                container = get_value(resource, resolved.schema.id)
            return get_value(container, resolved.attribute.name), resolved.attribute

        container = resource
        if path.schema_urn:
            extension = get_value(resource, path.schema_urn)
            if isinstance(extension, dict):
                container = extension
        return get_value(container, path.attribute), None

    def _collect(
        self,
        resource: Dict[str, Any],
        path: AttributePath,
        scope: Optional[_Scope],
        for_comparison: bool
    ) -> Tuple[List[Any], Optional[AttributeSchema]]:
        """Собирает значения-кандидаты для пути (многозначные атрибуты разворачиваются)"""
        if scope is not None:
            attribute = scope.attribute.get_sub_attribute(path.attribute) if scope.attribute else None
            value = get_value(resource, path.attribute)
        else:
            value, attribute = self._locate(resource, path)

        if value is None:
            return [], attribute

        elements = value if isinstance(value, list) else [value]

        if path.value_filter is not None:
            inner_scope = _Scope(attribute)
            elements = [
                e for e in elements
                if isinstance(e, dict) and self._evaluate(e, path.value_filter, inner_scope)
            ]

        if path.sub_attribute:
            sub_schema = attribute.get_sub_attribute(path.sub_attribute) if attribute else None
            values = []
            for element in elements:
                sub_value = get_value(element, path.sub_attribute)
                if isinstance(sub_value, list):
                    values.extend(sub_value)
                elif sub_value is not None:
                    values.append(sub_value)
            return values, sub_schema

        if for_comparison and any(isinstance(e, dict) for e in elements):
            # Сложный атрибут без под-атрибута сравнивается по его "value"
            value_schema = attribute.get_sub_attribute("value") if attribute else None
            return [get_value(e, "value") for e in elements if isinstance(e, dict)], value_schema

        return elements, attribute

    def _compare(self, actual: Any, operator: FilterOperator, expected: Any, schema: Optional[AttributeSchema]) -> bool:
        """Сравнивает значения согласно оператору"""
        attr_type = schema.type if schema is not None else None
        case_exact = schema.case_exact if schema is not None else False

        if attr_type == AttributeType.DATE_TIME or (attr_type is None and _looks_like_datetime(actual, expected)):
            actual_dt, expected_dt = parse_datetime(actual), parse_datetime(expected)
            if actual_dt is not None and expected_dt is not None:
                if operator in STRING_OPERATORS:
                    return self._compare_strings(str(actual), operator, str(expected), case_exact)
                return _ordered(actual_dt, operator, expected_dt)

        if isinstance(actual, bool) or isinstance(expected, bool):
            if not (isinstance(actual, bool) and isinstance(expected, bool)):
                return False
            if operator == FilterOperator.EQ:
                return actual == expected
            return False

        if isinstance(actual, str) and isinstance(expected, str):
            return self._compare_strings(actual, operator, expected, case_exact)

        if _is_number(actual) and _is_number(expected):
            if operator in STRING_OPERATORS:
                return False
            return _ordered(Decimal(str(actual)), operator, Decimal(str(expected)))

        return False

    @staticmethod
    def _compare_strings(actual: str, operator: FilterOperator, expected: str, case_exact: bool) -> bool:
        if not case_exact:
            actual, expected = actual.lower(), expected.lower()

        if operator == FilterOperator.CO:
            return expected in actual
        if operator == FilterOperator.SW:
            return actual.startswith(expected)
        if operator == FilterOperator.EW:
            return actual.endswith(expected)
        return _ordered(actual, operator, expected)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _looks_like_datetime(actual: Any, expected: Any) -> bool:
    return isinstance(actual, str) and isinstance(expected, str) and len(expected) >= 10 \
        and expected[4:5] == "-" and expected[7:8] == "-" and "T" in expected \
        and parse_datetime(actual) is not None and parse_datetime(expected) is not None


def _ordered(actual: Any, operator: FilterOperator, expected: Any) -> bool:
    if operator == FilterOperator.EQ:
        return actual == expected
    if operator == FilterOperator.NE:
        return actual != expected
    if operator == FilterOperator.GT:
        return actual > expected
    if operator == FilterOperator.GE:
        return actual >= expected
    if operator == FilterOperator.LT:
        return actual < expected
    if operator == FilterOperator.LE:
        return actual <= expected
    raise FilterEvaluationError(f"Unknown operator: {operator}")
