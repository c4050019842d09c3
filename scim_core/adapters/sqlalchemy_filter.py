"""Трансляция SCIM фильтров в условия SQLAlchemy"""

import logging
from typing import Any, Optional

from sqlalchemy import Boolean, LargeBinary, String, Table, and_, func, not_, or_
from sqlalchemy.sql.elements import ColumnElement

from ..models.schema import AttributeSchema, ResourceType
from ..services.query_adapter import FieldMapping, QueryAdapter
from ..services.registry import SchemaRegistry
from ..utils.exceptions import UnsupportedAttributeError, UnsupportedFilterShapeError

logger = logging.getLogger(__name__)


class SQLAlchemyFilterAdapter(QueryAdapter):
    """Строит boolean ColumnElement по таблице или декларативной модели

    Семантика совпадает с FilterEngine: NULL в колонке означает отсутствие
    атрибута, строки сравниваются без учёта регистра, если у атрибута нет
    caseExact.
    """

    def __init__(
        self,
        source: Any,
        mapping: FieldMapping,
        registry: Optional[SchemaRegistry] = None,
        resource_type: Optional[ResourceType] = None
    ):
        super().__init__(mapping, registry, resource_type)
        self.table: Table = source if isinstance(source, Table) else source.__table__

    def column(self, field: str) -> ColumnElement:
        if field not in self.table.c:
            raise UnsupportedAttributeError(field)
        return self.table.c[field]

    def _operands(self, field: str, value: Any, schema: Optional[AttributeSchema]):
        column = self.column(field)
        case_exact = schema.case_exact if schema is not None else False
        if isinstance(value, str) and not case_exact:
            return column, func.lower(column), value.lower()
        return column, column, value

    def _compare(self, field: str, value: Any, schema: Optional[AttributeSchema], op) -> ColumnElement:
        column, left, right = self._operands(field, value, schema)
        return and_(column.isnot(None), op(left, right))

    def _like(self, field: str, value: Any, schema: Optional[AttributeSchema], op, name: str) -> ColumnElement:
        # co/sw/ew имеют смысл только для строковых колонок и строковых значений
        if not isinstance(self.column(field).type, String) or not isinstance(value, str):
            raise UnsupportedFilterShapeError(f"Operator '{name}' requires a string column and value: {field}")
        return self._compare(field, value, schema, op)

    def _order(self, field: str, value: Any, schema: Optional[AttributeSchema], op, name: str) -> ColumnElement:
        # boolean и binary значения не упорядочены
        if isinstance(value, bool) or isinstance(self.column(field).type, (Boolean, LargeBinary)):
            raise UnsupportedFilterShapeError(f"Operator '{name}' cannot be applied to {field}")
        return self._compare(field, value, schema, op)

    def equals(self, field, value, schema):
        return self._compare(field, value, schema, lambda l, r: l == r)

    def not_equals(self, field, value, schema):
        # Отсутствующий атрибут не равен ничему
        column, left, right = self._operands(field, value, schema)
        return or_(column.is_(None), left != right)

    def contains(self, field, value, schema):
        return self._like(field, value, schema, lambda l, r: l.contains(r, autoescape=True), "co")

    def starts_with(self, field, value, schema):
        return self._like(field, value, schema, lambda l, r: l.startswith(r, autoescape=True), "sw")

    def ends_with(self, field, value, schema):
        return self._like(field, value, schema, lambda l, r: l.endswith(r, autoescape=True), "ew")

    def greater_than(self, field, value, schema):
        return self._order(field, value, schema, lambda l, r: l > r, "gt")

    def greater_or_equal(self, field, value, schema):
        return self._order(field, value, schema, lambda l, r: l >= r, "ge")

    def less_than(self, field, value, schema):
        return self._order(field, value, schema, lambda l, r: l < r, "lt")

    def less_or_equal(self, field, value, schema):
        return self._order(field, value, schema, lambda l, r: l <= r, "le")

    def present(self, field, schema):
        column = self.column(field)
        if isinstance(column.type, String):
            return and_(column.isnot(None), column != "")
        return column.isnot(None)

    def and_(self, left, right):
        return and_(left, right)

    def or_(self, left, right):
        return or_(left, right)

    def not_(self, inner):
        return not_(inner)

    def filter_query(self, query, predicate):
        return query.where(predicate)
