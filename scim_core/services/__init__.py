"""Сервисы SCIM Core

Здесь экспортируются только модули, не зависящие от встроенных определений
схем (definitions импортирует schema_builder и registry).
"""

from .filter_parser import FilterParser, parse_filter, parse_path
from .filter_engine import FilterEngine
from .registry import SchemaRegistry

__all__ = [
    "FilterParser",
    "parse_filter",
    "parse_path",
    "FilterEngine",
    "SchemaRegistry",
]
