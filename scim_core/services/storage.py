"""Контракт хранилища ресурсов и реализация в памяти"""

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..models.filters import FilterNode
from ..models.records import ScimRecord
from ..models.schema import AttributeType, ResourceType, Uniqueness
from ..utils.exceptions import PreconditionFailedError, ResourceNotFoundError, UniquenessError
from ..utils.helpers import get_value, is_empty
from .filter_engine import FilterEngine
from .filter_parser import parse_path
from .mapper import ResourceMapper
from .registry import SchemaRegistry

logger = logging.getLogger(__name__)


class SortOrder(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


class SortOptions(BaseModel):
    """Параметры сортировки (sortBy, sortOrder)"""
    sort_by: Optional[str] = None
    sort_order: SortOrder = SortOrder.ASCENDING


class PaginationOptions(BaseModel):
    """Параметры постраничной выдачи; start_index начинается с 1"""
    start_index: int = Field(default=1, ge=1)
    count: Optional[int] = Field(default=None, ge=0)


def versions_match(current: Optional[str], expected: Optional[str]) -> bool:
    """Сравнение ETag для If-Match (слабое сравнение, "*" совпадает с любым)"""
    if expected is None or expected.strip() == "*":
        return True
    if current is None:
        return False

    def strip(tag: str) -> str:
        tag = tag.strip()
        if tag.startswith("W/"):
            tag = tag[2:]
        return tag.strip('"')

    return any(strip(candidate) == strip(current) for candidate in expected.split(","))


class StorageAdapter(ABC):
    """Хранилище ресурсов одного типа"""

    @abstractmethod
    def get(self, resource_id: str) -> ScimRecord:
        pass

    @abstractmethod
    def list(
        self,
        filter_expr: Optional[FilterNode],
        sort: Optional[SortOptions] = None,
        pagination: Optional[PaginationOptions] = None
    ) -> Tuple[List[ScimRecord], int]:
        """Страница записей и общее число подходящих под фильтр"""
        pass

    @abstractmethod
    def create(self, record: ScimRecord) -> ScimRecord:
        pass

    @abstractmethod
    def update(self, resource_id: str, record: ScimRecord, expected_version: Optional[str] = None) -> ScimRecord:
        pass

    @abstractmethod
    def replace(self, resource_id: str, record: ScimRecord, expected_version: Optional[str] = None) -> ScimRecord:
        pass

    @abstractmethod
    def delete(self, resource_id: str, expected_version: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def exists(self, resource_id: str) -> bool:
        pass


class InMemoryStorage(StorageAdapter):
    """Хранилище в памяти; фильтрует через FilterEngine по wire-представлению"""

    def __init__(self, registry: SchemaRegistry, resource_type: ResourceType, mapper: ResourceMapper):
        self.registry = registry
        self.resource_type = resource_type
        self.mapper = mapper
        self.filter_engine = FilterEngine(registry, resource_type)
        self._records: Dict[str, ScimRecord] = {}
        self._lock = threading.Lock()
        self._unique = [
            a for a in registry.core_schema(resource_type).attributes
            if a.effective_uniqueness != Uniqueness.NONE and a.type == AttributeType.STRING and not a.multi_valued
        ]

    def get(self, resource_id: str) -> ScimRecord:
        with self._lock:
            record = self._records.get(resource_id)
            if record is None:
                raise ResourceNotFoundError(resource_id, self.resource_type.name)
            return record.model_copy(deep=True)

    def exists(self, resource_id: str) -> bool:
        with self._lock:
            return resource_id in self._records

    def list(
        self,
        filter_expr: Optional[FilterNode],
        sort: Optional[SortOptions] = None,
        pagination: Optional[PaginationOptions] = None
    ) -> Tuple[List[ScimRecord], int]:
        with self._lock:
            records = [r.model_copy(deep=True) for r in self._records.values()]

        items = [(self.mapper.to_scim(r), r) for r in records]
        if filter_expr is not None:
            items = [item for item in items if self.filter_engine.matches(item[0], filter_expr)]
        items = self._sort(items, sort)

        total = len(items)
        pagination = pagination or PaginationOptions()
        start = pagination.start_index - 1
        end = None if pagination.count is None else start + pagination.count
        return [record for _, record in items[start:end]], total

    def create(self, record: ScimRecord) -> ScimRecord:
        with self._lock:
            if record.get_id() in self._records:
                raise UniquenessError(f"{self.resource_type.name} {record.get_id()} already exists")
            self._check_unique(record)
            self._records[record.get_id()] = record.model_copy(deep=True)
        logger.debug(f"Stored {self.resource_type.name} {record.get_id()}")
        return record

    def update(self, resource_id: str, record: ScimRecord, expected_version: Optional[str] = None) -> ScimRecord:
        with self._lock:
            existing = self._records.get(resource_id)
            if existing is None:
                raise ResourceNotFoundError(resource_id, self.resource_type.name)
            if not versions_match(self.mapper.get_meta_version(existing), expected_version):
                raise PreconditionFailedError(resource_id)
            self._check_unique(record, exclude=resource_id)
            self._records[resource_id] = record.model_copy(deep=True)
        return record

    def replace(self, resource_id: str, record: ScimRecord, expected_version: Optional[str] = None) -> ScimRecord:
        return self.update(resource_id, record, expected_version)

    def delete(self, resource_id: str, expected_version: Optional[str] = None) -> None:
        with self._lock:
            existing = self._records.get(resource_id)
            if existing is None:
                raise ResourceNotFoundError(resource_id, self.resource_type.name)
            if not versions_match(self.mapper.get_meta_version(existing), expected_version):
                raise PreconditionFailedError(resource_id)
            del self._records[resource_id]

    def _check_unique(self, record: ScimRecord, exclude: Optional[str] = None):
        """Уникальность атрибутов с uniqueness server/global (без учёта регистра)"""
        if not self._unique:
            return
        document = self.mapper.to_scim(record)
        for attribute in self._unique:
            value = get_value(document, attribute.name)
            if is_empty(value):
                continue
            for resource_id, other in self._records.items():
                if resource_id == exclude:
                    continue
                other_value = get_value(self.mapper.to_scim(other), attribute.name)
                if isinstance(other_value, str) and other_value.lower() == str(value).lower():
                    raise UniquenessError(f"{attribute.name} {value!r} is already in use")

    def _sort(self, items: List[Tuple[Dict[str, Any], ScimRecord]], sort: Optional[SortOptions]):
        if sort is None or not sort.sort_by:
            return items

        path = parse_path(sort.sort_by)
        present, missing = [], []
        for item in items:
            values = self.filter_engine.values(item[0], path)
            if values:
                value = values[0]
                present.append((value.lower() if isinstance(value, str) else value, item))
            else:
                missing.append(item)

        present.sort(key=lambda pair: pair[0], reverse=sort.sort_order == SortOrder.DESCENDING)
        # Записи без значения всегда в конце
        return [item for _, item in present] + missing
