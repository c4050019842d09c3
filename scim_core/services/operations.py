"""Операции над ресурсами: get/list/create/replace/patch/delete

Связывает валидатор, маппер, PATCH движок и хранилище одного типа ресурса.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..config import resource_url
from ..models.records import ScimRecord
from ..models.schema import ResourceType
from .filter_parser import parse_filter
from .mapper import ResourceMapper
from .metadata import generate_id, touch
from .patch_engine import PatchEngine
from .projection import AttributeProjection
from .registry import SchemaRegistry
from .storage import PaginationOptions, SortOptions, StorageAdapter
from .validator import SchemaValidator

logger = logging.getLogger(__name__)


class ResourceService:
    """Сервис ресурсов одного типа"""

    def __init__(
        self,
        registry: SchemaRegistry,
        resource_type: ResourceType,
        mapper: ResourceMapper,
        storage: StorageAdapter
    ):
        self.registry = registry
        self.resource_type = resource_type
        self.mapper = mapper
        self.storage = storage
        self.validator = SchemaValidator(registry, resource_type)
        self.patch_engine = PatchEngine(registry, resource_type, validator=self.validator)

    @property
    def collection(self) -> str:
        return self.resource_type.endpoint.strip("/")

    def to_wire(self, record: ScimRecord) -> Dict[str, Any]:
        return self.mapper.to_scim(
            record,
            location=resource_url(self.collection, record.get_id()),
            resource_type=self.resource_type.name
        )

    def version(self, record: ScimRecord) -> Optional[str]:
        return self.mapper.get_meta_version(record)

    def project(
        self,
        document: Dict[str, Any],
        attributes: Optional[List[str]] = None,
        excluded_attributes: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        projection = AttributeProjection(self.registry, self.resource_type, attributes, excluded_attributes)
        return projection.apply(document)

    def get(self, resource_id: str) -> ScimRecord:
        return self.storage.get(resource_id)

    def list(
        self,
        filter_string: Optional[str] = None,
        sort: Optional[SortOptions] = None,
        pagination: Optional[PaginationOptions] = None
    ) -> Tuple[List[ScimRecord], int]:
        filter_expr = None
        if filter_string:
            filter_expr = parse_filter(filter_string)
            self.validator.validate_filter(filter_expr)
            logger.debug(f"Listing {self.resource_type.name} with filter: {filter_expr}")
        return self.storage.list(filter_expr, sort, pagination)

    def create(self, document: Dict[str, Any]) -> ScimRecord:
        normalized = self.validator.validate_full(document)
        record = self.mapper.from_scim(normalized)
        record.set_id(generate_id())
        touch(record, created=True)
        self.storage.create(record)
        logger.info(f"Created {self.resource_type.name} {record.get_id()}")
        return record

    def replace(
        self,
        resource_id: str,
        document: Dict[str, Any],
        expected_version: Optional[str] = None
    ) -> ScimRecord:
        existing = self.storage.get(resource_id)
        normalized = self.validator.validate_full(document)
        record = self.mapper.from_scim(normalized)
        record.set_id(resource_id)
        record.meta_created = existing.meta_created
        touch(record)
        self.storage.replace(resource_id, record, expected_version)
        logger.info(f"Replaced {self.resource_type.name} {resource_id}")
        return record

    def patch(
        self,
        resource_id: str,
        document: Dict[str, Any],
        expected_version: Optional[str] = None
    ) -> ScimRecord:
        operations = self.validator.validate_partial(document, "patch")
        existing = self.storage.get(resource_id)
        patched = self.patch_engine.apply(self.to_wire(existing), operations)

        record = self.mapper.from_scim(patched)
        record.set_id(resource_id)
        record.meta_created = existing.meta_created
        touch(record)
        self.storage.update(resource_id, record, expected_version)
        logger.info(f"Patched {self.resource_type.name} {resource_id} with {len(operations)} operation(s)")
        return record

    def delete(self, resource_id: str, expected_version: Optional[str] = None) -> None:
        self.storage.delete(resource_id, expected_version)
        logger.info(f"Deleted {self.resource_type.name} {resource_id}")
