"""Валидация wire-документов SCIM по схеме

Все нарушения собираются за один проход: вызывающему нужен полный список,
чтобы построить единый ответ об ошибке RFC 7644.
"""

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from ..models.filters import (
    FilterNode, AttributePath, Comparison, Presence, And, Or, Not, ORDERING_OPERATORS, STRING_OPERATORS
)
from ..models.patch import PatchOp, PatchOperation
from ..models.schema import (
    AttributeSchema, AttributeType, Mutability, ResourceSchema, ResourceType, STRING_TYPES
)
from ..models.scim import SCIMSchema
from ..utils.exceptions import (
    InvalidFilterError, InvalidPathError, ValidationFailed, ValidationIssue
)
from ..utils.helpers import find_key, get_value, is_empty, parse_datetime
from .filter_parser import parse_path
from .registry import SchemaRegistry, ResolvedAttribute

logger = logging.getLogger(__name__)


class SchemaValidator:
    """Проверяет и нормализует документы одного типа ресурса"""

    def __init__(self, registry: SchemaRegistry, resource_type: ResourceType):
        self.registry = registry
        self.resource_type = resource_type
        self.core = registry.core_schema(resource_type)

    # Полные документы (POST/PUT)

    def validate_full(self, document: Any) -> Dict[str, Any]:
        """Возвращает нормализованный документ или бросает ValidationFailed со всеми нарушениями"""
        if not isinstance(document, dict):
            raise ValidationFailed([ValidationIssue("", "Resource must be a JSON object", "invalidSyntax")])

        errors: List[ValidationIssue] = []
        normalized: Dict[str, Any] = {}

        declared = self._check_schemas(get_value(document, "schemas"), errors)
        normalized["schemas"] = declared

        for key, value in document.items():
            if key.lower() == "schemas":
                continue

            extension = self.registry.find_extension(self.resource_type, key)
            if extension is not None:
                if extension.id.lower() not in {uri.lower() for uri in declared}:
                    errors.append(ValidationIssue(key, "Extension schema is not listed in 'schemas'"))
                if not isinstance(value, dict):
                    errors.append(ValidationIssue(key, "Extension must be a JSON object"))
                    continue
                normalized[extension.id] = self._check_attributes(value, extension, extension.id, errors)
                continue

            attribute = self.core.get_attribute(key) or self.registry.get_common_attribute(key)
            if attribute is None:
                errors.append(ValidationIssue(key, "Unknown attribute", "invalidSyntax"))
                continue
            # readOnly значения от клиента молча отбрасываются
            if attribute.mutability == Mutability.READ_ONLY:
                continue
            checked = self._check_value(attribute, value, attribute.name, errors, drop_read_only=True)
            if checked is not None:
                normalized[attribute.name] = checked

        self._check_resource_required(normalized, errors)

        if errors:
            logger.debug(f"Validation of {self.resource_type.name} failed with {len(errors)} error(s)")
            raise ValidationFailed(errors)
        return normalized

    def check_required(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Проверяет обязательные атрибуты готового документа (результат PATCH)"""
        errors: List[ValidationIssue] = []
        self._check_resource_required(document, errors)
        if errors:
            raise ValidationFailed(errors)
        return document

    def _check_resource_required(self, document: Dict[str, Any], errors: List[ValidationIssue]):
        self._check_required(self.core, document, "", errors)
        for ext in self.resource_type.extensions:
            schema = self.registry.get(ext.schema_uri)
            container = get_value(document, schema.id)
            if not isinstance(container, dict):
                if ext.required:
                    errors.append(ValidationIssue(schema.id, "Required extension is missing"))
                continue
            self._check_required(schema, container, f"{schema.id}:", errors)

    def _check_schemas(self, schemas: Any, errors: List[ValidationIssue]) -> List[str]:
        if not isinstance(schemas, list) or not all(isinstance(s, str) for s in schemas):
            errors.append(ValidationIssue("schemas", "'schemas' must be an array of URIs", "invalidSyntax"))
            return [self.resource_type.schema_uri]

        known = {uri.lower(): uri for uri in self.resource_type.schema_uris}
        if self.resource_type.schema_uri.lower() not in {s.lower() for s in schemas}:
            errors.append(ValidationIssue("schemas", f"'schemas' must contain {self.resource_type.schema_uri}"))
        for uri in schemas:
            if uri.lower() not in known:
                errors.append(ValidationIssue("schemas", f"Unknown schema {uri}"))
        return [known.get(s.lower(), s) for s in schemas]

    def _check_attributes(
        self,
        document: Dict[str, Any],
        schema: ResourceSchema,
        prefix: str,
        errors: List[ValidationIssue]
    ) -> Dict[str, Any]:
        normalized = {}
        for key, value in document.items():
            attribute = schema.get_attribute(key)
            path = f"{prefix}:{key}"
            if attribute is None:
                errors.append(ValidationIssue(path, "Unknown attribute", "invalidSyntax"))
                continue
            if attribute.mutability == Mutability.READ_ONLY:
                continue
            checked = self._check_value(attribute, value, f"{prefix}:{attribute.name}", errors, drop_read_only=True)
            if checked is not None:
                normalized[attribute.name] = checked
        return normalized

    @staticmethod
    def _check_required(schema: ResourceSchema, document: Dict[str, Any], prefix: str, errors: List[ValidationIssue]):
        for attribute in schema.attributes:
            if not attribute.required or attribute.mutability == Mutability.READ_ONLY:
                continue
            if is_empty(get_value(document, attribute.name)):
                errors.append(ValidationIssue(f"{prefix}{attribute.name}", "Required attribute is missing"))

    # Значения атрибутов

    def validate_attribute(
        self,
        attribute: AttributeSchema,
        value: Any,
        path: str,
        drop_read_only: bool = True
    ) -> Any:
        """Проверяет значение одного атрибута (используется PATCH движком)"""
        errors: List[ValidationIssue] = []
        checked = self._check_value(attribute, value, path, errors, drop_read_only)
        if errors:
            raise ValidationFailed(errors)
        return checked

    def _check_value(
        self,
        attribute: AttributeSchema,
        value: Any,
        path: str,
        errors: List[ValidationIssue],
        drop_read_only: bool
    ) -> Any:
        # null означает "значение не задано"
        if value is None:
            return None

        if attribute.multi_valued:
            if not isinstance(value, list):
                errors.append(ValidationIssue(path, "Multi-valued attribute must be an array"))
                return None
            return [
                self._check_single(attribute, item, f"{path}[{index}]", errors, drop_read_only)
                for index, item in enumerate(value)
            ]

        if isinstance(value, list):
            errors.append(ValidationIssue(path, "Single-valued attribute must not be an array"))
            return None
        return self._check_single(attribute, value, path, errors, drop_read_only)

    def _check_single(
        self,
        attribute: AttributeSchema,
        value: Any,
        path: str,
        errors: List[ValidationIssue],
        drop_read_only: bool
    ) -> Any:
        attr_type = attribute.type

        if attr_type == AttributeType.COMPLEX:
            if not isinstance(value, dict):
                errors.append(ValidationIssue(path, "Complex attribute must be a JSON object"))
                return value
            normalized = {}
            for key, sub_value in value.items():
                sub = attribute.get_sub_attribute(key)
                if sub is None:
                    errors.append(ValidationIssue(f"{path}.{key}", "Unknown sub-attribute", "invalidSyntax"))
                    continue
                if drop_read_only and sub.mutability == Mutability.READ_ONLY:
                    continue
                checked = self._check_value(sub, sub_value, f"{path}.{sub.name}", errors, drop_read_only)
                if checked is not None:
                    normalized[sub.name] = checked
            for sub in attribute.sub_attributes:
                if sub.required and sub.mutability != Mutability.READ_ONLY and is_empty(normalized.get(sub.name)):
                    errors.append(ValidationIssue(f"{path}.{sub.name}", "Required sub-attribute is missing"))
            return normalized

        if not _conforms(attr_type, value):
            errors.append(ValidationIssue(path, f"Value must be of type {attr_type.value}"))
            return value

        if attribute.canonical_values and isinstance(value, str):
            if not _in_canonical(value, attribute):
                errors.append(ValidationIssue(
                    path, f"Value must be one of: {', '.join(attribute.canonical_values)}"
                ))

        if attr_type == AttributeType.REFERENCE and attribute.reference_types:
            if not self._matches_reference_types(value, attribute.reference_types):
                errors.append(ValidationIssue(
                    path, f"Reference must point to one of: {', '.join(attribute.reference_types)}"
                ))

        return value

    def _matches_reference_types(self, value: str, reference_types) -> bool:
        parsed = urlparse(value)
        for ref_type in reference_types:
            lowered = ref_type.lower()
            if lowered == "uri":
                return True
            if lowered == "external":
                if parsed.scheme and parsed.netloc:
                    return True
                continue
            resource_type = self.registry.get_resource_type(ref_type)
            endpoint = resource_type.endpoint if resource_type else f"/{ref_type}s"
            if f"{endpoint.lower()}/" in value.lower():
                return True
        return False

    # PATCH (RFC 7644 §3.5.2)

    def validate_partial(self, document: Any, mode: str = "patch") -> List[PatchOperation]:
        """Разбирает конверт PatchOp; бросает ValidationFailed со всеми нарушениями"""
        if mode != "patch":
            raise ValueError(f"Unsupported partial validation mode: {mode}")
        if not isinstance(document, dict):
            raise ValidationFailed([ValidationIssue("", "PatchOp must be a JSON object", "invalidSyntax")])

        errors: List[ValidationIssue] = []

        schemas = get_value(document, "schemas")
        if not isinstance(schemas, list) or SCIMSchema.PATCH_OP.value.lower() not in {
            s.lower() for s in schemas if isinstance(s, str)
        }:
            errors.append(ValidationIssue("schemas", f"'schemas' must contain {SCIMSchema.PATCH_OP.value}", "invalidSyntax"))

        operations = get_value(document, "Operations")
        if not isinstance(operations, list) or not operations:
            errors.append(ValidationIssue("Operations", "'Operations' must be a non-empty array", "invalidSyntax"))
            raise ValidationFailed(errors)

        parsed: List[PatchOperation] = []
        for index, raw in enumerate(operations):
            location = f"Operations[{index}]"
            operation = self._check_operation(raw, location, errors)
            if operation is not None:
                parsed.append(operation)

        if errors:
            raise ValidationFailed(errors)
        return parsed

    def _check_operation(self, raw: Any, location: str, errors: List[ValidationIssue]) -> Optional[PatchOperation]:
        if not isinstance(raw, dict):
            errors.append(ValidationIssue(location, "Operation must be a JSON object", "invalidSyntax"))
            return None

        valid = True
        op_name = get_value(raw, "op")
        op = None
        if isinstance(op_name, str) and op_name.lower() in {o.value for o in PatchOp}:
            op = PatchOp(op_name.lower())
        else:
            errors.append(ValidationIssue(f"{location}.op", f"Unsupported operation {op_name!r}", "invalidSyntax"))
            valid = False

        path = None
        raw_path = get_value(raw, "path")
        if raw_path is not None:
            if not isinstance(raw_path, str):
                errors.append(ValidationIssue(f"{location}.path", "Path must be a string", "invalidPath"))
                valid = False
            else:
                try:
                    path = parse_path(raw_path)
                except InvalidPathError as e:
                    errors.append(ValidationIssue(f"{location}.path", e.message, "invalidPath"))
                    valid = False
                else:
                    valid = self._check_patch_path(op, path, f"{location}.path", errors) and valid
        elif op == PatchOp.REMOVE:
            errors.append(ValidationIssue(f"{location}.path", "Remove operation requires a path", "noTarget"))
            valid = False

        key = find_key(raw, "value")
        if op in (PatchOp.ADD, PatchOp.REPLACE):
            if key is None:
                errors.append(ValidationIssue(f"{location}.value", "Value is required", "invalidValue"))
                valid = False
            elif path is None and raw_path is None and not isinstance(raw[key], dict):
                errors.append(ValidationIssue(
                    f"{location}.value", "Value must be a JSON object when path is omitted", "invalidValue"
                ))
                valid = False

        if not valid:
            return None
        return PatchOperation(op=op, path=path, value=raw[key] if key is not None else None)

    def _check_patch_path(
        self,
        op: Optional[PatchOp],
        path: AttributePath,
        location: str,
        errors: List[ValidationIssue]
    ) -> bool:
        # Путь целиком на расширение: urn:...:enterprise:2.0:User
        if path.sub_attribute is None and path.value_filter is None and \
                self.registry.find_extension(self.resource_type, path.full_attribute) is not None:
            return True

        resolved = self.registry.resolve(self.resource_type, path)
        if resolved is None:
            errors.append(ValidationIssue(location, f"Unknown attribute {path.dotted}", "invalidPath"))
            return False

        if path.value_filter is not None:
            if not (resolved.attribute.multi_valued and resolved.attribute.is_complex):
                errors.append(ValidationIssue(
                    location, "Value filter is only allowed on multi-valued complex attributes", "invalidPath"
                ))
                return False
            try:
                self._check_filter(path.value_filter, resolved.attribute, errors, location)
            except InvalidFilterError as e:
                errors.append(ValidationIssue(location, e.message, "invalidFilter"))
                return False

        if op == PatchOp.REMOVE and path.value_filter is None and resolved.target.required:
            errors.append(ValidationIssue(location, f"Required attribute {path.dotted} cannot be removed", "mutability"))
            return False

        return True

    # Фильтры запросов

    def validate_filter(self, node: FilterNode) -> FilterNode:
        """Проверяет фильтр по схеме типа ресурса

        Неизвестные атрибуты и value filter не на многозначном сложном
        атрибуте дают InvalidFilterError; строковые операторы на нестроковых
        атрибутах дают ValidationFailed.
        """
        errors: List[ValidationIssue] = []
        self._check_filter(node, None, errors, "filter")
        if errors:
            raise ValidationFailed(errors)
        return node

    def _check_filter(
        self,
        node: FilterNode,
        scope: Optional[AttributeSchema],
        errors: List[ValidationIssue],
        location: str
    ):
        if isinstance(node, (And, Or)):
            self._check_filter(node.left, scope, errors, location)
            self._check_filter(node.right, scope, errors, location)
            return
        if isinstance(node, Not):
            self._check_filter(node.inner, scope, errors, location)
            return
        if not isinstance(node, (Comparison, Presence)):
            raise InvalidFilterError(f"Unknown filter node {type(node).__name__}")

        path = node.path
        target = self._resolve_filter_path(path, scope)

        if path.value_filter is not None:
            if scope is not None:
                raise InvalidFilterError("Nested value filters are not allowed")
            if not (target.attribute.multi_valued and target.attribute.is_complex):
                raise InvalidFilterError(
                    f"Value filter on {path.full_attribute} requires a multi-valued complex attribute"
                )
            self._check_filter(path.value_filter, target.attribute, errors, location)

        if not isinstance(node, Comparison):
            return
        attribute = target.target
        if attribute.is_complex:
            attribute = attribute.get_sub_attribute("value") or attribute

        if node.op in STRING_OPERATORS and attribute.type not in STRING_TYPES:
            errors.append(ValidationIssue(
                location,
                f"Operator '{node.op.value}' requires a string attribute, {path.dotted} is {attribute.type.value}",
                "invalidFilter"
            ))
        # boolean и binary не упорядочены (RFC 7644 §3.4.2.2)
        if node.op in ORDERING_OPERATORS and (
                attribute.type in (AttributeType.BOOLEAN, AttributeType.BINARY) or isinstance(node.value, bool)):
            errors.append(ValidationIssue(
                location,
                f"Operator '{node.op.value}' is not supported for {path.dotted} of type {attribute.type.value}",
                "invalidFilter"
            ))

    def _resolve_filter_path(self, path: AttributePath, scope: Optional[AttributeSchema]) -> ResolvedAttribute:
        if scope is not None:
            sub = scope.get_sub_attribute(path.attribute)
            if sub is None or path.sub_attribute is not None:
                raise InvalidFilterError(f"Unknown filter attribute \"{scope.name}.{path.dotted}\"")
            return ResolvedAttribute(None, sub)

        resolved = self.registry.resolve(self.resource_type, path)
        if resolved is None:
            raise InvalidFilterError(f"Unknown filter attribute \"{path.dotted}\"")
        return resolved


def _conforms(attr_type: AttributeType, value: Any) -> bool:
    """Проверка соответствия значения объявленному типу"""
    if attr_type in (AttributeType.STRING, AttributeType.REFERENCE):
        return isinstance(value, str)
    if attr_type == AttributeType.BOOLEAN:
        return isinstance(value, bool)
    if attr_type == AttributeType.INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    if attr_type == AttributeType.DECIMAL:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if attr_type == AttributeType.DATE_TIME:
        return isinstance(value, str) and parse_datetime(value) is not None
    if attr_type == AttributeType.BINARY:
        if not isinstance(value, str):
            return False
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            return False
        return True
    return False


def _in_canonical(value: str, attribute: AttributeSchema) -> bool:
    if attribute.case_exact:
        return value in attribute.canonical_values
    return value.lower() in {v.lower() for v in attribute.canonical_values}
