"""Применение PATCH операций к wire-документам SCIM (RFC 7644 §3.5.2)"""

import copy
import logging
from typing import Any, Dict, List, Optional

from ..models.filters import AttributePath, And, Comparison, FilterNode, FilterOperator
from ..models.patch import PatchOp, PatchOperation
from ..models.schema import AttributeSchema, Mutability, ResourceSchema, ResourceType
from ..utils.exceptions import (
    InvalidPathError, InvalidPatchOperationError, MutabilityError, NoTargetError
)
from ..utils.helpers import find_key, get_value, is_empty
from .filter_engine import FilterEngine
from .filter_parser import parse_path
from .registry import ResolvedAttribute, SchemaRegistry
from .validator import SchemaValidator

logger = logging.getLogger(__name__)


class PatchEngine:
    """Применяет список PATCH операций по принципу всё-или-ничего

    Исходный документ не изменяется: операции выполняются над глубокой копией,
    и первая же ошибка прерывает применение.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        resource_type: ResourceType,
        filter_engine: Optional[FilterEngine] = None,
        validator: Optional[SchemaValidator] = None
    ):
        self.registry = registry
        self.resource_type = resource_type
        self.core = registry.core_schema(resource_type)
        self.filter_engine = filter_engine or FilterEngine(registry, resource_type)
        self.validator = validator or SchemaValidator(registry, resource_type)

    def apply(self, resource: Dict[str, Any], operations: List[PatchOperation]) -> Dict[str, Any]:
        """Возвращает новый документ с применёнными операциями"""
        result = copy.deepcopy(resource)

        for operation in operations:
            logger.debug(f"Applying patch operation: {operation}")
            if operation.op == PatchOp.REMOVE:
                self._remove(result, operation.path, operation.value)
            elif operation.op in (PatchOp.ADD, PatchOp.REPLACE):
                replace = operation.op == PatchOp.REPLACE
                if operation.path is None:
                    self._merge(result, operation.value, replace)
                else:
                    self._set(result, operation.path, operation.value, replace)
            else:
                raise InvalidPatchOperationError(f"Unsupported operation {operation.op!r}")

        self._sync_schemas(result)
        # результат обязан оставаться корректным ресурсом
        self.validator.check_required(result)
        return result

    # add / replace

    def _merge(self, resource: Dict[str, Any], value: Any, replace: bool):
        """add/replace без пути: значение является объектом атрибутов"""
        if not isinstance(value, dict):
            raise InvalidPatchOperationError("Value must be a JSON object when path is omitted")

        for key, item in value.items():
            if key.lower() == "schemas":
                continue

            extension = self.registry.find_extension(self.resource_type, key)
            if extension is not None:
                self._merge_extension(resource, extension, item, replace)
                continue

            path = self._key_path(key)
            resolved = self._resolve(path)
            # readOnly атрибуты в объекте значения игнорируются
            if resolved.attribute.mutability == Mutability.READ_ONLY or \
                    resolved.target.mutability == Mutability.READ_ONLY:
                continue
            self._set(resource, path, item, replace)

    def _merge_extension(self, resource: Dict[str, Any], extension: ResourceSchema, value: Any, replace: bool):
        if not isinstance(value, dict):
            raise InvalidPatchOperationError(f"Value for {extension.id} must be a JSON object")

        for key, item in value.items():
            parsed = self._key_path(key)
            path = AttributePath(
                schema_urn=extension.id,
                attribute=parsed.attribute,
                sub_attribute=parsed.sub_attribute
            )
            resolved = self._resolve(path)
            if resolved.target.mutability == Mutability.READ_ONLY:
                continue
            self._set(resource, path, item, replace)

    def _set(self, resource: Dict[str, Any], path: AttributePath, value: Any, replace: bool):
        extension = self._extension_for(path)
        if extension is not None:
            if replace:
                key = find_key(resource, extension.id)
                if key is not None:
                    del resource[key]
            self._merge_extension(resource, extension, value, replace)
            return

        resolved = self._resolve(path)
        self._check_writable(resolved, path)
        if resolved.target.required and is_empty(value):
            raise MutabilityError(f"Required attribute {path.dotted} cannot be removed")
        attribute = resolved.attribute
        container = self._container(resource, resolved, create=True)
        key = find_key(container, attribute.name) or attribute.name
        current = container.get(key)

        if path.value_filter is not None:
            self._set_filtered(container, key, resolved, path, value, replace)
            return

        if resolved.sub_attribute is not None:
            sub = resolved.sub_attribute
            checked = self._validated(sub, value, path)
            if attribute.multi_valued:
                elements = [e for e in current if isinstance(e, dict)] if isinstance(current, list) else []
                if not elements:
                    elements = [{}]
                    container[key] = elements
                for element in elements:
                    self._assign_sub(element, sub, checked, path)
            else:
                if not isinstance(current, dict):
                    current = {}
                    container[key] = current
                self._assign_sub(current, sub, checked, path)
                self._drop_if_empty(container, key)
            return

        if attribute.multi_valued:
            items = value if isinstance(value, list) else ([] if value is None else [value])
            checked = self._validated(attribute, items, path) or []
            if replace or not isinstance(current, list):
                self._check_immutable(attribute, current, checked, path)
                container[key] = checked
            else:
                for item in checked:
                    if item not in current:
                        current.append(item)
            self._normalize_primary(container[key], checked)
            self._drop_if_empty(container, key)
            return

        checked = self._validated(attribute, value, path)
        if attribute.is_complex and isinstance(current, dict) and isinstance(checked, dict):
            # Не указанные под-атрибуты остаются без изменений
            for sub_key, sub_value in checked.items():
                self._assign_sub(current, attribute.get_sub_attribute(sub_key), sub_value, path)
        else:
            self._check_immutable(attribute, current, checked, path)
            container[key] = checked
        self._drop_if_empty(container, key)

    def _set_filtered(
        self,
        container: Dict[str, Any],
        key: str,
        resolved: ResolvedAttribute,
        path: AttributePath,
        value: Any,
        replace: bool
    ):
        attribute = resolved.attribute
        elements = self._elements(container, key, attribute, path)
        matched = self._matching(elements, attribute, path.value_filter)
        sub = resolved.sub_attribute

        if not matched:
            if replace:
                raise NoTargetError(f"No values of {attribute.name} match filter {path.value_filter}")
            element = self._element_from_filter(path.value_filter, attribute)
            if sub is not None:
                element[sub.name] = value
            elif isinstance(value, dict):
                element.update(value)
            else:
                raise InvalidPatchOperationError(f"Value for {path} must be a JSON object")
            element = self._validated(_single(attribute), element, path)
            elements.append(element)
            container[key] = elements
            self._normalize_primary(elements, [element])
            return

        if sub is not None:
            checked = self._validated(sub, value, path)
            for element in matched:
                self._assign_sub(element, sub, checked, path)
        else:
            checked = self._validated(_single(attribute), value, path)
            for element in matched:
                for sub_key in list(element.keys()):
                    existing = attribute.get_sub_attribute(sub_key)
                    new = get_value(checked, sub_key)
                    if existing is not None and (replace or new is not None):
                        self._check_immutable(existing, element[sub_key], new, path)
                if replace:
                    element.clear()
                element.update(checked)
        self._normalize_primary(elements, matched)

    def _assign_sub(
        self,
        element: Dict[str, Any],
        sub: Optional[AttributeSchema],
        value: Any,
        path: AttributePath
    ):
        if sub is None:
            raise InvalidPathError(f"Unknown sub-attribute in {path}")
        if sub.mutability == Mutability.READ_ONLY:
            raise MutabilityError(f"Attribute {path.dotted}.{sub.name} is readOnly")
        existing_key = find_key(element, sub.name)
        self._check_immutable(sub, element.get(existing_key) if existing_key else None, value, path)
        if existing_key is not None and existing_key != sub.name:
            del element[existing_key]
        if value is None:
            element.pop(sub.name, None)
        else:
            element[sub.name] = value

    # remove

    def _remove(self, resource: Dict[str, Any], path: Optional[AttributePath], value: Any):
        if path is None:
            raise InvalidPathError("Remove operation requires a path")

        extension = self._extension_for(path)
        if extension is not None:
            for ext in self.resource_type.extensions:
                if ext.schema_uri.lower() == extension.id.lower() and ext.required:
                    raise MutabilityError(f"Required extension {extension.id} cannot be removed")
            key = find_key(resource, extension.id)
            if key is not None:
                del resource[key]
            return

        resolved = self._resolve(path)
        attribute = resolved.attribute
        target = resolved.target
        if attribute.mutability in (Mutability.READ_ONLY, Mutability.IMMUTABLE) or \
                target.mutability in (Mutability.READ_ONLY, Mutability.IMMUTABLE):
            raise MutabilityError(f"Attribute {path.dotted} is {target.mutability.value} and cannot be removed")
        if path.value_filter is None and target.required:
            raise MutabilityError(f"Required attribute {path.dotted} cannot be removed")

        container = self._container(resource, resolved, create=False)
        key = find_key(container, attribute.name) if container is not None else None

        if path.value_filter is not None:
            elements = self._elements(container, key, attribute, path) if key is not None else []
            matched = self._matching(elements, attribute, path.value_filter)
            if not matched:
                raise NoTargetError(f"No values of {attribute.name} match filter {path.value_filter}")
            if resolved.sub_attribute is not None:
                if resolved.sub_attribute.required:
                    raise MutabilityError(f"Required attribute {path.dotted} cannot be removed")
                for element in matched:
                    sub_key = find_key(element, resolved.sub_attribute.name)
                    if sub_key is not None:
                        del element[sub_key]
            else:
                container[key] = [e for e in elements if not any(e is m for m in matched)]
            self._drop_if_empty(container, key)
            return

        if key is None:
            return

        current = container[key]
        if resolved.sub_attribute is not None:
            elements = current if isinstance(current, list) else [current]
            for element in elements:
                if isinstance(element, dict):
                    sub_key = find_key(element, resolved.sub_attribute.name)
                    if sub_key is not None:
                        del element[sub_key]
            self._drop_if_empty(container, key)
            return

        if value is not None and attribute.multi_valued and isinstance(current, list):
            # Удаление перечисленных элементов (remove со значением)
            doomed = value if isinstance(value, list) else [value]
            container[key] = [e for e in current if not any(_same_element(e, d) for d in doomed)]
            self._drop_if_empty(container, key)
            return

        del container[key]

    # вспомогательные методы

    def _key_path(self, key: str) -> AttributePath:
        try:
            return parse_path(key)
        except InvalidPathError:
            raise InvalidPathError(f"Unknown attribute {key}")

    def _resolve(self, path: AttributePath) -> ResolvedAttribute:
        resolved = self.registry.resolve(self.resource_type, path)
        if resolved is None:
            raise InvalidPathError(f"Unknown attribute {path.dotted}")
        if path.value_filter is not None and not (resolved.attribute.multi_valued and resolved.attribute.is_complex):
            raise InvalidPathError(f"Value filter requires a multi-valued complex attribute: {path}")
        return resolved

    def _extension_for(self, path: AttributePath) -> Optional[ResourceSchema]:
        """Путь, целиком указывающий на схему расширения"""
        if path.sub_attribute is not None or path.value_filter is not None:
            return None
        return self.registry.find_extension(self.resource_type, path.full_attribute)

    def _container(
        self,
        resource: Dict[str, Any],
        resolved: ResolvedAttribute,
        create: bool
    ) -> Optional[Dict[str, Any]]:
        """Объект, в котором лежит атрибут: сам ресурс или объект расширения"""
        schema = resolved.schema
        if schema is None or schema.id.lower() == self.core.id.lower():
            return resource

        key = find_key(resource, schema.id)
        if key is None or not isinstance(resource[key], dict):
            if not create:
                return None
            key = key or schema.id
            resource[key] = {}
        return resource[key]

    @staticmethod
    def _check_writable(resolved: ResolvedAttribute, path: AttributePath):
        if resolved.attribute.mutability == Mutability.READ_ONLY or \
                resolved.target.mutability == Mutability.READ_ONLY:
            raise MutabilityError(f"Attribute {path.dotted} is readOnly")

    @staticmethod
    def _check_immutable(attribute: AttributeSchema, current: Any, new: Any, path: AttributePath):
        # immutable можно задать, только пока значения нет
        if attribute.mutability == Mutability.IMMUTABLE and not is_empty(current) and current != new:
            raise MutabilityError(f"Attribute {path.dotted} is immutable")

    def _validated(self, attribute: AttributeSchema, value: Any, path: AttributePath) -> Any:
        return self.validator.validate_attribute(attribute, value, str(path))

    @staticmethod
    def _elements(container: Dict[str, Any], key: str, attribute: AttributeSchema, path: AttributePath) -> list:
        current = container.get(key)
        if current is None:
            return []
        if not isinstance(current, list):
            raise InvalidPathError(f"Attribute {attribute.name} is not multi-valued: {path}")
        return current

    def _matching(self, elements: list, attribute: AttributeSchema, value_filter: FilterNode) -> list:
        return [
            e for e in elements
            if isinstance(e, dict) and self.filter_engine.matches_element(e, value_filter, attribute)
        ]

    def _element_from_filter(self, node: FilterNode, attribute: AttributeSchema) -> Dict[str, Any]:
        """Новый элемент из равенств фильтра: type eq "work" -> {"type": "work"}"""
        if isinstance(node, And):
            element = self._element_from_filter(node.left, attribute)
            element.update(self._element_from_filter(node.right, attribute))
            return element
        if isinstance(node, Comparison) and node.op == FilterOperator.EQ and \
                node.path.sub_attribute is None and node.path.value_filter is None:
            sub = attribute.get_sub_attribute(node.path.attribute)
            return {sub.name if sub else node.path.attribute: node.value}
        raise NoTargetError(f"No values of {attribute.name} match filter {node}")

    @staticmethod
    def _normalize_primary(elements: list, preferred: list):
        """Новый primary элемент снимает флаг с остальных"""
        if not any(isinstance(p, dict) and get_value(p, "primary") is True for p in preferred):
            return
        for element in elements:
            if not isinstance(element, dict) or any(element is p for p in preferred):
                continue
            key = find_key(element, "primary")
            if key is not None and element[key] is True:
                element[key] = False

    @staticmethod
    def _drop_if_empty(container: Optional[Dict[str, Any]], key: Optional[str]):
        if container is not None and key is not None and key in container and is_empty(container[key]):
            del container[key]

    def _sync_schemas(self, resource: Dict[str, Any]):
        """Список schemas отражает присутствующие расширения"""
        schemas_key = find_key(resource, "schemas") or "schemas"
        schemas = list(resource.get(schemas_key) or [self.resource_type.schema_uri])

        for extension in self.registry.extension_schemas(self.resource_type):
            key = find_key(resource, extension.id)
            present = key is not None and isinstance(resource[key], dict) and \
                any(not is_empty(v) for v in resource[key].values())
            listed = any(s.lower() == extension.id.lower() for s in schemas)
            if present and not listed:
                schemas.append(extension.id)
            if not present:
                if key is not None:
                    del resource[key]
                schemas = [s for s in schemas if s.lower() != extension.id.lower()]

        resource[schemas_key] = schemas


def _single(attribute: AttributeSchema) -> AttributeSchema:
    """Схема одного элемента многозначного атрибута"""
    return attribute.model_copy(update={"multi_valued": False})


def _same_element(element: Any, candidate: Any) -> bool:
    if isinstance(element, dict) and isinstance(candidate, dict):
        value = get_value(candidate, "value")
        if value is not None:
            return get_value(element, "value") == value
    return element == candidate
