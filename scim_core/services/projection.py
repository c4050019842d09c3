"""Проекция атрибутов ответа: attributes / excludedAttributes (RFC 7644 §3.9)"""

from typing import Any, Dict, List, Optional, Set, Tuple

from ..models.schema import AttributeSchema, Returned, ResourceType
from ..utils.exceptions import InvalidPathError
from .filter_parser import parse_path
from .registry import SchemaRegistry

# (urn схемы или None для основной, атрибут, под-атрибут)
PathKey = Tuple[Optional[str], str, Optional[str]]


class AttributeProjection:
    """Отбор атрибутов ресурса с учётом returned из схемы"""

    def __init__(
        self,
        registry: SchemaRegistry,
        resource_type: ResourceType,
        attributes: Optional[List[str]] = None,
        excluded_attributes: Optional[List[str]] = None
    ):
        self.registry = registry
        self.resource_type = resource_type
        self.core = registry.core_schema(resource_type)
        self.include = self._keys(attributes)
        self.exclude = self._keys(excluded_attributes)

    def _keys(self, paths: Optional[List[str]]) -> Set[PathKey]:
        keys: Set[PathKey] = set()
        for raw in paths or []:
            raw = raw.strip()
            if not raw:
                continue
            extension = self.registry.find_extension(self.resource_type, raw)
            if extension is not None:
                keys.add((extension.id.lower(), "*", None))
                continue
            path = parse_path(raw)
            if path.value_filter is not None:
                raise InvalidPathError(f"Value filters are not allowed in attribute lists: {raw}")
            urn = path.schema_urn.lower() if path.schema_urn else None
            if urn is None:
                resolved = self.registry.resolve(self.resource_type, path)
                if resolved is not None and resolved.schema is not None:
                    urn = resolved.schema.id.lower()
            if urn == self.core.id.lower():
                urn = None
            keys.add((urn, path.attribute.lower(), path.sub_attribute.lower() if path.sub_attribute else None))
        return keys

    def apply(self, document: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in document.items():
            if key.lower() == "schemas":
                result[key] = value
                continue

            extension = self.registry.find_extension(self.resource_type, key)
            if extension is not None and isinstance(value, dict):
                projected = self._container(value, extension.attributes, extension.id.lower())
                if projected:
                    result[key] = projected
                continue

            attribute = self.core.get_attribute(key) or self.registry.get_common_attribute(key)
            if attribute is None:
                continue
            projected = self._attribute(attribute, value, None)
            if projected is not None:
                result[key] = projected
        return result

    def _container(self, container: Dict[str, Any], attributes, urn: str) -> Dict[str, Any]:
        whole = (urn, "*", None)
        result = {}
        for key, value in container.items():
            attribute = next((a for a in attributes if a.name.lower() == key.lower()), None)
            if attribute is None:
                continue
            if whole in self.exclude:
                continue
            if whole in self.include and attribute.returned != Returned.NEVER:
                result[key] = value
                continue
            projected = self._attribute(attribute, value, urn)
            if projected is not None:
                result[key] = projected
        return result

    def _attribute(self, attribute: AttributeSchema, value: Any, urn: Optional[str]) -> Any:
        name = attribute.name.lower()

        if attribute.returned == Returned.NEVER:
            return None
        if attribute.returned == Returned.ALWAYS:
            return value

        if self.include:
            if (urn, name, None) in self.include:
                return self._sub_attributes(attribute, value, keep=None)
            subs = {sub for (u, a, sub) in self.include if u == urn and a == name and sub}
            if subs:
                return self._sub_attributes(attribute, value, keep=subs)
            return None

        if attribute.returned == Returned.REQUEST:
            return None
        if (urn, name, None) in self.exclude:
            return None
        dropped = {sub for (u, a, sub) in self.exclude if u == urn and a == name and sub}
        return self._sub_attributes(attribute, value, drop=dropped)

    def _sub_attributes(
        self,
        attribute: AttributeSchema,
        value: Any,
        keep: Optional[Set[str]] = None,
        drop: Optional[Set[str]] = None
    ) -> Any:
        if not attribute.is_complex:
            return value

        def project(element):
            if not isinstance(element, dict):
                return element
            projected = {}
            for key, sub_value in element.items():
                sub = attribute.get_sub_attribute(key)
                lowered = key.lower()
                if sub is not None and sub.returned == Returned.NEVER:
                    continue
                always = sub is not None and sub.returned == Returned.ALWAYS
                if keep is not None and lowered not in keep and not always:
                    continue
                if drop and lowered in drop and not always:
                    continue
                projected[key] = sub_value
            return projected

        if isinstance(value, list):
            elements = [project(e) for e in value]
            elements = [e for e in elements if e]
            return elements or None
        return project(value) or None
