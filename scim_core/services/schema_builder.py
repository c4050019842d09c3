"""Построитель атрибутов SCIM схем

Определения схем строятся обычными функциями, возвращающие упорядоченный список
AttributeSchema; они вызываются один раз при старте процесса.
"""

from typing import Optional, List, Iterable, Dict, Any, Union

from ..models.schema import (
    AttributeSchema, AttributeType, Mutability, Returned, Uniqueness,
    ResourceSchema
)


def attribute(
    name: str,
    type: Union[AttributeType, str] = AttributeType.STRING,
    *,
    multi_valued: bool = False,
    required: bool = False,
    case_exact: bool = False,
    mutability: Union[Mutability, str] = Mutability.READ_WRITE,
    returned: Union[Returned, str] = Returned.DEFAULT,
    uniqueness: Optional[Union[Uniqueness, str]] = None,
    canonical_values: Optional[Iterable[str]] = None,
    reference_types: Optional[Iterable[str]] = None,
    description: str = "",
    sub_attributes: Optional[Iterable[AttributeSchema]] = None,
) -> AttributeSchema:
    """Атрибут верхнего уровня

    uniqueness=None означает "не задано": для boolean ключ uniqueness
    не попадает в wire-представление схемы.
    """
    return AttributeSchema(
        name=name,
        type=type,
        multi_valued=multi_valued,
        required=required,
        case_exact=case_exact,
        mutability=mutability,
        returned=returned,
        uniqueness=uniqueness,
        canonical_values=tuple(canonical_values) if canonical_values is not None else None,
        reference_types=tuple(reference_types) if reference_types is not None else None,
        description=description,
        sub_attributes=tuple(sub_attributes or ()),
    )


def complex_attribute(name: str, sub_attributes: Iterable[AttributeSchema], **opts) -> AttributeSchema:
    """Сложный атрибут с под-атрибутами"""
    return attribute(name, AttributeType.COMPLEX, sub_attributes=sub_attributes, **opts)


def sub_attribute(name: str, type: Union[AttributeType, str] = AttributeType.STRING, **opts) -> AttributeSchema:
    """Под-атрибут; uniqueness всегда присутствует (по умолчанию none)"""
    opts.setdefault("uniqueness", Uniqueness.NONE)
    return attribute(name, type, **opts)


def to_wire(schema: ResourceSchema, location: Optional[str] = None) -> Dict[str, Any]:
    """Документ схемы в формате RFC 7643 §7"""
    return schema.to_wire(location=location)


def find_duplicates(attributes: List[AttributeSchema]) -> List[str]:
    """Имена, повторяющиеся среди соседей (без учёта регистра), включая под-атрибуты"""
    duplicates = []
    seen = set()
    for attr in attributes:
        lowered = attr.name.lower()
        if lowered in seen:
            duplicates.append(attr.name)
        seen.add(lowered)
        for name in find_duplicates(list(attr.sub_attributes)):
            duplicates.append(f"{attr.name}.{name}")
    return duplicates
