"""Утилиты для SCIM Core"""

from .exceptions import (
    SCIMError,
    SchemaDefinitionError,
    InvalidFilterError,
    FilterEvaluationError,
    UnsupportedAttributeError,
    UnsupportedFilterShapeError,
    ValidationIssue,
    ValidationFailed,
    PatchError,
    NoTargetError,
    InvalidPathError,
    InvalidPatchOperationError,
    MutabilityError,
    ResourceNotFoundError,
    UniquenessError,
    PreconditionFailedError,
    AuthenticationError,
    InsufficientScopeError,
)

__all__ = [
    "SCIMError",
    "SchemaDefinitionError",
    "InvalidFilterError",
    "FilterEvaluationError",
    "UnsupportedAttributeError",
    "UnsupportedFilterShapeError",
    "ValidationIssue",
    "ValidationFailed",
    "PatchError",
    "NoTargetError",
    "InvalidPathError",
    "InvalidPatchOperationError",
    "MutabilityError",
    "ResourceNotFoundError",
    "UniquenessError",
    "PreconditionFailedError",
    "AuthenticationError",
    "InsufficientScopeError",
]
