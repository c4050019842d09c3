"""Исключения SCIM Core согласно RFC 7644 §3.12"""

from typing import Any, Dict, List, Optional


class SCIMError(Exception):
    """Базовое исключение SCIM Core"""

    def __init__(self, message: str, status_code: int = 500, scim_type: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.scim_type = scim_type
        super().__init__(message)


class SchemaDefinitionError(SCIMError):
    """Ошибка в декларации схемы (обнаруживается при регистрации)"""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=500,
            scim_type=None
        )


class InvalidFilterError(SCIMError):
    """Синтаксическая ошибка фильтра: фрагмент и позиция (с 1)"""

    def __init__(self, message: str, fragment: Optional[str] = None, position: Optional[int] = None):
        self.fragment = fragment
        self.position = position
        if position is not None:
            message = f"{message} at position {position}: {fragment!r}"
        super().__init__(
            message=message,
            status_code=400,
            scim_type="invalidFilter"
        )


class FilterEvaluationError(SCIMError):
    """Ошибка при применении фильтра к данным"""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=500,
            scim_type=None
        )


class UnsupportedAttributeError(SCIMError):
    """Адаптер не знает, как отобразить путь атрибута на поле хранилища"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            message=f"Unsupported filter attribute \"{path}\"",
            status_code=400,
            scim_type="invalidFilter"
        )


class UnsupportedFilterShapeError(SCIMError):
    """Адаптер не умеет выразить конструкцию фильтра"""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=400,
            scim_type="invalidFilter"
        )


class ValidationIssue:
    """Одно нарушение схемы"""

    def __init__(self, path: str, detail: str, scim_type: str = "invalidValue"):
        self.path = path
        self.detail = detail
        self.scim_type = scim_type

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "scimType": self.scim_type, "detail": self.detail}

    def __eq__(self, other):
        if not isinstance(other, ValidationIssue):
            return NotImplemented
        return (self.path, self.detail, self.scim_type) == (other.path, other.detail, other.scim_type)

    def __repr__(self):
        return f"ValidationIssue({self.path!r}, {self.detail!r}, {self.scim_type!r})"


class ValidationFailed(SCIMError):
    """Документ не соответствует схеме; содержит полный список нарушений"""

    def __init__(self, errors: List[ValidationIssue]):
        self.errors = list(errors)
        detail = "; ".join(f"{e.path}: {e.detail}" for e in self.errors) or "Validation failed"
        scim_type = self.errors[0].scim_type if self.errors else "invalidValue"
        super().__init__(
            message=detail,
            status_code=400,
            scim_type=scim_type
        )


class PatchError(SCIMError):
    """Базовая ошибка PATCH операции"""

    def __init__(self, message: str, scim_type: str):
        super().__init__(
            message=message,
            status_code=400,
            scim_type=scim_type
        )


class NoTargetError(PatchError):
    """Путь не указывает ни на один элемент ресурса"""

    def __init__(self, message: str = "Path attribute did not yield a valid target"):
        super().__init__(message, scim_type="noTarget")


class InvalidPathError(PatchError):
    """Путь отсутствует, некорректен или ссылается на неизвестный атрибут"""

    def __init__(self, message: str = "Path attribute is invalid or malformed"):
        super().__init__(message, scim_type="invalidPath")


class InvalidPatchOperationError(PatchError):
    """Некорректная PATCH операция"""

    def __init__(self, message: str = "Invalid patch operation"):
        super().__init__(message, scim_type="invalidSyntax")


class MutabilityError(PatchError):
    """Попытка изменить атрибут, который нельзя изменять"""

    def __init__(self, message: str):
        super().__init__(message, scim_type="mutability")


class ResourceNotFoundError(SCIMError):
    """Ресурс не найден"""

    def __init__(self, resource_id: str, resource_type: str = "Resource"):
        self.resource_id = resource_id
        super().__init__(
            message=f"{resource_type} {resource_id} not found",
            status_code=404,
            scim_type=None
        )


class UniquenessError(SCIMError):
    """Нарушение уникальности атрибута"""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=409,
            scim_type="uniqueness"
        )


class PreconditionFailedError(SCIMError):
    """Версия ресурса не совпала с If-Match"""

    def __init__(self, resource_id: str):
        super().__init__(
            message=f"Resource {resource_id} has been modified",
            status_code=412,
            scim_type=None
        )


class AuthenticationError(SCIMError):
    """Ошибка аутентификации"""

    def __init__(self, reason: str = "invalid_credentials"):
        self.reason = reason
        super().__init__(
            message=f"Authentication failed: {reason}",
            status_code=401,
            scim_type=None
        )


class InsufficientScopeError(SCIMError):
    """У принципала нет нужных scope"""

    def __init__(self, scopes: List[str]):
        super().__init__(
            message=f"Missing required scope(s): {', '.join(scopes)}",
            status_code=403,
            scim_type=None
        )
