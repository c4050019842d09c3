"""Модели PATCH операций SCIM (RFC 7644 §3.5.2)"""

from pydantic import BaseModel, ConfigDict
from typing import Optional, Any
from enum import Enum

from .filters import AttributePath


class PatchOp(str, Enum):
    """Тип PATCH операции"""
    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"


class PatchOperation(BaseModel):
    """Разобранная PATCH операция"""

    model_config = ConfigDict(frozen=True)

    op: PatchOp
    path: Optional[AttributePath] = None
    value: Any = None

    def __str__(self):
        if self.path is None:
            return self.op.value
        return f"{self.op.value} {self.path}"
