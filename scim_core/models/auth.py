"""Модели аутентификации"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


class Scope:
    """Стандартные scope для SCIM API"""
    READ = "scim:read"
    WRITE = "scim:write"


class Principal(BaseModel):
    """Аутентифицированный клиент SCIM API"""
    id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    scopes: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes

    def has_all_scopes(self, scopes: List[str]) -> bool:
        return all(scope in self.scopes for scope in scopes)
