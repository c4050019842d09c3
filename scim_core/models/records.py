"""Доменные записи, в которые отображаются SCIM ресурсы"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any
from datetime import datetime


class ScimRecord(BaseModel):
    """Базовая запись: идентичность и метаданные ресурса"""

    model_config = ConfigDict(validate_assignment=True)

    id: Optional[str] = None
    external_id: Optional[str] = None
    schemas: List[str] = Field(default_factory=list)
    # Данные расширений по URN схемы
    extensions: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    meta_created: Optional[datetime] = None
    meta_last_modified: Optional[datetime] = None

    def get_id(self) -> Optional[str]:
        return self.id

    def get_external_id(self) -> Optional[str]:
        return self.external_id

    def set_id(self, resource_id: str) -> "ScimRecord":
        self.id = resource_id
        return self


class UserRecord(ScimRecord):
    """Пользователь"""
    user_name: Optional[str] = None
    name: Optional[Dict[str, Any]] = None
    display_name: Optional[str] = None
    nick_name: Optional[str] = None
    profile_url: Optional[str] = None
    title: Optional[str] = None
    user_type: Optional[str] = None
    preferred_language: Optional[str] = None
    locale: Optional[str] = None
    timezone: Optional[str] = None
    active: Optional[bool] = None
    password: Optional[str] = None
    emails: List[Dict[str, Any]] = Field(default_factory=list)
    phone_numbers: List[Dict[str, Any]] = Field(default_factory=list)
    addresses: List[Dict[str, Any]] = Field(default_factory=list)
    photos: List[Dict[str, Any]] = Field(default_factory=list)
    groups: List[Dict[str, Any]] = Field(default_factory=list)


class GroupRecord(ScimRecord):
    """Группа"""
    display_name: Optional[str] = None
    members: List[Dict[str, Any]] = Field(default_factory=list)
