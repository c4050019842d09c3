"""Конфигурация SCIM Core"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Optional


class Settings(BaseSettings):
    """Настройки приложения"""

    model_config = SettingsConfigDict(
        env_prefix="SCIM_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Адреса
    base_url: str = "http://localhost:4000"
    api_prefix: str = "/scim/v2"

    # Логирование
    log_level: str = "INFO"

    # Возможности сервиса (ServiceProviderConfig)
    patch_supported: bool = True
    bulk_supported: bool = False
    bulk_max_operations: int = 1000
    bulk_max_payload_size: int = 1_048_576
    filter_supported: bool = True
    filter_max_results: int = 200
    change_password_supported: bool = False
    sort_supported: bool = True
    etag_supported: bool = True
    documentation_uri: Optional[str] = None

    # Пагинация
    default_page_size: int = 20

    # Фильтры
    max_filter_length: int = 4096  # Максимальная длина строки фильтра
    filter_cache_size: int = 512  # Размер кэша разобранных фильтров

    # Аутентификация: статические bearer токены -> scopes
    bearer_tokens: Dict[str, List[str]] = {}
    # Basic: имя пользователя -> пароль (scopes scim:read и scim:write)
    basic_credentials: Dict[str, str] = {}

    # Безопасность
    cors_origins: str = "*"


# Глобальный экземпляр настроек
settings = Settings()


def scim_base_url() -> str:
    """Базовый URL SCIM v2 API"""
    return f"{settings.base_url.rstrip('/')}{settings.api_prefix}"


def collection_url(resource_type: str) -> str:
    """URL коллекции ресурсов, например .../scim/v2/Users"""
    return f"{scim_base_url()}/{resource_type}"


def resource_url(resource_type: str, resource_id: str) -> str:
    """URL конкретного ресурса"""
    return f"{collection_url(resource_type)}/{resource_id}"
