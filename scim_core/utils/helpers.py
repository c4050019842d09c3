"""Вспомогательные функции для работы с wire-документами SCIM"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


def find_key(document: Dict[str, Any], name: str) -> Optional[str]:
    """Ключ документа, совпадающий с именем без учёта регистра"""
    if name in document:
        return name
    lowered = name.lower()
    for key in document:
        if isinstance(key, str) and key.lower() == lowered:
            return key
    return None


def get_value(document: Any, name: str) -> Any:
    """Значение атрибута по имени без учёта регистра (None если нет)"""
    if not isinstance(document, dict):
        return None
    key = find_key(document, name)
    if key is None:
        return None
    return document[key]


def is_empty(value: Any) -> bool:
    """Пустое значение: None, пустая строка, пустой список или объект"""
    if value is None:
        return True
    if isinstance(value, (str, list, dict)) and len(value) == 0:
        return True
    return False


def parse_datetime(value: Any) -> Optional[datetime]:
    """Разбирает ISO-8601 строку; наивные значения считаются UTC"""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_datetime(value: Any) -> Optional[str]:
    """ISO-8601 представление даты (строки возвращаются как есть)"""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat().replace("+00:00", "Z")
    return str(value)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
