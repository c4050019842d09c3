"""Метаданные ресурсов: идентификаторы и отметки времени"""

import uuid
from typing import Optional

from ..models.records import ScimRecord
from ..utils.helpers import utcnow


def generate_id() -> str:
    return str(uuid.uuid4())


def touch(record: ScimRecord, created: Optional[bool] = None) -> ScimRecord:
    """Обновляет lastModified; created выставляется, если его ещё нет"""
    now = utcnow()
    if created or record.meta_created is None:
        record.meta_created = now
    record.meta_last_modified = now
    return record
