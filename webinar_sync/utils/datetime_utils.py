"""
@file: webinar_sync/utils/datetime_utils.py
@description: Разбор и нормализация дат из ответов Zoom API
@dependencies: datetime
"""

from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """Текущее время в UTC (aware)"""
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Naive datetime считается UTC"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Преобразует значение из API в aware datetime.

    Zoom отдает даты в формате ISO 8601 с суффиксом "Z" ("2024-05-01T10:00:00Z").

    Args:
        value: Строка ISO 8601, datetime или None

    Returns:
        datetime в UTC или None, если значение пустое или некорректное
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_aware(datetime.fromisoformat(text))
    except ValueError:
        return None


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """datetime -> ISO строка (для JSON ответов и Celery)"""
    if dt is None:
        return None
    return ensure_aware(dt).isoformat()
