"""
@file: webinar_sync/utils/webinar_records.py
@description: Доступ к полям записи вебинара независимо от источника (ответ Zoom API или строка БД)
"""

import math
from typing import Any, Dict, Optional


def get_webinar_id(webinar: Dict[str, Any]) -> Optional[str]:
    value = webinar.get("webinar_id") or webinar.get("id")
    return str(value) if value is not None else None


def get_webinar_uuid(webinar: Dict[str, Any]) -> Optional[str]:
    return webinar.get("webinar_uuid") or webinar.get("uuid")


def to_int(value: Any) -> Optional[int]:
    """Целое число или None для пустых, нечисловых и бесконечных значений"""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        pass
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(number)
