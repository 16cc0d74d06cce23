"""
@file: webinar_sync/services/completion_detector.py
@description: Определение стадии жизненного цикла вебинара (без I/O)
@dependencies: pydantic
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

from webinar_sync.core.settings import settings
from webinar_sync.utils.datetime_utils import ensure_aware, parse_datetime, utc_now
from webinar_sync.utils.webinar_records import to_int

# Длительность больше недели считается некорректной
MAX_DURATION_MINUTES = 7 * 24 * 60


class WebinarStage(str, Enum):
    """Стадия вебинара"""
    ENDED = "ended"
    LIVE = "live"
    SCHEDULED = "scheduled"
    UNKNOWN = "unknown"


class CompletionResult(BaseModel):
    """Результат классификации"""
    stage: WebinarStage
    reason: str
    should_fetch_actual_data: bool
    inferred: bool = False


def _duration_minutes(duration: Any, default: int) -> int:
    # 0 допустим и учитывается как есть
    value = to_int(duration)
    if value is None or value < 0 or value > MAX_DURATION_MINUTES:
        return default
    return value


def detect_completion(
    status: Optional[str],
    start_time: Any,
    duration: Any,
    now: Optional[datetime] = None,
    default_duration: Optional[int] = None
) -> CompletionResult:
    """
    Классифицирует вебинар по статусу, времени начала и длительности.

    Порядок проверок:
        1. status == "ended" -> ENDED
        2. now >= start_time + duration -> ENDED (inferred)
        3. start_time <= now < start_time + duration -> LIVE
        4. now < start_time -> SCHEDULED
        5. иначе UNKNOWN

    Запрос фактических данных разрешен только для ENDED.

    Args:
        status: Статус из Zoom (свободный текст)
        start_time: Запланированное время начала (ISO строка или datetime)
        duration: Запланированная длительность в минутах
        now: Текущее время (по умолчанию UTC now)
        default_duration: Длительность, если она не указана

    Returns:
        CompletionResult
    """
    now = ensure_aware(now) if now else utc_now()
    if default_duration is None:
        default_duration = settings.sync.default_duration_minutes

    if isinstance(status, str) and status.strip().lower() == "ended":
        return CompletionResult(
            stage=WebinarStage.ENDED,
            reason="Status reported by Zoom is 'ended'",
            should_fetch_actual_data=True,
        )

    start = parse_datetime(start_time)
    if start is None:
        return CompletionResult(
            stage=WebinarStage.UNKNOWN,
            reason=f"No usable start_time (status={status!r})",
            should_fetch_actual_data=False,
        )

    minutes = _duration_minutes(duration, default_duration)
    try:
        expected_end = start + timedelta(minutes=minutes)
    except OverflowError:
        return CompletionResult(
            stage=WebinarStage.UNKNOWN,
            reason=f"Scheduled end is out of range (start_time={start_time!r})",
            should_fetch_actual_data=False,
        )

    if now >= expected_end:
        return CompletionResult(
            stage=WebinarStage.ENDED,
            reason=f"Scheduled end {expected_end.isoformat()} has passed ({minutes} min)",
            should_fetch_actual_data=True,
            inferred=True,
        )

    if start <= now:
        return CompletionResult(
            stage=WebinarStage.LIVE,
            reason=f"In progress until {expected_end.isoformat()}",
            should_fetch_actual_data=False,
        )

    return CompletionResult(
        stage=WebinarStage.SCHEDULED,
        reason=f"Starts at {start.isoformat()}",
        should_fetch_actual_data=False,
    )


def detect_webinar_completion(webinar: Dict[str, Any], now: Optional[datetime] = None) -> CompletionResult:
    """Обертка для записи вебинара (ответ API или строка из БД)"""
    return detect_completion(
        webinar.get("status"),
        webinar.get("start_time"),
        webinar.get("duration"),
        now=now,
    )
