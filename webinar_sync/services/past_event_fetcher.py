"""
@file: webinar_sync/services/past_event_fetcher.py
@description: Получение фактических данных завершенного вебинара через /past_webinars
@dependencies: ZoomApiClient, CompletionDetector
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from webinar_sync.core.logging import get_logger
from webinar_sync.exceptions import ZoomApiError
from webinar_sync.services.completion_detector import CompletionResult
from webinar_sync.services.zoom_client import ZoomApiClient
from webinar_sync.utils.datetime_utils import parse_datetime
from webinar_sync.utils.webinar_records import get_webinar_id, get_webinar_uuid, to_int

logger = get_logger(__name__)

TIMING_FIELDS = ("start_time", "duration", "participants_count")


class PastEventData(BaseModel):
    """Фактические данные вебинара. success=False - мягкая ошибка, старые данные сохраняются."""
    success: bool
    actual_start_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None
    actual_duration: Optional[int] = None
    participants_count: Optional[int] = None
    api_calls_made: int = 0
    error: Optional[str] = None
    source: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None

    def as_webinar_fields(self) -> Dict[str, Any]:
        """Поля для обновления строки вебинара (только непустые)"""
        fields = {
            "actual_start_time": self.actual_start_time,
            "actual_end_time": self.actual_end_time,
            "actual_duration": self.actual_duration,
            "participants_count": self.participants_count,
        }
        return {key: value for key, value in fields.items() if value is not None}


def extract_timing(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Достает фактическое время из ответа /past_webinars"""
    start = parse_datetime(payload.get("start_time"))
    duration = to_int(payload.get("duration"))
    end = parse_datetime(payload.get("end_time"))
    if end is None and start is not None and duration is not None:
        try:
            end = start + timedelta(minutes=duration)
        except OverflowError:
            end = None

    participants_count = to_int(payload.get("participants_count"))
    if participants_count is None:
        participants_count = to_int(payload.get("total_participants"))

    return {
        "actual_start_time": start,
        "actual_end_time": end,
        "actual_duration": duration,
        "participants_count": participants_count,
    }


def _has_timing(payload: Any) -> bool:
    return isinstance(payload, dict) and any(payload.get(field) is not None for field in TIMING_FIELDS)


class PastEventDataFetcher:
    """Фактические данные (начало, конец, длительность, участники) для завершенных вебинаров"""

    def __init__(self, client: ZoomApiClient):
        self.client = client

    async def fetch(self, webinar: Dict[str, Any], completion: CompletionResult) -> PastEventData:
        """
        Запрашивает /past_webinars/{uuid}, затем /past_webinars/{id}.

        Вызывается только при completion.should_fetch_actual_data. Не бросает исключений:
        при ошибке возвращает success=False и описание в error.
        """
        webinar_id = get_webinar_id(webinar)

        if not completion.should_fetch_actual_data:
            return PastEventData(
                success=False,
                error=f"Webinar is not ended: {completion.stage.value}",
            )

        identifiers: List[str] = []
        webinar_uuid = get_webinar_uuid(webinar)
        if webinar_uuid:
            identifiers.append(webinar_uuid)
        if webinar_id and webinar_id not in identifiers:
            identifiers.append(webinar_id)

        if not identifiers:
            return PastEventData(success=False, error="Webinar has neither uuid nor id")

        calls_before = self.client.calls_made
        errors: List[str] = []

        for identifier in identifiers:
            try:
                payload = await self.client.get_past_webinar(identifier)
            except ZoomApiError as e:
                errors.append(f"{identifier}: {e}")
                logger.warning(f"⚠️ Past webinar API failed for {webinar_id} ({identifier}): {e}")
                continue

            if not _has_timing(payload):
                errors.append(f"{identifier}: payload has no timing fields")
                logger.warning(f"⚠️ Past webinar payload for {webinar_id} has no timing fields")
                continue

            result = PastEventData(
                success=True,
                api_calls_made=self.client.calls_made - calls_before,
                source=identifier,
                payload=payload,
                **extract_timing(payload)
            )
            logger.info(
                f"✅ Actual timing for webinar {webinar_id}: start={result.actual_start_time}, "
                f"duration={result.actual_duration}, participants={result.participants_count}"
            )
            return result

        return PastEventData(
            success=False,
            api_calls_made=self.client.calls_made - calls_before,
            error="; ".join(errors),
        )

    async def fetch_instance(self, webinar_id: str, instance_uuid: str) -> PastEventData:
        """Фактические данные одного экземпляра повторяющегося вебинара"""
        calls_before = self.client.calls_made
        try:
            payload = await self.client.get_past_webinar_instance(webinar_id, instance_uuid)
        except ZoomApiError as e:
            logger.warning(f"⚠️ Past instance API failed for {webinar_id}/{instance_uuid}: {e}")
            return PastEventData(
                success=False,
                api_calls_made=self.client.calls_made - calls_before,
                error=str(e),
            )

        if not _has_timing(payload):
            return PastEventData(
                success=False,
                api_calls_made=self.client.calls_made - calls_before,
                error="payload has no timing fields",
            )

        return PastEventData(
            success=True,
            api_calls_made=self.client.calls_made - calls_before,
            source=instance_uuid,
            payload=payload,
            **extract_timing(payload)
        )
