"""
@file: webinar_sync/services/instance_upserter.py
@description: Идемпотентный upsert экземпляров вебинаров и их синхронизация из Zoom
@dependencies: SyncStorage, ZoomApiClient, PastEventDataFetcher
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from pydantic_core import to_jsonable_python

from webinar_sync.core.logging import get_logger
from webinar_sync.exceptions import StorageError, ValidationError, ZoomApiError
from webinar_sync.models import INSTANCES_TABLE
from webinar_sync.services.completion_detector import detect_completion
from webinar_sync.services.past_event_fetcher import PastEventDataFetcher
from webinar_sync.services.storage import SyncStorage
from webinar_sync.services.zoom_client import ZoomApiClient, encode_past_event_id
from webinar_sync.utils.datetime_utils import parse_datetime
from webinar_sync.utils.webinar_records import get_webinar_id, get_webinar_uuid, to_int

logger = get_logger(__name__)

INSTANCE_CONFLICT_COLUMNS = ["user_id", "webinar_id", "instance_id"]
REQUIRED_FIELDS = ("user_id", "webinar_id", "instance_id")
NUMERIC_FIELDS = ("duration", "actual_duration", "participants_count", "registrants_count")
DATE_FIELDS = ("start_time", "end_time", "actual_start_time")


class InstanceUpserter:
    """Upsert строки webinar_instances по ключу (user_id, webinar_id, instance_id)"""

    def __init__(self, storage: SyncStorage):
        self.storage = storage

    def validate(self, instance_data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: Не заполнено одно из ключевых полей
        """
        for field in REQUIRED_FIELDS:
            if not instance_data.get(field):
                raise ValidationError(f"Missing required field: {field}")

    def normalize(self, instance_data: Dict[str, Any]) -> Dict[str, Any]:
        """Мягкая проверка: некорректные числа и даты записываются как NULL с предупреждением"""
        instance_id = instance_data.get("instance_id")

        numbers = {}
        for field in NUMERIC_FIELDS:
            value = instance_data.get(field)
            numbers[field] = to_int(value)
            if value not in (None, "") and (numbers[field] is None or not isinstance(value, (int, float))):
                logger.warning(f"⚠️ Instance {instance_id}: {field} is not a number: {value!r}")

        dates = {}
        for field in DATE_FIELDS:
            value = instance_data.get(field)
            dates[field] = parse_datetime(value)
            if value not in (None, "") and dates[field] is None:
                logger.warning(f"⚠️ Instance {instance_id}: invalid date format for {field}: {value!r}")

        return {
            "user_id": str(instance_data["user_id"]),
            "webinar_id": str(instance_data["webinar_id"]),
            "webinar_uuid": instance_data.get("webinar_uuid") or "",
            "instance_id": str(instance_id),
            "topic": instance_data.get("topic") or "Untitled Webinar",
            "status": instance_data.get("status") or "unknown",
            "start_time": dates["start_time"],
            "end_time": dates["end_time"],
            "actual_start_time": dates["actual_start_time"],
            "duration": numbers["duration"],
            "actual_duration": numbers["actual_duration"],
            "registrants_count": numbers["registrants_count"] or 0,
            "participants_count": numbers["participants_count"] or 0,
            "is_historical": bool(instance_data.get("is_historical")),
            "data_source": instance_data.get("data_source") or "unknown",
            "raw_data": to_jsonable_python(instance_data.get("raw_data") or {}),
        }

    async def upsert(self, instance_data: Dict[str, Any]) -> int:
        """
        Returns:
            1 если строка записана, 0 при ошибке хранилища

        Raises:
            ValidationError: Не заполнено одно из ключевых полей
        """
        self.validate(instance_data)
        row = self.normalize(instance_data)

        try:
            await self.storage.upsert(INSTANCES_TABLE, [row], INSTANCE_CONFLICT_COLUMNS)
        except StorageError as e:
            logger.error(f"❌ Error upserting instance {row['instance_id']} of webinar {row['webinar_id']}: {e}")
            return 0

        logger.debug(f"💾 Upserted instance {row['instance_id']} of webinar {row['webinar_id']}")
        return 1


class InstanceSyncResult(BaseModel):
    webinar_id: str
    instances: List[Dict[str, Any]] = []
    upserted: int = 0
    api_calls_made: int = 0
    synthesized: bool = False
    error: Optional[str] = None


class InstanceSyncer:
    """
    Экземпляры вебинара из GET /past_webinars/{id}/instances.

    Завершенные экземпляры дополняются фактическими данными. Если экземпляров нет,
    создается один синтетический экземпляр из самого вебинара.
    """

    def __init__(
        self,
        client: ZoomApiClient,
        storage: SyncStorage,
        now: Optional[datetime] = None
    ):
        self.client = client
        self.upserter = InstanceUpserter(storage)
        self.fetcher = PastEventDataFetcher(client)
        self.now = now

    async def fetch_instance_list(self, webinar_id: str) -> List[Dict[str, Any]]:
        data = await self.client.get_json(f"/past_webinars/{encode_past_event_id(webinar_id)}/instances")
        return data.get("webinars") or []

    def _end_time(self, start: Optional[datetime], duration: Optional[int]) -> Optional[datetime]:
        if start is None or duration is None:
            return None
        return start + timedelta(minutes=duration)

    async def _build_recurring(
        self,
        user_id: str,
        webinar: Dict[str, Any],
        instance: Dict[str, Any]
    ) -> Dict[str, Any]:
        webinar_id = get_webinar_id(webinar)
        instance_uuid = instance.get("uuid")
        scheduled_duration = to_int(instance.get("duration")) or to_int(webinar.get("duration"))

        completion = detect_completion(
            instance.get("status"), instance.get("start_time"), scheduled_duration, now=self.now
        )

        data = {
            "user_id": user_id,
            "webinar_id": webinar_id,
            "webinar_uuid": get_webinar_uuid(webinar),
            "instance_id": instance_uuid,
            "topic": instance.get("topic") or webinar.get("topic"),
            "start_time": instance.get("start_time"),
            "duration": scheduled_duration,
            "status": "ended" if completion.should_fetch_actual_data else (instance.get("status") or "waiting"),
            "is_historical": completion.should_fetch_actual_data,
            "data_source": "instances_api",
            "raw_data": {"instance": instance},
        }

        if completion.should_fetch_actual_data and instance_uuid:
            past = await self.fetcher.fetch_instance(webinar_id, instance_uuid)
            if past.success:
                data.update({
                    "actual_start_time": past.actual_start_time,
                    "actual_duration": past.actual_duration,
                    "end_time": past.actual_end_time,
                    "participants_count": past.participants_count,
                    "data_source": "past_webinars_api",
                })
                data["raw_data"]["past_webinar"] = past.payload

        if not data.get("end_time") and completion.should_fetch_actual_data:
            data["end_time"] = self._end_time(parse_datetime(data["start_time"]), scheduled_duration)
        return data

    async def _build_single(self, user_id: str, webinar: Dict[str, Any]) -> Dict[str, Any]:
        webinar_id = get_webinar_id(webinar)
        completion = detect_completion(
            webinar.get("status"), webinar.get("start_time"), webinar.get("duration"), now=self.now
        )

        data = {
            "user_id": user_id,
            "webinar_id": webinar_id,
            "webinar_uuid": get_webinar_uuid(webinar),
            "instance_id": get_webinar_uuid(webinar) or webinar_id,
            "topic": webinar.get("topic"),
            "start_time": webinar.get("start_time"),
            "duration": webinar.get("duration"),
            "status": (webinar.get("status") or "ended") if completion.should_fetch_actual_data
            else (webinar.get("status") or "waiting"),
            "is_historical": completion.should_fetch_actual_data,
            "data_source": "synthesized",
            "raw_data": {"single_occurrence": True},
        }

        if completion.should_fetch_actual_data:
            past = await self.fetcher.fetch(webinar, completion)
            if past.success:
                data.update({
                    "actual_start_time": past.actual_start_time,
                    "actual_duration": past.actual_duration,
                    "end_time": past.actual_end_time,
                    "participants_count": past.participants_count,
                    "data_source": "past_webinars_api",
                })
            else:
                data["end_time"] = self._end_time(
                    parse_datetime(webinar.get("start_time")), to_int(webinar.get("duration"))
                )
        return data

    async def sync_webinar(self, user_id: str, webinar: Dict[str, Any]) -> InstanceSyncResult:
        """Синхронизировать экземпляры одного вебинара. Ошибки API не выбрасываются."""
        webinar_id = get_webinar_id(webinar)
        calls_before = self.client.calls_made
        result = InstanceSyncResult(webinar_id=webinar_id)

        try:
            instances = await self.fetch_instance_list(webinar_id)
        except ZoomApiError as e:
            logger.info(f"Instances API unavailable for webinar {webinar_id}: {e}")
            instances = []

        if instances:
            payloads = [await self._build_recurring(user_id, webinar, instance) for instance in instances]
        else:
            payloads = [await self._build_single(user_id, webinar)]
            result.synthesized = True

        for payload in payloads:
            if not payload.get("instance_id"):
                logger.warning(f"⚠️ Skipping instance without uuid for webinar {webinar_id}")
                continue
            result.upserted += await self.upserter.upsert(payload)
            result.instances.append(payload)

        result.api_calls_made = self.client.calls_made - calls_before
        logger.info(
            f"✅ Webinar {webinar_id}: {result.upserted}/{len(payloads)} instances upserted"
            f"{' (synthesized)' if result.synthesized else ''}"
        )
        return result
