"""
@file: webinar_sync/services/webinar_service.py
@description: Преобразование записей вебинаров Zoom в строки таблицы webinars и их сохранение
@dependencies: SyncStorage, pydantic_core
"""

from typing import Any, Dict, List, Optional

from pydantic_core import to_jsonable_python

from webinar_sync.core.logging import get_logger
from webinar_sync.models import WEBINARS_TABLE
from webinar_sync.services.storage import SyncStorage
from webinar_sync.utils.datetime_utils import parse_datetime, utc_now
from webinar_sync.utils.webinar_records import get_webinar_id, get_webinar_uuid, to_int

logger = get_logger(__name__)

WEBINAR_CONFLICT_COLUMNS = ["user_id", "webinar_id"]

TEXT_FIELDS = (
    "topic", "status", "timezone", "agenda",
    "host_id", "host_email", "host_name", "host_first_name", "host_last_name",
    "auto_recording",
)
INT_FIELDS = (
    "type", "duration", "registration_type", "approval_type",
    "actual_duration", "participants_count",
)
DATETIME_FIELDS = ("start_time", "actual_start_time", "actual_end_time")

# Поля, которые не относятся к исходному ответу Zoom
DERIVED_FIELDS = {
    "host_name", "host_first_name", "host_last_name",
    "actual_start_time", "actual_end_time", "actual_duration",
    "panelists", "panelists_count", "host_info", "completion_stage", "detail_fetched_at",
}


def build_raw_data(webinar: Dict[str, Any]) -> Dict[str, Any]:
    """raw_data: сохраненный ранее или JSON-совместимая копия ответа API"""
    if "webinar_id" in webinar and isinstance(webinar.get("raw_data"), dict):
        raw = dict(webinar["raw_data"])
    else:
        raw = {key: value for key, value in webinar.items() if key not in DERIVED_FIELDS}
    if webinar.get("host_info"):
        raw["host_info"] = webinar["host_info"]
    return to_jsonable_python(raw)


def webinar_to_row(user_id: str, webinar: Dict[str, Any]) -> Dict[str, Any]:
    """
    Строка для upsert в webinars.

    Пустые значения не включаются, чтобы upsert не затирал известные ранее данные.
    """
    row: Dict[str, Any] = {
        "user_id": user_id,
        "webinar_id": get_webinar_id(webinar),
        "raw_data": build_raw_data(webinar),
        "last_synced_at": utc_now(),
    }

    webinar_uuid = get_webinar_uuid(webinar)
    if webinar_uuid:
        row["webinar_uuid"] = webinar_uuid

    for field in TEXT_FIELDS:
        value = webinar.get(field)
        if value is not None and value != "":
            row[field] = str(value)
    for field in INT_FIELDS:
        value = to_int(webinar.get(field))
        if value is not None:
            row[field] = value
    for field in DATETIME_FIELDS:
        value = parse_datetime(webinar.get(field))
        if value is not None:
            row[field] = value

    if webinar.get("enforce_login") is not None:
        row["enforce_login"] = bool(webinar["enforce_login"])
    if webinar.get("settings") is not None:
        row["settings"] = to_jsonable_python(webinar["settings"])
    if webinar.get("panelists") is not None:
        row["panelists"] = to_jsonable_python(webinar["panelists"])

    return row


class WebinarService:
    """Чтение и запись вебинаров пользователя"""

    def __init__(self, storage: SyncStorage):
        self.storage = storage

    async def upsert_webinars(self, user_id: str, webinars: List[Dict[str, Any]]) -> int:
        rows = [webinar_to_row(user_id, webinar) for webinar in webinars if get_webinar_id(webinar)]
        if not rows:
            return 0
        count = await self.storage.upsert(WEBINARS_TABLE, rows, WEBINAR_CONFLICT_COLUMNS)
        logger.info(f"💾 Upserted {count} webinars for user {user_id}")
        return count

    async def list_webinars(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.storage.select(
            WEBINARS_TABLE, {"user_id": user_id}, order_by="start_time", descending=True
        )

    async def get_webinar(self, user_id: str, webinar_id: str) -> Optional[Dict[str, Any]]:
        rows = await self.storage.select(WEBINARS_TABLE, {"user_id": user_id, "webinar_id": str(webinar_id)})
        return rows[0] if rows else None

    async def get_webinars(self, user_id: str, webinar_ids: List[str]) -> List[Dict[str, Any]]:
        """Сохраненные вебинары в порядке webinar_ids; отсутствующие пропускаются"""
        wanted = {str(webinar_id) for webinar_id in webinar_ids}
        stored = {
            row["webinar_id"]: row
            for row in await self.storage.select(WEBINARS_TABLE, {"user_id": user_id})
            if row["webinar_id"] in wanted
        }
        return [stored[str(webinar_id)] for webinar_id in webinar_ids if str(webinar_id) in stored]
