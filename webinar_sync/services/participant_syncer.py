"""
@file: webinar_sync/services/participant_syncer.py
@description: Синхронизация регистрантов и посетителей вебинара (полная замена набора)
@dependencies: ZoomApiClient, SyncStorage
"""

from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel
from pydantic_core import to_jsonable_python

from webinar_sync.core.logging import get_logger
from webinar_sync.core.settings import settings
from webinar_sync.exceptions import StorageError, ZoomApiError
from webinar_sync.models import PARTICIPANTS_TABLE, ParticipantType
from webinar_sync.services.storage import SyncStorage
from webinar_sync.services.zoom_client import ZoomApiClient, encode_past_event_id
from webinar_sync.utils.datetime_utils import parse_datetime
from webinar_sync.utils.webinar_records import to_int

logger = get_logger(__name__)

PARTICIPANT_CONFLICT_COLUMNS = ["user_id", "webinar_id", "participant_type", "participant_id"]


class ParticipantSyncResult(BaseModel):
    """Результат синхронизации одного типа участников"""
    participant_type: str
    count: int = 0
    fetched: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


def synthesize_participant_id(prefix: str, email: Optional[str], timestamp: Optional[str], index: int) -> str:
    """
    ID для записи без id в ответе Zoom: префикс, email и время из самой записи.

    Время берется из записи, поэтому ID стабилен между синхронизациями.
    """
    return f"{prefix}_{email or 'unknown'}_{timestamp or index}"


def registrant_to_row(user_id: str, webinar_id: str, registrant: Dict[str, Any], index: int) -> Dict[str, Any]:
    email = registrant.get("email")
    name = " ".join(
        part for part in (registrant.get("first_name"), registrant.get("last_name")) if part
    ).strip()
    return {
        "user_id": user_id,
        "webinar_id": webinar_id,
        "participant_type": ParticipantType.REGISTRANT.value,
        "participant_id": str(registrant.get("id") or synthesize_participant_id(
            "reg", email, registrant.get("create_time"), index
        )),
        "email": email,
        "name": name or None,
        "join_time": parse_datetime(registrant.get("create_time")),
        "raw_data": to_jsonable_python(registrant),
    }


def attendee_to_row(user_id: str, webinar_id: str, attendee: Dict[str, Any], index: int) -> Dict[str, Any]:
    email = attendee.get("user_email") or attendee.get("email")
    return {
        "user_id": user_id,
        "webinar_id": webinar_id,
        "participant_type": ParticipantType.ATTENDEE.value,
        "participant_id": str(attendee.get("id") or synthesize_participant_id(
            "att", email, attendee.get("join_time"), index
        )),
        "email": email,
        "name": attendee.get("name"),
        "join_time": parse_datetime(attendee.get("join_time")),
        "leave_time": parse_datetime(attendee.get("leave_time")),
        "duration": to_int(attendee.get("duration")),
        "raw_data": to_jsonable_python(attendee),
    }


class ParticipantSyncer:
    """
    Регистранты и посетители.

    Набор строк (user, webinar, participant_type) удаляется и вставляется заново,
    поэтому в хранилище остается ровно результат последней успешной выборки.
    """

    def __init__(
        self,
        client: ZoomApiClient,
        storage: SyncStorage,
        page_size: Optional[int] = None,
        max_pages: Optional[int] = None
    ):
        self.client = client
        self.storage = storage
        self.page_size = page_size or settings.sync.participant_page_size
        self.max_pages = max_pages or settings.sync.participant_max_pages

    async def sync_registrants(self, user_id: str, webinar_id: str) -> ParticipantSyncResult:
        return await self._sync(
            user_id,
            str(webinar_id),
            ParticipantType.REGISTRANT,
            f"/webinars/{encode_past_event_id(webinar_id)}/registrants",
            "registrants",
            registrant_to_row,
        )

    async def sync_attendees(self, user_id: str, webinar_id: str) -> ParticipantSyncResult:
        return await self._sync(
            user_id,
            str(webinar_id),
            ParticipantType.ATTENDEE,
            f"/past_webinars/{encode_past_event_id(webinar_id)}/participants",
            "participants",
            attendee_to_row,
        )

    async def sync_all(self, user_id: str, webinar_id: str) -> Dict[str, ParticipantSyncResult]:
        return {
            "registrants": await self.sync_registrants(user_id, webinar_id),
            "attendees": await self.sync_attendees(user_id, webinar_id),
        }

    async def fetch_instance_attendees(self, instance_uuid: str) -> List[Dict[str, Any]]:
        """Посетители одного экземпляра (без сохранения)"""
        return await self.client.get_paginated(
            f"/past_webinars/{encode_past_event_id(instance_uuid)}/participants",
            "participants",
            page_size=self.page_size,
            max_pages=self.max_pages,
        )

    async def _sync(
        self,
        user_id: str,
        webinar_id: str,
        participant_type: ParticipantType,
        path: str,
        items_key: str,
        to_row: Callable[[str, str, Dict[str, Any], int], Dict[str, Any]]
    ) -> ParticipantSyncResult:
        kind = participant_type.value
        logger.info(f"👥 Fetching {kind}s for webinar {webinar_id}")

        try:
            items = await self.client.get_paginated(
                path, items_key, page_size=self.page_size, max_pages=self.max_pages
            )
        except ZoomApiError as e:
            logger.warning(f"⚠️ No {kind}s fetched for webinar {webinar_id}: {e}")
            return ParticipantSyncResult(participant_type=kind, error=str(e))

        if not items:
            logger.info(f"No {kind}s for webinar {webinar_id}, storage untouched")
            return ParticipantSyncResult(participant_type=kind)

        rows = [to_row(user_id, webinar_id, item, index) for index, item in enumerate(items)]
        filters = {"user_id": user_id, "webinar_id": webinar_id, "participant_type": kind}

        try:
            await self.storage.delete(PARTICIPANTS_TABLE, filters)
        except StorageError as e:
            logger.error(f"❌ Failed to delete old {kind}s for webinar {webinar_id}: {e}")
            return ParticipantSyncResult(participant_type=kind, fetched=len(items), error=str(e))

        try:
            count = await self.storage.upsert(PARTICIPANTS_TABLE, rows, PARTICIPANT_CONFLICT_COLUMNS)
        except StorageError as e:
            logger.error(
                f"❌ Insert of {kind}s failed after delete, webinar {webinar_id} has no stored {kind}s until next sync: {e}"
            )
            return ParticipantSyncResult(participant_type=kind, fetched=len(items), error=str(e))

        logger.info(f"✅ Synced {count} {kind}s for webinar {webinar_id}")
        return ParticipantSyncResult(participant_type=kind, count=count, fetched=len(items))
