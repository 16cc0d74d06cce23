"""
@file: webinar_sync/services/sync_history_service.py
@description: Журнал синхронизаций (append-only)
@dependencies: SyncStorage
"""

from typing import List, Optional

from webinar_sync.core.logging import get_logger
from webinar_sync.models import SYNC_HISTORY_TABLE, SyncHistoryRead, SyncStatus
from webinar_sync.services.storage import SyncStorage

logger = get_logger(__name__)


class SyncHistoryService:
    def __init__(self, storage: SyncStorage):
        self.storage = storage

    async def record(
        self,
        user_id: str,
        sync_type: str,
        status: SyncStatus,
        items_updated: int,
        message: Optional[str] = None
    ) -> None:
        """Добавить запись. Существующие записи никогда не изменяются."""
        await self.storage.insert(
            SYNC_HISTORY_TABLE,
            [{
                "user_id": user_id,
                "sync_type": sync_type,
                "status": SyncStatus(status).value,
                "items_updated": items_updated,
                "message": message,
            }]
        )
        logger.info(f"📝 Sync history: {sync_type} {SyncStatus(status).value}, {items_updated} items, user {user_id}")

    async def list_for_user(self, user_id: str, limit: int = 50) -> List[SyncHistoryRead]:
        rows = await self.storage.select(
            SYNC_HISTORY_TABLE, {"user_id": user_id}, order_by="created_at", descending=True, limit=limit
        )
        return [SyncHistoryRead.model_validate(row) for row in rows]


def status_for(errors: int, succeeded: int) -> SyncStatus:
    """success без ошибок, partial при частичных ошибках, error если ничего не получилось"""
    if errors == 0:
        return SyncStatus.SUCCESS
    if succeeded > 0:
        return SyncStatus.PARTIAL
    return SyncStatus.ERROR
