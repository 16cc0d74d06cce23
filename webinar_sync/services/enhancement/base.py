"""
@file: webinar_sync/services/enhancement/base.py
@description: Базовый процессор: обрабатывает пакет записей, ошибка одной записи не выбрасывает ее из пакета
@dependencies: ZoomApiClient
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from webinar_sync.core.logging import LoggerMixin
from webinar_sync.exceptions import SoftFetchFailure
from webinar_sync.services.enhancement.result import Enhanced, summarize
from webinar_sync.services.zoom_client import ZoomApiClient
from webinar_sync.utils.webinar_records import get_webinar_id


class EnhancementProcessor(LoggerMixin, ABC):
    """
    Процессор дополнения записей вебинаров.

    enhance() всегда возвращает столько же результатов, сколько получил записей, в том же порядке.
    """

    name: str = "enhancement"

    def __init__(self, client: ZoomApiClient):
        self.client = client

    @abstractmethod
    async def enhance_one(self, webinar: Dict[str, Any]) -> Enhanced[Dict[str, Any]]:
        """Дополнить одну запись. Может бросить SoftFetchFailure."""

    async def _enhance_safe(self, webinar: Dict[str, Any]) -> Enhanced[Dict[str, Any]]:
        if not get_webinar_id(webinar):
            return Enhanced.failed(dict(webinar), "Webinar record has no id")
        try:
            return await self.enhance_one(webinar)
        except SoftFetchFailure as e:
            self.logger.warning(f"⚠️ {self.name}: failed for webinar {get_webinar_id(webinar)}: {e}")
            return Enhanced.failed(dict(webinar), str(e))

    async def enhance(self, webinars: List[Dict[str, Any]]) -> List[Enhanced[Dict[str, Any]]]:
        self.logger.info(f"🔄 {self.name}: processing {len(webinars)} webinars")

        results = []
        for webinar in webinars:
            results.append(await self._enhance_safe(webinar))

        summary = summarize(results)
        self.logger.info(
            f"🎉 {self.name}: {summary['enhanced']} enhanced, "
            f"{summary['failed']} failed, {summary['skipped']} skipped"
        )
        return results
