"""
@file: webinar_sync/services/enhancement/panelist_resolver.py
@description: Дополнение вебинаров списком панелистов
@dependencies: ZoomApiClient
"""

from typing import Any, Dict, List

from webinar_sync.exceptions import SoftFetchFailure
from webinar_sync.services.enhancement.base import EnhancementProcessor
from webinar_sync.services.enhancement.result import Enhanced
from webinar_sync.services.zoom_client import encode_past_event_id
from webinar_sync.utils.webinar_records import get_webinar_id

PANELIST_FIELDS = ("id", "name", "email", "name_tag_name", "name_tag_description")


def normalize_panelist(panelist: Dict[str, Any]) -> Dict[str, Any]:
    return {field: panelist.get(field) for field in PANELIST_FIELDS if panelist.get(field) is not None}


class PanelistResolver(EnhancementProcessor):
    """Всегда запрашивает список панелистов. Пустой или ошибочный ответ дает panelists = []."""

    name = "panelist-details"

    async def enhance_one(self, webinar: Dict[str, Any]) -> Enhanced[Dict[str, Any]]:
        webinar_id = get_webinar_id(webinar)
        enhanced = dict(webinar)

        try:
            data = await self.client.get_json(f"/webinars/{encode_past_event_id(webinar_id)}/panelists")
        except SoftFetchFailure as e:
            self.logger.warning(f"⚠️ Panelists unavailable for webinar {webinar_id}: {e}")
            enhanced["panelists"] = []
            return Enhanced.failed(enhanced, str(e))

        panelists: List[Dict[str, Any]] = [normalize_panelist(item) for item in data.get("panelists") or []]
        enhanced["panelists"] = panelists
        enhanced["panelists_count"] = len(panelists)
        return Enhanced.ok(enhanced)
