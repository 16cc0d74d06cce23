"""
@file: webinar_sync/services/enhancement/settings_enhancer.py
@description: Дополнение вебинаров детальными настройками из GET /webinars/{id}
@dependencies: ZoomApiClient, asyncio
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from webinar_sync.core.settings import settings
from webinar_sync.services.enhancement.base import EnhancementProcessor
from webinar_sync.services.enhancement.result import Enhanced
from webinar_sync.services.zoom_client import ZoomApiClient
from webinar_sync.utils.datetime_utils import to_iso, utc_now
from webinar_sync.utils.webinar_records import get_webinar_id

# Настройки, которые дублируются в корень записи
ROOT_SETTINGS_FIELDS = (
    "approval_type",
    "registration_type",
    "auto_recording",
    "enforce_login",
    "on_demand",
    "practice_session",
    "hd_video",
    "host_video",
    "panelists_video",
    "audio",
    "contact_name",
    "contact_email",
)

DETAIL_FIELDS = ("password", "start_url", "registration_url", "tracking_fields", "questions", "occurrences")


def merge_settings(base: Optional[Dict[str, Any]], detail: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Поле за полем, при конфликте побеждает детальный ответ"""
    merged = dict(base or {})
    merged.update(detail or {})
    return merged


def lift_settings_fields(record: Dict[str, Any], detail_settings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Копия записи с ключевыми настройками в корне"""
    source = record.get("settings") if detail_settings is None else detail_settings
    lifted = dict(record)
    for field in ROOT_SETTINGS_FIELDS:
        if source and field in source:
            lifted[field] = source[field]
    return lifted


class SettingsEnhancer(EnhancementProcessor):
    """
    Детальные настройки вебинаров.

    Короткая пауза после каждых N запросов, длинная пауза между пакетами.
    Ошибка одного запроса помечает только свою запись.
    """

    name = "settings"

    def __init__(
        self,
        client: ZoomApiClient,
        batch_size: Optional[int] = None,
        calls_per_pause: Optional[int] = None,
        pause_seconds: Optional[float] = None,
        batch_delay_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        super().__init__(client)
        self.batch_size = batch_size or settings.sync.settings_batch_size
        self.calls_per_pause = calls_per_pause or settings.sync.settings_calls_per_pause
        self.pause_seconds = settings.sync.settings_pause_seconds if pause_seconds is None else pause_seconds
        self.batch_delay_seconds = (
            settings.sync.settings_batch_delay_seconds if batch_delay_seconds is None else batch_delay_seconds
        )
        self._sleep = sleep
        self.detail_calls = 0

    async def enhance_one(self, webinar: Dict[str, Any]) -> Enhanced[Dict[str, Any]]:
        webinar_id = get_webinar_id(webinar)

        self.detail_calls += 1
        detail = await self.client.get_webinar(webinar_id)
        detail_settings = detail.get("settings") or {}

        enhanced = lift_settings_fields(webinar, detail_settings)
        enhanced["settings"] = merge_settings(webinar.get("settings"), detail_settings)
        for field in DETAIL_FIELDS:
            if detail.get(field) is not None:
                enhanced[field] = detail[field]
        enhanced["detail_fetched_at"] = to_iso(utc_now())

        return Enhanced.ok(enhanced)

    async def enhance(self, webinars: List[Dict[str, Any]]) -> List[Enhanced[Dict[str, Any]]]:
        total_batches = (len(webinars) + self.batch_size - 1) // self.batch_size
        self.logger.info(
            f"🔄 settings: processing {len(webinars)} webinars in {total_batches} batches of {self.batch_size}"
        )

        results: List[Enhanced[Dict[str, Any]]] = []
        for batch_index in range(total_batches):
            batch = webinars[batch_index * self.batch_size:(batch_index + 1) * self.batch_size]
            self.logger.debug(f"settings: batch {batch_index + 1}/{total_batches} ({len(batch)} webinars)")

            for webinar in batch:
                calls_before = self.detail_calls
                results.append(await self._enhance_safe(webinar))
                made_call = self.detail_calls > calls_before
                if made_call and self.detail_calls % self.calls_per_pause == 0 and len(results) < len(webinars):
                    await self._sleep(self.pause_seconds)

            if batch_index < total_batches - 1:
                await self._sleep(self.batch_delay_seconds)

        failed = sum(1 for result in results if not result.enhanced)
        self.logger.info(f"🎉 settings: {len(results) - failed} enhanced, {failed} failed")
        return results
