"""
@file: webinar_sync/services/enhancement/timing_enhancer.py
@description: Дополнение завершенных вебинаров фактическими временными данными
@dependencies: CompletionDetector, PastEventDataFetcher
"""

from datetime import datetime
from typing import Any, Dict, Optional

from webinar_sync.services.completion_detector import detect_webinar_completion
from webinar_sync.services.enhancement.base import EnhancementProcessor
from webinar_sync.services.enhancement.result import Enhanced
from webinar_sync.services.past_event_fetcher import PastEventDataFetcher
from webinar_sync.services.zoom_client import ZoomApiClient


class TimingEnhancer(EnhancementProcessor):
    """Запрос к /past_webinars делается только для вебинаров, признанных завершенными"""

    name = "timing"

    def __init__(self, client: ZoomApiClient, now: Optional[datetime] = None):
        super().__init__(client)
        self.fetcher = PastEventDataFetcher(client)
        self.now = now
        self.api_calls_made = 0

    async def enhance_one(self, webinar: Dict[str, Any]) -> Enhanced[Dict[str, Any]]:
        completion = detect_webinar_completion(webinar, now=self.now)
        enhanced = dict(webinar)
        enhanced["completion_stage"] = completion.stage.value

        if not completion.should_fetch_actual_data:
            return Enhanced.skipped(enhanced, completion.reason)

        past = await self.fetcher.fetch(webinar, completion)
        self.api_calls_made += past.api_calls_made

        if not past.success:
            return Enhanced.failed(dict(webinar), past.error or "Actual timing data unavailable")

        enhanced.update(past.as_webinar_fields())
        return Enhanced.ok(enhanced)
