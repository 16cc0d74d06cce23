"""
@file: webinar_sync/services/zoom_client.py
@description: HTTP клиент Zoom REST API v2 с bearer авторизацией, rate limiting и счетчиком вызовов
@dependencies: httpx
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from webinar_sync.core.logging import get_logger
from webinar_sync.core.settings import settings
from webinar_sync.exceptions import ZoomApiError
from webinar_sync.services.rate_limiter import RateLimiter, get_rate_limiter

logger = get_logger(__name__)


def encode_past_event_id(identifier: str) -> str:
    """
    Кодирует ID/UUID вебинара для подстановки в путь.

    UUID, начинающиеся с "/" или содержащие "//", Zoom требует кодировать дважды.
    """
    identifier = str(identifier)
    if identifier.startswith("/") or "//" in identifier:
        return quote(quote(identifier, safe=""), safe="")
    return quote(identifier, safe="")


class ZoomApiClient:
    """Клиент Zoom API для одного bearer токена"""

    def __init__(
        self,
        access_token: str,
        api_url: Optional[str] = None,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None
    ):
        self.access_token = access_token
        self.api_url = (api_url or settings.zoom.api_url).rstrip("/")
        self.rate_limiter = rate_limiter or get_rate_limiter()
        self.transport = transport
        self.timeout = timeout or settings.zoom.http_timeout
        self.calls_made = 0

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        """
        Выполняет запрос к API. Каждый вызов учитывается в calls_made.

        Raises:
            ZoomApiError: При сетевой ошибке
        """
        await self.rate_limiter.acquire()
        self.calls_made += 1

        url = f"{self.api_url}{path}"
        logger.debug(f"Zoom API {method} {path} params={params}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(
                    method,
                    url,
                    headers=self._headers(),
                    params=params,
                    json=json
                )
        except httpx.RequestError as e:
            logger.warning(f"Network error calling Zoom API {path}: {e}")
            raise ZoomApiError(f"Network error: {e}") from e

        logger.debug(f"Zoom API {method} {path} -> {response.status_code}")
        return response

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET запрос с разбором JSON.

        Raises:
            ZoomApiError: При не-2xx ответе или некорректном JSON
        """
        response = await self.request("GET", path, params=params)

        if not response.is_success:
            payload = _safe_json(response)
            message = payload.get("message") or response.text or "Unknown error"
            raise ZoomApiError(
                f"Zoom API {path} returned {response.status_code}: {message}",
                status_code=response.status_code,
                payload=payload
            )

        data = _safe_json(response, strict=True)
        return data

    async def get_paginated(
        self,
        path: str,
        items_key: str,
        page_size: int = 300,
        max_pages: Optional[int] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Проходит по страницам через next_page_token.

        Args:
            max_pages: Ограничение числа страниц (None - без ограничения)
        """
        items: List[Dict[str, Any]] = []
        next_page_token = ""
        pages = 0

        while True:
            query = dict(params or {})
            query["page_size"] = page_size
            if next_page_token:
                query["next_page_token"] = next_page_token

            data = await self.get_json(path, params=query)
            items.extend(data.get(items_key) or [])
            pages += 1

            next_page_token = data.get("next_page_token") or ""
            if not next_page_token:
                break
            if max_pages is not None and pages >= max_pages:
                logger.info(f"Pagination cap reached for {path}: {pages} page(s), {len(items)} items")
                break

        return items

    async def get_current_user(self) -> Dict[str, Any]:
        return await self.get_json("/users/me")

    async def list_webinars(self, page_size: Optional[int] = None) -> List[Dict[str, Any]]:
        """Все вебинары текущего пользователя"""
        return await self.get_paginated(
            "/users/me/webinars",
            "webinars",
            page_size=page_size or settings.sync.webinar_list_page_size
        )

    async def get_webinar(self, webinar_id: str) -> Dict[str, Any]:
        return await self.get_json(f"/webinars/{encode_past_event_id(webinar_id)}")

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        return await self.get_json(f"/users/{quote(str(user_id), safe='')}")

    async def get_past_webinar(self, identifier: str) -> Dict[str, Any]:
        return await self.get_json(f"/past_webinars/{encode_past_event_id(identifier)}")

    async def get_past_webinar_instance(self, webinar_id: str, instance_uuid: str) -> Dict[str, Any]:
        return await self.get_json(
            f"/past_webinars/{encode_past_event_id(webinar_id)}/instances/{encode_past_event_id(instance_uuid)}"
        )


def _safe_json(response: httpx.Response, strict: bool = False) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        if strict:
            raise ZoomApiError("Malformed JSON in Zoom API response", status_code=response.status_code)
        return {}
    if not isinstance(data, dict):
        if strict:
            raise ZoomApiError("Unexpected payload in Zoom API response", status_code=response.status_code)
        return {}
    return data
