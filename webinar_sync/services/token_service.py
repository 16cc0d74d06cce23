"""
@file: webinar_sync/services/token_service.py
@description: Получение и кэширование access токенов Zoom (Server-to-Server OAuth, account_credentials)
@dependencies: httpx, redis, base64
"""

import base64
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

import httpx
import redis.asyncio as aioredis
from pydantic import BaseModel

from webinar_sync.core.logging import get_logger
from webinar_sync.core.settings import settings
from webinar_sync.exceptions import (
    BadCredentials,
    CredentialsMissing,
    InsufficientPermissions,
    TokenExchangeFailed,
)
from webinar_sync.models.credentials import ZoomCredentials
from webinar_sync.utils.datetime_utils import ensure_aware, utc_now

logger = get_logger(__name__)

DEFAULT_EXPIRES_IN = 3600


class CachedToken(BaseModel):
    """Закэшированный токен. expires_at уже сдвинут на skew раньше реального истечения."""
    token: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return now < ensure_aware(self.expires_at)


class TokenCache(ABC):
    """Интерфейс кэша токенов (get/set/clear)"""

    @abstractmethod
    async def get(self, key: str) -> Optional[CachedToken]:
        ...

    @abstractmethod
    async def set(self, key: str, value: CachedToken) -> None:
        ...

    @abstractmethod
    async def clear(self, key: Optional[str] = None) -> None:
        ...


class InMemoryTokenCache(TokenCache):
    """Кэш в памяти процесса"""

    def __init__(self):
        self._tokens: Dict[str, CachedToken] = {}

    async def get(self, key: str) -> Optional[CachedToken]:
        return self._tokens.get(key)

    async def set(self, key: str, value: CachedToken) -> None:
        self._tokens[key] = value

    async def clear(self, key: Optional[str] = None) -> None:
        if key is None:
            self._tokens.clear()
        else:
            self._tokens.pop(key, None)


class RedisTokenCache(TokenCache):
    """Кэш в Redis, общий для всех воркеров. Запись живет до expires_at."""

    prefix = "webinar_sync:token:"

    def __init__(self, client: Optional[aioredis.Redis] = None, clock: Callable[[], datetime] = utc_now):
        self.client = client or aioredis.from_url(settings.redis.url, decode_responses=True)
        self._clock = clock

    async def get(self, key: str) -> Optional[CachedToken]:
        raw = await self.client.get(self.prefix + key)
        if not raw:
            return None
        return CachedToken.model_validate_json(raw)

    async def set(self, key: str, value: CachedToken) -> None:
        ttl = int((ensure_aware(value.expires_at) - self._clock()).total_seconds())
        if ttl <= 0:
            return
        await self.client.set(self.prefix + key, value.model_dump_json(), ex=ttl)

    async def clear(self, key: Optional[str] = None) -> None:
        if key is not None:
            await self.client.delete(self.prefix + key)
            return
        async for redis_key in self.client.scan_iter(match=f"{self.prefix}*"):
            await self.client.delete(redis_key)


_process_token_cache = InMemoryTokenCache()


def get_token_cache() -> TokenCache:
    """Кэш токенов согласно SYNC_TOKEN_CACHE_BACKEND"""
    if settings.sync.token_cache_backend.lower() == "redis":
        return RedisTokenCache()
    return _process_token_cache


class TokenManager:
    """Обмен учетных данных на bearer токен с кэшированием по account_id:client_id"""

    def __init__(
        self,
        cache: Optional[TokenCache] = None,
        oauth_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = utc_now,
        expiry_skew_seconds: Optional[int] = None
    ):
        self.cache = cache or get_token_cache()
        self.oauth_url = oauth_url or settings.zoom.oauth_url
        self.transport = transport
        self._clock = clock
        self.expiry_skew_seconds = (
            settings.zoom.token_expiry_skew_seconds
            if expiry_skew_seconds is None else expiry_skew_seconds
        )
        self.exchanges_made = 0

    async def get_token(self, credentials: ZoomCredentials) -> str:
        """
        Возвращает действующий токен из кэша либо выполняет обмен.

        Raises:
            CredentialsMissing: Неполная тройка учетных данных
            BadCredentials: Zoom вернул invalid_client
            InsufficientPermissions: Zoom вернул invalid_grant
            TokenExchangeFailed: Любая другая ошибка обмена
        """
        if not credentials.is_complete:
            raise CredentialsMissing("Zoom credentials are incomplete")

        key = credentials.cache_key
        cached = await self.cache.get(key)
        if cached and cached.is_valid(self._clock()):
            logger.debug(f"Using cached Zoom token for account {credentials.account_id[:4]}...")
            return cached.token

        token, expires_in = await self.exchange(credentials)
        expires_at = self._clock() + timedelta(seconds=expires_in - self.expiry_skew_seconds)
        await self.cache.set(key, CachedToken(token=token, expires_at=expires_at))
        return token

    async def exchange(self, credentials: ZoomCredentials) -> tuple:
        """
        Выполняет client-credentials обмен (grant_type=account_credentials).

        Returns:
            (access_token, expires_in)
        """
        auth_str = f"{credentials.client_id}:{credentials.client_secret}"
        b64_auth_str = base64.b64encode(auth_str.encode()).decode()

        headers = {
            "Authorization": f"Basic {b64_auth_str}",
            "Content-Type": "application/x-www-form-urlencoded",
        }
        params = {
            "grant_type": "account_credentials",
            "account_id": credentials.account_id,
        }

        logger.info(f"Requesting Zoom token for account ID starting with {credentials.account_id[:4]}...")
        self.exchanges_made += 1

        try:
            async with httpx.AsyncClient(timeout=settings.zoom.http_timeout, transport=self.transport) as client:
                response = await client.post(self.oauth_url, headers=headers, params=params)
        except httpx.RequestError as e:
            logger.error(f"Network error during Zoom token exchange: {e}")
            raise TokenExchangeFailed(f"Network error: {e}") from e

        try:
            token_data = response.json()
        except ValueError:
            token_data = {}
        if not isinstance(token_data, dict):
            token_data = {}

        if not response.is_success:
            error = token_data.get("error")
            description = token_data.get("error_description") or token_data.get("reason") or ""
            logger.error(f"Zoom token error response: {response.status_code} {error} {description}")

            if error == "invalid_client":
                raise BadCredentials(
                    "Zoom API authentication failed: Invalid client credentials (Client ID or Client Secret)"
                )
            if error == "invalid_grant":
                raise InsufficientPermissions(
                    "Zoom API authentication failed: Invalid Account ID or insufficient permissions"
                )
            raise TokenExchangeFailed(
                f"Failed to get Zoom token: {error or response.status_code} - {description or 'Unknown error'}"
            )

        access_token = token_data.get("access_token")
        if not access_token:
            raise TokenExchangeFailed("Zoom token response does not contain access_token")

        expires_in = token_data.get("expires_in") or DEFAULT_EXPIRES_IN
        logger.info("Successfully obtained Zoom access token")
        return access_token, int(expires_in)
