"""
@file: webinar_sync/services/rate_limiter.py
@description: Token bucket для ограничения частоты запросов к Zoom API
@dependencies: asyncio, time
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from webinar_sync.core.logging import get_logger
from webinar_sync.core.settings import settings

logger = get_logger(__name__)


class RateLimiter:
    """
    Token bucket: не более `burst` запросов подряд, далее `rate_per_second` в среднем.

    Выполнение кооперативное и однопоточное, поэтому блокировка не нужна:
    пополнение и списание происходят в одном ходе event loop.
    """

    def __init__(
        self,
        rate_per_second: Optional[float] = None,
        burst: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.rate_per_second = rate_per_second or settings.zoom.rate_limit_per_second
        self.burst = burst or settings.zoom.rate_limit_burst
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(self.burst)
        self._updated_at = clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate_per_second)
        self._updated_at = now

    @property
    def available(self) -> float:
        self._refill()
        return self._tokens

    async def acquire(self, tokens: int = 1) -> float:
        """
        Дождаться и списать токены.

        Returns:
            Суммарное время ожидания в секундах
        """
        waited = 0.0
        while True:
            self._refill()
            if self._tokens >= tokens:
                self._tokens -= tokens
                if waited:
                    logger.debug(f"Rate limiter: waited {waited:.2f}s")
                return waited

            wait_for = (tokens - self._tokens) / self.rate_per_second
            waited += wait_for
            await self._sleep(wait_for)


_shared_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Общий для процесса лимитер"""
    global _shared_limiter
    if _shared_limiter is None:
        _shared_limiter = RateLimiter()
    return _shared_limiter
