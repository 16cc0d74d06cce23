"""
@file: webinar_sync/services/invalidation.py
@description: Сигнал инвалидации кэша для слоя представления после завершения синхронизации
@dependencies: redis, asyncio
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import List, Optional, Set

import redis.asyncio as aioredis

from webinar_sync.core.logging import get_logger
from webinar_sync.core.settings import settings

logger = get_logger(__name__)

# Логические ключи запросов, которые может затронуть синхронизация
DATA_TYPE_QUERY_KEYS = {
    "webinars": ["webinars"],
    "participants": ["participants", "webinars"],
    "instances": ["instances", "webinars"],
    "timing": ["webinars", "instances"],
    "host": ["webinars"],
    "panelists": ["webinars"],
    "settings": ["webinars"],
}


def query_keys_for(data_types: List[str]) -> List[str]:
    """Ключи запросов для набора типов данных, без повторов, в порядке появления"""
    keys: List[str] = []
    for data_type in data_types:
        for key in DATA_TYPE_QUERY_KEYS.get(data_type, [data_type]):
            if key not in keys:
                keys.append(key)
    return keys


class InvalidationNotifier(ABC):
    """Fire-and-forget уведомление: notify() планирует отправку и не ждет ее"""

    def __init__(self):
        self._pending: Set[asyncio.Task] = set()

    @abstractmethod
    async def publish(self, user_id: str, query_keys: List[str]) -> None:
        """Фактическая отправка"""

    def notify(self, user_id: str, query_keys: List[str]) -> Optional[asyncio.Task]:
        if not query_keys:
            return None
        task = asyncio.get_running_loop().create_task(self._publish_safe(user_id, query_keys))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _publish_safe(self, user_id: str, query_keys: List[str]) -> None:
        try:
            await self.publish(user_id, query_keys)
        except Exception as e:
            # Ошибка доставки не влияет на результат синхронизации
            logger.warning(f"⚠️ Cache invalidation for user {user_id} not delivered: {e}")

    async def drain(self) -> None:
        """Дождаться запланированных отправок (остановка воркера, тесты)"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


class LoggingInvalidationNotifier(InvalidationNotifier):
    """Только пишет сигнал в лог"""

    def __init__(self):
        super().__init__()
        self.sent: List[dict] = []

    async def publish(self, user_id: str, query_keys: List[str]) -> None:
        self.sent.append({"user_id": user_id, "query_keys": list(query_keys)})
        logger.info(f"🔔 Invalidate queries {query_keys} for user {user_id}")


class RedisInvalidationNotifier(InvalidationNotifier):
    """Публикует сигнал в Redis pub/sub канал"""

    def __init__(self, client: Optional[aioredis.Redis] = None, channel: Optional[str] = None):
        super().__init__()
        self.client = client or aioredis.from_url(settings.redis.url, decode_responses=True)
        self.channel = channel or settings.sync.invalidation_channel

    async def publish(self, user_id: str, query_keys: List[str]) -> None:
        message = json.dumps({"user_id": user_id, "query_keys": query_keys})
        await self.client.publish(self.channel, message)
        logger.info(f"🔔 Published invalidation {query_keys} for user {user_id} to {self.channel}")


def get_invalidation_notifier() -> InvalidationNotifier:
    if settings.sync.invalidation_backend.lower() == "redis":
        return RedisInvalidationNotifier()
    return LoggingInvalidationNotifier()
