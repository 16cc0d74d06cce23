"""
@file: webinar_sync/api/dependencies.py
@description: Зависимости для FastAPI
@dependencies: fastapi, sqlmodel
"""

from typing import AsyncGenerator

from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from webinar_sync.core.auth import get_current_active_user
from webinar_sync.core.database import get_async_session
from webinar_sync.core.logging import get_logger
from webinar_sync.services.action_dispatcher import ActionDispatcher
from webinar_sync.services.storage import SqlStorage, SyncStorage

logger = get_logger(__name__)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Получение асинхронной сессии базы данных для использования в эндпоинтах.

    Yields:
        AsyncSession: Асинхронная сессия базы данных
    """
    async for session in get_async_session():
        yield session


async def get_storage(session: AsyncSession = Depends(get_db_session)) -> SyncStorage:
    """Хранилище пайплайна поверх сессии запроса"""
    return SqlStorage(session)


async def get_action_dispatcher(storage: SyncStorage = Depends(get_storage)) -> ActionDispatcher:
    return ActionDispatcher(storage)


# Типы зависимостей для использования в эндпоинтах
StorageDep = Depends(get_storage)
DispatcherDep = Depends(get_action_dispatcher)
CurrentUserDep = Depends(get_current_active_user)
