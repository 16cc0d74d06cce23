"""
@file: webinar_sync/models/sync_history.py
@description: Модель истории синхронизации (append-only журнал)
@dependencies: sqlmodel, pydantic, enum
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlmodel import SQLModel, Field

from .base import BaseModel


class SyncStatus(str, Enum):
    """Статусы синхронизации"""
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class SyncHistory(BaseModel, table=True):
    """Запись журнала синхронизации. Создается один раз на операцию и не изменяется."""

    __tablename__ = "sync_history"

    user_id: str = Field(index=True, description="ID пользователя")
    sync_type: str = Field(index=True, description="Тип операции (single, comprehensive, chunked-...)")
    status: str = Field(default=SyncStatus.SUCCESS.value, description="Итог операции (success, partial, error)")
    items_updated: int = Field(default=0, description="Количество обновленных элементов")
    message: Optional[str] = Field(default=None, description="Краткое описание результата")


class SyncHistoryRead(SQLModel):
    """Схема для чтения истории синхронизации"""

    id: UUID
    user_id: str
    sync_type: str
    status: str
    items_updated: int
    message: Optional[str] = None
    created_at: datetime
