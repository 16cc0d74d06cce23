"""
@file: webinar_sync/models/webinar.py
@description: Модель вебинара, синхронизируемого из Zoom API
@dependencies: sqlmodel, pydantic
"""

from datetime import datetime
from typing import Optional, Dict, Any, List

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, Column, JSON, UniqueConstraint

from .base import BaseModel


class Webinar(BaseModel, table=True):
    """
    Вебинар пользователя.

    Поля actual_* заполняются только после того, как вебинар признан завершенным.
    Пайплайн никогда не удаляет вебинары, только обновляет их.
    """

    __tablename__ = "webinars"

    user_id: str = Field(index=True, description="ID пользователя")
    webinar_id: str = Field(index=True, description="ID вебинара в Zoom")
    webinar_uuid: Optional[str] = Field(default=None, description="UUID вебинара в Zoom")

    topic: Optional[str] = Field(default=None)
    status: Optional[str] = Field(default=None, description="Статус из Zoom (свободный текст)")
    type: Optional[int] = Field(default=None, description="Тип вебинара (5 - разовый, 6/9 - повторяющийся)")
    start_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    duration: Optional[int] = Field(default=None, description="Запланированная длительность, минуты")
    timezone: Optional[str] = Field(default=None)
    agenda: Optional[str] = Field(default=None)

    host_id: Optional[str] = Field(default=None)
    host_email: Optional[str] = Field(default=None)
    host_name: Optional[str] = Field(default=None)
    host_first_name: Optional[str] = Field(default=None)
    host_last_name: Optional[str] = Field(default=None)

    panelists: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON))
    settings: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    registration_type: Optional[int] = Field(default=None)
    approval_type: Optional[int] = Field(default=None)
    auto_recording: Optional[str] = Field(default=None)
    enforce_login: Optional[bool] = Field(default=None)

    actual_start_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    actual_end_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    actual_duration: Optional[int] = Field(default=None, description="Фактическая длительность, минуты")
    participants_count: Optional[int] = Field(default=None)

    raw_data: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    last_synced_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("user_id", "webinar_id", name="uq_webinars_user_webinar"),
    )


class WebinarTimingRead(SQLModel):
    """Фактические временные данные вебинара"""

    webinar_id: str
    status: Optional[str] = None
    start_time: Optional[datetime] = None
    duration: Optional[int] = None
    actual_start_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None
    actual_duration: Optional[int] = None
    participants_count: Optional[int] = None
