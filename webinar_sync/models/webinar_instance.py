"""
@file: webinar_sync/models/webinar_instance.py
@description: Модель экземпляра (occurrence) повторяющегося вебинара
@dependencies: sqlmodel, pydantic
"""

from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy import DateTime
from sqlmodel import Field, Column, JSON, UniqueConstraint

from .base import BaseModel


class WebinarInstance(BaseModel, table=True):
    """Экземпляр вебинара. Ключ (user_id, webinar_id, instance_id) уникален."""

    __tablename__ = "webinar_instances"

    user_id: str = Field(index=True)
    webinar_id: str = Field(index=True)
    webinar_uuid: Optional[str] = Field(default=None)
    instance_id: str = Field(description="UUID экземпляра в Zoom")

    topic: Optional[str] = Field(default=None)
    status: Optional[str] = Field(default=None)
    start_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    end_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    duration: Optional[int] = Field(default=None)
    actual_start_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    actual_duration: Optional[int] = Field(default=None)

    registrants_count: int = Field(default=0)
    participants_count: int = Field(default=0)
    is_historical: bool = Field(default=False)
    data_source: Optional[str] = Field(default=None, description="Источник данных (past_webinars_api, synthesized, ...)")

    raw_data: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    __table_args__ = (
        UniqueConstraint("user_id", "webinar_id", "instance_id", name="uq_webinar_instances_key"),
    )
