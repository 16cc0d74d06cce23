"""
@file: webinar_sync/models/base.py
@description: Базовая модель с общими полями для всех таблиц
@dependencies: sqlmodel, uuid, datetime
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from webinar_sync.utils.datetime_utils import utc_now


class BaseModel(SQLModel):
    """Базовая модель с общими полями"""

    id: Optional[UUID] = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Уникальный идентификатор записи"
    )

    created_at: Optional[datetime] = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        description="Время создания записи"
    )

    updated_at: Optional[datetime] = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        description="Время последнего обновления записи"
    )

    model_config = {
        "from_attributes": True,
        "use_enum_values": True,
        "validate_assignment": False,
        "extra": "ignore"
    }
