"""
@file: webinar_sync/models/webinar_participant.py
@description: Модель участника вебинара (регистрант или посетитель)
@dependencies: sqlmodel, pydantic, enum
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from sqlalchemy import DateTime
from sqlmodel import Field, Column, JSON, UniqueConstraint

from .base import BaseModel


class ParticipantType(str, Enum):
    """Тип участника"""
    REGISTRANT = "registrant"
    ATTENDEE = "attendee"


class WebinarParticipant(BaseModel, table=True):
    """
    Участник вебинара.

    Набор участников одного типа для вебинара полностью заменяется при каждой синхронизации.
    """

    __tablename__ = "webinar_participants"

    user_id: str = Field(index=True)
    webinar_id: str = Field(index=True)
    participant_type: str = Field(description="registrant | attendee")
    participant_id: str = Field(description="ID из Zoom или синтезированный из email и времени")

    email: Optional[str] = Field(default=None)
    name: Optional[str] = Field(default=None)
    join_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    leave_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    duration: Optional[int] = Field(default=None, description="Длительность присутствия, секунды")

    raw_data: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    __table_args__ = (
        UniqueConstraint(
            "user_id", "webinar_id", "participant_type", "participant_id",
            name="uq_webinar_participants_key"
        ),
    )
