"""
@file: webinar_sync/models/credentials.py
@description: Модель учетных данных Server-to-Server OAuth приложения Zoom
@dependencies: sqlmodel, pydantic
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, UniqueConstraint

from .base import BaseModel


class ApiCredentials(BaseModel, table=True):
    """Учетные данные пользователя в базе данных"""

    __tablename__ = "api_credentials"

    user_id: str = Field(
        index=True,
        description="Идентификатор пользователя из JWT токена"
    )

    account_id: str = Field(description="Zoom Account ID")
    client_id: str = Field(description="Client ID Server-to-Server OAuth приложения")
    client_secret: str = Field(description="Client Secret Server-to-Server OAuth приложения")

    is_verified: bool = Field(
        default=False,
        description="Выставляется после успешного обмена на токен"
    )

    last_verified_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),
        description="Время последней успешной проверки"
    )

    __table_args__ = (
        UniqueConstraint('user_id', name='uq_api_credentials_user'),
    )


class CredentialsStatus(SQLModel):
    """Статус учетных данных (без чувствительных данных)"""
    has_credentials: bool
    is_verified: bool
    last_verified_at: Optional[datetime] = None


class ZoomCredentials(SQLModel):
    """Тройка учетных данных, с которой работает TokenManager"""
    account_id: str = ""
    client_id: str = ""
    client_secret: str = ""
    is_verified: bool = False
    source: str = Field(default="user", description="user | default")

    @property
    def is_complete(self) -> bool:
        """Все три поля непустые"""
        return bool(self.account_id and self.client_id and self.client_secret)

    @property
    def cache_key(self) -> str:
        return f"{self.account_id}:{self.client_id}"
