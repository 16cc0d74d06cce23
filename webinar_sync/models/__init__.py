"""
@file: webinar_sync/models/__init__.py
@description: Модели данных для SQLModel ORM
@dependencies: sqlmodel, pydantic
"""

from .base import BaseModel
from .credentials import ApiCredentials, CredentialsStatus, ZoomCredentials
from .webinar import Webinar, WebinarTimingRead
from .webinar_instance import WebinarInstance
from .webinar_participant import WebinarParticipant, ParticipantType
from .sync_history import SyncHistory, SyncHistoryRead, SyncStatus

# Имена таблиц, с которыми работает пайплайн
CREDENTIALS_TABLE = ApiCredentials.__tablename__
WEBINARS_TABLE = Webinar.__tablename__
INSTANCES_TABLE = WebinarInstance.__tablename__
PARTICIPANTS_TABLE = WebinarParticipant.__tablename__
SYNC_HISTORY_TABLE = SyncHistory.__tablename__

TABLE_MODELS = {
    CREDENTIALS_TABLE: ApiCredentials,
    WEBINARS_TABLE: Webinar,
    INSTANCES_TABLE: WebinarInstance,
    PARTICIPANTS_TABLE: WebinarParticipant,
    SYNC_HISTORY_TABLE: SyncHistory,
}

__all__ = [
    "BaseModel",
    "ApiCredentials",
    "CredentialsStatus",
    "ZoomCredentials",
    "Webinar",
    "WebinarTimingRead",
    "WebinarInstance",
    "WebinarParticipant",
    "ParticipantType",
    "SyncHistory",
    "SyncHistoryRead",
    "SyncStatus",
    "CREDENTIALS_TABLE",
    "WEBINARS_TABLE",
    "INSTANCES_TABLE",
    "PARTICIPANTS_TABLE",
    "SYNC_HISTORY_TABLE",
    "TABLE_MODELS",
]
