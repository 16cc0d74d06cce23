"""
@file: test_sql_storage_integration.py
@description: Интеграционные тесты SqlStorage на реальной PostgreSQL
@dependencies: pytest, SQLModel
"""

from uuid import uuid4

import pytest
from sqlmodel import SQLModel

from tests.integration.conftest import requires_database
from webinar_sync import models  # noqa: F401
from webinar_sync.core.database import task_session
from webinar_sync.models import INSTANCES_TABLE, PARTICIPANTS_TABLE, WEBINARS_TABLE
from webinar_sync.services.instance_upserter import InstanceUpserter
from webinar_sync.services.participant_syncer import PARTICIPANT_CONFLICT_COLUMNS
from webinar_sync.services.storage import SqlStorage
from webinar_sync.services.webinar_service import WebinarService

pytestmark = requires_database


async def prepare_tables(session) -> None:
    connection = await session.connection()
    await connection.run_sync(SQLModel.metadata.create_all)
    await session.commit()


@pytest.mark.asyncio
async def test_webinar_upsert_round_trip():
    user_id = f"it_{uuid4().hex}"

    async with task_session() as session:
        await prepare_tables(session)
        service = WebinarService(SqlStorage(session))
        await service.upsert_webinars(user_id, [{"id": 1, "topic": "First", "host_email": "h@example.com"}])
        await service.upsert_webinars(user_id, [{"id": 1, "topic": "Second"}])

        rows = await service.list_webinars(user_id)
        assert len(rows) == 1
        assert rows[0]["topic"] == "Second"
        assert rows[0]["host_email"] == "h@example.com"

        await SqlStorage(session).delete(WEBINARS_TABLE, {"user_id": user_id})


@pytest.mark.asyncio
async def test_instance_upsert_is_idempotent():
    user_id = f"it_{uuid4().hex}"
    payload = {"user_id": user_id, "webinar_id": "7", "instance_id": "inst-1", "duration": 30}

    async with task_session() as session:
        await prepare_tables(session)
        storage = SqlStorage(session)
        upserter = InstanceUpserter(storage)
        assert await upserter.upsert(payload) == 1
        assert await upserter.upsert({**payload, "duration": 45}) == 1

        rows = await storage.select(INSTANCES_TABLE, {"user_id": user_id})
        assert len(rows) == 1
        assert rows[0]["duration"] == 45

        await storage.delete(INSTANCES_TABLE, {"user_id": user_id})


@pytest.mark.asyncio
async def test_participant_delete_scoped_by_filters():
    user_id = f"it_{uuid4().hex}"
    rows = [
        {"user_id": user_id, "webinar_id": "1", "participant_type": "registrant", "participant_id": "r1"},
        {"user_id": user_id, "webinar_id": "1", "participant_type": "attendee", "participant_id": "a1"},
    ]

    async with task_session() as session:
        await prepare_tables(session)
        storage = SqlStorage(session)
        await storage.upsert(PARTICIPANTS_TABLE, rows, PARTICIPANT_CONFLICT_COLUMNS)

        deleted = await storage.delete(
            PARTICIPANTS_TABLE, {"user_id": user_id, "webinar_id": "1", "participant_type": "registrant"}
        )

        assert deleted == 1
        remaining = await storage.select(PARTICIPANTS_TABLE, {"user_id": user_id})
        assert [row["participant_type"] for row in remaining] == ["attendee"]
        await storage.delete(PARTICIPANTS_TABLE, {"user_id": user_id})
