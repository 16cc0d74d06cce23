"""
@file: test_sql_storage.py
@description: Unit-тесты SQL хранилища на моке сессии (webinar_sync/services/storage.py)
@dependencies: pytest, unittest.mock, sqlalchemy
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from webinar_sync.exceptions import StorageError
from webinar_sync.models import PARTICIPANTS_TABLE, WEBINARS_TABLE
from webinar_sync.services.storage import SqlStorage, collapse_by_key


@pytest.fixture
def mock_db_session():
    session = AsyncMock()
    session.add = MagicMock()
    return session


def compiled(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


def test_collapse_by_key_last_wins_first_order():
    rows = [
        {"webinar_id": "1", "topic": "a"},
        {"webinar_id": "2", "topic": "b"},
        {"webinar_id": "1", "topic": "c"},
    ]

    assert collapse_by_key(rows, ["webinar_id"]) == [
        {"webinar_id": "1", "topic": "c"},
        {"webinar_id": "2", "topic": "b"},
    ]


@pytest.mark.asyncio
async def test_upsert_uses_conflict_target(mock_db_session):
    storage = SqlStorage(mock_db_session)

    count = await storage.upsert(
        WEBINARS_TABLE,
        [{"user_id": "u", "webinar_id": "1", "topic": "a"}, {"user_id": "u", "webinar_id": "1", "topic": "b"}],
        ["user_id", "webinar_id"],
    )

    assert count == 1
    assert mock_db_session.execute.await_count == 1
    sql = compiled(mock_db_session.execute.await_args.args[0])
    assert "ON CONFLICT (user_id, webinar_id) DO UPDATE" in sql
    assert "created_at" not in sql.split("DO UPDATE")[1]
    mock_db_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_upsert_ignores_unknown_columns(mock_db_session):
    storage = SqlStorage(mock_db_session)

    await storage.upsert(WEBINARS_TABLE, [{"user_id": "u", "webinar_id": "1", "host_info": {}}], ["user_id", "webinar_id"])

    sql = compiled(mock_db_session.execute.await_args.args[0])
    assert "host_info" not in sql


@pytest.mark.asyncio
async def test_empty_upsert_is_noop(mock_db_session):
    assert await SqlStorage(mock_db_session).upsert(WEBINARS_TABLE, [], ["user_id", "webinar_id"]) == 0
    mock_db_session.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_database_error_is_wrapped_and_rolled_back(mock_db_session):
    mock_db_session.execute.side_effect = OperationalError("INSERT", {}, Exception("connection lost"))
    storage = SqlStorage(mock_db_session)

    with pytest.raises(StorageError):
        await storage.upsert(WEBINARS_TABLE, [{"user_id": "u", "webinar_id": "1"}], ["user_id", "webinar_id"])

    mock_db_session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_delete_requires_filters(mock_db_session):
    with pytest.raises(StorageError):
        await SqlStorage(mock_db_session).delete(PARTICIPANTS_TABLE, {})

    mock_db_session.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_table(mock_db_session):
    with pytest.raises(StorageError):
        await SqlStorage(mock_db_session).select("recordings")
