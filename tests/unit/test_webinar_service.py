"""
@file: test_webinar_service.py
@description: Unit-тесты сохранения вебинаров (webinar_sync/services/webinar_service.py)
@dependencies: pytest
"""

from datetime import datetime, timezone

import pytest

from tests.fakes import TEST_USER_ID
from webinar_sync.models import WEBINARS_TABLE
from webinar_sync.services.webinar_service import WebinarService, webinar_to_row


def test_webinar_to_row_normalizes_api_record():
    row = webinar_to_row(TEST_USER_ID, {
        "id": 123,
        "uuid": "u-123",
        "topic": "Demo",
        "type": "5",
        "start_time": "2024-05-01T10:00:00Z",
        "duration": 60,
        "agenda": "",
        "host_email": None,
        "panelists": [{"id": "p1"}],
    })

    assert row["webinar_id"] == "123"
    assert row["webinar_uuid"] == "u-123"
    assert row["type"] == 5
    assert row["start_time"] == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert "agenda" not in row
    assert "host_email" not in row
    assert row["panelists"] == [{"id": "p1"}]
    assert "panelists" not in row["raw_data"]
    assert row["raw_data"]["topic"] == "Demo"


@pytest.mark.asyncio
async def test_upsert_does_not_overwrite_known_fields(storage):
    service = WebinarService(storage)

    await service.upsert_webinars(TEST_USER_ID, [{"id": 1, "topic": "First", "host_email": "h@example.com"}])
    await service.upsert_webinars(TEST_USER_ID, [{"id": 1, "topic": "Renamed"}])

    rows = storage.tables[WEBINARS_TABLE]
    assert len(rows) == 1
    assert rows[0]["topic"] == "Renamed"
    assert rows[0]["host_email"] == "h@example.com"


@pytest.mark.asyncio
async def test_upsert_skips_records_without_id(storage):
    assert await WebinarService(storage).upsert_webinars(TEST_USER_ID, [{"topic": "no id"}]) == 0
    assert storage.tables[WEBINARS_TABLE] == []


@pytest.mark.asyncio
async def test_get_webinars_keeps_requested_order(storage):
    service = WebinarService(storage)
    await service.upsert_webinars(TEST_USER_ID, [{"id": 1}, {"id": 2}, {"id": 3}])
    await service.upsert_webinars("someone_else", [{"id": 4}])

    rows = await service.get_webinars(TEST_USER_ID, ["3", "4", "1"])

    assert [row["webinar_id"] for row in rows] == ["3", "1"]
