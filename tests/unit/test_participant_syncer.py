"""
@file: test_participant_syncer.py
@description: Unit-тесты синхронизации участников (webinar_sync/services/participant_syncer.py)
@dependencies: pytest
"""

import logging

import pytest

from tests.fakes import TEST_USER_ID
from webinar_sync.models import PARTICIPANTS_TABLE
from webinar_sync.services.participant_syncer import (
    ParticipantSyncer,
    attendee_to_row,
    synthesize_participant_id,
)


def stored(storage, participant_type=None):
    rows = storage.tables[PARTICIPANTS_TABLE]
    if participant_type:
        rows = [row for row in rows if row["participant_type"] == participant_type]
    return rows


def seed_participant(storage, participant_type, participant_id, webinar_id="900"):
    storage.tables[PARTICIPANTS_TABLE].append({
        "user_id": TEST_USER_ID,
        "webinar_id": webinar_id,
        "participant_type": participant_type,
        "participant_id": participant_id,
    })


@pytest.mark.asyncio
async def test_registrants_are_fully_replaced(storage, zoom):
    seed_participant(storage, "registrant", "old-1")
    seed_participant(storage, "registrant", "old-2")
    seed_participant(storage, "attendee", "att-1")
    seed_participant(storage, "registrant", "other-webinar", webinar_id="901")
    zoom.routes["/webinars/900/registrants"] = {"registrants": [
        {"id": "r1", "email": "a@example.com", "first_name": "A", "last_name": "One"},
        {"id": "r2", "email": "b@example.com", "first_name": "B"},
    ]}

    result = await ParticipantSyncer(zoom.client(), storage).sync_registrants(TEST_USER_ID, "900")

    assert result.success is True
    assert result.count == 2
    current = {row["participant_id"] for row in stored(storage, "registrant") if row["webinar_id"] == "900"}
    assert current == {"r1", "r2"}
    assert len(stored(storage, "attendee")) == 1
    assert any(row["webinar_id"] == "901" for row in stored(storage, "registrant"))
    names = {row["participant_id"]: row["name"] for row in stored(storage, "registrant")}
    assert names["r1"] == "A One"


@pytest.mark.asyncio
async def test_attendees_are_fully_replaced_across_syncs(storage, zoom):
    seed_participant(storage, "registrant", "reg-1")
    seed_participant(storage, "attendee", "other-webinar", webinar_id="901")
    syncer = ParticipantSyncer(zoom.client(), storage)

    zoom.routes["/past_webinars/900/participants"] = {"participants": [
        {"id": "p1", "name": "Stays", "user_email": "a@example.com"},
        {"id": "p2", "name": "Leaves", "user_email": "b@example.com"},
    ]}
    first = await syncer.sync_attendees(TEST_USER_ID, "900")

    zoom.routes["/past_webinars/900/participants"] = {"participants": [
        {"id": "p1", "name": "Stays", "user_email": "a@example.com"},
        {"id": "p3", "name": "New", "user_email": "c@example.com"},
    ]}
    second = await syncer.sync_attendees(TEST_USER_ID, "900")

    assert first.count == 2
    assert second.success is True
    assert second.count == 2
    current = {row["participant_id"] for row in stored(storage, "attendee") if row["webinar_id"] == "900"}
    assert current == {"p1", "p3"}
    assert any(row["webinar_id"] == "901" for row in stored(storage, "attendee"))
    assert [row["participant_id"] for row in stored(storage, "registrant")] == ["reg-1"]


@pytest.mark.asyncio
async def test_empty_fetch_leaves_storage_untouched(storage, zoom):
    seed_participant(storage, "attendee", "att-1")
    zoom.routes["/past_webinars/900/participants"] = {"participants": []}

    result = await ParticipantSyncer(zoom.client(), storage).sync_attendees(TEST_USER_ID, "900")

    assert result.success is True
    assert result.count == 0
    assert len(stored(storage, "attendee")) == 1
    assert ("delete", PARTICIPANTS_TABLE) not in storage.operations


@pytest.mark.asyncio
async def test_api_error_is_soft_and_keeps_rows(storage, zoom):
    seed_participant(storage, "attendee", "att-1")

    result = await ParticipantSyncer(zoom.client(), storage).sync_attendees(TEST_USER_ID, "900")

    assert result.success is False
    assert result.count == 0
    assert len(stored(storage, "attendee")) == 1


@pytest.mark.asyncio
async def test_sync_all_returns_both_types(storage, zoom):
    zoom.routes["/webinars/900/registrants"] = {"registrants": [{"id": "r1", "email": "a@example.com"}]}
    zoom.routes["/past_webinars/900/participants"] = {"participants": [
        {"id": "p1", "name": "A", "user_email": "a@example.com", "join_time": "2024-05-01T10:00:00Z", "duration": 1800},
    ]}

    results = await ParticipantSyncer(zoom.client(), storage).sync_all(TEST_USER_ID, "900")

    assert results["registrants"].count == 1
    assert results["attendees"].count == 1
    attendee = stored(storage, "attendee")[0]
    assert attendee["email"] == "a@example.com"
    assert attendee["duration"] == 1800


@pytest.mark.asyncio
async def test_insert_failure_after_delete_is_logged(storage, zoom, caplog):
    seed_participant(storage, "registrant", "old-1")
    storage.fail_on.add(("upsert", PARTICIPANTS_TABLE))
    zoom.routes["/webinars/900/registrants"] = {"registrants": [{"id": "r1"}]}

    with caplog.at_level(logging.ERROR):
        result = await ParticipantSyncer(zoom.client(), storage).sync_registrants(TEST_USER_ID, "900")

    assert result.success is False
    assert result.fetched == 1
    assert stored(storage, "registrant") == []
    assert any("after delete" in record.getMessage() for record in caplog.records)


def test_synthesized_ids_are_stable():
    attendee = {"user_email": "x@example.com", "join_time": "2024-05-01T10:00:00Z"}

    first = attendee_to_row(TEST_USER_ID, "900", attendee, 0)
    second = attendee_to_row(TEST_USER_ID, "900", attendee, 5)

    assert first["participant_id"] == second["participant_id"] == "att_x@example.com_2024-05-01T10:00:00Z"
    assert synthesize_participant_id("reg", None, None, 3) == "reg_unknown_3"
