"""
@file: test_past_event_fetcher.py
@description: Unit-тесты получения фактических данных вебинара (webinar_sync/services/past_event_fetcher.py)
@dependencies: pytest
"""

from datetime import datetime, timezone

import pytest

from webinar_sync.services.completion_detector import CompletionResult, WebinarStage
from webinar_sync.services.past_event_fetcher import PastEventDataFetcher, extract_timing

ENDED = CompletionResult(stage=WebinarStage.ENDED, reason="ended", should_fetch_actual_data=True)
SCHEDULED = CompletionResult(stage=WebinarStage.SCHEDULED, reason="future", should_fetch_actual_data=False)

WEBINAR = {"id": 555, "uuid": "uuid-555", "topic": "Quarterly update"}
PAST_PAYLOAD = {"uuid": "uuid-555", "start_time": "2024-05-01T10:02:00Z", "duration": 48, "participants_count": 17}


@pytest.mark.asyncio
async def test_not_ended_webinar_is_not_requested(zoom):
    fetcher = PastEventDataFetcher(zoom.client())

    result = await fetcher.fetch(WEBINAR, SCHEDULED)

    assert result.success is False
    assert zoom.requests == []


@pytest.mark.asyncio
async def test_fetch_by_uuid_first(zoom):
    zoom.routes["/past_webinars/uuid-555"] = PAST_PAYLOAD
    fetcher = PastEventDataFetcher(zoom.client())

    result = await fetcher.fetch(WEBINAR, ENDED)

    assert result.success is True
    assert result.source == "uuid-555"
    assert result.actual_start_time == datetime(2024, 5, 1, 10, 2, tzinfo=timezone.utc)
    assert result.actual_end_time == datetime(2024, 5, 1, 10, 50, tzinfo=timezone.utc)
    assert result.actual_duration == 48
    assert result.participants_count == 17
    assert result.api_calls_made == 1


@pytest.mark.asyncio
async def test_falls_back_to_numeric_id(zoom):
    zoom.routes["/past_webinars/555"] = PAST_PAYLOAD
    fetcher = PastEventDataFetcher(zoom.client())

    result = await fetcher.fetch(WEBINAR, ENDED)

    assert result.success is True
    assert result.source == "555"
    assert result.api_calls_made == 2
    assert zoom.paths == ["/past_webinars/uuid-555", "/past_webinars/555"]


@pytest.mark.asyncio
async def test_payload_without_timing_is_a_soft_failure(zoom):
    zoom.routes["/past_webinars/uuid-555"] = {"uuid": "uuid-555"}
    zoom.routes["/past_webinars/555"] = {"id": 555}
    fetcher = PastEventDataFetcher(zoom.client())

    result = await fetcher.fetch(WEBINAR, ENDED)

    assert result.success is False
    assert "no timing fields" in result.error
    assert result.as_webinar_fields() == {}


@pytest.mark.asyncio
async def test_fetch_instance_uses_instance_path(zoom):
    zoom.routes["/past_webinars/555/instances/inst-1"] = PAST_PAYLOAD
    fetcher = PastEventDataFetcher(zoom.client())

    result = await fetcher.fetch_instance("555", "inst-1")

    assert result.success is True
    assert result.source == "inst-1"


@pytest.mark.asyncio
async def test_fetch_instance_error_is_soft(zoom):
    fetcher = PastEventDataFetcher(zoom.client())

    result = await fetcher.fetch_instance("555", "missing")

    assert result.success is False
    assert result.api_calls_made == 1


def test_extract_timing_prefers_explicit_end_and_total_participants():
    timing = extract_timing({
        "start_time": "2024-05-01T10:00:00Z",
        "end_time": "2024-05-01T11:15:00Z",
        "duration": 70,
        "total_participants": 9,
    })

    assert timing["actual_end_time"] == datetime(2024, 5, 1, 11, 15, tzinfo=timezone.utc)
    assert timing["participants_count"] == 9


def test_extract_timing_ignores_non_finite_numbers():
    timing = extract_timing({
        "start_time": "2024-05-01T10:00:00Z",
        "duration": float("inf"),
        "participants_count": "Infinity",
    })

    assert timing["actual_start_time"] == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert timing["actual_duration"] is None
    assert timing["actual_end_time"] is None
    assert timing["participants_count"] is None


def test_extract_timing_out_of_range_duration_leaves_end_empty():
    timing = extract_timing({"start_time": "2024-05-01T10:00:00Z", "duration": 10 ** 13})

    assert timing["actual_end_time"] is None
