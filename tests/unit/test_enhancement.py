"""
@file: test_enhancement.py
@description: Unit-тесты процессоров дополнения записей (webinar_sync/services/enhancement)
@dependencies: pytest
"""

import pytest

from tests.fakes import NOW, RecordingSleep
from webinar_sync.services.enhancement import (
    Enhanced,
    EnhancementStatus,
    HostResolver,
    PanelistResolver,
    SettingsEnhancer,
    TimingEnhancer,
    lift_settings_fields,
    summarize,
    unwrap,
)
from webinar_sync.services.enhancement.settings_enhancer import merge_settings


@pytest.mark.asyncio
async def test_host_resolver_keeps_batch_correspondence(zoom):
    zoom.routes["/users/h1"] = {"email": "host@example.com", "first_name": "Ann", "last_name": "Lee"}
    webinars = [
        {"id": 1, "host_id": "h1"},
        {"id": 2},
        {"id": 3, "host_id": "gone"},
    ]

    results = await HostResolver(zoom.client()).enhance(webinars)

    assert len(results) == 3
    assert [result.status for result in results] == [
        EnhancementStatus.OK, EnhancementStatus.SKIPPED, EnhancementStatus.FAILED
    ]
    assert [record["id"] for record in unwrap(results)] == [1, 2, 3]
    assert results[0].value["host_email"] == "host@example.com"
    assert results[0].value["host_name"] == "Ann Lee"
    assert results[2].value == {"id": 3, "host_id": "gone"}
    assert results[2].reason


@pytest.mark.asyncio
async def test_host_resolver_skips_when_details_present(zoom):
    webinar = {"id": 1, "host_id": "h1", "host_email": "a@example.com", "host_name": "A"}

    results = await HostResolver(zoom.client()).enhance([webinar])

    assert results[0].status == EnhancementStatus.SKIPPED
    assert zoom.requests == []


@pytest.mark.asyncio
async def test_record_without_id_is_marked_failed(zoom):
    results = await HostResolver(zoom.client()).enhance([{"topic": "no id", "host_id": "h1"}])

    assert results[0].status == EnhancementStatus.FAILED
    assert zoom.requests == []


@pytest.mark.asyncio
async def test_panelist_error_gives_empty_list(zoom):
    zoom.routes["/webinars/1/panelists"] = {"panelists": [{"id": "p1", "name": "Pan", "email": "p@example.com"}]}

    results = await PanelistResolver(zoom.client()).enhance([{"id": 1}, {"id": 2}])

    assert results[0].status == EnhancementStatus.OK
    assert results[0].value["panelists"] == [{"id": "p1", "name": "Pan", "email": "p@example.com"}]
    assert results[0].value["panelists_count"] == 1
    assert results[1].status == EnhancementStatus.FAILED
    assert results[1].value["panelists"] == []


@pytest.mark.asyncio
async def test_timing_enhancer_only_requests_ended_webinars(zoom):
    zoom.routes["/past_webinars/u-1"] = {"start_time": "2024-05-01T10:00:00Z", "duration": 55, "participants_count": 3}
    webinars = [
        {"id": 1, "uuid": "u-1", "start_time": "2024-05-01T10:00:00Z", "duration": 60},
        {"id": 2, "uuid": "u-2", "start_time": "2024-07-01T10:00:00Z", "duration": 60},
    ]
    enhancer = TimingEnhancer(zoom.client(), now=NOW)

    results = await enhancer.enhance(webinars)

    assert results[0].status == EnhancementStatus.OK
    assert results[0].value["actual_duration"] == 55
    assert results[0].value["participants_count"] == 3
    assert results[1].status == EnhancementStatus.SKIPPED
    assert results[1].value["completion_stage"] == "scheduled"
    assert zoom.paths == ["/past_webinars/u-1"]
    assert enhancer.api_calls_made == 1


@pytest.mark.asyncio
async def test_timing_failure_keeps_original_record(zoom):
    webinar = {"id": 1, "uuid": "u-1", "status": "ended", "start_time": "2024-05-01T10:00:00Z"}

    results = await TimingEnhancer(zoom.client(), now=NOW).enhance([webinar])

    assert results[0].status == EnhancementStatus.FAILED
    assert results[0].value == webinar


@pytest.mark.asyncio
async def test_settings_enhancer_pauses_between_calls_and_batches(zoom):
    for webinar_id in range(1, 8):
        zoom.routes[f"/webinars/{webinar_id}"] = {"id": webinar_id, "settings": {"approval_type": 0}}
    sleep = RecordingSleep()
    enhancer = SettingsEnhancer(
        zoom.client(),
        batch_size=3,
        calls_per_pause=2,
        pause_seconds=1.0,
        batch_delay_seconds=5.0,
        sleep=sleep,
    )

    results = await enhancer.enhance([{"id": webinar_id} for webinar_id in range(1, 8)])

    assert len(results) == 7
    assert all(result.enhanced for result in results)
    assert sleep.calls == [1.0, 5.0, 1.0, 1.0, 5.0]


@pytest.mark.asyncio
async def test_settings_enhancer_merges_detail_over_list_settings(zoom):
    zoom.routes["/webinars/1"] = {
        "id": 1,
        "password": "secret",
        "settings": {"approval_type": 2, "auto_recording": "cloud"},
    }
    webinar = {"id": 1, "settings": {"approval_type": 0, "hd_video": True}}

    results = await SettingsEnhancer(zoom.client(), sleep=RecordingSleep()).enhance([webinar])

    value = results[0].value
    assert value["settings"] == {"approval_type": 2, "hd_video": True, "auto_recording": "cloud"}
    assert value["approval_type"] == 2
    assert value["auto_recording"] == "cloud"
    assert value["password"] == "secret"
    assert "detail_fetched_at" in value


@pytest.mark.asyncio
async def test_settings_failure_marks_only_its_record(zoom):
    zoom.routes["/webinars/1"] = {"id": 1, "settings": {}}

    results = await SettingsEnhancer(zoom.client(), sleep=RecordingSleep()).enhance([{"id": 1}, {"id": 2}])

    assert [result.enhanced for result in results] == [True, False]


def test_merge_and_lift_settings():
    assert merge_settings(None, {"a": 1}) == {"a": 1}
    assert merge_settings({"a": 1, "b": 2}, {"a": 3}) == {"a": 3, "b": 2}

    lifted = lift_settings_fields({"id": 1, "settings": {"registration_type": 1, "unrelated": True}})
    assert lifted["registration_type"] == 1
    assert "unrelated" not in lifted


def test_summarize_counts_statuses():
    results = [
        Enhanced.ok({"id": 1}),
        Enhanced.failed({"id": 2}, "boom"),
        Enhanced.skipped({"id": 3}, "nothing to do"),
        Enhanced.ok({"id": 4}),
    ]

    assert summarize(results) == {"total": 4, "enhanced": 2, "failed": 1, "skipped": 1}
    assert results[2].enhanced is True
    assert results[1].enhanced is False
