"""
@file: test_sync_api.py
@description: Тесты эндпоинтов фоновой синхронизации /sync
@dependencies: pytest, fastapi, unittest.mock
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from uuid import uuid4

from tests.fakes import TEST_USER_ID
from webinar_sync.core.settings import settings
from webinar_sync.models import SYNC_HISTORY_TABLE

PREFIX = f"{settings.api.prefix}/sync"


def test_start_chunked_sync_enqueues_task(client, auth_headers):
    with patch("webinar_sync.tasks.sync_tasks.run_chunked_sync_task") as task:
        task.delay.return_value = MagicMock(id="task-1")
        response = client.post(
            f"{PREFIX}/chunked",
            json={"data_types": ["timing"], "webinar_ids": ["1", "2"], "chunk_size": 1},
            headers=auth_headers,
        )

    assert response.status_code == 200
    assert response.json()["task_id"] == "task-1"
    task.delay.assert_called_once_with(
        user_id=TEST_USER_ID, data_types=["timing"], webinar_ids=["1", "2"], chunk_size=1
    )


def test_start_chunked_sync_rejects_unknown_type(client, auth_headers):
    with patch("webinar_sync.tasks.sync_tasks.run_chunked_sync_task") as task:
        response = client.post(
            f"{PREFIX}/chunked",
            json={"data_types": ["recordings"], "webinar_ids": ["1"]},
            headers=auth_headers,
        )

    assert response.status_code == 400
    task.delay.assert_not_called()


def test_start_comprehensive_sync(client, auth_headers):
    with patch("webinar_sync.tasks.sync_tasks.run_comprehensive_sync_task") as task:
        task.delay.return_value = MagicMock(id="task-2")
        response = client.post(f"{PREFIX}/comprehensive", json={"include_settings": True}, headers=auth_headers)

    assert response.status_code == 200
    options = task.delay.call_args.kwargs["options"]
    assert options["include_settings"] is True
    assert options["include_timing"] is True


def test_task_status_reports_progress(client, auth_headers):
    task_result = MagicMock()
    task_result.status = "PROGRESS"
    task_result.info = {"dataType": "timing", "currentChunk": 1, "totalChunks": 3}
    task_result.successful.return_value = False

    with patch("webinar_sync.api.v1.sync.AsyncResult", return_value=task_result):
        response = client.get(f"{PREFIX}/status/task-1", headers=auth_headers)

    body = response.json()
    assert response.status_code == 200
    assert body["status"] == "PROGRESS"
    assert body["info"]["currentChunk"] == 1
    assert body["result"] is None


def test_sync_history_for_current_user(client, auth_headers, api_storage):
    for user_id, sync_type in ((TEST_USER_ID, "comprehensive"), ("someone_else", "single-webinar")):
        api_storage.tables[SYNC_HISTORY_TABLE].append({
            "id": uuid4(),
            "user_id": user_id,
            "sync_type": sync_type,
            "status": "success",
            "items_updated": 3,
            "message": None,
            "created_at": datetime(2024, 6, 1, tzinfo=timezone.utc),
        })

    response = client.get(f"{PREFIX}/history", headers=auth_headers)

    assert response.status_code == 200
    history = response.json()
    assert len(history) == 1
    assert history[0]["sync_type"] == "comprehensive"
