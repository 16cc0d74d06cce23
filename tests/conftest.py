"""
@file: conftest.py
@description: Общие фикстуры для unit-тестов пайплайна
@dependencies: pytest
"""

import pytest

from tests.fakes import (
    NOW,
    InMemoryStorage,
    RecordingSleep,
    ZoomStub,
    make_token_manager,
    seed_credentials,
)
from webinar_sync.services.invalidation import LoggingInvalidationNotifier
from webinar_sync.services.sync_orchestrator import SyncOrchestrator


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def zoom():
    return ZoomStub()


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def notifier():
    return LoggingInvalidationNotifier()


@pytest.fixture
def orchestrator(storage, zoom, fake_sleep, notifier):
    """Оркестратор с сохраненными учетными данными пользователя и заглушками Zoom"""
    seed_credentials(storage)
    return SyncOrchestrator(
        storage,
        token_manager=make_token_manager(),
        client_factory=zoom.client,
        notifier=notifier,
        now=NOW,
        sleep=fake_sleep,
    )
