"""
@file: conftest.py
@description: Фикстуры для тестов API (тестовый клиент, JWT-токен, подмена зависимостей)
@dependencies: pytest, fastapi
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from tests.fakes import InMemoryStorage, TEST_USER_ID
from webinar_sync.api.dependencies import get_action_dispatcher, get_storage
from webinar_sync.core.auth import create_access_token
from webinar_sync.main import app
from webinar_sync.services.action_dispatcher import DispatchResult


@pytest.fixture(scope="session")
def client():
    return TestClient(app)


@pytest.fixture(scope="session")
def test_jwt_token():
    return create_access_token(data={"user_id": TEST_USER_ID, "username": "test_user"})


@pytest.fixture
def auth_headers(test_jwt_token):
    return {"Authorization": f"Bearer {test_jwt_token}"}


@pytest.fixture
def api_storage():
    return InMemoryStorage()


@pytest.fixture
def mock_dispatcher():
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value=DispatchResult(body={"success": True}))
    dispatcher.actions = ["check-credentials-status", "sync-single-webinar"]
    return dispatcher


@pytest.fixture(autouse=True)
def override_dependencies(api_storage, mock_dispatcher):
    """Хранилище в памяти и мок диспетчера вместо PostgreSQL"""
    app.dependency_overrides[get_storage] = lambda: api_storage
    app.dependency_overrides[get_action_dispatcher] = lambda: mock_dispatcher
    yield
    app.dependency_overrides.clear()
