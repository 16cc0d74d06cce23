"""
@file: conftest.py
@description: Фикстуры для интеграционных тестов с PostgreSQL
@dependencies: pytest, SQLModel, webinar_sync.core.database
"""

import os

import pytest

# Интеграционные тесты требуют запущенный PostgreSQL из DATABASE_URL
requires_database = pytest.mark.skipif(
    not os.getenv("RUN_INTEGRATION_TESTS"),
    reason="set RUN_INTEGRATION_TESTS=1 and DATABASE_URL to run against PostgreSQL",
)
