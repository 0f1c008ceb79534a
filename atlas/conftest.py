# atlas/conftest.py
import os
from datetime import datetime, timezone

import pytest

# Tests never talk to a configured database unless a fixture sets one up.
os.environ.pop("DATABASE_URL", None)
os.environ.pop("TEST_DATABASE_URL", None)

from atlas.core.database import create_all_tables, dispose_engine, drop_all_tables, init_engine  # noqa: E402
from atlas.features.analytics.repository import InMemoryAnalyticsRepository, set_repository  # noqa: E402
from atlas.features.analytics.repository_sql import SqlAnalyticsRepository  # noqa: E402
from atlas.features.coaching.plan_store import reset_plan_store  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_stores():
    """
    Fresh coaching plans and a fresh in-memory analytics repository per test.
    """
    reset_plan_store()
    repository = InMemoryAnalyticsRepository()
    set_repository(repository)
    yield repository
    reset_plan_store()
    set_repository(None)


@pytest.fixture
def fixed_now():
    """Deterministic 'now' for reducers and services."""
    return datetime(2025, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def memory_repository(isolated_stores):
    return isolated_stores


@pytest.fixture
def sql_repository(tmp_path):
    """
    SqlAnalyticsRepository backed by a throwaway SQLite file.

    The engine is disposed afterwards so later tests re-read their URL.
    """
    init_engine(f"sqlite:///{tmp_path / 'atlas-test.db'}")
    create_all_tables()
    repository = SqlAnalyticsRepository()
    set_repository(repository)
    try:
        yield repository
    finally:
        drop_all_tables()
        dispose_engine()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from atlas.main import app

    return TestClient(app)


@pytest.fixture
def auth_headers():
    return {"X-User-Id": "user-1"}
