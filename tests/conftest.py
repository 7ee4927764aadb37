"""Shared pytest fixtures and configuration."""

import os
import pytest
from datetime import datetime
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("SYNAPTIK_DEFAULT_TIMEZONE", "UTC")
os.environ.setdefault("LOG_FORMAT", "text")

from synaptik.models.task import Task, TaskPriority, TaskStatus


@pytest.fixture
def utc_now():
    """Fixed reference time in UTC."""
    return datetime(2025, 8, 15, 12, 0, tzinfo=ZoneInfo("UTC"))


@pytest.fixture
def berlin_now():
    """Fixed reference time in a non-UTC zone."""
    return datetime(2025, 8, 15, 22, 30, tzinfo=ZoneInfo("Europe/Berlin"))


@pytest.fixture
def sample_task(utc_now):
    """Plain PENDING task created at the reference time."""
    return Task(
        task_id="task-1",
        title="Write quarterly report",
        created_at=utc_now,
    )


@pytest.fixture
def active_task(utc_now):
    """ACTIVE task with tags and a due date."""
    return Task(
        task_id="task-2",
        title="Fix login bug",
        status=TaskStatus.ACTIVE,
        priority=TaskPriority.HIGH,
        tags=["urgent", "backend"],
        due_date=datetime(2025, 8, 18, 17, 0, tzinfo=ZoneInfo("UTC")),
        assignee="Jordan Smith",
        created_at=utc_now,
    )


@pytest.fixture
def dependency_graph():
    """Edge lookup over an in-memory adjacency map, recording each call."""
    class Graph:
        def __init__(self):
            self.edges: dict[str, set[str]] = {}
            self.calls: list[str] = []

        def add(self, source: str, *targets: str) -> "Graph":
            self.edges.setdefault(source, set()).update(targets)
            return self

        def __call__(self, task_id: str) -> set[str]:
            self.calls.append(task_id)
            return set(self.edges.get(task_id, set()))

    return Graph()


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client whose query builder methods chain."""
    client = MagicMock()
    query = MagicMock()
    for method in ("select", "eq", "in_", "ilike", "gte", "lte", "is_", "order", "update"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=[])
    client.table.return_value = query
    return client


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2025-08-15 12:00:00") as frozen_time:
        yield frozen_time
