"""Pytest configuration and fixtures for caretaker tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from caretaker.actions import ActionSet, CleanupSummary
from caretaker.services import SchedulerEngine, TaskStore


class FakeClock:
    """Controllable clock returning aware datetimes."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    """A clock fixed at Wednesday 2025-01-15 12:00 UTC."""
    return FakeClock(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def temp_storage_path(tmp_path):
    """Create a temporary storage path."""
    return tmp_path / "scheduled_tasks.json"


@pytest.fixture
def store(temp_storage_path, clock):
    """Create a TaskStore backed by a temporary file."""
    return TaskStore(temp_storage_path, clock=clock)


@pytest.fixture
def mock_actions():
    """Create an ActionSet of mocks with idle defaults (0% usage, nothing to clean)."""
    memory = MagicMock()
    memory.current_usage_percent = AsyncMock(return_value=0)
    memory.clean = AsyncMock(return_value=CleanupSummary(freed_bytes=1024))

    disk = MagicMock()
    disk.scan = AsyncMock(return_value=0)
    disk.clean = AsyncMock(return_value=CleanupSummary(freed_bytes=0))

    security = MagicMock()
    security.enable = AsyncMock()
    security.disable = AsyncMock()

    return ActionSet(memory=memory, disk=disk, security=security)


@pytest.fixture
def engine(store, mock_actions):
    """Create a SchedulerEngine over the temporary store."""
    return SchedulerEngine(store, mock_actions, check_interval=30)
