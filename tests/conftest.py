"""
Pytest configuration and fixtures.
"""

import sys
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

import pytest
import pytest_asyncio

# Add project root
sys.path.insert(0, str(Path(__file__).parent.parent))

from worktimer.domain.models import TaskInfo, TrackerPreferences
from worktimer.infra.db import DatabaseEngine
from worktimer.infra.repository import TaskRepository
from worktimer.infra.store import TimerStateStore
from worktimer.services import TaskSelector, TaskTimeAggregator, TimerService

T0 = datetime(2026, 3, 2, 9, 0, 0)


class FakeClock:
    """Server clock the tests move by hand"""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """
    A file-backed SQLite database for each test.

    A file (not :memory:) so concurrent sessions get their own connections
    and real SQLite locking, like in production.
    """
    DatabaseEngine.reset_instance()
    engine = DatabaseEngine.get_instance(f"sqlite+aiosqlite:///{tmp_path / 'worktimer.db'}")
    await engine.create_tables()

    yield engine

    await engine.dispose()
    DatabaseEngine.reset_instance()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def preferences():
    return TrackerPreferences()


@pytest.fixture
def store(db_engine):
    return TimerStateStore(db_engine)


@pytest.fixture
def task_repo(db_engine):
    return TaskRepository()


@pytest.fixture
def timer_service(store, task_repo, clock):
    return TimerService(store=store, tasks=task_repo, clock=clock)


@pytest.fixture
def aggregator(store, task_repo, preferences, clock):
    return TaskTimeAggregator(store=store, tasks=task_repo, preferences=preferences, clock=clock)


@pytest.fixture
def selector(aggregator, task_repo, preferences, clock):
    return TaskSelector(aggregator=aggregator, tasks=task_repo, preferences=preferences, clock=clock)


@pytest.fixture
def make_task(task_repo):
    """Create a task through the repository (stands in for the kanban board)"""
    async def _make(task_id: str, title: Optional[str] = None, estimated_seconds: Optional[int] = None,
                    priority: str = "medium", status: str = "todo", due_date: Optional[date] = None,
                    created_at: Optional[datetime] = None) -> TaskInfo:
        return await task_repo.create(TaskInfo(
            id=task_id,
            title=title or f"Task {task_id}",
            estimated_seconds=estimated_seconds,
            priority=priority,
            status=status,
            due_date=due_date,
            created_at=created_at or T0 - timedelta(days=30),
        ))
    return _make
