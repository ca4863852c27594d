"""
Tests for the Task Time Aggregator.
"""

from datetime import timedelta

import pytest
import pytest_asyncio

from conftest import T0
from worktimer.domain.errors import TaskNotFound
from worktimer.domain.models import TimeEntry
from worktimer.infra.repository import TimeEntryRepository


@pytest_asyncio.fixture
async def add_entry(db_engine):
    """Insert a finished session directly"""
    repo = TimeEntryRepository()

    async def _add(task_id: str, active_seconds: int, started_at=T0, user_id: str = "alice"):
        return await repo.create(TimeEntry(
            user_id=user_id,
            task_id=task_id,
            started_at=started_at,
            stopped_at=started_at + timedelta(seconds=active_seconds),
            active_seconds=active_seconds,
        ))
    return _add


@pytest.mark.asyncio
async def test_summary_with_overtime(aggregator, make_task, add_entry):
    await make_task("t1", estimated_seconds=1200)
    await add_entry("t1", 600, started_at=T0 - timedelta(hours=3))
    await add_entry("t1", 900, started_at=T0 - timedelta(hours=2))

    summary = await aggregator.summarize("t1")
    assert summary.total_seconds == 1500
    assert summary.session_count == 2
    assert summary.is_overtime
    assert summary.progress_percentage == 125.0
    assert summary.display_progress == 100.0
    assert summary.last_tracked_at == T0 - timedelta(hours=2) + timedelta(seconds=900)
    assert summary.is_recently_tracked


@pytest.mark.asyncio
async def test_summary_without_estimate(aggregator, make_task, add_entry):
    await make_task("t1")
    await add_entry("t1", 600)

    summary = await aggregator.summarize("t1")
    assert summary.progress_percentage == 0.0
    assert not summary.is_overtime


@pytest.mark.asyncio
async def test_summary_of_untracked_task(aggregator, make_task):
    await make_task("t1", estimated_seconds=3600)
    summary = await aggregator.summarize("t1")
    assert summary.total_seconds == 0
    assert summary.session_count == 0
    assert summary.last_tracked_at is None
    assert not summary.is_recently_tracked


@pytest.mark.asyncio
async def test_summary_unknown_task(aggregator):
    with pytest.raises(TaskNotFound):
        await aggregator.summarize("missing")


@pytest.mark.asyncio
async def test_running_timer_is_not_counted(aggregator, timer_service, make_task, add_entry, clock):
    await make_task("t1", estimated_seconds=3600)
    await add_entry("t1", 600, started_at=T0 - timedelta(days=1))
    await timer_service.start("alice", "t1")
    clock.advance(1800)

    summary = await aggregator.summarize("t1")
    assert summary.total_seconds == 600
    assert summary.session_count == 1

    live = aggregator.with_live_seconds(summary, 1800)
    assert live.total_seconds == 2400
    assert live.progress_percentage == round(2400 / 3600 * 100, 2)
    # The stored summary is left alone
    assert summary.total_seconds == 600


@pytest.mark.asyncio
async def test_summary_per_user(aggregator, make_task, add_entry):
    await make_task("t1")
    await add_entry("t1", 600, user_id="alice")
    await add_entry("t1", 300, user_id="bob")

    assert (await aggregator.summarize("t1")).total_seconds == 900
    assert (await aggregator.summarize("t1", user_id="bob")).total_seconds == 300


@pytest.mark.asyncio
async def test_stale_tracking_is_not_recent(aggregator, make_task, add_entry):
    await make_task("t1")
    await add_entry("t1", 60, started_at=T0 - timedelta(days=3))
    summary = await aggregator.summarize("t1")
    assert not summary.is_recently_tracked


@pytest.mark.asyncio
async def test_summarize_many(aggregator, task_repo, make_task, add_entry):
    t1 = await make_task("t1", estimated_seconds=600)
    t2 = await make_task("t2")
    await add_entry("t1", 300)

    summaries = await aggregator.summarize_many([t1, t2])
    assert summaries["t1"].progress_percentage == 50.0
    assert summaries["t2"].total_seconds == 0


@pytest.mark.asyncio
async def test_recent_tasks(aggregator, make_task, add_entry):
    await make_task("t1")
    await make_task("t2")
    await make_task("t3")
    await add_entry("t1", 600, started_at=T0 - timedelta(days=2))
    await add_entry("t1", 1200, started_at=T0 - timedelta(days=1))
    await add_entry("t2", 300, started_at=T0 - timedelta(hours=5))
    await add_entry("t3", 300, started_at=T0 - timedelta(days=40))
    await add_entry("t2", 300, started_at=T0 - timedelta(hours=1), user_id="bob")

    recent = await aggregator.recent_tasks("alice")
    assert [r.task.id for r in recent] == ["t2", "t1"]
    assert recent[1].session_count == 2
    assert recent[1].total_seconds == 1800
    assert recent[1].average_session_seconds == 900
    assert recent[1].last_tracked_at == T0 - timedelta(days=1)


@pytest.mark.asyncio
async def test_entries_for(aggregator, make_task, add_entry):
    await make_task("t1")
    await make_task("t2")
    await add_entry("t1", 60, started_at=T0 - timedelta(hours=2))
    await add_entry("t2", 60, started_at=T0 - timedelta(hours=1))
    await add_entry("t2", 60, started_at=T0, user_id="bob")

    entries = await aggregator.entries_for("alice")
    assert [e.task_id for e in entries] == ["t2", "t1"]

    only_t1 = await aggregator.entries_for("alice", task_id="t1")
    assert len(only_t1) == 1

    window = await aggregator.entries_for("alice", start_date=T0 - timedelta(minutes=90))
    assert [e.task_id for e in window] == ["t2"]
