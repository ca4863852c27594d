"""
Tests for statistics and the Jinja2 text report.
"""

from datetime import datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio

from conftest import T0
import worktimer
from worktimer.domain.models import TimeEntry
from worktimer.infra.repository import TimeEntryRepository
from worktimer.services.report_service import ReportService
from worktimer.utils import get_resource_path

PERIOD_START = datetime(2026, 3, 1)
PERIOD_END = datetime(2026, 3, 3, 23, 59, 59)


@pytest_asyncio.fixture
async def tracked(db_engine, make_task):
    """Three sessions over two days on two tasks"""
    await make_task("t1", title="Write proposal")
    await make_task("t2", title="Review budget")
    repo = TimeEntryRepository()
    for task_id, started_at, seconds, paused, description in [
        ("t1", T0, 3600, 600, "First draft"),
        ("t1", T0 + timedelta(hours=3), 1800, 0, None),
        ("t2", T0 + timedelta(days=1), 1800, 300, "Q1 numbers"),
        ("t2", datetime(2026, 2, 27, 9, 0), 999, 0, "before the period"),
    ]:
        await repo.create(TimeEntry(
            user_id="alice", task_id=task_id, started_at=started_at,
            stopped_at=started_at + timedelta(seconds=seconds + paused),
            active_seconds=seconds, total_paused_seconds=paused, description=description,
        ))


@pytest.fixture
def report_service(aggregator, task_repo):
    return ReportService(aggregator=aggregator, tasks=task_repo)


@pytest.mark.asyncio
async def test_compute_stats(report_service, tracked):
    stats = await report_service.compute_stats("alice", PERIOD_START, PERIOD_END)

    assert stats.total_seconds == 7200
    assert stats.paused_seconds == 900
    assert stats.session_count == 3
    assert stats.daily_average_seconds == 2400

    assert [(b.task_id, b.seconds, b.sessions, b.percentage) for b in stats.task_breakdown] == [
        ("t1", 5400, 2, 75),
        ("t2", 1800, 1, 25),
    ]
    assert stats.task_breakdown[0].task_title == "Write proposal"
    assert [(d.date.day, d.seconds) for d in stats.daily_totals] == [(1, 0), (2, 5400), (3, 1800)]


@pytest.mark.asyncio
async def test_stats_for_other_user_are_empty(report_service, tracked):
    stats = await report_service.compute_stats("bob", PERIOD_START, PERIOD_END)
    assert stats.total_seconds == 0
    assert stats.task_breakdown == []
    assert len(stats.daily_totals) == 3


@pytest.mark.asyncio
async def test_generate_report(report_service, tracked, tmp_path):
    output = tmp_path / "reports" / "march.txt"
    report = await report_service.generate_report("alice", PERIOD_START, PERIOD_END,
                                                  output_file=output)

    assert "Time Report for alice" in report
    assert "Period: 2026-03-01 to 2026-03-03" in report
    assert "Total tracked: 02:00:00 (2h)" in report
    assert "Write proposal" in report
    assert "Q1 numbers" in report
    assert "before the period" not in report
    assert output.read_text(encoding="utf-8") == report


@pytest.mark.asyncio
async def test_empty_report(report_service, db_engine):
    report = await report_service.generate_report("alice", PERIOD_START, PERIOD_END)
    assert "(no time tracked)" in report


@pytest.mark.asyncio
async def test_list_templates(report_service):
    assert "time_report.txt" in report_service.list_templates()


def test_templates_resolve_inside_package():
    template_dir = get_resource_path("worktimer/resources/templates")
    assert template_dir.is_dir()
    assert template_dir == Path(worktimer.__file__).parent / "resources" / "templates"
