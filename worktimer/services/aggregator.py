"""
Task Time Aggregator - read side of time tracking.

Sums committed TimeEntries per task. A running ActiveTimer is deliberately
not part of these numbers: only Stop commits time. Displays that want the
live session on top use ``with_live_seconds``.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from worktimer.domain.errors import PersistenceFailure, TaskNotFound
from worktimer.domain.models import RecentTask, TaskInfo, TaskTimeSummary, TimeEntry, TrackerPreferences
from worktimer.infra.repository import TaskLookup, TaskRepository
from worktimer.infra.store import TimerStateStore
from worktimer.utils import utc_now

logger = logging.getLogger(__name__)


def build_summary(task: TaskInfo, total_seconds: int, session_count: int,
                  last_tracked_at: Optional[datetime], now: datetime,
                  recent_window: timedelta) -> TaskTimeSummary:
    """Derive progress, overtime and recency from raw totals"""
    estimate = task.estimated_seconds or 0
    progress = round(total_seconds / estimate * 100, 2) if estimate > 0 else 0.0
    return TaskTimeSummary(
        task_id=task.id,
        total_seconds=total_seconds,
        session_count=session_count,
        last_tracked_at=last_tracked_at,
        estimated_seconds=task.estimated_seconds,
        progress_percentage=progress,
        is_overtime=estimate > 0 and total_seconds > estimate,
        is_recently_tracked=last_tracked_at is not None and now - last_tracked_at <= recent_window,
    )


class TaskTimeAggregator:
    """
    Computes TaskTimeSummary values on demand.
    """

    def __init__(self, store: Optional[TimerStateStore] = None,
                 tasks: Optional[TaskLookup] = None,
                 preferences: Optional[TrackerPreferences] = None,
                 clock=utc_now):
        self.store = store or TimerStateStore()
        self.tasks = tasks or TaskRepository()
        self.preferences = preferences or TrackerPreferences()
        self.clock = clock

    @property
    def recent_window(self) -> timedelta:
        return timedelta(hours=self.preferences.recent_window_hours)

    async def summarize(self, task_id: str, user_id: Optional[str] = None,
                        now: Optional[datetime] = None) -> TaskTimeSummary:
        """
        Summarize all entries of one task.

        Args:
            user_id: restrict to one user's entries; None means everybody's

        Raises:
            TaskNotFound: the task collaborator does not know task_id
        """
        task = await self._resolve(task_id)
        if task is None:
            raise TaskNotFound(f"Task {task_id} not found")
        summaries = await self.summarize_many([task], user_id=user_id, now=now)
        return summaries[task.id]

    async def summarize_many(self, tasks: Iterable[TaskInfo], user_id: Optional[str] = None,
                             now: Optional[datetime] = None) -> Dict[str, TaskTimeSummary]:
        """Summaries for several already-resolved tasks with a single grouped query"""
        tasks = list(tasks)
        now = now or self.clock()
        async with self.store.read() as tx:
            totals = await tx.entries.totals_by_task([t.id for t in tasks], user_id=user_id)

        result = {}
        for task in tasks:
            total, count, last = totals.get(task.id, (0, 0, None))
            result[task.id] = build_summary(task, total, count, last, now, self.recent_window)
        return result

    async def recent_tasks(self, user_id: str, limit: int = 10, days: Optional[int] = None,
                           now: Optional[datetime] = None) -> List[RecentTask]:
        """Tasks the user tracked in the last ``days`` days, most recent first"""
        now = now or self.clock()
        days = days or self.preferences.recent_tracking_days
        async with self.store.read() as tx:
            rows = await tx.entries.recent_by_task(user_id, now - timedelta(days=days), limit=limit)

        recent = []
        for task_id, last_tracked_at, count, total in rows:
            task = await self._resolve(task_id)
            if task is None:
                # Task deleted on the board since; its entries stay but are not offered
                logger.debug(f"Skipping recent entry for missing task {task_id}")
                continue
            recent.append(RecentTask(
                task=task,
                last_tracked_at=last_tracked_at,
                session_count=count,
                total_seconds=total,
                average_session_seconds=total // count if count else 0,
            ))
        return recent

    async def entries_for(self, user_id: str,
                          start_date: Optional[datetime] = None,
                          end_date: Optional[datetime] = None,
                          task_id: Optional[str] = None,
                          limit: Optional[int] = 50,
                          offset: int = 0,
                          min_active_seconds: Optional[int] = None) -> List[TimeEntry]:
        """A user's time entries, newest first; short sessions can be filtered out"""
        async with self.store.read() as tx:
            return await tx.entries.list_for_user(
                user_id, start_date=start_date, end_date=end_date,
                task_id=task_id, limit=limit, offset=offset,
                min_active_seconds=min_active_seconds,
            )

    @staticmethod
    def with_live_seconds(summary: TaskTimeSummary, live_seconds: int) -> TaskTimeSummary:
        """
        Display-only copy that includes the running session.

        The result must not be stored or compared against committed totals.
        """
        total = summary.total_seconds + max(0, live_seconds)
        estimate = summary.estimated_seconds or 0
        return summary.model_copy(update={
            "total_seconds": total,
            "progress_percentage": round(total / estimate * 100, 2) if estimate > 0 else 0.0,
            "is_overtime": estimate > 0 and total > estimate,
        })

    async def _resolve(self, task_id: str) -> Optional[TaskInfo]:
        try:
            return await self.tasks.resolve_task(task_id)
        except SQLAlchemyError as e:
            logger.exception(f"Task lookup failed for {task_id}")
            raise PersistenceFailure("Failed to look up task") from e
