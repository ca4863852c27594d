"""
Task Selector - ranks tasks as tracking targets.

Read-only: it combines the task list from the task collaborator with the
Aggregator's summaries and never touches timer state.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from worktimer.domain.models import TaskInfo, TrackableTask, TrackerPreferences
from worktimer.infra.repository import TaskLookup, TaskRepository
from worktimer.services.aggregator import TaskTimeAggregator
from worktimer.utils import utc_now

logger = logging.getLogger(__name__)

PRIORITY_WEIGHTS = {"high": 3, "medium": 2, "low": 1}
PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}
STATUS_WEIGHTS = {"in-progress": 2, "review": 1}
URGENCY_LEVELS = ("critical", "high", "medium", "low")
DONE_STATUS = "done"


def calculate_urgency(task: TaskInfo, today: date) -> str:
    """
    Score a task by priority, due date and status.

    Priority high/medium/low adds 3/2/1. Overdue adds 5, due within a day 4,
    within three days 3, within a week 2. In progress adds 2, in review 1.
    """
    score = PRIORITY_WEIGHTS.get(task.priority, 0)

    if task.due_date is not None:
        days_until_due = (task.due_date - today).days
        if days_until_due < 0:
            score += 5
        elif days_until_due <= 1:
            score += 4
        elif days_until_due <= 3:
            score += 3
        elif days_until_due <= 7:
            score += 2

    score += STATUS_WEIGHTS.get(task.status, 0)

    if score >= 7:
        return "critical"
    if score >= 5:
        return "high"
    if score >= 3:
        return "medium"
    return "low"


class TaskSelector:
    """Offers the user a ranked list of tasks to start a timer on"""

    def __init__(self, aggregator: Optional[TaskTimeAggregator] = None,
                 tasks: Optional[TaskLookup] = None,
                 preferences: Optional[TrackerPreferences] = None,
                 clock=utc_now):
        self.tasks = tasks or TaskRepository()
        self.preferences = preferences or TrackerPreferences()
        self.aggregator = aggregator or TaskTimeAggregator(
            tasks=self.tasks, preferences=self.preferences, clock=clock
        )
        self.clock = clock

    async def for_tracking(self, user_id: str, priority: Optional[str] = None,
                           recent_only: bool = False, include_completed: bool = False,
                           now: Optional[datetime] = None) -> List[TrackableTask]:
        """
        Rank the user's candidate tasks.

        Order: tracked within the selector window first, then by priority,
        then tasks with a due date (soonest first), then newest created.

        Args:
            priority: only tasks of this priority
            recent_only: keep recently tracked, high priority, or due within a week
            include_completed: also offer tasks whose status is 'done'
        """
        now = now or self.clock()
        today = now.date()

        tasks = await self.tasks.list_tasks()
        if not include_completed:
            tasks = [t for t in tasks if t.status != DONE_STATUS]
        if priority:
            tasks = [t for t in tasks if t.priority == priority]

        summaries = await self.aggregator.summarize_many(tasks, user_id=user_id, now=now)
        window = timedelta(days=self.preferences.selector_recent_days)

        candidates = []
        for task in tasks:
            summary = summaries[task.id]
            recent = summary.last_tracked_at is not None and now - summary.last_tracked_at <= window
            if recent_only and not (
                recent
                or task.priority == "high"
                or (task.due_date is not None and task.due_date <= today + timedelta(days=7))
            ):
                continue
            candidates.append(TrackableTask(
                task=task,
                summary=summary,
                urgency=calculate_urgency(task, today),
                is_recently_tracked=recent,
            ))

        # Newest created first is the last tie-breaker, so sort by it first (sorts are stable)
        candidates.sort(key=lambda c: c.task.created_at, reverse=True)
        candidates.sort(key=lambda c: (
            0 if c.is_recently_tracked else 1,
            PRIORITY_ORDER.get(c.task.priority, 3),
            0 if c.task.due_date is not None else 1,
            c.task.due_date or date.max,
        ))
        logger.debug(f"Ranked {len(candidates)} tasks for user {user_id}")
        return candidates

    @staticmethod
    def group_by_urgency(tasks: List[TrackableTask]) -> Dict[str, List[TrackableTask]]:
        """Bucket ranked tasks critical → low, keeping rank order inside each bucket"""
        groups: Dict[str, List[TrackableTask]] = {level: [] for level in URGENCY_LEVELS}
        for item in tasks:
            groups.setdefault(item.urgency, []).append(item)
        return groups
