"""
Timer Service - Core time tracking logic.

Architecture Decision: State machine over a transactional store
Each command reads the user's ActiveTimer, checks its preconditions and writes
the result back inside one store transaction. The store's version check turns
a lost race into ConcurrentModification, which is retried once after
re-reading the state.

    (no timer) --start--> running --pause--> paused --resume--> running
    running/paused --stop--> (no timer) + TimeEntry
    running/paused --cancel--> (no timer)
"""

import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from worktimer.domain.errors import (
    ConcurrentModification, InvalidPauseReason, NoActiveTimer, PersistenceFailure,
    TaskNotFound, TimerAlreadyActive, TimerAlreadyPaused, TimerNotPaused,
)
from worktimer.domain.models import ActiveTimer, TaskInfo, TimeEntry, TimerStatus
from worktimer.infra.repository import TaskLookup, TaskRepository
from worktimer.infra.store import TimerStateStore
from worktimer.utils import exact_seconds, floor_seconds, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_PAUSE_REASON_LENGTH = 200


class TimerService:
    """
    The time tracking engine. Owns every ActiveTimer mutation but knows
    nothing about HTTP or the UI.
    """

    def __init__(self, store: Optional[TimerStateStore] = None,
                 tasks: Optional[TaskLookup] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.store = store or TimerStateStore()
        self.tasks = tasks or TaskRepository()
        self.clock = clock

    async def start(self, user_id: str, task_id: str,
                    description: Optional[str] = None) -> TimerStatus:
        """
        Start tracking time for a task.

        Raises:
            TaskNotFound: the task collaborator does not know task_id
            TimerAlreadyActive: the user already has a timer (no implicit restart)
        """
        task = await self._require_task(task_id)

        async def attempt() -> TimerStatus:
            now = self.clock()
            async with self.store.transaction() as tx:
                if await tx.timers.get_by_user(user_id) is not None:
                    raise TimerAlreadyActive()
                timer = await tx.timers.create(ActiveTimer(
                    user_id=user_id,
                    task_id=task_id,
                    started_at=now,
                    description=description,
                ))
            logger.info(f"Timer started for user {user_id} on task {task_id}")
            return TimerStatus.from_timer(timer, now, task.title)

        return await self._with_retry("start", user_id, attempt)

    async def pause(self, user_id: str, reason: str) -> TimerStatus:
        """
        Pause the running timer.

        Raises:
            InvalidPauseReason: empty, whitespace-only or overlong reason
            NoActiveTimer / TimerAlreadyPaused
        """
        reason = (reason or "").strip()
        if not reason:
            raise InvalidPauseReason()
        if len(reason) > MAX_PAUSE_REASON_LENGTH:
            raise InvalidPauseReason(f"Pause reason must be at most {MAX_PAUSE_REASON_LENGTH} characters")

        async def attempt() -> TimerStatus:
            now = self.clock()
            async with self.store.transaction() as tx:
                timer = await self._require_timer(tx, user_id)
                if timer.is_paused:
                    raise TimerAlreadyPaused()
                timer = await tx.timers.update(timer.model_copy(update={
                    "is_paused": True,
                    "paused_at": now,
                    "pause_reason": reason,
                    "pause_reasons": [*timer.pause_reasons, reason],
                }), now)
            logger.info(f"Timer paused for user {user_id}: {reason}")
            return await self._status_for(timer, now)

        return await self._with_retry("pause", user_id, attempt)

    async def resume(self, user_id: str) -> TimerStatus:
        """
        Resume a paused timer, folding the finished pause into the total.

        Raises:
            NoActiveTimer / TimerNotPaused
        """
        async def attempt() -> TimerStatus:
            now = self.clock()
            async with self.store.transaction() as tx:
                timer = await self._require_timer(tx, user_id)
                if not timer.is_paused:
                    raise TimerNotPaused()
                paused_for = exact_seconds(timer.paused_at, now)
                timer = await tx.timers.update(timer.model_copy(update={
                    "is_paused": False,
                    "paused_at": None,
                    "total_paused_seconds": round(timer.total_paused_seconds + paused_for, 6),
                }), now)
            logger.info(f"Timer resumed for user {user_id} after {paused_for:.0f}s")
            return await self._status_for(timer, now)

        return await self._with_retry("resume", user_id, attempt)

    async def stop(self, user_id: str, description: Optional[str] = None) -> TimeEntry:
        """
        Stop the timer and record the session as a TimeEntry.

        An open pause is closed at the stop instant first, so break time up to
        now never counts as work.

        Args:
            description: replaces the description given at start, if not blank

        Raises:
            NoActiveTimer
        """
        async def attempt() -> TimeEntry:
            now = self.clock()
            async with self.store.transaction() as tx:
                timer = await self._require_timer(tx, user_id)
                # Sub-second precision up to here, floored once for the entry
                total_paused = timer.total_paused_seconds
                if timer.is_paused:
                    total_paused += exact_seconds(timer.paused_at, now)

                elapsed = exact_seconds(timer.started_at, now)
                active_seconds = floor_seconds(elapsed - total_paused)

                final_description = (description or "").strip() or timer.description
                entry = await tx.entries.create(TimeEntry(
                    user_id=user_id,
                    task_id=timer.task_id,
                    started_at=timer.started_at,
                    stopped_at=now,
                    active_seconds=active_seconds,
                    total_paused_seconds=floor_seconds(total_paused),
                    description=final_description,
                    pause_reasons=timer.pause_reasons,
                    created_at=now,
                ))
                await tx.timers.delete(timer)
            logger.info(
                f"Timer stopped for user {user_id} on task {entry.task_id}: "
                f"{entry.active_seconds}s active, {entry.total_paused_seconds}s paused"
            )
            return entry

        return await self._with_retry("stop", user_id, attempt)

    async def cancel(self, user_id: str) -> ActiveTimer:
        """
        Discard the active timer without recording a TimeEntry.

        Raises:
            NoActiveTimer
        """
        async def attempt() -> ActiveTimer:
            async with self.store.transaction() as tx:
                timer = await self._require_timer(tx, user_id)
                await tx.timers.delete(timer)
            logger.info(f"Timer cancelled for user {user_id} on task {timer.task_id}")
            return timer

        return await self._with_retry("cancel", user_id, attempt)

    async def get_status(self, user_id: str) -> TimerStatus:
        """Current snapshot for the Timer Widget"""
        now = self.clock()
        async with self.store.read() as tx:
            timer = await tx.timers.get_by_user(user_id)
        return await self._status_for(timer, now)

    async def _with_retry(self, operation: str, user_id: str,
                          attempt: Callable[[], Awaitable[T]]) -> T:
        """Run a command, re-reading and re-validating once after a conflict"""
        try:
            return await attempt()
        except ConcurrentModification:
            logger.warning(f"{operation} for user {user_id} lost a race, retrying once")
        try:
            return await attempt()
        except ConcurrentModification:
            logger.warning(f"{operation} for user {user_id} conflicted twice, giving up")
            raise

    @staticmethod
    async def _require_timer(tx, user_id: str) -> ActiveTimer:
        timer = await tx.timers.get_by_user(user_id)
        if timer is None:
            raise NoActiveTimer()
        return timer

    async def _lookup_task(self, task_id: str) -> Optional[TaskInfo]:
        try:
            return await self.tasks.resolve_task(task_id)
        except SQLAlchemyError as e:
            logger.exception(f"Task lookup failed for {task_id}")
            raise PersistenceFailure("Failed to look up task") from e

    async def _require_task(self, task_id: str) -> TaskInfo:
        task = await self._lookup_task(task_id) if task_id else None
        if task is None:
            raise TaskNotFound(f"Task {task_id} not found")
        return task

    async def _status_for(self, timer: Optional[ActiveTimer], now: datetime) -> TimerStatus:
        if timer is None:
            return TimerStatus.from_timer(None, now)
        task = await self._lookup_task(timer.task_id)
        return TimerStatus.from_timer(timer, now, task.title if task else None)
