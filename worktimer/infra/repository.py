"""
Repository Pattern Implementation.

Architecture Decision: Why Repository Pattern?
Separates data access logic from business logic. Makes it easy to:
- Switch database implementations
- Run several repositories inside one transaction (see store.py)
- Mock data for testing

Repositories never commit a session they were handed; whoever opened the
transaction decides when it ends.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from worktimer.domain.errors import ConcurrentModification
from worktimer.domain.models import ActiveTimer, TaskInfo, TimeEntry
from worktimer.infra.db import TaskModel, ActiveTimerModel, TimeEntryModel, get_engine


class TaskLookup(Protocol):
    """What time tracking needs from the external task collaborator"""

    async def resolve_task(self, task_id: str) -> Optional[TaskInfo]: ...

    async def list_tasks(self) -> List[TaskInfo]: ...


class _RepositoryBase:
    def __init__(self, session: Optional[AsyncSession] = None):
        self.session = session

    @asynccontextmanager
    async def _session_scope(self) -> AsyncIterator[AsyncSession]:
        """Injected session as-is, otherwise a short-lived one of our own"""
        if self.session is not None:
            yield self.session
            return
        session = get_engine().get_session()
        async with session:
            yield session
            await session.commit()


class TaskRepository(_RepositoryBase):
    """
    Handles Task reads for time tracking (implements TaskLookup).

    Converts between domain models (Pydantic) and ORM models (SQLAlchemy).
    """

    async def resolve_task(self, task_id: str) -> Optional[TaskInfo]:
        """Get a specific task by ID, None if it does not exist"""
        async with self._session_scope() as session:
            result = await session.execute(
                select(TaskModel).where(TaskModel.id == task_id)
            )
            task_model = result.scalar_one_or_none()
            return TaskInfo.model_validate(task_model) if task_model else None

    async def list_tasks(self) -> List[TaskInfo]:
        """Get all tasks"""
        async with self._session_scope() as session:
            result = await session.execute(select(TaskModel))
            return [TaskInfo.model_validate(tm) for tm in result.scalars().all()]

    async def create(self, task: TaskInfo) -> TaskInfo:
        """Create a task (seeding and tests; the kanban board owns real tasks)"""
        async with self._session_scope() as session:
            task_model = TaskModel(
                id=task.id,
                title=task.title,
                description=task.description,
                estimated_seconds=task.estimated_seconds,
                priority=task.priority,
                status=task.status,
                due_date=task.due_date,
                created_at=task.created_at,
            )
            session.add(task_model)
            await session.flush()
            return TaskInfo.model_validate(task_model)


class ActiveTimerRepository(_RepositoryBase):
    """
    Reads and writes the one-row-per-user active timer.

    Every update/delete is conditional on the version that was read; a
    mismatch means somebody else got there first.
    """

    async def get_by_user(self, user_id: str) -> Optional[ActiveTimer]:
        async with self._session_scope() as session:
            result = await session.execute(
                select(ActiveTimerModel).where(ActiveTimerModel.user_id == user_id)
            )
            model = result.scalar_one_or_none()
            return ActiveTimer.model_validate(model) if model else None

    async def create(self, timer: ActiveTimer) -> ActiveTimer:
        """Insert a new timer. A second row for the same user violates the unique key."""
        async with self._session_scope() as session:
            model = ActiveTimerModel(
                user_id=timer.user_id,
                task_id=timer.task_id,
                started_at=timer.started_at,
                is_paused=timer.is_paused,
                paused_at=timer.paused_at,
                total_paused_seconds=timer.total_paused_seconds,
                pause_reason=timer.pause_reason,
                pause_reasons=list(timer.pause_reasons),
                description=timer.description,
                version=1,
                updated_at=timer.started_at,
            )
            session.add(model)
            await session.flush()
            return ActiveTimer.model_validate(model)

    async def update(self, timer: ActiveTimer, now: datetime) -> ActiveTimer:
        """Write back a modified timer, bumping its version"""
        async with self._session_scope() as session:
            result = await session.execute(
                update(ActiveTimerModel)
                .where(
                    ActiveTimerModel.user_id == timer.user_id,
                    ActiveTimerModel.version == timer.version,
                )
                .values(
                    is_paused=timer.is_paused,
                    paused_at=timer.paused_at,
                    total_paused_seconds=timer.total_paused_seconds,
                    pause_reason=timer.pause_reason,
                    pause_reasons=list(timer.pause_reasons),
                    description=timer.description,
                    version=timer.version + 1,
                    updated_at=now,
                )
            )
            if result.rowcount != 1:
                raise ConcurrentModification()
            return timer.model_copy(update={"version": timer.version + 1})

    async def delete(self, timer: ActiveTimer) -> None:
        """Remove the timer, only if it is still the version we read"""
        async with self._session_scope() as session:
            result = await session.execute(
                delete(ActiveTimerModel).where(
                    ActiveTimerModel.user_id == timer.user_id,
                    ActiveTimerModel.version == timer.version,
                )
            )
            if result.rowcount != 1:
                raise ConcurrentModification()


class TimeEntryRepository(_RepositoryBase):
    """
    Handles all TimeEntry-related database operations.

    Entries are append-only: there is no update or delete here.
    """

    async def create(self, entry: TimeEntry) -> TimeEntry:
        """Create a new time entry"""
        async with self._session_scope() as session:
            entry_model = TimeEntryModel(
                user_id=entry.user_id,
                task_id=entry.task_id,
                started_at=entry.started_at,
                stopped_at=entry.stopped_at,
                active_seconds=entry.active_seconds,
                total_paused_seconds=entry.total_paused_seconds,
                description=entry.description,
                pause_reasons=list(entry.pause_reasons),
                created_at=entry.created_at,
            )
            session.add(entry_model)
            await session.flush()
            return TimeEntry.model_validate(entry_model)

    async def get_by_task(self, task_id: str, user_id: Optional[str] = None) -> List[TimeEntry]:
        """Get all time entries for a specific task, newest first"""
        async with self._session_scope() as session:
            query = select(TimeEntryModel).where(TimeEntryModel.task_id == task_id)
            if user_id is not None:
                query = query.where(TimeEntryModel.user_id == user_id)
            result = await session.execute(query.order_by(TimeEntryModel.started_at.desc()))
            return [TimeEntry.model_validate(em) for em in result.scalars().all()]

    async def list_for_user(self, user_id: str,
                            start_date: Optional[datetime] = None,
                            end_date: Optional[datetime] = None,
                            task_id: Optional[str] = None,
                            limit: Optional[int] = 50,
                            offset: int = 0,
                            min_active_seconds: Optional[int] = None) -> List[TimeEntry]:
        """Get a user's time entries, optionally filtered, newest first"""
        async with self._session_scope() as session:
            query = select(TimeEntryModel).where(TimeEntryModel.user_id == user_id)
            if start_date:
                query = query.where(TimeEntryModel.started_at >= start_date)
            if end_date:
                query = query.where(TimeEntryModel.started_at <= end_date)
            if task_id:
                query = query.where(TimeEntryModel.task_id == task_id)
            if min_active_seconds:
                query = query.where(TimeEntryModel.active_seconds >= min_active_seconds)

            query = query.order_by(TimeEntryModel.started_at.desc()).offset(offset)
            if limit is not None:
                query = query.limit(limit)
            result = await session.execute(query)
            return [TimeEntry.model_validate(em) for em in result.scalars().all()]

    async def totals_by_task(self, task_ids: Sequence[str],
                             user_id: Optional[str] = None
                             ) -> Dict[str, Tuple[int, int, Optional[datetime]]]:
        """
        Sum entries per task in one query.

        Returns:
            {task_id: (total_active_seconds, session_count, last_stopped_at)};
            tasks without entries are absent.
        """
        if not task_ids:
            return {}
        async with self._session_scope() as session:
            query = (
                select(
                    TimeEntryModel.task_id,
                    func.coalesce(func.sum(TimeEntryModel.active_seconds), 0),
                    func.count(TimeEntryModel.id),
                    func.max(TimeEntryModel.stopped_at),
                )
                .where(TimeEntryModel.task_id.in_(list(task_ids)))
                .group_by(TimeEntryModel.task_id)
            )
            if user_id is not None:
                query = query.where(TimeEntryModel.user_id == user_id)
            result = await session.execute(query)
            return {
                task_id: (int(total), int(count), last)
                for task_id, total, count, last in result.all()
            }

    async def recent_by_task(self, user_id: str, since: datetime,
                             limit: int = 10) -> List[Tuple[str, datetime, int, int]]:
        """
        Tasks the user tracked since a given instant, most recent first.

        Returns:
            [(task_id, last_started_at, session_count, total_active_seconds)]
        """
        async with self._session_scope() as session:
            last_started = func.max(TimeEntryModel.started_at)
            result = await session.execute(
                select(
                    TimeEntryModel.task_id,
                    last_started,
                    func.count(TimeEntryModel.id),
                    func.coalesce(func.sum(TimeEntryModel.active_seconds), 0),
                )
                .where(
                    TimeEntryModel.user_id == user_id,
                    TimeEntryModel.started_at >= since,
                )
                .group_by(TimeEntryModel.task_id)
                .order_by(last_started.desc())
                .limit(limit)
            )
            return [(task_id, last, int(count), int(total))
                    for task_id, last, count, total in result.all()]
