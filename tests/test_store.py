"""
Tests for the Timer State Store's transaction and error mapping.
"""

import sqlite3

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from conftest import T0
from worktimer.domain.errors import ConcurrentModification, NoActiveTimer, PersistenceFailure
from worktimer.domain.models import ActiveTimer


async def _drop_active_timers(db_engine):
    async with db_engine.engine.begin() as conn:
        await conn.execute(text("DROP TABLE active_timers"))


@pytest.mark.asyncio
async def test_missing_table_is_persistence_failure(timer_service, db_engine):
    await _drop_active_timers(db_engine)
    with pytest.raises(PersistenceFailure):
        await timer_service.get_status("alice")


@pytest.mark.asyncio
async def test_start_on_broken_store_is_not_swallowed(timer_service, make_task, db_engine):
    await make_task("t1")
    await _drop_active_timers(db_engine)
    with pytest.raises(PersistenceFailure) as exc:
        await timer_service.start("alice", "t1")
    assert isinstance(exc.value.__cause__, SQLAlchemyError)


@pytest.mark.asyncio
async def test_database_locked_is_concurrent_modification(store):
    with pytest.raises(ConcurrentModification):
        async with store.transaction():
            raise OperationalError("UPDATE active_timers", {}, sqlite3.OperationalError("database is locked"))


@pytest.mark.asyncio
async def test_other_operational_error_is_persistence_failure(store):
    with pytest.raises(PersistenceFailure):
        async with store.transaction():
            raise OperationalError("SELECT 1", {}, sqlite3.OperationalError("disk I/O error"))


@pytest.mark.asyncio
async def test_unique_key_violation_is_concurrent_modification(store):
    timer = ActiveTimer(user_id="alice", task_id="t1", started_at=T0)
    async with store.transaction() as tx:
        await tx.timers.create(timer)

    with pytest.raises(ConcurrentModification):
        async with store.transaction() as tx:
            await tx.timers.create(timer)


@pytest.mark.asyncio
async def test_integrity_error_is_concurrent_modification(store):
    with pytest.raises(ConcurrentModification):
        async with store.transaction():
            raise IntegrityError("INSERT", {}, sqlite3.IntegrityError("UNIQUE constraint failed"))


@pytest.mark.asyncio
async def test_timer_errors_pass_through(store):
    with pytest.raises(NoActiveTimer):
        async with store.transaction():
            raise NoActiveTimer()


@pytest.mark.asyncio
async def test_failed_transaction_rolls_back(store):
    timer = ActiveTimer(user_id="alice", task_id="t1", started_at=T0)
    with pytest.raises(PersistenceFailure):
        async with store.transaction() as tx:
            await tx.timers.create(timer)
            raise SQLAlchemyError("boom")

    async with store.read() as tx:
        assert await tx.timers.get_by_user("alice") is None


@pytest.mark.asyncio
async def test_stale_version_is_concurrent_modification(store):
    async with store.transaction() as tx:
        created = await tx.timers.create(ActiveTimer(user_id="alice", task_id="t1", started_at=T0))
    async with store.transaction() as tx:
        await tx.timers.update(created.model_copy(update={"description": "first"}), T0)

    with pytest.raises(ConcurrentModification):
        async with store.transaction() as tx:
            await tx.timers.delete(created)
