"""
Timer State Store - transactional access to active timers and time entries.

A StoreTransaction binds the repositories to one session so that a command's
read-modify-write (e.g. Stop: read timer, insert entry, delete timer) commits
or rolls back as a whole.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from worktimer.domain.errors import ConcurrentModification, PersistenceFailure, TimerError
from worktimer.infra.db import DatabaseEngine, get_engine
from worktimer.infra.repository import ActiveTimerRepository, TimeEntryRepository

logger = logging.getLogger(__name__)


class StoreTransaction:
    """Repositories sharing one session/transaction"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.timers = ActiveTimerRepository(session=session)
        self.entries = TimeEntryRepository(session=session)


def _is_lock_conflict(error: OperationalError) -> bool:
    return "locked" in str(error.orig).lower() or "busy" in str(error.orig).lower()


class TimerStateStore:
    """
    Authoritative store of per-user timer state.

    Database errors never leave this class raw: unique-key violations and
    lock conflicts become ConcurrentModification, anything else
    PersistenceFailure.
    """

    def __init__(self, engine: Optional[DatabaseEngine] = None):
        self.engine = engine or get_engine()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreTransaction]:
        """Open a session, run the caller's block in one transaction, commit on success"""
        session = self.engine.get_session()
        try:
            async with session:
                async with session.begin():
                    yield StoreTransaction(session)
        except TimerError:
            raise
        except IntegrityError as e:
            logger.warning(f"Unique key conflict on timer state: {e.orig}")
            raise ConcurrentModification() from e
        except OperationalError as e:
            if _is_lock_conflict(e):
                logger.warning(f"Lock conflict on timer state: {e.orig}")
                raise ConcurrentModification() from e
            logger.exception("Timer state store failed")
            raise PersistenceFailure() from e
        except SQLAlchemyError as e:
            logger.exception("Timer state store failed")
            raise PersistenceFailure() from e

    @asynccontextmanager
    async def read(self) -> AsyncIterator[StoreTransaction]:
        """Read-only access; same error mapping, nothing to commit"""
        async with self.transaction() as tx:
            yield tx
