"""
SQLAlchemy database models and configuration.

Architecture Decision: Why SQLAlchemy?
- Provides ORM for cleaner code and prevents SQL injection
- Supports async operations for non-blocking database access
- Easy to migrate to PostgreSQL or other databases if needed

The single-active-timer rule lives in the schema: active_timers.user_id is
unique and every write checks the row's version column.
"""

from datetime import date, datetime
from pathlib import Path
from typing import List, Optional
import os

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, Integer, Float, DateTime, Date, Boolean, Text, JSON, Index


# Base class for all models
class Base(DeclarativeBase):
    pass


class TaskModel(Base):
    """
    SQLAlchemy model for the task table.

    Tasks are owned by the kanban board; time tracking only reads them.
    """
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    estimated_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    priority: Mapped[str] = mapped_column(String(16), default="medium", nullable=False)
    status: Mapped[str] = mapped_column(String(32), default="todo", nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)


class ActiveTimerModel(Base):
    """SQLAlchemy model for the per-user active timer (at most one row per user)"""
    __tablename__ = "active_timers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    task_id: Mapped[str] = mapped_column(String(64), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_paused: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    paused_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    total_paused_seconds: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    pause_reason: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    pause_reasons: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)


class TimeEntryModel(Base):
    """SQLAlchemy model for TimeEntry entity (append-only)"""
    __tablename__ = "time_entries"
    __table_args__ = (
        Index("ix_time_entries_task_id", "task_id"),
        Index("ix_time_entries_user_started", "user_id", "started_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    task_id: Mapped[str] = mapped_column(String(64), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    stopped_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    active_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_paused_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pause_reasons: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)


class DatabaseEngine:
    """
    Manages database connection and session lifecycle.

    Singleton pattern ensures only one engine exists per application.
    """
    _instance: Optional['DatabaseEngine'] = None

    def __init__(self, db_url: str):
        self.url = db_url
        self.engine = create_async_engine(db_url, echo=False)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    @classmethod
    def get_instance(cls, db_url: Optional[str] = None) -> 'DatabaseEngine':
        """Get or create the database engine instance"""
        if cls._instance is None:
            if db_url is None:
                # Default: Store in user's AppData on Windows, ~/.local/share on Linux
                if os.name == 'nt':  # Windows
                    data_dir = Path(os.getenv('APPDATA')) / 'WorkTimer'
                else:  # Linux/Mac
                    data_dir = Path.home() / '.local' / 'share' / 'worktimer'

                data_dir.mkdir(parents=True, exist_ok=True)
                db_path = data_dir / 'worktimer.db'
                db_url = f"sqlite+aiosqlite:///{db_path}"

            cls._instance = cls(db_url)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Forget the singleton (tests and reconfiguration)"""
        cls._instance = None

    async def create_tables(self):
        """Create all tables in the database"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    def get_session(self) -> AsyncSession:
        """Get a new database session"""
        return self.session_factory()

    async def dispose(self):
        await self.engine.dispose()


# Convenience functions
def get_engine(db_url: Optional[str] = None) -> DatabaseEngine:
    """Get the database engine instance"""
    return DatabaseEngine.get_instance(db_url)


async def init_db(db_url: Optional[str] = None) -> DatabaseEngine:
    """Initialize the database (create tables)"""
    engine = get_engine(db_url)
    await engine.create_tables()
    return engine
