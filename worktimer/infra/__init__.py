"""Infrastructure layer - Database and persistence"""

from .db import DatabaseEngine, get_engine, init_db, TaskModel, ActiveTimerModel, TimeEntryModel
from .store import TimerStateStore, StoreTransaction

__all__ = [
    "DatabaseEngine", "get_engine", "init_db",
    "TaskModel", "ActiveTimerModel", "TimeEntryModel",
    "TimerStateStore", "StoreTransaction",
]
