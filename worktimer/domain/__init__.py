"""Domain layer - Pure business entities and logic"""

from .models import (
    ActiveTimer, TimeEntry, TaskInfo, TaskTimeSummary, TimerStatus, TimerView,
    TrackableTask, RecentTask, TrackerPreferences,
)
from .duration import format_duration, format_duration_human, parse_duration

__all__ = [
    "ActiveTimer", "TimeEntry", "TaskInfo", "TaskTimeSummary", "TimerStatus", "TimerView",
    "TrackableTask", "RecentTask", "TrackerPreferences",
    "format_duration", "format_duration_human", "parse_duration",
]
