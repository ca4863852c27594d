"""Services layer - Business logic"""

from .timer_service import TimerService
from .elapsed_clock import ElapsedClock, ClockReading
from .aggregator import TaskTimeAggregator
from .task_selector import TaskSelector
from .report_service import ReportService

__all__ = [
    "TimerService", "ElapsedClock", "ClockReading",
    "TaskTimeAggregator", "TaskSelector", "ReportService",
]
