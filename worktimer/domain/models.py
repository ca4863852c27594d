"""
Domain Models using Pydantic for validation.

Architecture Decision: Why Pydantic?
Pydantic provides runtime data validation, ensuring data integrity when loading
from the database or from API payloads. It also gives us the camelCase JSON
shape the Timer Widget expects without hand-written serializers.
"""

from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for models that travel over the wire (camelCase on the outside)."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class TaskInfo(ApiModel):
    """
    A task as resolved by the external task collaborator.

    Only the fields time tracking cares about: existence, a title for display,
    the estimate for progress/overtime, and what the selector ranks on.
    """
    id: str
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    estimated_seconds: Optional[int] = Field(default=None, ge=0)
    priority: str = "medium"  # low | medium | high
    status: str = "todo"
    due_date: Optional[date] = None
    created_at: datetime = Field(default_factory=datetime.now)


class ActiveTimer(ApiModel):
    """
    The single in-progress tracking session of a user.

    Invariant: is_paused == (paused_at is not None).
    total_paused_seconds only counts closed pauses; the open one is
    derived from paused_at. It keeps sub-second precision so that many short
    pauses do not lose a fraction each; only Stop floors it.
    """
    user_id: str
    task_id: str
    started_at: datetime
    is_paused: bool = False
    paused_at: Optional[datetime] = None
    total_paused_seconds: float = Field(default=0.0, ge=0)
    pause_reason: Optional[str] = None
    pause_reasons: List[str] = Field(default_factory=list)
    description: Optional[str] = None

    # Optimistic concurrency token. Never part of the UI snapshot.
    version: int = 1


class TimeEntry(ApiModel):
    """
    Represents a single finished tracking session.

    Created exactly once, by Stop. Never updated afterwards.
    """
    id: Optional[int] = None
    user_id: str
    task_id: str
    started_at: datetime
    stopped_at: datetime
    active_seconds: int = Field(default=0, ge=0)
    total_paused_seconds: int = Field(default=0, ge=0)
    description: Optional[str] = None
    pause_reasons: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)


class TimerView(ApiModel):
    """The timer part of the status snapshot handed to the Timer Widget."""
    task_id: str
    task_title: Optional[str] = None
    started_at: datetime
    is_paused: bool
    paused_at: Optional[datetime] = None
    pause_reason: Optional[str] = None
    total_paused_seconds: float = 0.0
    description: Optional[str] = None


class TimerStatus(ApiModel):
    """
    UI-facing status snapshot.

    server_time is the instant the snapshot was taken on the server; clients
    use it to correct for their own clock offset.
    """
    has_active_timer: bool
    timer: Optional[TimerView] = None
    server_time: datetime

    @classmethod
    def from_timer(cls, timer: Optional[ActiveTimer], server_time: datetime,
                   task_title: Optional[str] = None) -> "TimerStatus":
        if timer is None:
            return cls(has_active_timer=False, timer=None, server_time=server_time)
        view = TimerView(
            task_id=timer.task_id,
            task_title=task_title,
            started_at=timer.started_at,
            is_paused=timer.is_paused,
            paused_at=timer.paused_at,
            pause_reason=timer.pause_reason,
            total_paused_seconds=timer.total_paused_seconds,
            description=timer.description,
        )
        return cls(has_active_timer=True, timer=view, server_time=server_time)

    def same_state_as(self, other: Optional["TimerStatus"]) -> bool:
        """
        Whether two snapshots show the same timer in the same run/pause state.

        server_time is ignored. A command that was not applied leaves the
        state unchanged, so the widget uses this to decide if it may re-send.
        """
        if other is None or self.has_active_timer != other.has_active_timer:
            return False
        if not self.has_active_timer:
            return True
        mine, theirs = self.timer, other.timer
        return (
            mine.task_id == theirs.task_id
            and mine.started_at == theirs.started_at
            and mine.is_paused == theirs.is_paused
            and mine.paused_at == theirs.paused_at
            and mine.total_paused_seconds == theirs.total_paused_seconds
        )



class TaskTimeSummary(ApiModel):
    """
    Derived per-task totals. Recomputed on demand, never persisted.

    progress_percentage is the raw value and may exceed 100;
    display_progress is the capped one for progress bars.
    """
    task_id: str
    total_seconds: int = 0
    session_count: int = 0
    last_tracked_at: Optional[datetime] = None
    estimated_seconds: Optional[int] = None
    progress_percentage: float = 0.0
    is_overtime: bool = False
    is_recently_tracked: bool = False

    @property
    def display_progress(self) -> float:
        return min(100.0, self.progress_percentage)


class RecentTask(ApiModel):
    """A recently tracked task for quick restarts"""
    task: TaskInfo
    last_tracked_at: datetime
    session_count: int
    total_seconds: int
    average_session_seconds: int


class TrackableTask(ApiModel):
    """A task as offered by the Task Selector."""
    task: TaskInfo
    summary: TaskTimeSummary
    urgency: str = "low"  # low | medium | high | critical
    is_recently_tracked: bool = False


class TrackerPreferences(BaseModel):
    """
    User-tunable time tracking behaviour.

    This allows operators to customize behavior without touching code.
    """
    model_config = ConfigDict(from_attributes=True)

    # Pause reasons offered by the widget; any other non-empty text is accepted too
    pause_reason_presets: List[str] = Field(
        default_factory=lambda: ["Short Break", "Lunch Break", "Meeting", "Phone Call", "Interruption"],
        description="Preset pause reasons shown in the pause dialog"
    )

    # Aggregation windows
    recent_window_hours: int = Field(default=24, ge=1, description="last_tracked_at within this counts as recent")
    selector_recent_days: int = Field(default=30, ge=1, description="Recency window used for selector ranking")
    recent_tracking_days: int = Field(default=14, ge=1, description="Window for the quick-start recent list")

    # Client behaviour
    poll_interval_seconds: int = Field(default=30, ge=1, description="How often the widget re-reads the status")
    request_timeout_seconds: float = Field(default=10.0, gt=0, description="Timeout for timer commands")
