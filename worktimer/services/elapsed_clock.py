"""
Elapsed Clock - work and break time derived from a status snapshot.

Architecture Decision: Recompute, never increment
The clock keeps only the snapshot baseline (started_at, total_paused_seconds,
is_paused, paused_at) and derives every reading from "now". Ticking faster,
slower or not at all between polls (sleep, reload, network gap) therefore
cannot make it drift.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from worktimer.domain.duration import format_duration, format_duration_human
from worktimer.domain.models import TimerStatus
from worktimer.utils import exact_seconds, floor_seconds


@dataclass(frozen=True)
class ElapsedClock:
    started_at: datetime
    total_paused_seconds: float = 0.0
    is_paused: bool = False
    paused_at: Optional[datetime] = None
    pause_reason: Optional[str] = None
    task_title: Optional[str] = None
    # server_time - local_time when the snapshot arrived
    offset: timedelta = timedelta(0)

    @classmethod
    def from_status(cls, status: TimerStatus,
                    received_at: Optional[datetime] = None) -> Optional["ElapsedClock"]:
        """
        Rebuild the clock from a snapshot; None when there is no active timer.

        Args:
            received_at: local clock reading when the snapshot arrived. When
                given, later readings are shifted by server_time - received_at
                so a skewed local clock does not skew the display.
        """
        if not status.has_active_timer or status.timer is None:
            return None
        timer = status.timer
        offset = status.server_time - received_at if received_at else timedelta(0)
        return cls(
            started_at=timer.started_at,
            total_paused_seconds=timer.total_paused_seconds,
            is_paused=timer.is_paused,
            paused_at=timer.paused_at,
            pause_reason=timer.pause_reason,
            task_title=timer.task_title,
            offset=offset,
        )

    def _server_now(self, now: datetime) -> datetime:
        return now + self.offset

    def work_seconds(self, now: datetime) -> int:
        """Active work time; frozen at the pause instant while paused"""
        reference = self.paused_at if self.is_paused and self.paused_at else self._server_now(now)
        return floor_seconds(exact_seconds(self.started_at, reference) - self.total_paused_seconds)

    def _open_pause(self, now: datetime) -> float:
        if not self.is_paused or self.paused_at is None:
            return 0.0
        return exact_seconds(self.paused_at, self._server_now(now))

    def break_seconds(self, now: datetime) -> int:
        """Length of the current break, 0 while running"""
        return floor_seconds(self._open_pause(now))

    def total_paused_seconds_at(self, now: datetime) -> int:
        """Closed pauses plus the one in progress"""
        return floor_seconds(self.total_paused_seconds + self._open_pause(now))

    def render(self, now: datetime) -> "ClockReading":
        work = self.work_seconds(now)
        pause = self.break_seconds(now)
        return ClockReading(
            work_seconds=work,
            break_seconds=pause,
            work_display=format_duration(work),
            break_display=format_duration(pause),
            work_human=format_duration_human(work),
            total_breaks_human=format_duration_human(self.total_paused_seconds_at(now)),
            is_paused=self.is_paused,
        )


@dataclass(frozen=True)
class ClockReading:
    """One tick's worth of display values"""
    work_seconds: int
    break_seconds: int
    work_display: str
    break_display: str
    work_human: str
    total_breaks_human: str
    is_paused: bool
