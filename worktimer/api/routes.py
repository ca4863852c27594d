"""
HTTP routes for time tracking.

The caller's identity arrives in the X-User-Id header; authentication itself
happens in front of this service.
"""

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse

from worktimer.domain.duration import parse_duration
from worktimer.domain.models import (
    ApiModel, RecentTask, TaskTimeSummary, TimeEntry, TimerStatus, TimerView, TrackableTask,
)
from worktimer.services.elapsed_clock import ElapsedClock
from worktimer.services.report_service import TimeStats
from worktimer.services.task_selector import TaskSelector

timer_router = APIRouter(prefix="/api/time-tracker", tags=["time-tracker"])
tasks_router = APIRouter(prefix="/api/tasks", tags=["tasks"])
time_entries_router = APIRouter(prefix="/api/time-entries", tags=["time-entries"])


class StartRequest(ApiModel):
    task_id: str
    description: Optional[str] = None


class PauseRequest(ApiModel):
    reason: Optional[str] = None


class StopRequest(ApiModel):
    description: Optional[str] = None


def get_services(request: Request):
    return request.app.state.services


def current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


# ===============================
# TIMER CONTROL
# ===============================

@timer_router.get("/status", response_model=TimerStatus)
async def get_status(user_id: str = Depends(current_user), services=Depends(get_services)):
    return await services.timer.get_status(user_id)


@timer_router.post("/start", response_model=TimerStatus, status_code=201)
async def start_timer(body: StartRequest, user_id: str = Depends(current_user),
                      services=Depends(get_services)):
    return await services.timer.start(user_id, body.task_id, body.description)


@timer_router.post("/pause", response_model=TimerStatus)
async def pause_timer(body: PauseRequest, user_id: str = Depends(current_user),
                      services=Depends(get_services)):
    return await services.timer.pause(user_id, body.reason or "")


@timer_router.post("/resume", response_model=TimerStatus)
async def resume_timer(user_id: str = Depends(current_user), services=Depends(get_services)):
    return await services.timer.resume(user_id)


@timer_router.post("/stop", response_model=TimeEntry)
async def stop_timer(body: Optional[StopRequest] = None, user_id: str = Depends(current_user),
                     services=Depends(get_services)):
    return await services.timer.stop(user_id, body.description if body else None)


@timer_router.delete("", response_model=TimerView)
async def cancel_timer(user_id: str = Depends(current_user), services=Depends(get_services)):
    timer = await services.timer.cancel(user_id)
    return TimerStatus.from_timer(timer, timer.started_at).timer


@timer_router.get("/pause-reasons", response_model=List[str])
async def pause_reasons(services=Depends(get_services)):
    return services.preferences.pause_reason_presets


# ===============================
# TASK SUMMARIES & SELECTION
# ===============================

@tasks_router.get("/for-tracking", response_model=List[TrackableTask])
async def tasks_for_tracking(priority: Optional[str] = None,
                             recent_only: bool = False,
                             include_completed: bool = False,
                             user_id: str = Depends(current_user),
                             services=Depends(get_services)):
    return await services.selector.for_tracking(
        user_id, priority=priority, recent_only=recent_only, include_completed=include_completed
    )


@tasks_router.get("/for-tracking/grouped", response_model=Dict[str, List[TrackableTask]])
async def tasks_for_tracking_grouped(priority: Optional[str] = None,
                                     recent_only: bool = False,
                                     include_completed: bool = False,
                                     user_id: str = Depends(current_user),
                                     services=Depends(get_services)):
    """Same ranking, bucketed critical, high, medium, low"""
    ranked = await services.selector.for_tracking(
        user_id, priority=priority, recent_only=recent_only, include_completed=include_completed
    )
    return TaskSelector.group_by_urgency(ranked)


@tasks_router.get("/recent-tracking", response_model=List[RecentTask])
async def recent_tracking(limit: int = Query(default=10, ge=1, le=100),
                          user_id: str = Depends(current_user),
                          services=Depends(get_services)):
    return await services.aggregator.recent_tasks(user_id, limit=limit)


@tasks_router.get("/{task_id}/time-summary", response_model=TaskTimeSummary)
async def task_time_summary(task_id: str, scope: str = Query(default="all", pattern="^(all|user)$"),
                            include_live: bool = False,
                            user_id: str = Depends(current_user),
                            services=Depends(get_services)):
    """
    Committed totals of a task.

    include_live adds the caller's running session on this task, for display only.
    """
    summary = await services.aggregator.summarize(task_id, user_id=user_id if scope == "user" else None)
    if include_live:
        status = await services.timer.get_status(user_id)
        clock = ElapsedClock.from_status(status)
        if clock is not None and status.timer.task_id == task_id:
            summary = services.aggregator.with_live_seconds(summary, clock.work_seconds(status.server_time))
    return summary


# ===============================
# TIME ENTRIES
# ===============================

def _default_period(start_date: Optional[datetime], end_date: Optional[datetime],
                    now: datetime) -> tuple:
    """Current month up to now unless given"""
    start = start_date or now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return start, end_date or now


@time_entries_router.get("", response_model=List[TimeEntry])
async def list_time_entries(start_date: Optional[datetime] = None,
                            end_date: Optional[datetime] = None,
                            task_id: Optional[str] = None,
                            limit: int = Query(default=50, ge=1, le=500),
                            offset: int = Query(default=0, ge=0),
                            min_duration: Optional[str] = None,
                            user_id: str = Depends(current_user),
                            services=Depends(get_services)):
    """
    A user's time entries, newest first.

    min_duration hides short sessions; it takes the display forms, e.g. "15m",
    "1h 30m" or "05:00".
    """
    min_seconds = None
    if min_duration:
        try:
            min_seconds = parse_duration(min_duration)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    return await services.aggregator.entries_for(
        user_id, start_date=start_date, end_date=end_date,
        task_id=task_id, limit=limit, offset=offset, min_active_seconds=min_seconds,
    )


@time_entries_router.get("/stats", response_model=TimeStats)
async def time_stats(start_date: Optional[datetime] = None,
                     end_date: Optional[datetime] = None,
                     user_id: str = Depends(current_user),
                     services=Depends(get_services)):
    start, end = _default_period(start_date, end_date, services.timer.clock())
    return await services.reports.compute_stats(user_id, start, end)


@time_entries_router.get("/report", response_class=PlainTextResponse)
async def time_report(start_date: Optional[datetime] = None,
                      end_date: Optional[datetime] = None,
                      user_id: str = Depends(current_user),
                      services=Depends(get_services)):
    start, end = _default_period(start_date, end_date, services.timer.clock())
    return await services.reports.generate_report(user_id, start, end)
