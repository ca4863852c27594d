"""
FastAPI application factory.

The app only wires HTTP to the services; every rule lives in the services
layer. Typed TimerErrors are turned into {"error", "code"} JSON bodies so the
Timer Widget can show them inline and the client can re-raise them.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from worktimer.domain.errors import TimerError
from worktimer.domain.models import TrackerPreferences
from worktimer.infra.config import Settings, get_settings
from worktimer.infra.db import DatabaseEngine, init_db
from worktimer.infra.repository import TaskRepository
from worktimer.infra.store import TimerStateStore
from worktimer.services import ReportService, TaskSelector, TaskTimeAggregator, TimerService
from worktimer.api.routes import tasks_router, time_entries_router, timer_router
from worktimer.utils import utc_now

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    "InvalidPauseReason": 400,
    "TimerAlreadyPaused": 400,
    "TimerNotPaused": 400,
    "NoActiveTimer": 404,
    "TaskNotFound": 404,
    "TimerAlreadyActive": 409,
    "ConcurrentModification": 409,
    "PersistenceFailure": 503,
}


@dataclass
class ServiceContainer:
    """Everything the routes need, built once per app"""
    timer: TimerService
    aggregator: TaskTimeAggregator
    selector: TaskSelector
    reports: ReportService
    preferences: TrackerPreferences

    @classmethod
    def build(cls, engine: DatabaseEngine, preferences: Optional[TrackerPreferences] = None,
              tasks=None, clock=utc_now) -> "ServiceContainer":
        preferences = preferences or TrackerPreferences()
        store = TimerStateStore(engine)
        tasks = tasks or TaskRepository()
        aggregator = TaskTimeAggregator(store=store, tasks=tasks, preferences=preferences, clock=clock)
        return cls(
            timer=TimerService(store=store, tasks=tasks, clock=clock),
            aggregator=aggregator,
            selector=TaskSelector(aggregator=aggregator, tasks=tasks, preferences=preferences, clock=clock),
            reports=ReportService(aggregator=aggregator, tasks=tasks),
            preferences=preferences,
        )


def create_app(services: Optional[ServiceContainer] = None,
               settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the API.

    Args:
        services: pre-built services (tests); when omitted the database from
            settings is initialised on startup
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        if getattr(app.state, "services", None) is None:
            cfg = settings or get_settings()
            engine = await init_db(cfg.get_db_url())
            app.state.services = ServiceContainer.build(engine, cfg.preferences)
            logger.info(f"Time tracking API ready on {engine.url}")
        yield
        if engine is not None:
            await engine.dispose()

    app = FastAPI(title="WorkTimer", version="1.0", lifespan=lifespan)
    app.state.services = services

    @app.exception_handler(TimerError)
    async def timer_error_handler(request: Request, exc: TimerError):
        status = STATUS_BY_CODE.get(exc.code, 400)
        if status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=status, content={"error": exc.message, "code": exc.code})

    app.include_router(timer_router)
    app.include_router(tasks_router)
    app.include_router(time_entries_router)
    return app


def run_server(settings: Optional[Settings] = None) -> None:
    """Serve the API with uvicorn"""
    import uvicorn

    cfg = settings or get_settings()
    uvicorn.run(create_app(settings=cfg), host=cfg.api_host, port=cfg.api_port,
                log_level=cfg.log_level.lower())
