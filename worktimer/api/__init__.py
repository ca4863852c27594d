"""REST API for time tracking.

Exposes the timer commands, the status snapshot polled by the Timer Widget,
per-task summaries, the task selector and time entry listings.
"""

__all__ = ["create_app", "run_server", "ServiceContainer"]

from worktimer.api.server import ServiceContainer, create_app, run_server  # noqa: F401
