"""
Typed errors of the time tracking core.

Every error carries a stable ``code`` (its class name) so the API can hand it
to the Timer Widget and the client can turn it back into the same exception.
"""

from typing import Dict, Optional, Type


class TimerError(Exception):
    """Base class for all time tracking errors"""
    default_message = "Timer error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def code(self) -> str:
        return type(self).__name__


class TimerAlreadyActive(TimerError):
    default_message = "You already have an active timer. Please stop it first."


class NoActiveTimer(TimerError):
    default_message = "No active timer found"


class TimerAlreadyPaused(TimerError):
    default_message = "Timer is already paused"


class TimerNotPaused(TimerError):
    default_message = "Timer is not paused"


class InvalidPauseReason(TimerError):
    default_message = "A pause reason is required"


class TaskNotFound(TimerError):
    default_message = "Task not found"


class ConcurrentModification(TimerError):
    default_message = "Timer state changed, please retry"


class PersistenceFailure(TimerError):
    default_message = "Failed to save timer state"


class CommandOutcomeUnknown(TimerError):
    """
    Raised by the client when a command timed out.

    The command may or may not have been applied; ``status`` is the
    authoritative snapshot fetched right after the timeout (None if that
    fetch failed as well).
    """
    default_message = "Request timed out, timer state was re-fetched"

    def __init__(self, message: Optional[str] = None, status=None):
        super().__init__(message)
        self.status = status


ERRORS_BY_CODE: Dict[str, Type[TimerError]] = {
    cls.__name__: cls
    for cls in (
        TimerAlreadyActive,
        NoActiveTimer,
        TimerAlreadyPaused,
        TimerNotPaused,
        InvalidPauseReason,
        TaskNotFound,
        ConcurrentModification,
        PersistenceFailure,
    )
}
