import math
from datetime import datetime, timezone
from pathlib import Path


def utc_now() -> datetime:
    """Server-trusted clock: naive UTC, the form instants are stored in"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def exact_seconds(start: datetime, end: datetime) -> float:
    """Seconds from start to end with microsecond precision, never negative"""
    return max(0.0, (end - start).total_seconds())


def floor_seconds(seconds: float) -> int:
    """
    Floor to whole seconds, never negative.

    Rounded to microseconds first so float sums like 10 * 30.9 floor to 309.
    """
    return max(0, math.floor(round(seconds, 6)))


def get_resource_path(relative_path: str) -> Path:
    """
    Get absolute path to a bundled resource.

    Args:
        relative_path: Relative path from project root (e.g., "worktimer/resources/templates")

    Returns:
        Absolute Path object
    """
    # This file is in worktimer/utils.py, so project root is up two levels
    return Path(__file__).parent.parent.absolute() / relative_path
