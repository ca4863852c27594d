"""
Duration formatting and parsing.

Pure functions, no state. Display granularity is whole seconds.
"""

import re

_CLOCK_RE = re.compile(r"^(?:(\d+):)?([0-5]?\d):([0-5]\d)$")
_HUMAN_RE = re.compile(r"(\d+)\s*([hms])", re.IGNORECASE)
_UNIT_SECONDS = {"h": 3600, "m": 60, "s": 1}


def format_duration(seconds: int) -> str:
    """
    Format seconds for the monospace clock display.

    MM:SS below one hour, HH:MM:SS from one hour on.
    """
    seconds = max(0, int(seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def format_duration_human(seconds: int) -> str:
    """Approximate form used in summaries, e.g. '2h 15m' or '45m'."""
    seconds = max(0, int(seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes = remainder // 60
    if hours:
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"
    return f"{minutes}m"


def parse_duration(text: str) -> int:
    """
    Parse a manually entered duration back into seconds.

    Accepts the clock forms produced by format_duration ('01:01:01', '05:30')
    and human forms like '1h 30m', '45m' or '90s'.

    Raises:
        ValueError: if the text is not a recognised duration
    """
    value = (text or "").strip()
    if not value:
        raise ValueError("Empty duration")

    match = _CLOCK_RE.match(value)
    if match:
        hours, minutes, seconds = match.groups()
        return int(hours or 0) * 3600 + int(minutes) * 60 + int(seconds)

    parts = _HUMAN_RE.findall(value)
    # Everything in the string must be consumed by h/m/s tokens
    if not parts or _HUMAN_RE.sub("", value).strip():
        raise ValueError(f"Unrecognised duration: {text!r}")
    return sum(int(amount) * _UNIT_SECONDS[unit.lower()] for amount, unit in parts)
