"""
Time helpers shared by the scheduling core.

All instants inside the core are naive UTC datetimes (datetime.utcnow style).
Inputs may arrive as datetimes, ISO-8601 strings (with or without "Z") or
epoch milliseconds from older stored boards.
"""
import math
from datetime import datetime, timezone
from typing import Any, Optional


def coerce_datetime(value: Any) -> Optional[datetime]:
    """Parse value into a naive UTC datetime, or None if it cannot be read."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60.0


def minutes_until_ceil(target: datetime, now: datetime) -> int:
    """Whole minutes from now until target, rounded up; never negative."""
    return max(0, math.ceil(minutes_between(now, target)))


def minutes_until_floor(target: datetime, now: datetime) -> int:
    """Whole minutes from now until target, rounded down (may be negative)."""
    return math.floor(minutes_between(now, target))
