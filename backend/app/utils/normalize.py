"""
Legacy board-shape normalization.

Stored boards have been written by several generations of clients:

- flat court records: {"players": [...], "startTime": ..., "endTime": ...}
- {"current": {...} | null, "history": [...]}
- {"session": {...} | null, "history": [...]}
- null entries in the courts array
- camelCase or snake_case keys, missing arrays

Everything here works on plain dicts and never raises on bad input; callers
get safe defaults (None session, empty lists) instead.
"""
from typing import Any, Dict, List, Optional, Tuple

_FLAT_SESSION_KEYS = ("players", "startTime", "start_time", "endTime", "end_time")


def pick(record: Any, *keys: str, default: Any = None) -> Any:
    """Return the first non-None value among keys, or default."""
    if not isinstance(record, dict):
        return default
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return default


def as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except ValueError:
            return default
    return default


def as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def split_court_record(raw: Any) -> Tuple[Optional[Dict[str, Any]], List[Dict[str, Any]], Optional[Dict[str, Any]]]:
    """
    Split a stored court record into (session, history, embedded_block).

    Any part that is missing or malformed comes back as None / [].
    """
    if not isinstance(raw, dict):
        return None, [], None

    history = [h for h in as_list(raw.get("history")) if isinstance(h, dict)]
    block = raw.get("block") if isinstance(raw.get("block"), dict) else None

    if "current" in raw or "session" in raw:
        session = pick(raw, "current", "session")
        return (session if isinstance(session, dict) else None), history, block

    if any(key in raw for key in _FLAT_SESSION_KEYS):
        return raw, history, block

    return None, history, block
