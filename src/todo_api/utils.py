from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Union

TimestampInput = Union[datetime, str, int, float]

# Stored and emitted form, e.g. 2025-01-25T10:15:30.123456Z
_CANONICAL_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


# PUBLIC_INTERFACE
def normalize_bool(value: Any) -> bool:
    """
    Coerce a stored boolean into a real bool.

    SQLite hands back 0/1 integers; some drivers return "0"/"1" or
    "true"/"false" strings. Anything else is rejected rather than guessed.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        v = value.strip().lower()
        if v in {"1", "true"}:
            return True
        if v in {"0", "false"}:
            return False
    raise ValueError(f"Cannot interpret {value!r} as a boolean")


# PUBLIC_INTERFACE
def normalize_timestamp(value: TimestampInput) -> datetime:
    """
    Coerce a stored timestamp into an aware UTC datetime.

    Accepts:
    - datetime (naive values are taken to be UTC)
    - ISO-8601 strings, with 'Z', an explicit offset, or SQLite's
      'YYYY-MM-DD HH:MM:SS' space-separated form
    - epoch milliseconds as int/float
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        raise ValueError("Cannot interpret a boolean as a timestamp")
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str):
        s = value.strip()
        if s.endswith("Z") or s.endswith("z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError as e:
            raise ValueError(f"Invalid timestamp {value!r}; expected ISO-8601") from e
    else:
        raise ValueError(f"Invalid type for timestamp: {type(value).__name__}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# PUBLIC_INTERFACE
def format_timestamp(value: datetime) -> str:
    """Render a timestamp in the canonical UTC form used in storage and responses."""
    return normalize_timestamp(value).strftime(_CANONICAL_FORMAT)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_timestamp(previous: datetime) -> datetime:
    """
    Return the current time, or one microsecond past ``previous`` when the
    clock has not moved beyond it.
    """
    now = utcnow()
    floor = normalize_timestamp(previous) + timedelta(microseconds=1)
    return now if now >= floor else floor
