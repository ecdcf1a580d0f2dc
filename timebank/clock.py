"""Wall-clock helpers.

Everything inside TimeBank works with timezone-aware UTC datetimes.
Components take a ``clock`` callable instead of calling
``datetime.now`` directly so tests can drive time by hand.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def naive_utcnow() -> datetime:
    """UTC now without tzinfo, for SQLite DateTime columns."""
    return utcnow().replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) or convert."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into aware UTC."""
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str):
        raise ValueError(f"not a timestamp: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))
