"""
Domain clock helpers (pure).

Event dates, sale windows, order and ticket timestamps are all stored in UTC.
Services take a `clock` callable defaulting to `utc_now` so tests can pin time.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def require_utc_timestamp(name: str, value: datetime) -> None:
    """Reject naive datetimes and any offset other than zero."""

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime in any zone (e.g. -03:00 form input) to UTC."""

    return value.astimezone(timezone.utc) if value is not None else None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
