"""
Shared persistence helpers for the Supabase adapters.

Timestamp (de)serialization and response/error handling live here so every
repository converts PostgREST failures into PersistenceError the same way.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Mapping, Optional

from postgrest.exceptions import APIError  # type: ignore[import-not-found]

from domain.errors import PersistenceError
from domain.money import to_money
from domain.time import require_utc_timestamp

logger = logging.getLogger(__name__)


def to_iso_utc(dt: Optional[datetime], *, name: str) -> Optional[str]:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    if dt is None:
        return None
    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_optional_datetime(value: Any) -> Optional[datetime]:
    return parse_utc_datetime(value) if value else None


def money_to_db(amount: Decimal) -> str:
    # numeric columns round-trip as strings to avoid float drift
    return str(to_money(amount))


def execute(query: Any, operation: str) -> List[Mapping[str, Any]]:
    """
    Execute a PostgREST query and return its rows.

    Raises PersistenceError (with the operation name for context) on any
    client-side APIError or error attached to the response.
    """

    try:
        response = query.execute()
    except APIError as exc:
        logger.error("Supabase error during %s: %s", operation, exc)
        raise PersistenceError(operation, getattr(exc, "message", None) or str(exc)) from exc

    error = getattr(response, "error", None)
    if error:
        logger.error("Supabase error during %s: %s", operation, error)
        raise PersistenceError(operation, error)

    return getattr(response, "data", None) or []


def execute_with_count(query: Any, operation: str) -> tuple[List[Mapping[str, Any]], int]:
    """Like execute() for `select(..., count="exact")` queries."""

    try:
        response = query.execute()
    except APIError as exc:
        logger.error("Supabase error during %s: %s", operation, exc)
        raise PersistenceError(operation, getattr(exc, "message", None) or str(exc)) from exc

    error = getattr(response, "error", None)
    if error:
        logger.error("Supabase error during %s: %s", operation, error)
        raise PersistenceError(operation, error)

    rows = getattr(response, "data", None) or []
    count = getattr(response, "count", None)
    return rows, int(count) if count is not None else len(rows)
