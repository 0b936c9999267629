"""
Event repository (persistence).

Supabase adapter for EventStore. Contains no business rules about ownership
or soft-archiving; it only maps rows and applies listing filters.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from supabase import Client  # type: ignore[import-not-found]

from domain.event import Event, EventStatus
from repositories.interfaces import EventPage, EventQuery, EventStore
from repositories.rows import (
    execute,
    execute_with_count,
    parse_optional_datetime,
    parse_utc_datetime,
    to_iso_utc,
)

# Supabase table name for events.
# Keep this aligned with your database schema.
_EVENTS_TABLE: str = "events"


def _row_to_event(row: Mapping[str, Any]) -> Event:
    """Convert a Supabase row into an Event (without batches)."""

    return Event(
        event_id=str(row["id"]),
        producer_id=str(row["user_id"]),
        title=str(row["title"]),
        starts_at=parse_utc_datetime(row["starts_at"]),
        ends_at=parse_utc_datetime(row["ends_at"]),
        location=str(row.get("location") or ""),
        address=str(row.get("address") or ""),
        status=EventStatus(row.get("status") or EventStatus.PUBLISHED.value),
        description=row.get("description") or "",
        url=row.get("url"),
        image_url=row.get("image_url"),
        created_at=parse_optional_datetime(row.get("created_at")),
        archived_at=parse_optional_datetime(row.get("archived_at")),
        archived_by=row.get("archived_by"),
    )


def _event_to_row(event: Event) -> dict[str, Any]:
    return {
        "title": event.title,
        "description": event.description,
        "starts_at": to_iso_utc(event.starts_at, name="starts_at"),
        "ends_at": to_iso_utc(event.ends_at, name="ends_at"),
        "location": event.location,
        "address": event.address,
        "url": event.url,
        "image_url": event.image_url,
        "status": event.status.value,
        "user_id": event.producer_id,
        "archived_at": to_iso_utc(event.archived_at, name="archived_at"),
        "archived_by": event.archived_by,
    }


class SupabaseEventRepository(EventStore):
    def __init__(self, client: Client) -> None:
        self._client = client

    def add(self, event: Event) -> Event:
        payload = _event_to_row(event)
        payload["id"] = event.event_id
        payload["created_at"] = to_iso_utc(event.created_at, name="created_at")
        rows = execute(self._client.table(_EVENTS_TABLE).insert(payload), "create event")
        return _row_to_event(rows[0]) if rows else event

    def get(self, event_id: str) -> Optional[Event]:
        rows = execute(
            self._client.table(_EVENTS_TABLE).select("*").eq("id", event_id).limit(1),
            "fetch event",
        )
        return _row_to_event(rows[0]) if rows else None

    def get_by_url(self, url: str) -> Optional[Event]:
        rows = execute(
            self._client.table(_EVENTS_TABLE).select("*").eq("url", url).limit(1),
            "fetch event by url",
        )
        return _row_to_event(rows[0]) if rows else None

    def update(self, event: Event) -> Event:
        rows = execute(
            self._client.table(_EVENTS_TABLE).update(_event_to_row(event)).eq("id", event.event_id),
            "update event",
        )
        return _row_to_event(rows[0]) if rows else event

    def delete(self, event_id: str) -> None:
        execute(self._client.table(_EVENTS_TABLE).delete().eq("id", event_id), "delete event")

    def list(self, query: EventQuery) -> EventPage:
        page = max(query.page, 1)
        limit = max(query.limit, 1)

        builder = self._client.table(_EVENTS_TABLE).select("*", count="exact")

        # Archived events stay in the table for audit only.
        builder = builder.neq("status", EventStatus.ARCHIVED.value)

        if query.producer_id:
            builder = builder.eq("user_id", query.producer_id)
        if query.status and query.status != EventStatus.ARCHIVED:
            builder = builder.eq("status", query.status.value)
        if query.search:
            term = query.search.replace(",", " ").strip()
            builder = builder.or_(
                f"title.ilike.%{term}%,description.ilike.%{term}%,location.ilike.%{term}%"
            )

        start = (page - 1) * limit
        builder = builder.order("created_at", desc=True).range(start, start + limit - 1)

        rows, total = execute_with_count(builder, "list events")
        return EventPage(
            events=[_row_to_event(row) for row in rows],
            total=total,
            page=page,
            limit=limit,
        )


__all__ = ["SupabaseEventRepository"]
