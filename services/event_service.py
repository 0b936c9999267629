"""
Event catalog service (producer side).

Handles:
- Event creation with batch definitions and URL slug generation
- Event edits, including batch reconciliation by title
- Guarded deletion: events with sales history are archived, never destroyed
- Per-event sales statistics and the participant list
"""

from __future__ import annotations

import logging
import re
import unicodedata
import uuid
from dataclasses import dataclass, fields, replace
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from domain.errors import (
    EventNotFoundError,
    ForbiddenError,
    InvalidStateError,
    PersistenceError,
    ValidationError,
)
from domain.event import Batch, Event, EventStatus
from domain.money import ZERO, to_money
from domain.order import OrderStatus
from domain.ticket import TicketStatus
from domain.time import utc_now
from repositories.interfaces import (
    BatchStore,
    EventPage,
    EventQuery,
    EventStore,
    OrderStore,
    TicketStore,
)

logger = logging.getLogger(__name__)

_URL_SUFFIXES: Tuple[str, ...] = ("-novo", "-evento", "-show", "-festival", "-live", "-especial")
_URL_VARIATIONS: Tuple[str, ...] = ("-event", "-party", "-concert")
MAX_URL_SUGGESTIONS: int = 5


@dataclass(frozen=True, slots=True)
class BatchDefinition:
    """A ticket tier as entered by the producer."""

    title: str
    price: Decimal
    quantity: int
    description: Optional[str] = None
    is_active: bool = True
    sale_starts_at: Optional[datetime] = None
    sale_ends_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class EventDraft:
    title: str
    starts_at: datetime
    ends_at: datetime
    location: str
    address: str
    batches: Tuple[BatchDefinition, ...] = ()
    description: str = ""
    url: Optional[str] = None
    image_url: Optional[str] = None
    status: EventStatus = EventStatus.DRAFT


@dataclass(frozen=True, slots=True)
class EventChanges:
    """Partial update; None leaves the field unchanged."""

    title: Optional[str] = None
    description: Optional[str] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    location: Optional[str] = None
    address: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    status: Optional[EventStatus] = None


@dataclass(frozen=True, slots=True)
class DeleteEventResult:
    action: str  # "deleted" or "archived"
    message: str
    has_sales: bool


@dataclass(frozen=True, slots=True)
class EventStats:
    participants: int
    revenue: Decimal
    tickets_sold: int


@dataclass(frozen=True, slots=True)
class Participant:
    """One sold or used ticket of an event, as the producer sees it."""

    ticket_id: str
    ticket_number: str
    name: str
    email: str
    status: TicketStatus
    batch_title: str
    order_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    order_total: Optional[Decimal] = None


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    """Batch changes to apply for an event edit."""

    updated: Tuple[Batch, ...] = ()
    created: Tuple[Batch, ...] = ()
    deleted: Tuple[str, ...] = ()
    deactivated: Tuple[Batch, ...] = ()


def slugify(title: str) -> str:
    """'Festival de Verão 2025' -> 'festival-de-verao-2025'"""

    normalized = unicodedata.normalize("NFD", title.lower())
    ascii_only = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    cleaned = re.sub(r"[^a-z0-9\s-]", "", ascii_only)
    return re.sub(r"-+", "-", re.sub(r"\s+", "-", cleaned.strip())).strip("-")


def validate_batch_definitions(definitions: Sequence[BatchDefinition]) -> List[str]:
    errors: List[str] = []
    seen: Set[str] = set()
    for index, definition in enumerate(definitions, start=1):
        title = definition.title.strip()
        if not title:
            errors.append(f"Batch {index}: title is required")
        elif title.lower() in seen:
            errors.append(f"Batch {index}: duplicate title '{title}'")
        seen.add(title.lower())
        if definition.price < 0:
            errors.append(f"Batch {index}: price cannot be negative")
        if definition.quantity < 0:
            errors.append(f"Batch {index}: quantity cannot be negative")
        if (
            definition.sale_starts_at is not None
            and definition.sale_ends_at is not None
            and definition.sale_ends_at <= definition.sale_starts_at
        ):
            errors.append(f"Batch {index}: sale end must be after sale start")
    return errors


def _batch_from_definition(
    definition: BatchDefinition, event_id: str, created_at: datetime, batch_id: Optional[str] = None
) -> Batch:
    return Batch(
        batch_id=batch_id or str(uuid.uuid4()),
        event_id=event_id,
        title=definition.title.strip(),
        price=to_money(definition.price),
        quantity=definition.quantity,
        is_active=definition.is_active,
        description=definition.description,
        sale_starts_at=definition.sale_starts_at,
        sale_ends_at=definition.sale_ends_at,
        created_at=created_at,
    )


def reconcile_batches(
    event_id: str,
    existing: Sequence[Batch],
    incoming: Sequence[BatchDefinition],
    referenced_ids: Set[str],
    now: datetime,
) -> ReconciliationResult:
    """
    Match incoming definitions to existing batches by title.

    Matched batches are updated in place (ids kept, so order items still point
    at them), unmatched definitions become new batches, and existing batches
    whose title disappeared are deleted, or deactivated when order items
    reference them. A renamed tier is therefore a delete plus a create.
    """

    by_title: Dict[str, Batch] = {batch.title.strip().lower(): batch for batch in existing}
    updated: List[Batch] = []
    created: List[Batch] = []
    matched: Set[str] = set()

    for definition in incoming:
        current = by_title.get(definition.title.strip().lower())
        if current is None:
            created.append(_batch_from_definition(definition, event_id, now))
            continue
        matched.add(current.batch_id)
        updated.append(
            _batch_from_definition(definition, event_id, current.created_at or now, batch_id=current.batch_id)
        )

    deleted: List[str] = []
    deactivated: List[Batch] = []
    for batch in existing:
        if batch.batch_id in matched:
            continue
        if batch.batch_id in referenced_ids:
            deactivated.append(replace(batch, is_active=False))
        else:
            deleted.append(batch.batch_id)

    return ReconciliationResult(
        updated=tuple(updated),
        created=tuple(created),
        deleted=tuple(deleted),
        deactivated=tuple(deactivated),
    )


class EventService:
    def __init__(
        self,
        events: EventStore,
        batches: BatchStore,
        orders: OrderStore,
        tickets: TicketStore,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._events = events
        self._batches = batches
        self._orders = orders
        self._tickets = tickets
        self._clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _with_batches(self, event: Event) -> Event:
        return replace(event, batches=tuple(self._batches.list_by_event(event.event_id)))

    def find_event(self, event_id: str) -> Optional[Event]:
        event = self._events.get(event_id)
        return self._with_batches(event) if event is not None else None

    def get_event(self, event_id: str) -> Event:
        event = self.find_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def get_event_by_url(self, url: str) -> Event:
        event = self._events.get_by_url(url)
        if event is None or event.status == EventStatus.ARCHIVED:
            raise EventNotFoundError(url)
        return self._with_batches(event)

    def list_events(self, query: EventQuery) -> EventPage:
        page = self._events.list(query)
        return replace(page, events=[self._with_batches(event) for event in page.events])

    def _get_owned(self, event_id: str, producer_id: str, action: str) -> Event:
        event = self.get_event(event_id)
        if not event.is_owned_by(producer_id):
            raise ForbiddenError(f"Only the event's producer can {action} it")
        return event

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    def is_url_available(self, url: str, exclude_event_id: Optional[str] = None) -> bool:
        existing = self._events.get_by_url(url)
        return existing is None or existing.event_id == exclude_event_id

    def suggest_available_urls(self, base_url: str) -> List[str]:
        base = re.sub(r"[^a-z0-9-]", "", slugify(base_url)) or "evento"
        year = self._clock().year
        candidates = [f"{base}-{year}"]
        candidates += [f"{base}{suffix}" for suffix in _URL_SUFFIXES]
        candidates += [f"{base}-{n}" for n in range(1, 4)]
        candidates += [f"{base}{variation}" for variation in _URL_VARIATIONS]

        suggestions: List[str] = []
        for candidate in candidates:
            if self.is_url_available(candidate):
                suggestions.append(candidate)
            if len(suggestions) == MAX_URL_SUGGESTIONS:
                break
        return suggestions

    def _require_url_available(self, url: str, exclude_event_id: Optional[str] = None) -> None:
        if not self.is_url_available(url, exclude_event_id):
            suggestions = self.suggest_available_urls(url)
            message = f'URL "{url}" is already in use. Choose another URL.'
            if suggestions:
                message += " Suggestions: " + ", ".join(suggestions)
            raise ValidationError(message)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_event(self, producer_id: str, draft: EventDraft) -> Event:
        errors: List[str] = []
        if not draft.title.strip():
            errors.append("Title is required")
        if not draft.location.strip():
            errors.append("Location is required")
        if not draft.address.strip():
            errors.append("Address is required")
        if draft.ends_at <= draft.starts_at:
            errors.append("End date must be after start date")
        if draft.status == EventStatus.ARCHIVED:
            errors.append("New events cannot be archived")
        errors += validate_batch_definitions(draft.batches)
        url = (draft.url or "").strip() or slugify(draft.title)
        if not url:
            errors.append("URL is required")
        if errors:
            raise ValidationError(errors)

        self._require_url_available(url)

        now = self._clock()
        event = Event(
            event_id=str(uuid.uuid4()),
            producer_id=producer_id,
            title=draft.title.strip(),
            starts_at=draft.starts_at,
            ends_at=draft.ends_at,
            location=draft.location.strip(),
            address=draft.address.strip(),
            status=draft.status,
            description=draft.description,
            url=url,
            image_url=draft.image_url,
            created_at=now,
        )
        self._events.add(event)

        batches = [_batch_from_definition(definition, event.event_id, now) for definition in draft.batches]
        try:
            for batch in batches:
                self._batches.add(batch)
        except PersistenceError:
            logger.error("Batch insert failed for new event %s; removing it", event.event_id)
            self._events.delete(event.event_id)
            raise

        logger.info("Created event %s (%s) with %d batches", event.event_id, url, len(batches))
        return replace(event, batches=tuple(batches))

    def update_event(
        self,
        event_id: str,
        producer_id: str,
        changes: EventChanges,
        batches: Optional[Sequence[BatchDefinition]] = None,
    ) -> Event:
        """
        Apply a producer's edit. When `batches` is given, ticket tiers are
        reconciled by title against the current ones.
        """

        event = self._get_owned(event_id, producer_id, "edit")
        if event.status == EventStatus.ARCHIVED:
            raise InvalidStateError("Archived events must be reactivated before editing")
        if changes.status == EventStatus.ARCHIVED:
            raise ValidationError("Use delete to archive an event")

        values = {
            f.name: getattr(changes, f.name) for f in fields(changes) if getattr(changes, f.name) is not None
        }
        if "url" in values:
            values["url"] = values["url"].strip() or slugify(values.get("title", event.title))
            self._require_url_available(values["url"], exclude_event_id=event_id)
        for name in ("title", "location", "address"):
            if name in values and not values[name].strip():
                raise ValidationError(f"{name.capitalize()} is required")
        if batches is not None:
            errors = validate_batch_definitions(batches)
            if errors:
                raise ValidationError(errors)

        try:
            updated = replace(event, batches=(), **values)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        self._events.update(updated)

        if batches is not None:
            self._apply_reconciliation(event, batches)

        logger.info("Updated event %s", event_id)
        return self.get_event(event_id)

    def _apply_reconciliation(self, event: Event, definitions: Sequence[BatchDefinition]) -> None:
        existing = list(event.batches)
        referenced = self._orders.batch_ids_with_orders([b.batch_id for b in existing]) if existing else set()
        result = reconcile_batches(event.event_id, existing, definitions, referenced, self._clock())

        for batch in result.updated + result.deactivated:
            self._batches.update(batch)
        for batch in result.created:
            self._batches.add(batch)
        for batch_id in result.deleted:
            self._batches.delete(batch_id)

        logger.info(
            "Reconciled batches for event %s: %d updated, %d created, %d deleted, %d deactivated",
            event.event_id, len(result.updated), len(result.created), len(result.deleted), len(result.deactivated),
        )

    def has_paid_sales(self, event_id: str) -> bool:
        batch_ids = [batch.batch_id for batch in self._batches.list_by_event(event_id)]
        return bool(batch_ids) and self._orders.has_paid_orders_for_batches(batch_ids)

    def _archive(self, event: Event, producer_id: str) -> None:
        self._events.update(
            replace(
                event,
                batches=(),
                status=EventStatus.ARCHIVED,
                archived_at=self._clock(),
                archived_by=producer_id,
            )
        )

    def _cancel_pending_orders(self, batch_ids: Sequence[str]) -> int:
        cancelled = 0
        for order in self._orders.list_pending_for_batches(batch_ids):
            if self._orders.transition(order.cancel(), OrderStatus.PENDING):
                cancelled += 1
        return cancelled

    def delete_event(self, event_id: str, producer_id: str) -> DeleteEventResult:
        """
        Delete an event, or archive it when it has paid orders.

        Paid history is never destroyed. Pending orders for a deleted event
        are cancelled first so they cannot reach checkout.
        """

        event = self._get_owned(event_id, producer_id, "delete")
        if event.status == EventStatus.ARCHIVED:
            return DeleteEventResult(
                action="archived", message="Event is already archived", has_sales=self.has_paid_sales(event_id)
            )

        batch_ids = [batch.batch_id for batch in event.batches]
        if batch_ids and self._orders.has_paid_orders_for_batches(batch_ids):
            self._archive(event, producer_id)
            logger.info("Archived event %s (has paid sales)", event_id)
            return DeleteEventResult(action="archived", message="Event archived (it has recorded sales)", has_sales=True)

        if batch_ids:
            cancelled = self._cancel_pending_orders(batch_ids)
            if cancelled:
                logger.info("Cancelled %d pending orders for deleted event %s", cancelled, event_id)

        for batch_id in batch_ids:
            self._batches.delete(batch_id)
        self._events.delete(event_id)
        logger.info("Deleted event %s", event_id)
        return DeleteEventResult(action="deleted", message="Event deleted", has_sales=False)

    def reactivate_event(self, event_id: str, producer_id: str) -> Event:
        event = self._get_owned(event_id, producer_id, "reactivate")
        if event.status != EventStatus.ARCHIVED:
            raise InvalidStateError(f"Only archived events can be reactivated (event is {event.status.value})")
        self._events.update(
            replace(event, batches=(), status=EventStatus.PUBLISHED, archived_at=None, archived_by=None)
        )
        logger.info("Reactivated event %s", event_id)
        return self.get_event(event_id)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_event_stats(self, event_id: str) -> EventStats:
        """
        Tickets sold, participants (one per ticket) and revenue (sum of paid
        order subtotals, service fees excluded). Store failures give zeros.
        """

        try:
            batch_ids = [batch.batch_id for batch in self._batches.list_by_event(event_id)]
            if not batch_ids:
                return EventStats(participants=0, revenue=ZERO, tickets_sold=0)
            tickets = self._tickets.list_sold_by_batches(batch_ids)
            order_ids = {ticket.order_id for ticket in tickets if ticket.order_id}
            paid = self._orders.list_paid_by_ids(order_ids) if order_ids else []
        except PersistenceError as exc:
            logger.warning("Could not compute stats for event %s: %s", event_id, exc)
            return EventStats(participants=0, revenue=ZERO, tickets_sold=0)

        revenue = to_money(sum((order.subtotal for order in paid), ZERO))
        return EventStats(participants=len(tickets), revenue=revenue, tickets_sold=len(tickets))

    def list_participants(
        self, event_id: str, producer_id: str, search: Optional[str] = None
    ) -> List[Participant]:
        """
        Ticket holders of an event, newest ticket first. Producer only.

        `search` matches holder name, email or ticket number, case-insensitive.
        """

        event = self.get_event(event_id)
        if not event.is_owned_by(producer_id):
            raise ForbiddenError("Only the event's producer can see its participants")
        titles = {batch.batch_id: batch.title for batch in event.batches}
        if not titles:
            return []

        tickets = self._tickets.list_sold_by_batches(list(titles))
        order_ids = {ticket.order_id for ticket in tickets if ticket.order_id}
        orders = {order.order_id: order for order in self._orders.list_paid_by_ids(order_ids)} if order_ids else {}

        participants: List[Participant] = []
        for ticket in sorted(tickets, key=lambda t: (t.created_at is not None, t.created_at), reverse=True):
            order = orders.get(ticket.order_id) if ticket.order_id else None
            participants.append(
                Participant(
                    ticket_id=ticket.ticket_id,
                    ticket_number=ticket.ticket_number,
                    name=ticket.holder_name,
                    email=ticket.holder_email,
                    status=ticket.status,
                    batch_title=titles.get(ticket.batch_id, ""),
                    order_id=ticket.order_id,
                    paid_at=order.paid_at if order else None,
                    order_total=order.total if order else None,
                )
            )

        if search and search.strip():
            term = search.strip().lower()
            participants = [
                p for p in participants
                if term in p.name.lower() or term in p.email.lower() or term in p.ticket_number.lower()
            ]
        return participants


__all__ = [
    "BatchDefinition",
    "DeleteEventResult",
    "EventChanges",
    "EventDraft",
    "EventService",
    "EventStats",
    "Participant",
    "ReconciliationResult",
    "reconcile_batches",
    "slugify",
    "validate_batch_definitions",
]
