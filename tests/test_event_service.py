"""
Tests for `services/event_service.py`.

Covers contract rules:
- Event creation validates input, derives the URL slug and refuses URLs in use
  (with suggestions).
- Only the producer may edit, delete, reactivate an event.
- Deletion destroys events without paid orders (cancelling pending ones);
  events with sales are archived, hidden from listings with the row kept.
- Batch edits are reconciled by title; referenced batches are deactivated,
  never deleted.
- Stats count sold tickets and paid subtotals, and degrade to zeros.
- Only the producer sees the participant list of sold tickets.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import BUYER, CONTACT, NOW, PRODUCER
from domain.errors import (
    EventNotFoundError,
    ForbiddenError,
    InvalidStateError,
    PersistenceError,
    ValidationError,
)
from domain.event import Batch, EventStatus
from domain.order import OrderStatus
from domain.ticket import TicketStatus
from repositories.interfaces import EventQuery
from services.event_service import (
    BatchDefinition,
    EventChanges,
    EventDraft,
    EventService,
    reconcile_batches,
    slugify,
)


def _draft(**overrides) -> EventDraft:
    values = dict(
        title="Festival de Verão 2026",
        starts_at=NOW + timedelta(days=30),
        ends_at=NOW + timedelta(days=30, hours=6),
        location="Arena Central",
        address="Av. Paulista, 1000 - São Paulo",
        batches=(
            BatchDefinition(title="Pista", price=Decimal("80.00"), quantity=200),
            BatchDefinition(title="VIP", price=Decimal("200.00"), quantity=50),
        ),
        status=EventStatus.PUBLISHED,
    )
    values.update(overrides)
    return EventDraft(**values)


class FailingBatchStore:
    def __init__(self, inner) -> None:
        self._inner = inner

    def list_by_event(self, event_id):
        raise PersistenceError("load batches", "timeout")

    def __getattr__(self, name):
        return getattr(self._inner, name)


@pytest.fixture
def events(container) -> EventService:
    return container.events


def _pay(container, event, quantities, buyer_id=BUYER.user_id):
    order = container.orchestrator.create_order(event, quantities, buyer_id)
    container.orchestrator.process_checkout(order.order_id, "pix", CONTACT)
    return order


def test_slugify_strips_accents_and_punctuation() -> None:
    assert slugify("Festival de Verão 2025") == "festival-de-verao-2025"
    assert slugify("  Rock & Roll -- Noite!  ") == "rock-roll-noite"


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


def test_create_event_derives_url_and_saves_batches(events, stores) -> None:
    event = events.create_event(PRODUCER.user_id, _draft())

    assert event.url == "festival-de-verao-2026"
    assert event.producer_id == PRODUCER.user_id
    assert event.created_at == NOW
    assert [b.title for b in event.batches] == ["Pista", "VIP"]
    assert [b.price for b in stores.batches.list_by_event(event.event_id)] == [Decimal("80.00"), Decimal("200.00")]


def test_create_event_reports_all_input_errors(events) -> None:
    draft = _draft(
        title=" ",
        location="",
        ends_at=NOW + timedelta(days=29),
        batches=(
            BatchDefinition(title="Pista", price=Decimal("-1"), quantity=10),
            BatchDefinition(title="pista", price=Decimal("10"), quantity=-1),
        ),
        url="festa",
    )

    with pytest.raises(ValidationError) as exc:
        events.create_event(PRODUCER.user_id, draft)

    assert exc.value.errors == [
        "Title is required",
        "Location is required",
        "End date must be after start date",
        "Batch 1: price cannot be negative",
        "Batch 2: duplicate title 'pista'",
        "Batch 2: quantity cannot be negative",
    ]


def test_create_event_rejects_archived_status(events) -> None:
    with pytest.raises(ValidationError):
        events.create_event(PRODUCER.user_id, _draft(status=EventStatus.ARCHIVED))


def test_duplicate_url_is_rejected_with_suggestions(events) -> None:
    events.create_event(PRODUCER.user_id, _draft(url="festa"))
    events.create_event(PRODUCER.user_id, _draft(url="festa-2026"))

    with pytest.raises(ValidationError) as exc:
        events.create_event(PRODUCER.user_id, _draft(url="festa"))

    assert exc.value.message == (
        'URL "festa" is already in use. Choose another URL. '
        "Suggestions: festa-novo, festa-evento, festa-show, festa-festival, festa-live"
    )
    assert events.is_url_available("festa-novo")
    assert not events.is_url_available("festa")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def test_get_event_by_url_hides_archived_events(events, make_event) -> None:
    event = make_event(status=EventStatus.ARCHIVED)

    with pytest.raises(EventNotFoundError):
        events.get_event_by_url(event.url)
    assert events.get_event(event.event_id).status is EventStatus.ARCHIVED


def test_list_events_filters_by_producer_and_status(events, make_event) -> None:
    mine = make_event(title="Show A")
    make_event(title="Show B", status=EventStatus.DRAFT)
    make_event(title="Show C", producer_id="producer-2")

    page = events.list_events(EventQuery(producer_id=PRODUCER.user_id, status=EventStatus.PUBLISHED))

    assert [e.event_id for e in page.events] == [mine.event_id]
    assert page.total == 1
    assert page.events[0].batches


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


def test_update_event_is_owner_only(events, make_event) -> None:
    event = make_event()

    with pytest.raises(ForbiddenError):
        events.update_event(event.event_id, BUYER.user_id, EventChanges(title="Hijacked"))

    updated = events.update_event(event.event_id, PRODUCER.user_id, EventChanges(title="Novo nome"))
    assert updated.title == "Novo nome"
    assert updated.location == event.location


def test_update_event_rejects_bad_dates(events, make_event) -> None:
    event = make_event()

    with pytest.raises(ValidationError):
        events.update_event(event.event_id, PRODUCER.user_id, EventChanges(ends_at=event.starts_at))


def test_update_event_cannot_archive(events, make_event) -> None:
    event = make_event()

    with pytest.raises(ValidationError):
        events.update_event(event.event_id, PRODUCER.user_id, EventChanges(status=EventStatus.ARCHIVED))


def test_update_reconciles_batches_by_title(events, make_event, container, stores) -> None:
    """Verify matched tiers keep their id, new tiers are added and dropped tiers go away."""

    event = make_event(batches=[("Pista", "80.00", 100), ("VIP", "200.00", 50), ("Camarote", "300.00", 10)])
    pista, vip, camarote = event.batches
    container.orchestrator.create_order(event, {vip.batch_id: 1}, BUYER.user_id)

    updated = events.update_event(
        event.event_id,
        PRODUCER.user_id,
        EventChanges(),
        batches=[
            BatchDefinition(title="pista", price=Decimal("90.00"), quantity=120),
            BatchDefinition(title="Meia", price=Decimal("40.00"), quantity=30),
        ],
    )

    by_title = {b.title: b for b in updated.batches}
    assert by_title["pista"].batch_id == pista.batch_id
    assert by_title["pista"].price == Decimal("90.00")
    assert by_title["pista"].quantity == 120
    assert "Meia" in by_title
    assert by_title["VIP"].is_active is False
    assert stores.batches.get(camarote.batch_id) is None


def test_reconcile_batches_is_pure() -> None:
    existing = [
        Batch(batch_id="b1", event_id="e1", title="Pista", price=Decimal("80"), quantity=10, created_at=NOW),
        Batch(batch_id="b2", event_id="e1", title="VIP", price=Decimal("200"), quantity=5, created_at=NOW),
    ]

    result = reconcile_batches(
        "e1", existing, [BatchDefinition(title="Pista", price=Decimal("85"), quantity=8)], set(), NOW
    )

    assert [b.batch_id for b in result.updated] == ["b1"]
    assert result.created == ()
    assert result.deleted == ("b2",)
    assert result.deactivated == ()
    assert existing[0].price == Decimal("80")


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------


def test_delete_without_orders_removes_event(events, make_event, stores) -> None:
    event = make_event()

    result = events.delete_event(event.event_id, PRODUCER.user_id)

    assert result.action == "deleted"
    assert result.has_sales is False
    assert stores.batches.list_by_event(event.event_id) == []
    with pytest.raises(EventNotFoundError):
        events.get_event(event.event_id)


def test_delete_with_paid_orders_archives(events, make_event, container, stores) -> None:
    """Verify an event with sales is archived: hidden from listings, row kept."""

    event = make_event()
    _pay(container, event, {event.batches[0].batch_id: 2})

    result = events.delete_event(event.event_id, PRODUCER.user_id)

    assert result.action == "archived"
    assert result.has_sales is True
    assert result.message == "Event archived (it has recorded sales)"
    stored = stores.events.get(event.event_id)
    assert stored.status is EventStatus.ARCHIVED
    assert stored.archived_by == PRODUCER.user_id
    assert stored.archived_at == NOW
    assert event.event_id not in [e.event_id for e in events.list_events(EventQuery()).events]
    assert len(stores.batches.list_by_event(event.event_id)) == 1


def test_delete_with_only_unpaid_orders_cancels_them_and_deletes(events, make_event, container, stores) -> None:
    """Verify zero paid orders means a hard delete; pending orders can no longer be checked out."""

    event = make_event()
    pending = container.orchestrator.create_order(event, {event.batches[0].batch_id: 1}, BUYER.user_id)

    result = events.delete_event(event.event_id, PRODUCER.user_id)

    assert result.action == "deleted"
    assert result.has_sales is False
    assert stores.events.get(event.event_id) is None
    assert stores.orders.get(pending.order_id).status is OrderStatus.CANCELLED


def test_delete_is_owner_only(events, make_event) -> None:
    event = make_event()

    with pytest.raises(ForbiddenError):
        events.delete_event(event.event_id, BUYER.user_id)


def test_reactivate_archived_event(events, make_event, container) -> None:
    event = make_event()
    _pay(container, event, {event.batches[0].batch_id: 1})
    events.delete_event(event.event_id, PRODUCER.user_id)

    with pytest.raises(InvalidStateError):
        events.update_event(event.event_id, PRODUCER.user_id, EventChanges(title="x"))

    reactivated = events.reactivate_event(event.event_id, PRODUCER.user_id)

    assert reactivated.status is EventStatus.PUBLISHED
    assert reactivated.archived_at is None
    with pytest.raises(InvalidStateError):
        events.reactivate_event(event.event_id, PRODUCER.user_id)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


def test_stats_count_tickets_and_paid_subtotals(events, make_event, container) -> None:
    event = make_event(batches=[("Pista", "80.00", 100), ("VIP", "200.00", 10)])
    pista, vip = event.batches
    _pay(container, event, {pista.batch_id: 2, vip.batch_id: 1})
    _pay(container, event, {pista.batch_id: 1}, buyer_id="buyer-3")
    container.orchestrator.create_order(event, {pista.batch_id: 5}, "buyer-4")

    stats = events.get_event_stats(event.event_id)

    assert stats.tickets_sold == 4
    assert stats.participants == 4
    assert stats.revenue == Decimal("440.00")


def test_participants_list_ticket_holders_with_order_details(events, make_event, container) -> None:
    event = make_event(batches=[("Pista", "80.00", 100), ("VIP", "200.00", 10)])
    pista, vip = event.batches
    paid = _pay(container, event, {pista.batch_id: 2, vip.batch_id: 1})
    container.orchestrator.create_order(event, {pista.batch_id: 5}, "buyer-4")

    participants = events.list_participants(event.event_id, PRODUCER.user_id)

    assert len(participants) == 3
    assert sorted(p.batch_title for p in participants) == ["Pista", "Pista", "VIP"]
    for participant in participants:
        assert participant.name == CONTACT.name
        assert participant.email == CONTACT.email
        assert participant.status is TicketStatus.SOLD
        assert participant.order_id == paid.order_id
        assert participant.paid_at == NOW
        assert participant.order_total == Decimal("365.00")


def test_participants_search_by_ticket_number(events, make_event, container) -> None:
    event = make_event()
    _pay(container, event, {event.batches[0].batch_id: 2})
    first = events.list_participants(event.event_id, PRODUCER.user_id)[0]

    found = events.list_participants(event.event_id, PRODUCER.user_id, search=first.ticket_number.lower())

    assert [p.ticket_id for p in found] == [first.ticket_id]
    assert events.list_participants(event.event_id, PRODUCER.user_id, search="ANA SOUZA") != []


def test_participants_are_producer_only(events, make_event) -> None:
    event = make_event()

    with pytest.raises(ForbiddenError):
        events.list_participants(event.event_id, BUYER.user_id)
    assert events.list_participants(event.event_id, PRODUCER.user_id) == []


def test_stats_degrade_to_zero_on_store_failure(stores, clock, make_event) -> None:
    event = make_event()
    service = EventService(
        stores.events, FailingBatchStore(stores.batches), stores.orders, stores.tickets, clock=clock
    )

    stats = service.get_event_stats(event.event_id)

    assert stats.tickets_sold == 0
    assert stats.revenue == Decimal("0")
