"""
In-memory store adapters.

Used by the test suite and by local development (`STORE_BACKEND=memory`).
All stores share one MemoryDatabase whose lock plays the role of the
database's row locks, so conditional writes behave atomically across threads.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Set

from domain.errors import AvailabilityError, PersistenceError
from domain.event import Batch, Event, EventStatus
from domain.order import Order, OrderStatus
from domain.ticket import Payment, Ticket, TicketStatus
from repositories.interfaces import (
    BatchStore,
    EventPage,
    EventQuery,
    EventStore,
    OrderStore,
    PaymentStore,
    TicketStore,
)


@dataclass
class MemoryDatabase:
    events: Dict[str, Event] = field(default_factory=dict)
    batches: Dict[str, Batch] = field(default_factory=dict)
    orders: Dict[str, Order] = field(default_factory=dict)
    tickets: Dict[str, Ticket] = field(default_factory=dict)
    payments: List[Payment] = field(default_factory=list)
    # order_id -> when ticket issuance for it was claimed
    issuance_claims: Dict[str, datetime] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock)


class MemoryEventStore(EventStore):
    def __init__(self, db: MemoryDatabase) -> None:
        self._db = db

    def add(self, event: Event) -> Event:
        with self._db.lock:
            if event.url and any(e.url == event.url for e in self._db.events.values()):
                raise PersistenceError("create event", f"duplicate url {event.url}")
            self._db.events[event.event_id] = replace(event, batches=())
        return event

    def get(self, event_id: str) -> Optional[Event]:
        with self._db.lock:
            return self._db.events.get(event_id)

    def get_by_url(self, url: str) -> Optional[Event]:
        with self._db.lock:
            for event in self._db.events.values():
                if event.url == url:
                    return event
        return None

    def update(self, event: Event) -> Event:
        with self._db.lock:
            if event.event_id not in self._db.events:
                raise PersistenceError("update event", "event not found")
            self._db.events[event.event_id] = replace(event, batches=())
        return event

    def delete(self, event_id: str) -> None:
        with self._db.lock:
            self._db.events.pop(event_id, None)
            for batch_id in [b.batch_id for b in self._db.batches.values() if b.event_id == event_id]:
                del self._db.batches[batch_id]

    def list(self, query: EventQuery) -> EventPage:
        page = max(query.page, 1)
        limit = max(query.limit, 1)
        with self._db.lock:
            events = [e for e in self._db.events.values() if e.status != EventStatus.ARCHIVED]
        if query.producer_id:
            events = [e for e in events if e.producer_id == query.producer_id]
        if query.status and query.status != EventStatus.ARCHIVED:
            events = [e for e in events if e.status == query.status]
        if query.search:
            term = query.search.lower()
            events = [
                e for e in events
                if term in e.title.lower() or term in e.description.lower() or term in e.location.lower()
            ]
        events.sort(key=lambda e: (e.created_at is not None, e.created_at), reverse=True)
        start = (page - 1) * limit
        return EventPage(events=events[start:start + limit], total=len(events), page=page, limit=limit)


class MemoryBatchStore(BatchStore):
    def __init__(self, db: MemoryDatabase) -> None:
        self._db = db

    def add(self, batch: Batch) -> Batch:
        with self._db.lock:
            self._db.batches[batch.batch_id] = batch
        return batch

    def get(self, batch_id: str) -> Optional[Batch]:
        with self._db.lock:
            return self._db.batches.get(batch_id)

    def list_by_event(self, event_id: str) -> List[Batch]:
        with self._db.lock:
            # dicts keep insertion order, which matches created_at ascending
            return [b for b in self._db.batches.values() if b.event_id == event_id]

    def update(self, batch: Batch) -> Batch:
        with self._db.lock:
            if batch.batch_id not in self._db.batches:
                raise PersistenceError("update batch", "batch not found")
            self._db.batches[batch.batch_id] = batch
        return batch

    def delete(self, batch_id: str) -> None:
        with self._db.lock:
            self._db.batches.pop(batch_id, None)

    def decrement_quantity(self, batch_id: str, quantity: int) -> int:
        if quantity <= 0:
            raise ValueError("quantity must be positive")
        with self._db.lock:
            batch = self._db.batches.get(batch_id)
            if batch is None:
                raise AvailabilityError(f"Batch {batch_id} not found")
            if batch.quantity < quantity:
                raise AvailabilityError(
                    f"Insufficient quantity for batch {batch_id} "
                    f"(available: {batch.quantity}, requested: {quantity})"
                )
            self._db.batches[batch_id] = replace(batch, quantity=batch.quantity - quantity)
            return batch.quantity - quantity

    def increment_quantity(self, batch_id: str, quantity: int) -> int:
        if quantity <= 0:
            raise ValueError("quantity must be positive")
        with self._db.lock:
            batch = self._db.batches.get(batch_id)
            if batch is None:
                raise PersistenceError("restore batch quantity", f"batch {batch_id} not found")
            self._db.batches[batch_id] = replace(batch, quantity=batch.quantity + quantity)
            return batch.quantity + quantity


class MemoryOrderStore(OrderStore):
    def __init__(self, db: MemoryDatabase) -> None:
        self._db = db

    def add(self, order: Order) -> Order:
        with self._db.lock:
            self._db.orders[order.order_id] = order
        return order

    def get(self, order_id: str) -> Optional[Order]:
        with self._db.lock:
            return self._db.orders.get(order_id)

    def list_by_buyer(self, buyer_id: str) -> List[Order]:
        with self._db.lock:
            orders = [o for o in self._db.orders.values() if o.buyer_id == buyer_id]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def transition(self, order: Order, expected: OrderStatus) -> bool:
        with self._db.lock:
            stored = self._db.orders.get(order.order_id)
            if stored is None or stored.status is not expected:
                return False
            self._db.orders[order.order_id] = replace(
                stored, status=order.status, paid_at=order.paid_at, contact=order.contact
            )
            return True

    def list_pending_created_before(self, cutoff: datetime) -> List[Order]:
        with self._db.lock:
            return [
                o for o in self._db.orders.values()
                if o.status is OrderStatus.PENDING and o.created_at < cutoff
            ]

    def _orders_for_batches(self, batch_ids: Sequence[str]) -> List[Order]:
        wanted = set(batch_ids)
        with self._db.lock:
            return [
                o for o in self._db.orders.values()
                if any(item.batch_id in wanted for item in o.items)
            ]

    def batch_ids_with_orders(self, batch_ids: Sequence[str]) -> Set[str]:
        wanted = set(batch_ids)
        return {
            item.batch_id
            for order in self._orders_for_batches(batch_ids)
            for item in order.items
            if item.batch_id in wanted
        }

    def has_paid_orders_for_batches(self, batch_ids: Sequence[str]) -> bool:
        return any(o.status is OrderStatus.PAID for o in self._orders_for_batches(batch_ids))

    def list_pending_for_batches(self, batch_ids: Sequence[str]) -> List[Order]:
        return [o for o in self._orders_for_batches(batch_ids) if o.status is OrderStatus.PENDING]

    def list_paid_by_ids(self, order_ids: Iterable[str]) -> List[Order]:
        wanted = set(order_ids)
        with self._db.lock:
            return [
                o for o in self._db.orders.values()
                if o.order_id in wanted and o.status is OrderStatus.PAID
            ]

    def claim_ticket_issuance(self, order_id: str, claimed_at: datetime) -> bool:
        with self._db.lock:
            if order_id not in self._db.orders or order_id in self._db.issuance_claims:
                return False
            self._db.issuance_claims[order_id] = claimed_at
            return True

    def release_ticket_issuance(self, order_id: str) -> None:
        with self._db.lock:
            self._db.issuance_claims.pop(order_id, None)


class MemoryTicketStore(TicketStore):
    def __init__(self, db: MemoryDatabase) -> None:
        self._db = db

    def add_many(self, tickets: Sequence[Ticket]) -> List[Ticket]:
        with self._db.lock:
            numbers = {t.ticket_number for t in self._db.tickets.values()}
            for ticket in tickets:
                if ticket.ticket_number in numbers:
                    raise PersistenceError("create tickets", f"duplicate ticket number {ticket.ticket_number}")
                numbers.add(ticket.ticket_number)
            for ticket in tickets:
                self._db.tickets[ticket.ticket_id] = ticket
        return list(tickets)

    def list_by_order(self, order_id: str) -> List[Ticket]:
        with self._db.lock:
            return [t for t in self._db.tickets.values() if t.order_id == order_id]

    def list_by_orders(self, order_ids: Sequence[str]) -> List[Ticket]:
        wanted = set(order_ids)
        with self._db.lock:
            return [t for t in self._db.tickets.values() if t.order_id in wanted]

    def list_sold_by_batches(self, batch_ids: Sequence[str]) -> List[Ticket]:
        wanted = set(batch_ids)
        with self._db.lock:
            return [
                t for t in self._db.tickets.values()
                if t.batch_id in wanted and t.status in (TicketStatus.SOLD, TicketStatus.USED)
            ]


class MemoryPaymentStore(PaymentStore):
    def __init__(self, db: MemoryDatabase) -> None:
        self._db = db

    def add(self, payment: Payment) -> Payment:
        with self._db.lock:
            self._db.payments.append(payment)
        return payment

    def list_by_order(self, order_id: str) -> List[Payment]:
        with self._db.lock:
            return [p for p in self._db.payments if p.order_id == order_id]


__all__ = [
    "MemoryDatabase",
    "MemoryEventStore",
    "MemoryBatchStore",
    "MemoryOrderStore",
    "MemoryTicketStore",
    "MemoryPaymentStore",
]
