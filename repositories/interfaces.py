"""
Store interfaces (repository pattern).

One interface per aggregate. Each has a Supabase adapter for production and an
in-memory adapter for tests; services only ever see these types, and receive
them through their constructors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Set

from domain.event import Batch, Event, EventStatus
from domain.order import Order, OrderStatus
from domain.ticket import Payment, Ticket


@dataclass(frozen=True, slots=True)
class EventQuery:
    """Listing filters. Archived events are never returned, whatever `status` says."""

    producer_id: Optional[str] = None
    status: Optional[EventStatus] = None
    search: Optional[str] = None
    page: int = 1
    limit: int = 10


@dataclass(frozen=True, slots=True)
class EventPage:
    events: List[Event]
    total: int
    page: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.total > self.page * self.limit


class EventStore(ABC):
    """Event persistence. Returned events carry no batches."""

    @abstractmethod
    def add(self, event: Event) -> Event:
        ...

    @abstractmethod
    def get(self, event_id: str) -> Optional[Event]:
        """Return an event by ID (archived included), or None if not found."""
        ...

    @abstractmethod
    def get_by_url(self, url: str) -> Optional[Event]:
        ...

    @abstractmethod
    def update(self, event: Event) -> Event:
        ...

    @abstractmethod
    def delete(self, event_id: str) -> None:
        """Hard delete. Callers must check for paid history first."""
        ...

    @abstractmethod
    def list(self, query: EventQuery) -> EventPage:
        """Return events ordered by created_at descending, archived excluded."""
        ...


class BatchStore(ABC):
    @abstractmethod
    def add(self, batch: Batch) -> Batch:
        ...

    @abstractmethod
    def get(self, batch_id: str) -> Optional[Batch]:
        ...

    @abstractmethod
    def list_by_event(self, event_id: str) -> List[Batch]:
        """Return batches ordered by created_at ascending."""
        ...

    @abstractmethod
    def update(self, batch: Batch) -> Batch:
        ...

    @abstractmethod
    def delete(self, batch_id: str) -> None:
        ...

    @abstractmethod
    def decrement_quantity(self, batch_id: str, quantity: int) -> int:
        """
        Atomically subtract `quantity` from the batch's remaining quantity.

        Returns the new quantity. Raises AvailabilityError, changing nothing,
        if the batch is missing or holds fewer than `quantity` units.
        """
        ...

    @abstractmethod
    def increment_quantity(self, batch_id: str, quantity: int) -> int:
        """Atomically add `quantity` back. Used only to compensate failed issuance."""
        ...


class OrderStore(ABC):
    @abstractmethod
    def add(self, order: Order) -> Order:
        """Persist a new order together with its items."""
        ...

    @abstractmethod
    def get(self, order_id: str) -> Optional[Order]:
        ...

    @abstractmethod
    def list_by_buyer(self, buyer_id: str) -> List[Order]:
        """Return the buyer's orders, newest first."""
        ...

    @abstractmethod
    def transition(self, order: Order, expected: OrderStatus) -> bool:
        """
        Persist `order`'s status, paid_at and contact snapshot only if the
        stored status still equals `expected`.

        Returns False when another writer changed the status first.
        """
        ...

    @abstractmethod
    def list_pending_created_before(self, cutoff: datetime) -> List[Order]:
        ...

    @abstractmethod
    def batch_ids_with_orders(self, batch_ids: Sequence[str]) -> Set[str]:
        """Return the subset of batch_ids referenced by any order item."""
        ...

    @abstractmethod
    def has_paid_orders_for_batches(self, batch_ids: Sequence[str]) -> bool:
        ...

    @abstractmethod
    def list_pending_for_batches(self, batch_ids: Sequence[str]) -> List[Order]:
        ...

    @abstractmethod
    def list_paid_by_ids(self, order_ids: Iterable[str]) -> List[Order]:
        ...

    @abstractmethod
    def claim_ticket_issuance(self, order_id: str, claimed_at: datetime) -> bool:
        """
        Mark the order's tickets as being issued, only if no issuer has yet.

        Returns False when the order is missing or already claimed.
        """
        ...

    @abstractmethod
    def release_ticket_issuance(self, order_id: str) -> None:
        """Drop the claim of an issuance that failed, so it can be retried."""
        ...


class TicketStore(ABC):
    @abstractmethod
    def add_many(self, tickets: Sequence[Ticket]) -> List[Ticket]:
        ...

    @abstractmethod
    def list_by_order(self, order_id: str) -> List[Ticket]:
        ...

    @abstractmethod
    def list_by_orders(self, order_ids: Sequence[str]) -> List[Ticket]:
        ...

    @abstractmethod
    def list_sold_by_batches(self, batch_ids: Sequence[str]) -> List[Ticket]:
        """Tickets in status sold or used for the given batches."""
        ...


class PaymentStore(ABC):
    """Append-only payment audit log."""

    @abstractmethod
    def add(self, payment: Payment) -> Payment:
        ...

    @abstractmethod
    def list_by_order(self, order_id: str) -> List[Payment]:
        ...
