"""
Domain: Order aggregate.

An Order is one buyer's purchase record. It owns its OrderItems and its
monetary truth.

Rules implemented here:
- subtotal = sum(quantity * unit_price) over items (unit price frozen at creation).
- total = subtotal + service_fee, recomputed on every construction; a total
  passed in from outside is never trusted.
- Status flows pending -> paid | failed | cancelled. paid, failed and
  cancelled are terminal.
- Each item quantity is in [1, MAX_TICKETS_PER_BATCH].

Everything in this module is pure: no I/O, timestamps passed explicitly.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .errors import InvalidStateError, ValidationError
from .money import ZERO, to_money
from .time import require_utc_timestamp

MAX_TICKETS_PER_BATCH: int = 10
DEFAULT_SERVICE_FEE: Decimal = Decimal("5.00")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class BuyerContact:
    """Contact snapshot captured on the order, independent of the buyer profile."""

    name: str
    email: str
    phone: Optional[str] = None

    def validate(self) -> None:
        errors: List[str] = []
        if not self.name or not self.name.strip():
            errors.append("Buyer name is required")
        if not self.email or not _EMAIL_RE.match(self.email.strip()):
            errors.append("A valid buyer email is required")
        if errors:
            raise ValidationError(errors)


@dataclass(frozen=True, slots=True)
class LineRequest:
    """Input line for order creation."""

    batch_id: str
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True, slots=True)
class OrderItem:
    item_id: str
    order_id: str
    batch_id: str
    quantity: int
    unit_price: Decimal

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("OrderItem quantity must be >= 1")

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


def compute_subtotal(items: Iterable[OrderItem | LineRequest]) -> Decimal:
    subtotal = ZERO
    for item in items:
        subtotal += to_money(item.unit_price) * item.quantity
    return to_money(subtotal)


@dataclass(frozen=True, slots=True)
class Order:
    order_id: str
    buyer_id: str
    service_fee: Decimal
    contact: BuyerContact
    created_at: datetime
    status: OrderStatus = OrderStatus.PENDING
    items: Tuple[OrderItem, ...] = field(default_factory=tuple)
    paid_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        if self.paid_at is not None:
            require_utc_timestamp("paid_at", self.paid_at)

    @property
    def subtotal(self) -> Decimal:
        return compute_subtotal(self.items)

    @property
    def total(self) -> Decimal:
        return recompute_total(self)

    @property
    def ticket_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def require_status(self, expected: OrderStatus, action: str) -> None:
        if self.status is not expected:
            raise InvalidStateError(
                f"Cannot {action}: order is {self.status.value}, expected {expected.value}"
            )

    def mark_paid(self, paid_at: datetime, contact: Optional[BuyerContact] = None) -> "Order":
        """Return the paid version of this order (pending -> paid)."""

        self.require_status(OrderStatus.PENDING, "pay order")
        require_utc_timestamp("paid_at", paid_at)
        return replace(
            self,
            status=OrderStatus.PAID,
            paid_at=paid_at,
            contact=contact if contact is not None else self.contact,
        )

    def mark_failed(self) -> "Order":
        self.require_status(OrderStatus.PENDING, "fail order")
        return replace(self, status=OrderStatus.FAILED)

    def mark_unfulfilled(self) -> "Order":
        """Paid but tickets could not be issued; the payment has been refunded."""

        self.require_status(OrderStatus.PAID, "fail paid order")
        return replace(self, status=OrderStatus.FAILED, paid_at=None)

    def cancel(self) -> "Order":
        self.require_status(OrderStatus.PENDING, "cancel order")
        return replace(self, status=OrderStatus.CANCELLED)


def recompute_total(order: Order) -> Decimal:
    """total = subtotal + service_fee, always derived from the items."""

    return to_money(order.subtotal + order.service_fee)


def validate_lines(lines: Iterable[LineRequest], max_per_batch: int = MAX_TICKETS_PER_BATCH) -> List[LineRequest]:
    """
    Validate order lines, collecting every problem before raising.

    Raises ValidationError if there are no lines, any quantity is not positive,
    any quantity exceeds the per-batch cap, any price is negative, or a batch
    appears twice.
    """

    lines = list(lines)
    if not lines:
        raise ValidationError("Select at least one ticket to continue.")

    errors: List[str] = []
    seen: set[str] = set()
    for line in lines:
        if line.quantity <= 0:
            errors.append(f"Quantity for batch {line.batch_id} must be at least 1")
        elif line.quantity > max_per_batch:
            errors.append(f"Maximum of {max_per_batch} tickets per batch ({line.batch_id})")
        if to_money(line.unit_price) < 0:
            errors.append(f"Invalid price for batch {line.batch_id}")
        if line.batch_id in seen:
            errors.append(f"Batch {line.batch_id} listed more than once")
        seen.add(line.batch_id)

    if errors:
        raise ValidationError(errors)
    return lines
