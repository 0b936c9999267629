"""
Domain: Tickets and payment audit records.

A Ticket is one admission unit. Tickets are materialized one per unit at the
moment an order is paid; none exist before that.

A Payment is an append-only audit record of one capture attempt (or refund).
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .time import require_utc_timestamp

_BASE36 = string.digits + string.ascii_uppercase


class TicketStatus(str, Enum):
    AVAILABLE = "available"
    SOLD = "sold"
    USED = "used"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


def generate_ticket_number(issued_at: datetime) -> str:
    """
    TKT + epoch milliseconds + 9 random base36 characters.

    The random suffix gives ~46 bits per millisecond, so collisions are not a
    practical concern; the tickets table still carries a unique constraint.
    """

    millis = int(issued_at.timestamp() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"TKT{millis}{suffix}"


def qr_payload(ticket_number: str, issued_at: datetime) -> str:
    return f"QR_{ticket_number}_{int(issued_at.timestamp() * 1000)}"


@dataclass(frozen=True, slots=True)
class Ticket:
    ticket_id: str
    batch_id: str
    ticket_number: str
    status: TicketStatus
    holder_name: str
    holder_email: str
    order_id: Optional[str] = None
    qr_code: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)


@dataclass(frozen=True, slots=True)
class Payment:
    payment_id: str
    order_id: str
    provider: str
    provider_payment_id: Optional[str]
    status: PaymentStatus
    amount: Decimal
    created_at: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
