"""
Domain: Event and Batch entities.

An Event is a sellable occasion owned by a producer. A Batch is a priced tier
of tickets inside an Event ("VIP", "General") with a finite remaining quantity.

Rules implemented here:
- ends_at must be after starts_at.
- Batch price is >= 0 and remaining quantity is an integer >= 0.
- ARCHIVED is the soft-archive marker: the row persists for paid history but
  is excluded from every listing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from .time import require_utc_timestamp


class EventStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"


@dataclass(frozen=True, slots=True)
class Batch:
    """A priced ticket tier. `quantity` is the remaining sellable count."""

    batch_id: str
    event_id: str
    title: str
    price: Decimal
    quantity: int
    is_active: bool = True
    description: Optional[str] = None
    sale_starts_at: Optional[datetime] = None
    sale_ends_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError("Batch price must be >= 0")
        if self.quantity < 0:
            raise ValueError("Batch quantity must be >= 0")
        for name in ("sale_starts_at", "sale_ends_at", "created_at"):
            value = getattr(self, name)
            if value is not None:
                require_utc_timestamp(name, value)

    def is_on_sale(self, as_of: datetime) -> bool:
        """Active and inside the optional sale window."""

        if not self.is_active:
            return False
        if self.sale_starts_at is not None and as_of < self.sale_starts_at:
            return False
        if self.sale_ends_at is not None and as_of > self.sale_ends_at:
            return False
        return True


@dataclass(frozen=True, slots=True)
class Event:
    event_id: str
    producer_id: str
    title: str
    starts_at: datetime
    ends_at: datetime
    location: str
    address: str
    status: EventStatus = EventStatus.DRAFT
    description: str = ""
    url: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None
    archived_by: Optional[str] = None
    batches: Tuple[Batch, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        require_utc_timestamp("starts_at", self.starts_at)
        require_utc_timestamp("ends_at", self.ends_at)
        if self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")

    def is_owned_by(self, user_id: str) -> bool:
        return self.producer_id == user_id

    def is_open_for_sale(self, as_of: datetime) -> bool:
        """Published and not yet started."""

        return self.status == EventStatus.PUBLISHED and self.starts_at > as_of

    def find_batch(self, batch_id: str) -> Optional[Batch]:
        for batch in self.batches:
            if batch.batch_id == batch_id:
                return batch
        return None

    @property
    def capacity(self) -> int:
        """Remaining sellable units across all batches."""

        return sum(batch.quantity for batch in self.batches)
