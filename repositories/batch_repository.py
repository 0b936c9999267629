"""
Batch repository (persistence).

Supabase adapter for BatchStore. The quantity column is the one piece of
shared mutable state in the system, so decrements are conditional updates:
the row is only written if `quantity` still holds the value that was read
(compare-and-swap), retried a bounded number of times under contention.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, List, Mapping, Optional

from supabase import Client  # type: ignore[import-not-found]

from domain.errors import AvailabilityError, PersistenceError
from domain.event import Batch
from repositories.interfaces import BatchStore
from repositories.rows import execute, money_to_db, parse_optional_datetime, to_iso_utc

logger = logging.getLogger(__name__)

_BATCHES_TABLE: str = "batches"

DEFAULT_MAX_CAS_ATTEMPTS: int = 5


def _row_to_batch(row: Mapping[str, Any]) -> Batch:
    return Batch(
        batch_id=str(row["id"]),
        event_id=str(row["event_id"]),
        title=str(row["title"]),
        price=Decimal(str(row["price"])),
        quantity=int(row["quantity"]),
        is_active=bool(row.get("is_active", True)),
        description=row.get("description"),
        sale_starts_at=parse_optional_datetime(row.get("sale_starts_at")),
        sale_ends_at=parse_optional_datetime(row.get("sale_ends_at")),
        created_at=parse_optional_datetime(row.get("created_at")),
    )


def _batch_to_row(batch: Batch) -> dict[str, Any]:
    return {
        "event_id": batch.event_id,
        "title": batch.title,
        "description": batch.description,
        "price": money_to_db(batch.price),
        "quantity": batch.quantity,
        "is_active": batch.is_active,
        "sale_starts_at": to_iso_utc(batch.sale_starts_at, name="sale_starts_at"),
        "sale_ends_at": to_iso_utc(batch.sale_ends_at, name="sale_ends_at"),
    }


class SupabaseBatchRepository(BatchStore):
    def __init__(self, client: Client, max_cas_attempts: int = DEFAULT_MAX_CAS_ATTEMPTS) -> None:
        self._client = client
        self._max_cas_attempts = max_cas_attempts

    def add(self, batch: Batch) -> Batch:
        payload = _batch_to_row(batch)
        payload["id"] = batch.batch_id
        payload["created_at"] = to_iso_utc(batch.created_at, name="created_at")
        rows = execute(self._client.table(_BATCHES_TABLE).insert(payload), "create batch")
        return _row_to_batch(rows[0]) if rows else batch

    def get(self, batch_id: str) -> Optional[Batch]:
        rows = execute(
            self._client.table(_BATCHES_TABLE).select("*").eq("id", batch_id).limit(1),
            "fetch batch",
        )
        return _row_to_batch(rows[0]) if rows else None

    def list_by_event(self, event_id: str) -> List[Batch]:
        rows = execute(
            self._client.table(_BATCHES_TABLE)
            .select("*")
            .eq("event_id", event_id)
            .order("created_at", desc=False),
            "list event batches",
        )
        return [_row_to_batch(row) for row in rows]

    def update(self, batch: Batch) -> Batch:
        rows = execute(
            self._client.table(_BATCHES_TABLE).update(_batch_to_row(batch)).eq("id", batch.batch_id),
            "update batch",
        )
        return _row_to_batch(rows[0]) if rows else batch

    def delete(self, batch_id: str) -> None:
        execute(self._client.table(_BATCHES_TABLE).delete().eq("id", batch_id), "delete batch")

    def _read_quantity(self, batch_id: str) -> Optional[int]:
        rows = execute(
            self._client.table(_BATCHES_TABLE).select("id, title, quantity").eq("id", batch_id).limit(1),
            "read batch quantity",
        )
        return int(rows[0]["quantity"]) if rows else None

    def _swap_quantity(self, batch_id: str, expected: int, new_quantity: int) -> bool:
        rows = execute(
            self._client.table(_BATCHES_TABLE)
            .update({"quantity": new_quantity})
            .eq("id", batch_id)
            .eq("quantity", expected),
            "update batch quantity",
        )
        return bool(rows)

    def decrement_quantity(self, batch_id: str, quantity: int) -> int:
        if quantity <= 0:
            raise ValueError("quantity must be positive")

        for attempt in range(1, self._max_cas_attempts + 1):
            current = self._read_quantity(batch_id)
            if current is None:
                raise AvailabilityError(f"Batch {batch_id} not found")
            if current < quantity:
                logger.warning(
                    "Inventory conflict on batch %s: requested %d, remaining %d",
                    batch_id, quantity, current,
                )
                raise AvailabilityError(
                    f"Insufficient quantity for batch {batch_id} (available: {current}, requested: {quantity})"
                )
            if self._swap_quantity(batch_id, current, current - quantity):
                logger.info("Batch %s quantity %d -> %d", batch_id, current, current - quantity)
                return current - quantity
            logger.info("Concurrent update on batch %s quantity (attempt %d), retrying", batch_id, attempt)

        raise PersistenceError("decrement batch quantity", "too many concurrent updates")

    def increment_quantity(self, batch_id: str, quantity: int) -> int:
        if quantity <= 0:
            raise ValueError("quantity must be positive")

        for attempt in range(1, self._max_cas_attempts + 1):
            current = self._read_quantity(batch_id)
            if current is None:
                raise PersistenceError("restore batch quantity", f"batch {batch_id} not found")
            if self._swap_quantity(batch_id, current, current + quantity):
                return current + quantity
            logger.info("Concurrent update on batch %s quantity (attempt %d), retrying", batch_id, attempt)

        raise PersistenceError("restore batch quantity", "too many concurrent updates")


__all__ = ["SupabaseBatchRepository"]
