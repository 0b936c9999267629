"""
Inventory ledger: the authoritative count of sellable units per batch.

Reads are non-blocking snapshots. Writes go through the BatchStore's
conditional decrement, and are only made on the checkout payment-success
path; order creation never touches inventory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Tuple

from domain.errors import AvailabilityError, PersistenceError
from repositories.interfaces import BatchStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Availability:
    batch_id: str
    requested_qty: int
    available: bool
    available_qty: int


class InventoryLedger:
    def __init__(self, batches: BatchStore) -> None:
        self._batches = batches

    def check_availability(self, batch_id: str, requested_qty: int) -> Availability:
        """Compare `requested_qty` against the batch's current quantity. Side-effect free."""

        batch = self._batches.get(batch_id)
        available_qty = batch.quantity if batch is not None else 0
        return Availability(
            batch_id=batch_id,
            requested_qty=requested_qty,
            available=batch is not None and requested_qty <= available_qty,
            available_qty=available_qty,
        )

    def decrement(self, batch_id: str, qty: int) -> int:
        """
        Atomically decrement a batch; returns the remaining quantity.

        An underflow is rejected with AvailabilityError rather than clamped at
        zero: clamping would let sold tickets exceed the batch capacity.
        """

        try:
            return self._batches.decrement_quantity(batch_id, qty)
        except AvailabilityError:
            logger.warning("Rejected decrement of %d on batch %s", qty, batch_id)
            raise

    def decrement_all(self, quantities: Mapping[str, int]) -> Dict[str, int]:
        """
        Decrement several batches, all or nothing.

        Batches are processed in id order so concurrent callers acquire them
        in the same sequence. If any decrement fails, the ones already applied
        are restored before the error propagates.
        """

        applied: List[Tuple[str, int]] = []
        remaining: Dict[str, int] = {}
        try:
            for batch_id in sorted(quantities):
                qty = quantities[batch_id]
                remaining[batch_id] = self.decrement(batch_id, qty)
                applied.append((batch_id, qty))
        except (AvailabilityError, PersistenceError):
            self.restore_all(dict(applied))
            raise
        return remaining

    def restore(self, batch_id: str, qty: int) -> int:
        """Compensating increment for a rolled-back issuance."""

        remaining = self._batches.increment_quantity(batch_id, qty)
        logger.info("Restored %d units to batch %s (now %d)", qty, batch_id, remaining)
        return remaining

    def restore_all(self, quantities: Mapping[str, int]) -> None:
        for batch_id, qty in quantities.items():
            try:
                self.restore(batch_id, qty)
            except PersistenceError:
                # Keep restoring the rest; the lost units need manual correction.
                logger.error("Could not restore %d units to batch %s", qty, batch_id)


__all__ = ["Availability", "InventoryLedger"]
