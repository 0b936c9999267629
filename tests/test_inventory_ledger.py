"""
Tests for `services/inventory_ledger.py`.

Covers contract rules:
- Availability checks are side-effect free and report the remaining count.
- A decrement that would underflow is rejected and changes nothing.
- Concurrent decrements never sell more units than the batch holds.
- Multi-batch decrements are all-or-nothing.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed

import pytest

from conftest import batch_quantity
from domain.errors import AvailabilityError, PersistenceError
from services.inventory_ledger import InventoryLedger


@pytest.fixture
def ledger(stores) -> InventoryLedger:
    return InventoryLedger(stores.batches)


def test_check_availability_does_not_change_quantity(ledger, make_event, stores) -> None:
    batch = make_event(batches=[("Pista", "80.00", 3)]).batches[0]

    ok = ledger.check_availability(batch.batch_id, 3)
    too_many = ledger.check_availability(batch.batch_id, 4)

    assert ok.available is True
    assert too_many.available is False
    assert too_many.available_qty == 3
    assert batch_quantity(stores, batch.batch_id) == 3


def test_check_availability_for_missing_batch(ledger) -> None:
    result = ledger.check_availability("missing", 1)

    assert result.available is False
    assert result.available_qty == 0


def test_decrement_rejects_underflow_without_clamping(ledger, make_event, stores) -> None:
    """Verify quantity never goes negative and is not silently clamped to zero."""

    batch = make_event(batches=[("Pista", "80.00", 2)]).batches[0]

    with pytest.raises(AvailabilityError):
        ledger.decrement(batch.batch_id, 3)
    assert batch_quantity(stores, batch.batch_id) == 2

    assert ledger.decrement(batch.batch_id, 2) == 0
    with pytest.raises(AvailabilityError):
        ledger.decrement(batch.batch_id, 1)
    assert batch_quantity(stores, batch.batch_id) == 0


def test_concurrent_decrements_never_oversell(ledger, make_event, stores) -> None:
    """Verify 50 concurrent single-unit buyers on a 10-unit batch sell exactly 10."""

    batch = make_event(batches=[("Pista", "80.00", 10)]).batches[0]

    def buy() -> bool:
        try:
            ledger.decrement(batch.batch_id, 1)
            return True
        except AvailabilityError:
            return False

    with ThreadPoolExecutor(max_workers=20) as executor:
        futures = [executor.submit(buy) for _ in range(50)]
        results = [future.result() for future in as_completed(futures)]

    assert results.count(True) == 10
    assert batch_quantity(stores, batch.batch_id) == 0


def test_decrement_all_is_all_or_nothing(ledger, make_event, stores) -> None:
    """Verify a shortage on one batch restores the decrements already applied."""

    event = make_event(batches=[("Pista", "80.00", 5), ("VIP", "200.00", 1)])
    pista, vip = event.batches

    with pytest.raises(AvailabilityError):
        ledger.decrement_all({pista.batch_id: 2, vip.batch_id: 2})

    assert batch_quantity(stores, pista.batch_id) == 5
    assert batch_quantity(stores, vip.batch_id) == 1

    remaining = ledger.decrement_all({pista.batch_id: 2, vip.batch_id: 1})
    assert remaining == {pista.batch_id: 3, vip.batch_id: 0}


def test_restore_all_continues_past_missing_batch(ledger, make_event, stores) -> None:
    batch = make_event(batches=[("Pista", "80.00", 1)]).batches[0]

    ledger.restore_all({"missing": 1, batch.batch_id: 2})

    assert batch_quantity(stores, batch.batch_id) == 3
    with pytest.raises(PersistenceError):
        ledger.restore("missing", 1)
