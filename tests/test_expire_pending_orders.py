"""
Tests for `scripts/expire_pending_orders.py`.
"""

from __future__ import annotations

from conftest import BUYER
from domain.order import OrderStatus
from scripts.expire_pending_orders import expire_pending_orders


def test_dry_run_lists_without_cancelling(container, make_event, stores, clock, capsys) -> None:
    event = make_event()
    order = container.orchestrator.create_order(event, {event.batches[0].batch_id: 1}, BUYER.user_id)
    clock.advance(hours=30)

    assert expire_pending_orders(container, hours=24, dry_run=True) == 1
    assert stores.orders.get(order.order_id).status is OrderStatus.PENDING
    assert order.order_id in capsys.readouterr().out


def test_expires_only_old_pending_orders(container, make_event, stores, clock) -> None:
    event = make_event()
    batch_id = event.batches[0].batch_id
    old = container.orchestrator.create_order(event, {batch_id: 1}, BUYER.user_id)
    clock.advance(hours=30)
    fresh = container.orchestrator.create_order(event, {batch_id: 1}, BUYER.user_id)

    assert expire_pending_orders(container, hours=24) == 1
    assert stores.orders.get(old.order_id).status is OrderStatus.CANCELLED
    assert stores.orders.get(fresh.order_id).status is OrderStatus.PENDING
    assert stores.batches.get(batch_id).quantity == 100
