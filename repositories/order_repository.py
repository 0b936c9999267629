"""
Order repository (persistence).

Supabase adapter for OrderStore, covering the `orders` and `order_items`
tables. Monetary columns are written from the aggregate's recomputed values;
on read the aggregate recomputes them again from its items.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Set

from supabase import Client  # type: ignore[import-not-found]

from domain.errors import PersistenceError
from domain.order import BuyerContact, Order, OrderItem, OrderStatus
from repositories.interfaces import OrderStore
from repositories.rows import (
    execute,
    money_to_db,
    parse_optional_datetime,
    parse_utc_datetime,
    to_iso_utc,
)

logger = logging.getLogger(__name__)

_ORDERS_TABLE: str = "orders"
_ORDER_ITEMS_TABLE: str = "order_items"

# Embed line items so one round-trip returns the whole aggregate.
_ORDER_SELECT: str = "*, order_items(*)"


def _row_to_item(row: Mapping[str, Any]) -> OrderItem:
    return OrderItem(
        item_id=str(row["id"]),
        order_id=str(row["order_id"]),
        batch_id=str(row["batch_id"]),
        quantity=int(row["quantity"]),
        unit_price=Decimal(str(row["unit_price"])),
    )


def _row_to_order(row: Mapping[str, Any]) -> Order:
    items = tuple(_row_to_item(item) for item in (row.get("order_items") or []))
    return Order(
        order_id=str(row["id"]),
        buyer_id=str(row["user_id"]),
        service_fee=Decimal(str(row["service_fee"])),
        contact=BuyerContact(
            name=row.get("buyer_name") or "",
            email=row.get("buyer_email") or "",
            phone=row.get("buyer_phone"),
        ),
        created_at=parse_utc_datetime(row["created_at"]),
        status=OrderStatus(row["status"]),
        items=items,
        paid_at=parse_optional_datetime(row.get("paid_at")),
    )


def _mutable_columns(order: Order) -> dict[str, Any]:
    return {
        "status": order.status.value,
        "subtotal": money_to_db(order.subtotal),
        "service_fee": money_to_db(order.service_fee),
        "total": money_to_db(order.total),
        "buyer_name": order.contact.name,
        "buyer_email": order.contact.email,
        "buyer_phone": order.contact.phone,
        "paid_at": to_iso_utc(order.paid_at, name="paid_at"),
    }


class SupabaseOrderRepository(OrderStore):
    def __init__(self, client: Client) -> None:
        self._client = client

    def add(self, order: Order) -> Order:
        payload = _mutable_columns(order)
        payload["id"] = order.order_id
        payload["user_id"] = order.buyer_id
        payload["created_at"] = to_iso_utc(order.created_at, name="created_at")
        execute(self._client.table(_ORDERS_TABLE).insert(payload), "create order")

        item_rows = [
            {
                "id": item.item_id,
                "order_id": order.order_id,
                "batch_id": item.batch_id,
                "quantity": item.quantity,
                "unit_price": money_to_db(item.unit_price),
            }
            for item in order.items
        ]
        try:
            execute(self._client.table(_ORDER_ITEMS_TABLE).insert(item_rows), "create order items")
        except PersistenceError:
            # An order without its lines must never be visible.
            logger.error("Removing order %s after its items failed to persist", order.order_id)
            execute(
                self._client.table(_ORDERS_TABLE).delete().eq("id", order.order_id),
                "remove incomplete order",
            )
            raise
        return order

    def get(self, order_id: str) -> Optional[Order]:
        rows = execute(
            self._client.table(_ORDERS_TABLE).select(_ORDER_SELECT).eq("id", order_id).limit(1),
            "fetch order",
        )
        return _row_to_order(rows[0]) if rows else None

    def list_by_buyer(self, buyer_id: str) -> List[Order]:
        rows = execute(
            self._client.table(_ORDERS_TABLE)
            .select(_ORDER_SELECT)
            .eq("user_id", buyer_id)
            .order("created_at", desc=True),
            "list buyer orders",
        )
        return [_row_to_order(row) for row in rows]

    def transition(self, order: Order, expected: OrderStatus) -> bool:
        rows = execute(
            self._client.table(_ORDERS_TABLE)
            .update(_mutable_columns(order))
            .eq("id", order.order_id)
            .eq("status", expected.value),
            f"update order status to {order.status.value}",
        )
        return bool(rows)

    def list_pending_created_before(self, cutoff: datetime) -> List[Order]:
        rows = execute(
            self._client.table(_ORDERS_TABLE)
            .select(_ORDER_SELECT)
            .eq("status", OrderStatus.PENDING.value)
            .lt("created_at", to_iso_utc(cutoff, name="cutoff")),
            "list stale pending orders",
        )
        return [_row_to_order(row) for row in rows]

    def _order_ids_for_batches(self, batch_ids: Sequence[str]) -> tuple[Set[str], Set[str]]:
        if not batch_ids:
            return set(), set()
        rows = execute(
            self._client.table(_ORDER_ITEMS_TABLE)
            .select("order_id, batch_id")
            .in_("batch_id", list(batch_ids)),
            "list order items for batches",
        )
        return {str(row["order_id"]) for row in rows}, {str(row["batch_id"]) for row in rows}

    def batch_ids_with_orders(self, batch_ids: Sequence[str]) -> Set[str]:
        _, referenced = self._order_ids_for_batches(batch_ids)
        return referenced

    def has_paid_orders_for_batches(self, batch_ids: Sequence[str]) -> bool:
        order_ids, _ = self._order_ids_for_batches(batch_ids)
        if not order_ids:
            return False
        rows = execute(
            self._client.table(_ORDERS_TABLE)
            .select("id")
            .in_("id", sorted(order_ids))
            .eq("status", OrderStatus.PAID.value)
            .limit(1),
            "check paid orders",
        )
        return bool(rows)

    def list_pending_for_batches(self, batch_ids: Sequence[str]) -> List[Order]:
        order_ids, _ = self._order_ids_for_batches(batch_ids)
        if not order_ids:
            return []
        rows = execute(
            self._client.table(_ORDERS_TABLE)
            .select(_ORDER_SELECT)
            .in_("id", sorted(order_ids))
            .eq("status", OrderStatus.PENDING.value),
            "list pending orders for batches",
        )
        return [_row_to_order(row) for row in rows]

    def list_paid_by_ids(self, order_ids: Iterable[str]) -> List[Order]:
        ids = sorted(set(order_ids))
        if not ids:
            return []
        rows = execute(
            self._client.table(_ORDERS_TABLE)
            .select(_ORDER_SELECT)
            .in_("id", ids)
            .eq("status", OrderStatus.PAID.value),
            "list paid orders",
        )
        return [_row_to_order(row) for row in rows]

    def claim_ticket_issuance(self, order_id: str, claimed_at: datetime) -> bool:
        rows = execute(
            self._client.table(_ORDERS_TABLE)
            .update({"tickets_issued_at": to_iso_utc(claimed_at, name="claimed_at")})
            .eq("id", order_id)
            .is_("tickets_issued_at", "null"),
            "claim ticket issuance",
        )
        return bool(rows)

    def release_ticket_issuance(self, order_id: str) -> None:
        execute(
            self._client.table(_ORDERS_TABLE).update({"tickets_issued_at": None}).eq("id", order_id),
            "release ticket issuance",
        )


__all__ = ["SupabaseOrderRepository"]
