"""
Order service: owns the monetary and status truth of a purchase.

Creates pending orders from priced lines and persists every status change as
a conditional write against the stored status, so two requests racing on the
same order cannot both move it out of `pending`.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Sequence

from domain.errors import ForbiddenError, InvalidStateError, OrderNotFoundError
from domain.money import to_money
from domain.order import (
    DEFAULT_SERVICE_FEE,
    MAX_TICKETS_PER_BATCH,
    BuyerContact,
    LineRequest,
    Order,
    OrderItem,
    OrderStatus,
    recompute_total,
    validate_lines,
)
from domain.time import utc_now
from repositories.interfaces import OrderStore

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(
        self,
        orders: OrderStore,
        *,
        service_fee: Decimal = DEFAULT_SERVICE_FEE,
        max_tickets_per_batch: int = MAX_TICKETS_PER_BATCH,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._orders = orders
        self._service_fee = to_money(service_fee)
        self._max_tickets_per_batch = max_tickets_per_batch
        self._clock = clock

    @property
    def service_fee(self) -> Decimal:
        return self._service_fee

    def create_order(self, buyer_id: str, lines: Sequence[LineRequest], contact: BuyerContact) -> Order:
        """
        Create and persist a pending order.

        Unit prices are frozen on the items; subtotal and total are derived
        from them. Raises ValidationError for an empty cart or any
        non-positive quantity.
        """

        lines = validate_lines(lines, self._max_tickets_per_batch)
        order_id = str(uuid.uuid4())
        order = Order(
            order_id=order_id,
            buyer_id=buyer_id,
            service_fee=self._service_fee,
            contact=contact,
            created_at=self._clock(),
            items=tuple(
                OrderItem(
                    item_id=str(uuid.uuid4()),
                    order_id=order_id,
                    batch_id=line.batch_id,
                    quantity=line.quantity,
                    unit_price=to_money(line.unit_price),
                )
                for line in lines
            ),
        )
        self._orders.add(order)
        logger.info(
            "Created order %s for buyer %s: %d tickets, total %s",
            order.order_id, buyer_id, order.ticket_count, order.total,
        )
        return order

    def find_order(self, order_id: str) -> Optional[Order]:
        return self._orders.get(order_id)

    def get_order(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def list_orders_for_buyer(self, buyer_id: str) -> List[Order]:
        return self._orders.list_by_buyer(buyer_id)

    def save_transition(self, order: Order, expected: OrderStatus) -> Order:
        """Persist a status change made on the aggregate, if the stored status still matches."""

        if not self._orders.transition(order, expected):
            logger.warning(
                "Order %s changed concurrently; could not move %s -> %s",
                order.order_id, expected.value, order.status.value,
            )
            raise InvalidStateError(
                f"Order is no longer {expected.value}; it was updated by another request"
            )
        return order

    def mark_paid(self, order_id: str, contact: Optional[BuyerContact] = None) -> Order:
        order = self.get_order(order_id).mark_paid(self._clock(), contact)
        return self.save_transition(order, OrderStatus.PENDING)

    def mark_failed(self, order_id: str) -> Order:
        order = self.get_order(order_id).mark_failed()
        return self.save_transition(order, OrderStatus.PENDING)

    def mark_unfulfilled(self, order: Order) -> Order:
        return self.save_transition(order.mark_unfulfilled(), OrderStatus.PAID)

    def cancel(self, order_id: str, buyer_id: str) -> Order:
        order = self.get_order(order_id)
        if order.buyer_id != buyer_id:
            raise ForbiddenError("Only the buyer can cancel this order")
        return self.save_transition(order.cancel(), OrderStatus.PENDING)

    def list_stale_orders(self, older_than: timedelta) -> List[Order]:
        return self._orders.list_pending_created_before(self._clock() - older_than)

    def expire_stale_orders(self, older_than: timedelta) -> List[Order]:
        """
        Cancel pending orders created more than `older_than` ago.

        Inventory is untouched: pending orders never held any.
        """

        expired: List[Order] = []
        for order in self.list_stale_orders(older_than):
            try:
                expired.append(self.save_transition(order.cancel(), OrderStatus.PENDING))
            except InvalidStateError:
                # Paid or cancelled while we were sweeping.
                continue
        logger.info("Expired %d pending orders older than %s", len(expired), older_than)
        return expired

    @staticmethod
    def recompute_total(order: Order) -> Decimal:
        return recompute_total(order)


__all__ = ["OrderService"]
