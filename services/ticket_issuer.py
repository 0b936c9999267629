"""
Ticket issuer: converts a paid order's line items into individual tickets.

Issuance and the inventory decrement form one unit. The order is first claimed
for issuance with a conditional write, so overlapping calls cannot both take
stock. Inventory is then decremented (all-or-nothing across batches) and every
ticket row is inserted in a single write; if that write fails the decrement is
restored and the claim dropped. Issuing again for the same order returns the
tickets already on record.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Sequence

from domain.errors import InvalidStateError, PersistenceError
from domain.order import Order, OrderStatus
from domain.ticket import Ticket, TicketStatus, generate_ticket_number, qr_payload
from domain.time import utc_now
from repositories.interfaces import OrderStore, TicketStore
from services.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IssuanceResult:
    """
    tickets: the order's tickets
    created: False when the tickets already existed and nothing was changed
    """

    tickets: List[Ticket]
    created: bool


def quantities_by_batch(order: Order) -> Dict[str, int]:
    quantities: Dict[str, int] = {}
    for item in order.items:
        quantities[item.batch_id] = quantities.get(item.batch_id, 0) + item.quantity
    return quantities


class TicketIssuer:
    def __init__(
        self,
        tickets: TicketStore,
        orders: OrderStore,
        ledger: InventoryLedger,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._tickets = tickets
        self._orders = orders
        self._ledger = ledger
        self._clock = clock

    def _build_tickets(self, order: Order) -> List[Ticket]:
        issued_at = self._clock()
        tickets: List[Ticket] = []
        for item in order.items:
            for _ in range(item.quantity):
                number = generate_ticket_number(issued_at)
                tickets.append(
                    Ticket(
                        ticket_id=str(uuid.uuid4()),
                        batch_id=item.batch_id,
                        order_id=order.order_id,
                        ticket_number=number,
                        status=TicketStatus.SOLD,
                        # One holder per order: the contact snapshot.
                        holder_name=order.contact.name,
                        holder_email=order.contact.email,
                        qr_code=qr_payload(number, issued_at),
                        created_at=issued_at,
                    )
                )
        return tickets

    def issue_tickets_for_order(self, order: Order) -> IssuanceResult:
        """
        Issue one ticket per unit on every line of a paid order.

        Raises:
            InvalidStateError: order is not paid, or another call is issuing it
            AvailabilityError: a batch no longer has enough units (nothing changed)
            PersistenceError: tickets could not be stored (inventory restored)
        """

        if order.status is not OrderStatus.PAID:
            raise InvalidStateError(
                f"Tickets can only be issued for paid orders (order is {order.status.value})"
            )

        existing = self._tickets.list_by_order(order.order_id)
        if existing:
            logger.info("Order %s already has %d tickets; not reissuing", order.order_id, len(existing))
            return IssuanceResult(tickets=existing, created=False)

        if not self._orders.claim_ticket_issuance(order.order_id, self._clock()):
            existing = self._tickets.list_by_order(order.order_id)
            if existing:
                return IssuanceResult(tickets=existing, created=False)
            raise InvalidStateError(f"Tickets for order {order.order_id} are already being issued")

        quantities = quantities_by_batch(order)
        issued = False
        try:
            self._ledger.decrement_all(quantities)
            tickets = self._build_tickets(order)
            try:
                self._tickets.add_many(tickets)
            except PersistenceError:
                logger.error("Ticket insert failed for order %s; restoring inventory", order.order_id)
                self._ledger.restore_all(quantities)
                raise
            issued = True
        finally:
            if not issued:
                self._orders.release_ticket_issuance(order.order_id)

        logger.info("Issued %d tickets for order %s", len(tickets), order.order_id)
        return IssuanceResult(tickets=tickets, created=True)

    def list_tickets_for_order(self, order_id: str) -> List[Ticket]:
        return self._tickets.list_by_order(order_id)

    def list_tickets_for_orders(self, order_ids: Sequence[str]) -> List[Ticket]:
        return self._tickets.list_by_orders(order_ids)


__all__ = ["IssuanceResult", "TicketIssuer", "quantities_by_batch"]
