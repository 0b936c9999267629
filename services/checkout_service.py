"""
Checkout service: the order state machine.

States: NEW -> PENDING -> PAID | FAILED | CANCELLED

Handles:
- Validation of the buyer, the event and every requested batch (all
  violations reported together)
- Pending order creation at current batch prices, without touching inventory
- Payment capture, ticket issuance and the authoritative inventory decrement
- Compensation (refund, failing the order) when checkout cannot complete

`CheckoutOrchestrator` raises CheckoutError subclasses. `CheckoutService` is
the boundary used by the presentation layer: it never raises and returns a
CheckoutResult instead.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Mapping, Optional, Tuple

from domain.errors import (
    AuthRequiredError,
    AvailabilityError,
    CheckoutError,
    ErrorCode,
    EventUnavailableError,
    OrderNotFoundError,
    PaymentFailedError,
    ValidationError,
)
from domain.event import Event, EventStatus
from domain.order import MAX_TICKETS_PER_BATCH, BuyerContact, LineRequest, Order, OrderStatus
from domain.ticket import Payment, PaymentStatus, Ticket
from domain.time import utc_now
from repositories.interfaces import PaymentStore
from services.inventory_ledger import InventoryLedger
from services.order_service import OrderService
from services.payment_gateway import CaptureRequest, CaptureResult, PaymentGateway
from services.ticket_issuer import TicketIssuer

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CheckoutResult:
    """
    Result handed to the presentation layer.

    success: True if the operation completed
    order: the created or paid order
    tickets: tickets issued by checkout (empty for order creation)
    error: human-readable message (None if success=True)
    error_code: ErrorCode value for programmatic handling
    errors: every individual violation, for aggregated validation failures
    """

    success: bool
    order: Optional[Order] = None
    tickets: Tuple[Ticket, ...] = ()
    error: Optional[str] = None
    error_code: Optional[str] = None
    errors: Tuple[str, ...] = ()

    @staticmethod
    def failure(exc: CheckoutError) -> "CheckoutResult":
        return CheckoutResult(
            success=False,
            error=exc.message,
            error_code=exc.code.value,
            errors=tuple(exc.errors),
        )


class CheckoutOrchestrator:
    def __init__(
        self,
        *,
        orders: OrderService,
        ledger: InventoryLedger,
        issuer: TicketIssuer,
        payments: PaymentStore,
        gateway: PaymentGateway,
        max_tickets_per_batch: int = MAX_TICKETS_PER_BATCH,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._orders = orders
        self._ledger = ledger
        self._issuer = issuer
        self._payments = payments
        self._gateway = gateway
        self._max_tickets_per_batch = max_tickets_per_batch
        self._clock = clock

    # ------------------------------------------------------------------
    # Order creation
    # ------------------------------------------------------------------

    def _check_batches(self, event: Event, requested: Mapping[str, int]) -> List[LineRequest]:
        """Validate every requested batch and return priced lines; collects all violations."""

        now = self._clock()
        errors: List[str] = []
        lines: List[LineRequest] = []

        for batch_id, qty in requested.items():
            batch = event.find_batch(batch_id)
            if batch is None:
                errors.append(f"Batch {batch_id} not found")
                continue

            # Remaining stock comes from the store, not the event snapshot.
            availability = self._ledger.check_availability(batch_id, qty)
            if not availability.available:
                errors.append(
                    f"Insufficient quantity for {batch.title} "
                    f"(available: {availability.available_qty}, requested: {qty})"
                )
            if qty > self._max_tickets_per_batch:
                errors.append(f"Maximum of {self._max_tickets_per_batch} tickets per batch for {batch.title}")
            if batch.price <= 0:
                errors.append(f"Invalid price for {batch.title}")
            if not batch.is_on_sale(now):
                errors.append(f"{batch.title} is not on sale")

            lines.append(LineRequest(batch_id=batch_id, quantity=qty, unit_price=batch.price))

        if errors:
            raise AvailabilityError(errors)
        return lines

    def create_order(
        self,
        event: Event,
        ticket_quantities: Mapping[str, int],
        buyer_id: Optional[str],
        buyer_contact: Optional[BuyerContact] = None,
    ) -> Order:
        """
        Validate a ticket selection and open a pending order.

        Does not touch inventory: the availability check here is advisory,
        and two buyers may both hold pending orders for the last unit.
        """

        if not buyer_id:
            raise AuthRequiredError()

        negative = [batch_id for batch_id, qty in ticket_quantities.items() if qty < 0]
        if negative:
            raise ValidationError([f"Quantity for batch {batch_id} cannot be negative" for batch_id in negative])
        requested = {batch_id: qty for batch_id, qty in ticket_quantities.items() if qty > 0}
        if not requested:
            raise ValidationError("Select at least one ticket to continue.")

        now = self._clock()
        if not event.is_open_for_sale(now):
            if event.status != EventStatus.PUBLISHED:
                raise EventUnavailableError("This event is no longer available for purchase.")
            raise EventUnavailableError("This event has already started and is no longer available for purchase.")

        lines = self._check_batches(event, requested)
        contact = buyer_contact or BuyerContact(name="", email="")
        return self._orders.create_order(buyer_id, lines, contact)

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def _record_payment(
        self, order: Order, method: str, status: PaymentStatus, reference: Optional[str]
    ) -> Payment:
        return self._payments.add(
            Payment(
                payment_id=str(uuid.uuid4()),
                order_id=order.order_id,
                provider=method,
                provider_payment_id=reference,
                status=status,
                amount=order.total,
                created_at=self._clock(),
            )
        )

    def _refund(self, order: Order, method: str, capture: CaptureResult, reason: str) -> None:
        """Refund a capture and append the refund to the audit log."""

        logger.warning("Refunding order %s (%s): %s", order.order_id, capture.reference, reason)
        try:
            refund = self._gateway.refund(capture.reference or "", order.total)
            self._record_payment(order, method, PaymentStatus.REFUNDED, refund.reference or capture.reference)
        except Exception:
            # The original failure is what the caller needs to see.
            logger.exception("Refund for order %s could not be completed; manual action needed", order.order_id)

    def _claim(self, order: Order, method: str, capture: CaptureResult, contact: BuyerContact) -> Order:
        """Persist pending -> paid. Exactly one concurrent checkout of an order gets past here."""

        try:
            return self._orders.save_transition(order.mark_paid(self._clock(), contact), OrderStatus.PENDING)
        except Exception as exc:
            self._refund(order, method, capture, str(exc))
            raise

    def _fulfil(self, paid: Order, method: str, capture: CaptureResult) -> List[Ticket]:
        try:
            self._record_payment(paid, method, PaymentStatus.COMPLETED, capture.reference)
            return self._issuer.issue_tickets_for_order(paid).tickets
        except Exception as exc:
            self._refund(paid, method, capture, str(exc))
            try:
                self._orders.mark_unfulfilled(paid)
            except CheckoutError:
                logger.exception("Order %s is paid without tickets and could not be failed", paid.order_id)
            raise

    def process_checkout(
        self,
        order_id: str,
        payment_method: str,
        buyer_contact: BuyerContact,
    ) -> Tuple[Order, List[Ticket]]:
        """
        Capture payment for a pending order and issue its tickets.

        Failure policy:
        - not found / not pending / bad contact: nothing happens
        - payment declined: a failed Payment is logged, order stays pending
        - another checkout paid the order first: this capture is refunded
        - stock ran out since the order was created: refund, order -> failed
        """

        order = self._orders.get_order(order_id)
        order.require_status(OrderStatus.PENDING, "check out")
        buyer_contact.validate()
        if not payment_method:
            raise ValidationError("Payment method is required")

        capture = self._gateway.capture(
            CaptureRequest(order_id=order.order_id, method=payment_method, amount=order.total)
        )
        if not capture.success:
            logger.info("Payment declined for order %s: %s", order.order_id, capture.message)
            self._record_payment(order, payment_method, PaymentStatus.FAILED, capture.reference)
            raise PaymentFailedError(capture.message or "Payment was not approved. Please try again.")

        paid = self._claim(order, payment_method, capture, buyer_contact)
        tickets = self._fulfil(paid, payment_method, capture)

        logger.info("Checkout complete for order %s: %d tickets", paid.order_id, len(tickets))
        return paid, tickets


class CheckoutService:
    """
    Presentation-layer boundary over CheckoutOrchestrator.

    Every call returns a CheckoutResult; domain errors become
    `success=False` results and unexpected errors are logged with context
    and reported generically.
    """

    def __init__(self, orchestrator: CheckoutOrchestrator, orders: OrderService, issuer: TicketIssuer) -> None:
        self._orchestrator = orchestrator
        self._orders = orders
        self._issuer = issuer

    def _run(self, operation: str, context: Mapping[str, object], call: Callable[[], CheckoutResult]) -> CheckoutResult:
        try:
            return call()
        except CheckoutError as exc:
            logger.info("%s rejected (%s): %s", operation, dict(context), exc)
            return CheckoutResult.failure(exc)
        except Exception:
            logger.exception("%s failed unexpectedly (%s)", operation, dict(context))
            return CheckoutResult(
                success=False,
                error=f"Unexpected error during {operation}. Please try again.",
                error_code=ErrorCode.INTERNAL.value,
            )

    def create_order(
        self,
        event: Event,
        ticket_quantities: Mapping[str, int],
        buyer_id: Optional[str],
        buyer_contact: Optional[BuyerContact] = None,
    ) -> CheckoutResult:
        def call() -> CheckoutResult:
            order = self._orchestrator.create_order(event, ticket_quantities, buyer_id, buyer_contact)
            return CheckoutResult(success=True, order=order)

        return self._run("create order", {"event_id": event.event_id, "buyer_id": buyer_id}, call)

    def process_checkout(self, order_id: str, payment_method: str, buyer_contact: BuyerContact) -> CheckoutResult:
        def call() -> CheckoutResult:
            order, tickets = self._orchestrator.process_checkout(order_id, payment_method, buyer_contact)
            return CheckoutResult(success=True, order=order, tickets=tuple(tickets))

        return self._run("checkout", {"order_id": order_id, "method": payment_method}, call)

    def cancel_order(self, order_id: str, buyer_id: str) -> CheckoutResult:
        def call() -> CheckoutResult:
            return CheckoutResult(success=True, order=self._orders.cancel(order_id, buyer_id))

        return self._run("cancel order", {"order_id": order_id, "buyer_id": buyer_id}, call)

    def get_order(self, order_id: str, buyer_id: str) -> CheckoutResult:
        def call() -> CheckoutResult:
            order = self._orders.get_order(order_id)
            if order.buyer_id != buyer_id:
                # Do not reveal other buyers' orders.
                raise OrderNotFoundError(order_id)
            tickets = self._issuer.list_tickets_for_order(order_id)
            return CheckoutResult(success=True, order=order, tickets=tuple(tickets))

        return self._run("fetch order", {"order_id": order_id}, call)

    def list_tickets(self, buyer_id: str) -> List[Ticket]:
        """Tickets from the buyer's paid orders."""

        paid = [o for o in self._orders.list_orders_for_buyer(buyer_id) if o.status is OrderStatus.PAID]
        if not paid:
            return []
        return self._issuer.list_tickets_for_orders([o.order_id for o in paid])


__all__ = ["CheckoutOrchestrator", "CheckoutResult", "CheckoutService"]
