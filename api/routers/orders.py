"""
Orders API Endpoints.

Order creation, checkout, cancellation and the buyer's tickets.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_container, get_current_identity, get_optional_identity
from api.errors import status_for
from api.models import (
    CheckoutRequest,
    CheckoutResultResponse,
    CreateOrderRequest,
    ErrorResponse,
    OrderResponse,
    TicketResponse,
)
from services.checkout_service import CheckoutResult
from services.container import ServiceContainer
from services.identity import Identity

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    402: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def _respond(result: CheckoutResult, currency: str, success_status: int = 200) -> JSONResponse:
    body = CheckoutResultResponse(
        success=result.success,
        order=OrderResponse.from_domain(result.order, currency) if result.order is not None else None,
        tickets=[TicketResponse.from_domain(ticket) for ticket in result.tickets],
        error=result.error,
        error_code=result.error_code,
        errors=list(result.errors),
    )
    status_code = success_status if result.success else status_for(result.error_code)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@router.post(
    "/orders",
    response_model=CheckoutResultResponse,
    status_code=201,
    responses=_ERROR_RESPONSES,
    summary="Create Order",
    description="Validate a ticket selection and open a pending order. Inventory is not reserved."
)
def create_order(
    request: CreateOrderRequest,
    identity: Optional[Identity] = Depends(get_optional_identity),
    container: ServiceContainer = Depends(get_container),
):
    """
    Open a pending order at current batch prices.

    **Validation (all violations reported together):**
    - caller must be signed in
    - event must be published and not started
    - each batch: exists, enough remaining, at most 10 per batch, priced,
      active and inside its sale window

    The availability check is advisory: stock is only taken at checkout.
    """
    event = container.events.get_event(request.event_id)
    contact = request.buyer_contact.to_domain() if request.buyer_contact else None
    result = container.checkout.create_order(
        event,
        request.ticket_quantities,
        identity.user_id if identity else None,
        contact,
    )
    return _respond(result, container.settings.currency, success_status=201)


@router.get(
    "/orders/{order_id}",
    response_model=CheckoutResultResponse,
    responses=_ERROR_RESPONSES,
    summary="Get Order",
)
def get_order(
    order_id: str,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container),
):
    """Order with its tickets. Only visible to the buyer."""
    result = container.checkout.get_order(order_id, identity.user_id)
    return _respond(result, container.settings.currency)


@router.post(
    "/orders/{order_id}/checkout",
    response_model=CheckoutResultResponse,
    responses=_ERROR_RESPONSES,
    summary="Checkout Order",
    description="Capture payment for a pending order and issue its tickets."
)
def checkout_order(
    order_id: str,
    request: CheckoutRequest,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container),
):
    """
    Pay for a pending order.

    **Process:**
    1. Verifies the order belongs to the caller and is pending
    2. Validates buyer name and email
    3. Captures payment for the order total
    4. Marks the order paid and issues one ticket per unit, decrementing stock

    **Failures:**
    - declined payment: 402, order stays pending and can be retried
    - sold out since the order was created: 409, payment refunded, order failed
    - order already paid or cancelled: 409
    """
    owned = container.checkout.get_order(order_id, identity.user_id)
    if not owned.success:
        return _respond(owned, container.settings.currency)

    result = container.checkout.process_checkout(order_id, request.payment_method, request.buyer_contact.to_domain())
    return _respond(result, container.settings.currency)


@router.post(
    "/orders/{order_id}/cancel",
    response_model=CheckoutResultResponse,
    responses=_ERROR_RESPONSES,
    summary="Cancel Order",
)
def cancel_order(
    order_id: str,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container),
):
    """Cancel a pending order. No inventory is involved."""
    result = container.checkout.cancel_order(order_id, identity.user_id)
    return _respond(result, container.settings.currency)


@router.get(
    "/me/tickets",
    response_model=List[TicketResponse],
    summary="My Tickets",
)
def list_my_tickets(
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container),
):
    """Tickets from the caller's paid orders."""
    return [TicketResponse.from_domain(ticket) for ticket in container.checkout.list_tickets(identity.user_id)]
