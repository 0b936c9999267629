"""
Domain: Checkout error taxonomy.

Every failure the checkout core reports is a CheckoutError carrying a stable
code and a human-readable message. The boundary (CheckoutService, HTTP layer)
turns these into `{success: false, error}` results; nothing below it catches
them except to compensate and re-raise.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Sequence


class ErrorCode(str, Enum):
    VALIDATION = "VALIDATION_ERROR"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    FORBIDDEN = "FORBIDDEN"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    EVENT_UNAVAILABLE = "EVENT_UNAVAILABLE"
    AVAILABILITY = "AVAILABILITY_ERROR"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PERSISTENCE = "PERSISTENCE_ERROR"
    INTERNAL = "INTERNAL_ERROR"


class CheckoutError(Exception):
    """Base error with code and user-safe message."""

    code: ErrorCode = ErrorCode.VALIDATION

    def __init__(self, message: str, *, errors: Optional[Sequence[str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors: List[str] = list(errors) if errors else [message]

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(CheckoutError):
    """Malformed or missing input. All violations are listed in `errors`."""

    code = ErrorCode.VALIDATION

    def __init__(self, errors: Sequence[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        super().__init__("; ".join(errors), errors=errors)


class AuthRequiredError(CheckoutError):
    code = ErrorCode.AUTH_REQUIRED

    def __init__(self, message: str = "You must sign in to buy tickets.") -> None:
        super().__init__(message)


class ForbiddenError(CheckoutError):
    code = ErrorCode.FORBIDDEN


class EventNotFoundError(CheckoutError):
    code = ErrorCode.EVENT_NOT_FOUND

    def __init__(self, event_id: str) -> None:
        super().__init__("Event not found")
        self.event_id = event_id


class EventUnavailableError(CheckoutError):
    """Event is not published, or it has already started."""

    code = ErrorCode.EVENT_UNAVAILABLE


class AvailabilityError(CheckoutError):
    """
    One or more requested quantities cannot be sold.

    Raised with every violating batch listed, never just the first one.
    """

    code = ErrorCode.AVAILABILITY

    def __init__(self, errors: Sequence[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        super().__init__("Tickets not available: " + ", ".join(errors), errors=errors)


class OrderNotFoundError(CheckoutError):
    code = ErrorCode.ORDER_NOT_FOUND

    def __init__(self, order_id: str) -> None:
        super().__init__("Order not found")
        self.order_id = order_id


class InvalidStateError(CheckoutError):
    code = ErrorCode.INVALID_STATE


class PaymentFailedError(CheckoutError):
    code = ErrorCode.PAYMENT_FAILED


class PersistenceError(CheckoutError):
    """Store operation failed. Not recoverable within the current request."""

    code = ErrorCode.PERSISTENCE

    def __init__(self, operation: str, detail: object = None) -> None:
        message = f"Failed to {operation}"
        if detail is not None:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.operation = operation
