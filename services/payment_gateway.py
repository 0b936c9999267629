"""
Payment capture boundary.

`PaymentGateway` is the swap point for a real provider. The only adapter
shipped is `SimulatedPaymentGateway`, which approves every supported method
and can be told to decline some of them.
"""

from __future__ import annotations

import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional

from domain.time import utc_now

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("pix", "credit_card", "debit_card", "boleto")


@dataclass(frozen=True, slots=True)
class CaptureRequest:
    order_id: str
    method: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class CaptureResult:
    success: bool
    reference: Optional[str] = None
    message: Optional[str] = None


class PaymentGateway(ABC):
    @abstractmethod
    def capture(self, request: CaptureRequest) -> CaptureResult:
        """Capture `request.amount`. Declines are results, not exceptions."""
        ...

    @abstractmethod
    def refund(self, reference: str, amount: Decimal) -> CaptureResult:
        ...


class SimulatedPaymentGateway(PaymentGateway):
    """Placeholder gateway: approves supported methods, declines the configured ones."""

    def __init__(
        self,
        decline_methods: Iterable[str] = (),
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._decline_methods = {m.lower() for m in decline_methods}
        self._clock = clock

    def _reference(self, prefix: str) -> str:
        millis = int(self._clock().timestamp() * 1000)
        return f"{prefix}_{millis}_{secrets.token_hex(4)}"

    def capture(self, request: CaptureRequest) -> CaptureResult:
        method = request.method.lower()
        if method not in SUPPORTED_METHODS:
            return CaptureResult(success=False, message=f"Unsupported payment method: {request.method}")
        if request.amount <= 0:
            return CaptureResult(success=False, message="Payment amount must be positive")
        if method in self._decline_methods:
            logger.info("Simulated decline for order %s via %s", request.order_id, method)
            return CaptureResult(success=False, message="Payment declined by provider")
        return CaptureResult(success=True, reference=self._reference("payment"))

    def refund(self, reference: str, amount: Decimal) -> CaptureResult:
        logger.info("Simulated refund of %s for payment %s", amount, reference)
        return CaptureResult(success=True, reference=self._reference("refund"))


__all__ = [
    "CaptureRequest",
    "CaptureResult",
    "PaymentGateway",
    "SimulatedPaymentGateway",
    "SUPPORTED_METHODS",
]
