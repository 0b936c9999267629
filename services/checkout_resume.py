"""
Checkout resumption across the sign-in redirect.

An anonymous buyer who picks tickets is sent to sign in first. The selection
travels through the redirect as a short-lived signed token instead of living
in client storage, so it cannot be edited on the way back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping

from jose import JWTError, jwt

from domain.errors import ValidationError
from domain.time import utc_now

logger = logging.getLogger(__name__)

ALGORITHM: str = "HS256"
_PURPOSE: str = "checkout-resume"


@dataclass(frozen=True, slots=True)
class PendingCheckout:
    event_id: str
    ticket_quantities: Dict[str, int]
    issued_at: datetime


class CheckoutResumeTokens:
    def __init__(
        self,
        secret: str,
        ttl_minutes: int = 30,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if not secret:
            raise ValueError("secret is required")
        self._secret = secret
        self._ttl = timedelta(minutes=ttl_minutes)
        self._clock = clock

    def issue(self, event_id: str, ticket_quantities: Mapping[str, int]) -> str:
        quantities = {batch_id: int(qty) for batch_id, qty in ticket_quantities.items() if int(qty) > 0}
        if not event_id:
            raise ValidationError("Event is required")
        if not quantities:
            raise ValidationError("Select at least one ticket to continue.")

        now = self._clock()
        claims: Dict[str, Any] = {
            "purpose": _PURPOSE,
            "event_id": event_id,
            "quantities": quantities,
            "iat": int(now.timestamp()),
            "exp": now + self._ttl,
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def resume(self, token: str) -> PendingCheckout:
        """Verify a token and return the saved selection. Expired or tampered tokens are rejected."""

        try:
            # Expiry is checked against the service clock below.
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM], options={"verify_exp": False})
        except JWTError as exc:
            logger.info("Rejected checkout resume token: %s", exc)
            raise ValidationError("Invalid checkout token") from exc

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)) or exp <= self._clock().timestamp():
            raise ValidationError("Your saved checkout has expired. Please select your tickets again.")

        quantities = payload.get("quantities")
        if payload.get("purpose") != _PURPOSE or not payload.get("event_id") or not isinstance(quantities, dict):
            raise ValidationError("Invalid checkout token")

        return PendingCheckout(
            event_id=str(payload["event_id"]),
            ticket_quantities={str(k): int(v) for k, v in quantities.items()},
            issued_at=datetime.fromtimestamp(int(payload.get("iat", 0)), tz=timezone.utc),
        )


__all__ = ["CheckoutResumeTokens", "PendingCheckout"]
