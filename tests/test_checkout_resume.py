"""
Tests for `services/checkout_resume.py`.

Covers contract rules:
- A token carries the event and the positive quantities back unchanged.
- Expired, tampered, foreign-secret tokens are rejected.
- Empty selections are not saved.
"""

from __future__ import annotations

import pytest

from domain.errors import ValidationError
from services.checkout_resume import CheckoutResumeTokens


@pytest.fixture
def tokens(clock) -> CheckoutResumeTokens:
    return CheckoutResumeTokens("test-secret", ttl_minutes=30, clock=clock)


def test_round_trip_keeps_selection(tokens, clock) -> None:
    token = tokens.issue("event-1", {"pista": 2, "vip": 0, "camarote": 1})

    pending = tokens.resume(token)

    assert pending.event_id == "event-1"
    assert pending.ticket_quantities == {"pista": 2, "camarote": 1}
    assert pending.issued_at == clock()


def test_expired_token_is_rejected(tokens, clock) -> None:
    token = tokens.issue("event-1", {"pista": 2})
    clock.advance(minutes=31)

    with pytest.raises(ValidationError) as exc:
        tokens.resume(token)
    assert "expired" in exc.value.message


def test_tampered_token_is_rejected(tokens) -> None:
    token = tokens.issue("event-1", {"pista": 2})
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload[:-2] + ("AA" if payload[-2:] != "AA" else "BB"), signature])

    with pytest.raises(ValidationError) as exc:
        tokens.resume(tampered)
    assert exc.value.message == "Invalid checkout token"


def test_token_from_another_secret_is_rejected(tokens, clock) -> None:
    foreign = CheckoutResumeTokens("other-secret", clock=clock).issue("event-1", {"pista": 2})

    with pytest.raises(ValidationError):
        tokens.resume(foreign)


def test_empty_selection_is_not_saved(tokens) -> None:
    with pytest.raises(ValidationError):
        tokens.issue("event-1", {"pista": 0})


def test_secret_is_required(clock) -> None:
    with pytest.raises(ValueError):
        CheckoutResumeTokens("", clock=clock)
