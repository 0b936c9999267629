"""
Tests for the Supabase adapters, against a scripted stand-in client.

Covers contract rules:
- Batch decrements are compare-and-swap on the quantity read, retried when
  another writer got there first, and rejected (not clamped) on shortage.
- Order transitions are conditional on the stored status.
- PostgREST errors surface as PersistenceError naming the operation.
- An order whose items fail to persist is removed again.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest
from postgrest.exceptions import APIError

from conftest import CONTACT, NOW
from domain.errors import AvailabilityError, PersistenceError
from domain.order import Order, OrderItem, OrderStatus
from repositories.batch_repository import SupabaseBatchRepository
from repositories.order_repository import SupabaseOrderRepository


class FakeQuery:
    """Chainable builder: records every call, returns the next scripted response on execute()."""

    def __init__(self, client: "FakeClient", table: str) -> None:
        self.client = client
        self.table = table
        self.calls = []

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args))
            return self

        return method

    def execute(self):
        response = self.client.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return SimpleNamespace(data=response, count=None, error=None)


class FakeClient:
    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.queries = []

    def table(self, name: str) -> FakeQuery:
        query = FakeQuery(self, name)
        self.queries.append(query)
        return query


def _api_error(message: str) -> APIError:
    return APIError({"message": message, "code": "500", "hint": None, "details": None})


def _order() -> Order:
    return Order(
        order_id="order-1",
        buyer_id="buyer-1",
        service_fee=Decimal("5.00"),
        contact=CONTACT,
        created_at=NOW,
        items=(
            OrderItem(item_id="item-1", order_id="order-1", batch_id="b1", quantity=2, unit_price=Decimal("80.00")),
        ),
    )


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------


def test_decrement_swaps_on_read_quantity() -> None:
    client = FakeClient([{"id": "b1", "quantity": 5}], [{"id": "b1", "quantity": 3}])
    repo = SupabaseBatchRepository(client)

    assert repo.decrement_quantity("b1", 2) == 3

    swap = client.queries[1]
    assert ("update", ({"quantity": 3},)) in swap.calls
    assert ("eq", ("quantity", 5)) in swap.calls


def test_decrement_retries_after_losing_swap() -> None:
    """Verify a swap that matches no row (someone else wrote first) is retried on a fresh read."""

    client = FakeClient(
        [{"id": "b1", "quantity": 5}],
        [],
        [{"id": "b1", "quantity": 4}],
        [{"id": "b1", "quantity": 2}],
    )
    repo = SupabaseBatchRepository(client)

    assert repo.decrement_quantity("b1", 2) == 2
    assert ("eq", ("quantity", 4)) in client.queries[3].calls


def test_decrement_rejects_shortage_without_writing() -> None:
    client = FakeClient([{"id": "b1", "quantity": 1}])
    repo = SupabaseBatchRepository(client)

    with pytest.raises(AvailabilityError):
        repo.decrement_quantity("b1", 2)
    assert len(client.queries) == 1


def test_decrement_gives_up_under_constant_contention() -> None:
    client = FakeClient(*([[{"id": "b1", "quantity": 5}], []] * 2))
    repo = SupabaseBatchRepository(client, max_cas_attempts=2)

    with pytest.raises(PersistenceError):
        repo.decrement_quantity("b1", 1)


def test_api_error_becomes_persistence_error() -> None:
    client = FakeClient(_api_error("connection refused"))
    repo = SupabaseBatchRepository(client)

    with pytest.raises(PersistenceError) as exc:
        repo.get("b1")
    assert exc.value.message == "Failed to fetch batch: connection refused"


def test_batch_rows_parse_to_domain() -> None:
    client = FakeClient(
        [
            {
                "id": "b1",
                "event_id": "e1",
                "title": "Pista",
                "price": "80.00",
                "quantity": 10,
                "is_active": True,
                "sale_starts_at": "2026-03-01T12:00:00Z",
                "created_at": "2026-02-01T12:00:00+00:00",
            }
        ]
    )

    batch = SupabaseBatchRepository(client).get("b1")

    assert batch.price == Decimal("80.00")
    assert batch.sale_starts_at == NOW
    assert batch.sale_ends_at is None


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


def test_transition_is_conditional_on_expected_status() -> None:
    paid = _order().mark_paid(NOW)
    client = FakeClient([], [{"id": "order-1"}])
    repo = SupabaseOrderRepository(client)

    assert repo.transition(paid, OrderStatus.PENDING) is False
    assert repo.transition(paid, OrderStatus.PENDING) is True

    calls = client.queries[0].calls
    assert ("eq", ("status", "pending")) in calls
    update_payload = next(args[0] for name, args in calls if name == "update")
    assert update_payload["status"] == "paid"
    assert update_payload["total"] == "165.00"


def test_issuance_claim_only_matches_unclaimed_order() -> None:
    client = FakeClient([{"id": "order-1"}], [], [])
    repo = SupabaseOrderRepository(client)

    assert repo.claim_ticket_issuance("order-1", NOW) is True
    assert repo.claim_ticket_issuance("order-1", NOW) is False
    repo.release_ticket_issuance("order-1")

    claim = client.queries[0].calls
    assert ("update", ({"tickets_issued_at": "2026-03-01T12:00:00+00:00"},)) in claim
    assert ("is_", ("tickets_issued_at", "null")) in claim
    assert ("update", ({"tickets_issued_at": None},)) in client.queries[2].calls


def test_add_removes_order_when_items_fail() -> None:
    client = FakeClient([{"id": "order-1"}], _api_error("FK violation"), [])
    repo = SupabaseOrderRepository(client)

    with pytest.raises(PersistenceError):
        repo.add(_order())

    assert [q.table for q in client.queries] == ["orders", "order_items", "orders"]
    assert ("delete", ()) in client.queries[2].calls


def test_order_rows_recompute_totals_from_items() -> None:
    client = FakeClient(
        [
            {
                "id": "order-1",
                "user_id": "buyer-1",
                "status": "pending",
                "service_fee": "5.00",
                "total": "999.00",
                "buyer_name": "Ana Souza",
                "buyer_email": "ana@example.com",
                "created_at": "2026-03-01T12:00:00Z",
                "order_items": [
                    {"id": "i1", "order_id": "order-1", "batch_id": "b1", "quantity": 2, "unit_price": "80.00"},
                ],
            }
        ]
    )

    order = SupabaseOrderRepository(client).get("order-1")

    assert order.total == Decimal("165.00")
    assert order.status is OrderStatus.PENDING
    assert order.contact.email == "ana@example.com"
