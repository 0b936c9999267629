"""
Ticket and payment repositories (persistence).

Supabase adapters for TicketStore and PaymentStore. Payments are append-only:
this module exposes no update or delete for them.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Mapping, Sequence

from supabase import Client  # type: ignore[import-not-found]

from domain.ticket import Payment, PaymentStatus, Ticket, TicketStatus
from repositories.interfaces import PaymentStore, TicketStore
from repositories.rows import execute, money_to_db, parse_optional_datetime, parse_utc_datetime, to_iso_utc

_TICKETS_TABLE: str = "tickets"
_PAYMENTS_TABLE: str = "payments"

_SOLD_STATUSES = [TicketStatus.SOLD.value, TicketStatus.USED.value]


def _row_to_ticket(row: Mapping[str, Any]) -> Ticket:
    return Ticket(
        ticket_id=str(row["id"]),
        batch_id=str(row["batch_id"]),
        ticket_number=str(row["ticket_number"]),
        status=TicketStatus(row["status"]),
        holder_name=row.get("holder_name") or "",
        holder_email=row.get("holder_email") or "",
        order_id=str(row["order_id"]) if row.get("order_id") else None,
        qr_code=row.get("qr_code"),
        created_at=parse_optional_datetime(row.get("created_at")),
    )


def _ticket_to_row(ticket: Ticket) -> dict[str, Any]:
    return {
        "id": ticket.ticket_id,
        "batch_id": ticket.batch_id,
        "order_id": ticket.order_id,
        "ticket_number": ticket.ticket_number,
        "status": ticket.status.value,
        "holder_name": ticket.holder_name,
        "holder_email": ticket.holder_email,
        "qr_code": ticket.qr_code,
        "created_at": to_iso_utc(ticket.created_at, name="created_at"),
    }


def _row_to_payment(row: Mapping[str, Any]) -> Payment:
    return Payment(
        payment_id=str(row["id"]),
        order_id=str(row["order_id"]),
        provider=str(row["provider"]),
        provider_payment_id=row.get("provider_payment_id"),
        status=PaymentStatus(row["status"]),
        amount=Decimal(str(row["amount"])),
        created_at=parse_utc_datetime(row["created_at"]),
    )


class SupabaseTicketRepository(TicketStore):
    def __init__(self, client: Client) -> None:
        self._client = client

    def add_many(self, tickets: Sequence[Ticket]) -> List[Ticket]:
        if not tickets:
            return []
        execute(
            self._client.table(_TICKETS_TABLE).insert([_ticket_to_row(t) for t in tickets]),
            "create tickets",
        )
        return list(tickets)

    def list_by_order(self, order_id: str) -> List[Ticket]:
        rows = execute(
            self._client.table(_TICKETS_TABLE).select("*").eq("order_id", order_id),
            "list order tickets",
        )
        return [_row_to_ticket(row) for row in rows]

    def list_by_orders(self, order_ids: Sequence[str]) -> List[Ticket]:
        if not order_ids:
            return []
        rows = execute(
            self._client.table(_TICKETS_TABLE).select("*").in_("order_id", list(order_ids)),
            "list tickets for orders",
        )
        return [_row_to_ticket(row) for row in rows]

    def list_sold_by_batches(self, batch_ids: Sequence[str]) -> List[Ticket]:
        if not batch_ids:
            return []
        rows = execute(
            self._client.table(_TICKETS_TABLE)
            .select("*")
            .in_("batch_id", list(batch_ids))
            .in_("status", _SOLD_STATUSES),
            "list sold tickets",
        )
        return [_row_to_ticket(row) for row in rows]


class SupabasePaymentRepository(PaymentStore):
    def __init__(self, client: Client) -> None:
        self._client = client

    def add(self, payment: Payment) -> Payment:
        payload = {
            "id": payment.payment_id,
            "order_id": payment.order_id,
            "provider": payment.provider,
            "provider_payment_id": payment.provider_payment_id,
            "status": payment.status.value,
            "amount": money_to_db(payment.amount),
            "created_at": to_iso_utc(payment.created_at, name="created_at"),
        }
        execute(self._client.table(_PAYMENTS_TABLE).insert(payload), "record payment")
        return payment

    def list_by_order(self, order_id: str) -> List[Payment]:
        rows = execute(
            self._client.table(_PAYMENTS_TABLE)
            .select("*")
            .eq("order_id", order_id)
            .order("created_at", desc=False),
            "list order payments",
        )
        return [_row_to_payment(row) for row in rows]


__all__ = ["SupabaseTicketRepository", "SupabasePaymentRepository"]
