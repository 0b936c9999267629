"""
Store wiring.

`Stores` bundles one adapter per aggregate. Build it once per process (API
startup, script entry point) and pass it to the services.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from supabase import Client  # type: ignore[import-not-found]

from repositories.batch_repository import SupabaseBatchRepository
from repositories.event_repository import SupabaseEventRepository
from repositories.interfaces import BatchStore, EventStore, OrderStore, PaymentStore, TicketStore
from repositories.memory import (
    MemoryBatchStore,
    MemoryDatabase,
    MemoryEventStore,
    MemoryOrderStore,
    MemoryPaymentStore,
    MemoryTicketStore,
)
from repositories.order_repository import SupabaseOrderRepository
from repositories.ticket_repository import SupabasePaymentRepository, SupabaseTicketRepository


@dataclass(frozen=True, slots=True)
class Stores:
    events: EventStore
    batches: BatchStore
    orders: OrderStore
    tickets: TicketStore
    payments: PaymentStore


def build_supabase_stores(client: Client) -> Stores:
    return Stores(
        events=SupabaseEventRepository(client),
        batches=SupabaseBatchRepository(client),
        orders=SupabaseOrderRepository(client),
        tickets=SupabaseTicketRepository(client),
        payments=SupabasePaymentRepository(client),
    )


def build_memory_stores(db: Optional[MemoryDatabase] = None) -> Stores:
    db = db or MemoryDatabase()
    return Stores(
        events=MemoryEventStore(db),
        batches=MemoryBatchStore(db),
        orders=MemoryOrderStore(db),
        tickets=MemoryTicketStore(db),
        payments=MemoryPaymentStore(db),
    )


__all__ = ["Stores", "build_supabase_stores", "build_memory_stores"]
