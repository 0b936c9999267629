"""
Service wiring.

One ServiceContainer per process. The API stores it on `app.state`; scripts
build their own.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from config import Settings
from domain.time import utc_now
from repositories.factory import Stores, build_memory_stores, build_supabase_stores
from services.checkout_resume import CheckoutResumeTokens
from services.checkout_service import CheckoutOrchestrator, CheckoutService
from services.event_service import EventService
from services.identity import IdentityProvider, StaticIdentityProvider, SupabaseIdentityProvider
from services.inventory_ledger import InventoryLedger
from services.order_service import OrderService
from services.payment_gateway import PaymentGateway, SimulatedPaymentGateway
from services.ticket_issuer import TicketIssuer


@dataclass(frozen=True, slots=True)
class ServiceContainer:
    settings: Settings
    stores: Stores
    identity: IdentityProvider
    ledger: InventoryLedger
    orders: OrderService
    issuer: TicketIssuer
    orchestrator: CheckoutOrchestrator
    checkout: CheckoutService
    events: EventService
    resume_tokens: CheckoutResumeTokens


def build_container(
    settings: Settings,
    *,
    stores: Optional[Stores] = None,
    identity: Optional[IdentityProvider] = None,
    gateway: Optional[PaymentGateway] = None,
    clock: Callable[[], datetime] = utc_now,
) -> ServiceContainer:
    """
    Wire every service from settings.

    With STORE_BACKEND=supabase one client serves both the stores and the
    identity provider. Explicit `stores` / `identity` take precedence.
    """

    if stores is None or identity is None:
        if settings.store_backend == "memory":
            stores = stores or build_memory_stores()
            identity = identity or StaticIdentityProvider()
        else:
            from repositories.client import create_supabase_client

            client = create_supabase_client(settings)
            stores = stores or build_supabase_stores(client)
            identity = identity or SupabaseIdentityProvider(client)

    gateway = gateway or SimulatedPaymentGateway(clock=clock)

    ledger = InventoryLedger(stores.batches)
    orders = OrderService(
        stores.orders,
        service_fee=settings.service_fee,
        max_tickets_per_batch=settings.max_tickets_per_batch,
        clock=clock,
    )
    issuer = TicketIssuer(stores.tickets, stores.orders, ledger, clock=clock)
    orchestrator = CheckoutOrchestrator(
        orders=orders,
        ledger=ledger,
        issuer=issuer,
        payments=stores.payments,
        gateway=gateway,
        max_tickets_per_batch=settings.max_tickets_per_batch,
        clock=clock,
    )
    return ServiceContainer(
        settings=settings,
        stores=stores,
        identity=identity,
        ledger=ledger,
        orders=orders,
        issuer=issuer,
        orchestrator=orchestrator,
        checkout=CheckoutService(orchestrator, orders, issuer),
        events=EventService(stores.events, stores.batches, stores.orders, stores.tickets, clock=clock),
        resume_tokens=CheckoutResumeTokens(
            settings.resume_token_secret, settings.resume_token_ttl_minutes, clock=clock
        ),
    )


__all__ = ["ServiceContainer", "build_container"]
