"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import domain,
repositories and services, and wires every service over in-memory stores
with a fixed clock.
"""

import sys
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import Settings  # noqa: E402
from domain.event import Batch, Event, EventStatus  # noqa: E402
from domain.order import BuyerContact  # noqa: E402
from repositories.factory import build_memory_stores  # noqa: E402
from repositories.memory import MemoryDatabase  # noqa: E402
from services.container import build_container  # noqa: E402
from services.identity import Identity, StaticIdentityProvider  # noqa: E402
from services.payment_gateway import SimulatedPaymentGateway  # noqa: E402

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

BUYER = Identity(user_id="buyer-1", email="ana@example.com")
OTHER_BUYER = Identity(user_id="buyer-2", email="bruno@example.com")
PRODUCER = Identity(user_id="producer-1", email="producer@example.com")

TOKENS = {
    "buyer-token": BUYER,
    "other-token": OTHER_BUYER,
    "producer-token": PRODUCER,
}

CONTACT = BuyerContact(name="Ana Souza", email="ana@example.com", phone="+55 11 99999-0000")

# Payment method the simulated gateway always declines in tests.
DECLINED_METHOD = "boleto"


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


class RecordingGateway(SimulatedPaymentGateway):
    """Simulated gateway that keeps every capture request and refunded reference."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.captures = []
        self.refunds = []

    def capture(self, request):
        self.captures.append(request)
        return super().capture(request)

    def refund(self, reference, amount):
        self.refunds.append(reference)
        return super().refund(reference, amount)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def db() -> MemoryDatabase:
    return MemoryDatabase()


@pytest.fixture
def stores(db):
    return build_memory_stores(db)


@pytest.fixture
def gateway(clock) -> RecordingGateway:
    return RecordingGateway(decline_methods=(DECLINED_METHOD,), clock=clock)


@pytest.fixture
def settings() -> Settings:
    return Settings(store_backend="memory", resume_token_secret="test-secret")


@pytest.fixture
def container(settings, stores, gateway, clock):
    return build_container(
        settings,
        stores=stores,
        identity=StaticIdentityProvider(TOKENS),
        gateway=gateway,
        clock=clock,
    )


@pytest.fixture
def make_event(stores, clock):
    """
    Seed an event directly into the stores.

    `batches` is a sequence of (title, price, quantity) tuples; the returned
    Event carries its batches in the same order.
    """

    def _make(
        batches=(("Pista", "80.00", 100),),
        *,
        status: EventStatus = EventStatus.PUBLISHED,
        producer_id: str = PRODUCER.user_id,
        starts_in: timedelta = timedelta(days=30),
        title: str = "Festival de Verão",
    ) -> Event:
        event_id = str(uuid.uuid4())
        starts_at = clock() + starts_in
        event = Event(
            event_id=event_id,
            producer_id=producer_id,
            title=title,
            starts_at=starts_at,
            ends_at=starts_at + timedelta(hours=6),
            location="Arena Central",
            address="Av. Paulista, 1000 - São Paulo",
            status=status,
            url=f"festival-{event_id[:8]}",
            created_at=clock(),
        )
        stores.events.add(event)
        created = []
        for batch_title, price, quantity in batches:
            batch = Batch(
                batch_id=str(uuid.uuid4()),
                event_id=event_id,
                title=batch_title,
                price=Decimal(price),
                quantity=quantity,
                created_at=clock(),
            )
            stores.batches.add(batch)
            created.append(batch)
        return replace(event, batches=tuple(created))

    return _make


def batch_quantity(stores, batch_id: str) -> int:
    return stores.batches.get(batch_id).quantity
