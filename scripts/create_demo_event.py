"""
Create demo event for testing and demos.

This script creates a published event with two batches, owned by the
producer id given on the command line (a Supabase auth user id):
- URL: festival-demo
- Batches: Pista (R$ 80.00 x 200), VIP (R$ 200.00 x 50)
"""

import sys
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

# Add parent directory to path so we can import from services
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import load_settings
from domain.event import EventStatus
from domain.time import utc_now
from services.container import build_container
from services.event_service import BatchDefinition, EventDraft

DEMO_EVENT_URL = "festival-demo"


def create_demo_event(producer_id: str):
    """Create the demo event unless its URL is already taken."""

    container = build_container(load_settings())
    if not container.events.is_url_available(DEMO_EVENT_URL):
        event = container.events.get_event_by_url(DEMO_EVENT_URL)
        print(f"Demo event already exists: {event.event_id}")
        return

    starts_at = utc_now().replace(hour=20, minute=0, second=0, microsecond=0) + timedelta(days=30)
    draft = EventDraft(
        title="Festival Demo",
        starts_at=starts_at,
        ends_at=starts_at + timedelta(hours=6),
        location="Arena Central",
        address="Av. Paulista, 1000 - São Paulo",
        description="Demo event for checkout testing",
        url=DEMO_EVENT_URL,
        status=EventStatus.PUBLISHED,
        batches=(
            BatchDefinition(title="Pista", price=Decimal("80.00"), quantity=200),
            BatchDefinition(title="VIP", price=Decimal("200.00"), quantity=50),
        ),
    )
    event = container.events.create_event(producer_id, draft)

    print(f"[SUCCESS] Demo event created successfully!")
    print(f"  Event ID: {event.event_id}")
    print(f"  URL: {event.url}")
    for batch in event.batches:
        print(f"  Batch {batch.title}: {batch.batch_id} ({batch.quantity} x {batch.price})")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/create_demo_event.py <producer-user-id>", file=sys.stderr)
        sys.exit(2)
    create_demo_event(sys.argv[1])
