#!/usr/bin/env python3
"""
Pending Order Expiry Script

Cancels pending orders older than PENDING_ORDER_TTL_HOURS (or --hours).
Pending orders never hold inventory, so nothing is restored; this only keeps
abandoned carts from being paid days later at stale prices.

Not scheduled by the application. Run it from cron or by hand.

Usage:
    python scripts/expire_pending_orders.py
    python scripts/expire_pending_orders.py --hours 48
    python scripts/expire_pending_orders.py --dry-run
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import Optional, Sequence

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import load_settings
from domain.errors import CheckoutError
from services.container import ServiceContainer, build_container

logger = logging.getLogger(__name__)


def expire_pending_orders(container: ServiceContainer, hours: int, dry_run: bool = False) -> int:
    """Cancel (or with dry_run, only count) pending orders older than `hours`. Returns the count."""

    older_than = timedelta(hours=hours)
    if dry_run:
        stale = container.orders.list_stale_orders(older_than)
        for order in stale:
            print(f"  would expire {order.order_id} (created {order.created_at.isoformat()}, total {order.total})")
        return len(stale)

    expired = container.orders.expire_stale_orders(older_than)
    for order in expired:
        print(f"  expired {order.order_id} (created {order.created_at.isoformat()})")
    return len(expired)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Cancel abandoned pending orders",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Use PENDING_ORDER_TTL_HOURS from the environment
  python scripts/expire_pending_orders.py

  # Expire anything pending for more than two days, listing first
  python scripts/expire_pending_orders.py --hours 48 --dry-run
        """
    )
    parser.add_argument(
        "--hours",
        type=int,
        help="Age in hours after which a pending order expires (default: PENDING_ORDER_TTL_HOURS)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the orders that would expire without changing them"
    )
    args = parser.parse_args(argv)

    settings = load_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
    hours = args.hours if args.hours is not None else settings.pending_order_ttl_hours
    if hours <= 0:
        print("ERROR: --hours must be positive", file=sys.stderr)
        return 2

    try:
        container = build_container(settings)
        print(f"Expiring pending orders older than {hours}h{' (dry run)' if args.dry_run else ''}...")
        count = expire_pending_orders(container, hours, dry_run=args.dry_run)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130
    except (CheckoutError, RuntimeError) as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        return 1

    print("=" * 60)
    print(f"{'Would expire' if args.dry_run else 'Expired'}: {count} orders")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
