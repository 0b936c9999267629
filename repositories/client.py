"""
Supabase client construction.

This module contains *only* the database connection setup. Unlike a
module-level client, the client is built on demand from Settings and handed
to each repository, so tests can substitute in-memory stores.
"""

from __future__ import annotations

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

from config import Settings


def create_supabase_client(settings: Settings) -> Client:
    """Create an official Supabase client from settings (raises if credentials are missing)."""

    url, key = settings.require_supabase()
    return create_client(url, key)


__all__ = ["create_supabase_client"]
