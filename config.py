"""
Application settings.

Values come from the process environment, after `.env` in the project root is
loaded with python-dotenv. Settings are built explicitly by `load_settings()`
and passed down; nothing reads the environment at import time.

Environment variables:
- SUPABASE_URL / SUPABASE_KEY: required when STORE_BACKEND=supabase (use a
  server-side key only on the backend)
- STORE_BACKEND: "supabase" (default) or "memory"
- SERVICE_FEE: flat fee added to every order (default 5.00)
- MAX_TICKETS_PER_BATCH: per-order, per-batch cap (default 10)
- CURRENCY: display currency code (default BRL)
- RESUME_TOKEN_SECRET / RESUME_TOKEN_TTL_MINUTES: checkout resume tokens (the
  secret is required when STORE_BACKEND=supabase)
- PENDING_ORDER_TTL_HOURS: age after which the expiry script cancels pending orders
- LOG_LEVEL: logging level name (default INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from domain.money import to_money
from domain.order import DEFAULT_SERVICE_FEE, MAX_TICKETS_PER_BATCH

_ENV_PATH = Path(__file__).parent / ".env"


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    store_backend: str = "supabase"
    service_fee: Decimal = DEFAULT_SERVICE_FEE
    max_tickets_per_batch: int = MAX_TICKETS_PER_BATCH
    currency: str = "BRL"
    resume_token_secret: str = "change-me"
    resume_token_ttl_minutes: int = 30
    pending_order_ttl_hours: int = 24
    log_level: str = "INFO"

    def require_supabase(self) -> tuple[str, str]:
        if not self.supabase_url:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_URL. "
                "Set SUPABASE_URL to your Supabase project URL."
            )
        if not self.supabase_key:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_KEY. "
                "Set SUPABASE_KEY to your Supabase API key."
            )
        return self.supabase_url, self.supabase_key


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}") from None


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from `env` (defaults to os.environ after loading .env).
    """

    if env is None:
        load_dotenv(dotenv_path=_ENV_PATH)
        env = os.environ

    fee_raw = env.get("SERVICE_FEE")
    try:
        service_fee = to_money(fee_raw) if fee_raw else DEFAULT_SERVICE_FEE
    except ValueError:
        raise RuntimeError(f"Environment variable SERVICE_FEE must be numeric, got {fee_raw!r}") from None

    backend = (env.get("STORE_BACKEND") or "supabase").lower()
    if backend not in ("supabase", "memory"):
        raise RuntimeError(f"STORE_BACKEND must be 'supabase' or 'memory', got {backend!r}")

    resume_secret = env.get("RESUME_TOKEN_SECRET") or None
    if resume_secret is None and backend == "supabase":
        raise RuntimeError(
            "Missing environment variable: RESUME_TOKEN_SECRET. "
            "Set it to a long random value; it signs checkout resume tokens."
        )

    return Settings(
        supabase_url=env.get("SUPABASE_URL") or None,
        supabase_key=env.get("SUPABASE_KEY") or None,
        store_backend=backend,
        service_fee=service_fee,
        max_tickets_per_batch=_int(env, "MAX_TICKETS_PER_BATCH", MAX_TICKETS_PER_BATCH),
        currency=env.get("CURRENCY") or "BRL",
        resume_token_secret=resume_secret or "change-me",
        resume_token_ttl_minutes=_int(env, "RESUME_TOKEN_TTL_MINUTES", 30),
        pending_order_ttl_hours=_int(env, "PENDING_ORDER_TTL_HOURS", 24),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )


__all__ = ["Settings", "load_settings"]
