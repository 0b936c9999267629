"""
Tests for `config.py`.

Covers contract rules:
- Settings come from an explicit mapping, with documented defaults.
- Malformed numeric values fail loudly at startup.
- Supabase credentials are only required when asked for; a Supabase deployment
  must configure its resume token secret.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from config import Settings, load_settings


def test_defaults_from_minimal_environment() -> None:
    settings = load_settings({"RESUME_TOKEN_SECRET": "s3cret"})

    assert settings.store_backend == "supabase"
    assert settings.resume_token_secret == "s3cret"
    assert settings.service_fee == Decimal("5.00")
    assert settings.max_tickets_per_batch == 10
    assert settings.currency == "BRL"
    assert settings.pending_order_ttl_hours == 24
    assert settings.log_level == "INFO"


def test_values_are_read_from_environment() -> None:
    settings = load_settings(
        {
            "SUPABASE_URL": "https://example.supabase.co",
            "SUPABASE_KEY": "service-key",
            "STORE_BACKEND": "Memory",
            "SERVICE_FEE": "7.5",
            "MAX_TICKETS_PER_BATCH": "4",
            "RESUME_TOKEN_TTL_MINUTES": "15",
            "LOG_LEVEL": "debug",
        }
    )

    assert settings.store_backend == "memory"
    assert settings.service_fee == Decimal("7.50")
    assert settings.max_tickets_per_batch == 4
    assert settings.resume_token_ttl_minutes == 15
    assert settings.log_level == "DEBUG"
    assert settings.require_supabase() == ("https://example.supabase.co", "service-key")


@pytest.mark.parametrize(
    "env",
    [
        {"MAX_TICKETS_PER_BATCH": "ten"},
        {"SERVICE_FEE": "five"},
        {"STORE_BACKEND": "sqlite"},
    ],
)
def test_malformed_values_raise(env) -> None:
    with pytest.raises(RuntimeError):
        load_settings(env)


def test_supabase_backend_requires_resume_secret() -> None:
    with pytest.raises(RuntimeError) as exc:
        load_settings({"SUPABASE_URL": "https://example.supabase.co", "SUPABASE_KEY": "service-key"})
    assert "RESUME_TOKEN_SECRET" in str(exc.value)

    assert load_settings({"STORE_BACKEND": "memory"}).store_backend == "memory"


def test_require_supabase_names_missing_variable() -> None:
    with pytest.raises(RuntimeError) as exc:
        Settings(supabase_url="https://example.supabase.co").require_supabase()
    assert "SUPABASE_KEY" in str(exc.value)
