"""
Identity provider: resolves a bearer token to the current user.

Supabase Auth issues the tokens; the backend only verifies them.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping, Optional

from supabase import AuthError, Client  # type: ignore[import-not-found]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Identity:
    user_id: str
    email: Optional[str] = None


class IdentityProvider(ABC):
    @abstractmethod
    def resolve(self, token: str) -> Optional[Identity]:
        """Return the identity behind `token`, or None if it is not valid."""
        ...


class SupabaseIdentityProvider(IdentityProvider):
    def __init__(self, client: Client) -> None:
        self._client = client

    def resolve(self, token: str) -> Optional[Identity]:
        if not token:
            return None
        try:
            response = self._client.auth.get_user(token)
        except AuthError as exc:
            logger.info("Rejected access token: %s", exc)
            return None
        user = response.user if response is not None else None
        if user is None:
            return None
        return Identity(user_id=str(user.id), email=user.email)


class StaticIdentityProvider(IdentityProvider):
    """Fixed token -> identity table, for the in-memory backend and tests."""

    def __init__(self, tokens: Optional[Mapping[str, Identity]] = None) -> None:
        self._tokens = dict(tokens or {})

    def resolve(self, token: str) -> Optional[Identity]:
        return self._tokens.get(token)


__all__ = ["Identity", "IdentityProvider", "StaticIdentityProvider", "SupabaseIdentityProvider"]
