"""
Request dependencies: the service container and the caller's identity.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from domain.errors import AuthRequiredError
from services.container import ServiceContainer
from services.identity import Identity


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_optional_identity(
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
) -> Optional[Identity]:
    """Identity from `Authorization: Bearer <token>`, or None for anonymous callers."""

    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return container.identity.resolve(token.strip())


def get_current_identity(identity: Optional[Identity] = Depends(get_optional_identity)) -> Identity:
    if identity is None:
        raise AuthRequiredError()
    return identity
