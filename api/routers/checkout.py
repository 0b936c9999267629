"""
Checkout Resumption API Endpoints.

Carries an anonymous buyer's ticket selection through the sign-in redirect.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_container, get_current_identity
from api.models import (
    ErrorResponse,
    EventResponse,
    ResumeRequest,
    ResumeResponse,
    ResumeTokenRequest,
    ResumeTokenResponse,
)
from services.container import ServiceContainer
from services.identity import Identity

router = APIRouter()


@router.post(
    "/checkout/resume-tokens",
    response_model=ResumeTokenResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Save Selection For Sign-In",
)
def create_resume_token(
    request: ResumeTokenRequest,
    container: ServiceContainer = Depends(get_container),
):
    """
    Sign the current ticket selection so it survives the sign-in redirect.

    No authentication required; the token expires after
    RESUME_TOKEN_TTL_MINUTES.
    """
    container.events.get_event(request.event_id)
    token = container.resume_tokens.issue(request.event_id, request.ticket_quantities)
    return ResumeTokenResponse(token=token, expires_in_minutes=container.settings.resume_token_ttl_minutes)


@router.post(
    "/checkout/resume",
    response_model=ResumeResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Resume Selection After Sign-In",
)
def resume_checkout(
    request: ResumeRequest,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container),
):
    """Return the saved selection with fresh event data, ready for POST /orders."""
    pending = container.resume_tokens.resume(request.token)
    event = container.events.get_event(pending.event_id)
    return ResumeResponse(
        event_id=pending.event_id,
        ticket_quantities=pending.ticket_quantities,
        event=EventResponse.from_domain(event),
    )
