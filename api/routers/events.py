"""
Events API Endpoints.

Public event catalog plus the producer's event management.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_container, get_current_identity, get_optional_identity
from api.models import (
    DeleteEventResponse,
    ErrorResponse,
    EventCreateRequest,
    EventListResponse,
    EventResponse,
    EventStatsResponse,
    EventUpdateRequest,
    ParticipantListResponse,
    ParticipantResponse,
)
from domain.errors import AuthRequiredError, EventNotFoundError, ForbiddenError
from domain.event import Event, EventStatus
from domain.time import to_utc
from repositories.interfaces import EventQuery
from services.container import ServiceContainer
from services.event_service import EventChanges, EventDraft
from services.identity import Identity

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def _visible_to(event: Event, identity: Optional[Identity]) -> bool:
    """Published events are public; anything else only to its producer."""
    if event.status == EventStatus.PUBLISHED:
        return True
    return identity is not None and event.is_owned_by(identity.user_id)


@router.post(
    "/events",
    response_model=EventResponse,
    status_code=201,
    responses=_ERROR_RESPONSES,
    summary="Create Event",
)
def create_event(
    request: EventCreateRequest,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container),
):
    """
    Create an event with its ticket batches.

    When `url` is omitted it is generated from the title. A URL already in
    use is rejected with suggested alternatives.
    """
    draft = EventDraft(
        title=request.title,
        starts_at=to_utc(request.starts_at),
        ends_at=to_utc(request.ends_at),
        location=request.location,
        address=request.address,
        batches=tuple(batch.to_domain() for batch in request.batches),
        description=request.description,
        url=request.url,
        image_url=request.image_url,
        status=request.status,
    )
    event = container.events.create_event(identity.user_id, draft)
    return EventResponse.from_domain(event)


@router.get(
    "/events",
    response_model=EventListResponse,
    summary="List Events",
)
def list_events(
    search: Optional[str] = Query(None, description="Matches title, description or location"),
    mine: bool = Query(False, description="Only the caller's events (any status except archived)"),
    status: Optional[EventStatus] = Query(None, description="Status filter for the caller's events"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    identity: Optional[Identity] = Depends(get_optional_identity),
    container: ServiceContainer = Depends(get_container),
):
    """
    Paginated event listing. Archived events are never listed.

    Anonymous and buyer listings only show published events.
    """
    if mine:
        if identity is None:
            raise AuthRequiredError("Sign in to see your events.")
        query = EventQuery(producer_id=identity.user_id, status=status, search=search, page=page, limit=limit)
    else:
        query = EventQuery(status=EventStatus.PUBLISHED, search=search, page=page, limit=limit)

    result = container.events.list_events(query)
    return EventListResponse(
        events=[EventResponse.from_domain(event) for event in result.events],
        total=result.total,
        page=result.page,
        limit=result.limit,
        has_more=result.has_more,
    )


@router.get(
    "/events/by-url/{url}",
    response_model=EventResponse,
    responses=_ERROR_RESPONSES,
    summary="Get Event By URL",
)
def get_event_by_url(
    url: str,
    identity: Optional[Identity] = Depends(get_optional_identity),
    container: ServiceContainer = Depends(get_container),
):
    event = container.events.get_event_by_url(url)
    if not _visible_to(event, identity):
        raise EventNotFoundError(url)
    return EventResponse.from_domain(event)


@router.get(
    "/events/{event_id}",
    response_model=EventResponse,
    responses=_ERROR_RESPONSES,
    summary="Get Event",
)
def get_event(
    event_id: str,
    identity: Optional[Identity] = Depends(get_optional_identity),
    container: ServiceContainer = Depends(get_container),
):
    event = container.events.get_event(event_id)
    if not _visible_to(event, identity):
        raise EventNotFoundError(event_id)
    return EventResponse.from_domain(event)


@router.put(
    "/events/{event_id}",
    response_model=EventResponse,
    responses=_ERROR_RESPONSES,
    summary="Update Event",
)
def update_event(
    event_id: str,
    request: EventUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container),
):
    """
    Edit an event. Only the producer can edit.

    **Batch reconciliation:** batches are matched to existing ones by title.
    Matched tiers are updated in place, new titles are created, and tiers
    whose title disappeared are removed (or deactivated when orders reference
    them). Renaming a tier therefore replaces it.
    """
    changes = EventChanges(
        title=request.title,
        description=request.description,
        starts_at=to_utc(request.starts_at),
        ends_at=to_utc(request.ends_at),
        location=request.location,
        address=request.address,
        url=request.url,
        image_url=request.image_url,
        status=request.status,
    )
    batches = [batch.to_domain() for batch in request.batches] if request.batches is not None else None
    event = container.events.update_event(event_id, identity.user_id, changes, batches)
    return EventResponse.from_domain(event)


@router.delete(
    "/events/{event_id}",
    response_model=DeleteEventResponse,
    responses=_ERROR_RESPONSES,
    summary="Delete Event",
)
def delete_event(
    event_id: str,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container),
):
    """
    Delete an event without sales; archive it otherwise.

    Archived events disappear from every listing but keep their paid history.
    """
    result = container.events.delete_event(event_id, identity.user_id)
    return DeleteEventResponse.from_domain(result)


@router.post(
    "/events/{event_id}/reactivate",
    response_model=EventResponse,
    responses=_ERROR_RESPONSES,
    summary="Reactivate Event",
)
def reactivate_event(
    event_id: str,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container),
):
    event = container.events.reactivate_event(event_id, identity.user_id)
    return EventResponse.from_domain(event)


@router.get(
    "/events/{event_id}/stats",
    response_model=EventStatsResponse,
    responses=_ERROR_RESPONSES,
    summary="Event Sales Stats",
)
def get_event_stats(
    event_id: str,
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container),
):
    """Tickets sold, participants and revenue (paid subtotals, fees excluded)."""
    event = container.events.get_event(event_id)
    if not event.is_owned_by(identity.user_id):
        raise ForbiddenError("Only the event's producer can see its stats")
    stats = container.events.get_event_stats(event_id)
    return EventStatsResponse.from_domain(event_id, stats, container.settings.currency)


@router.get(
    "/events/{event_id}/participants",
    response_model=ParticipantListResponse,
    responses=_ERROR_RESPONSES,
    summary="Event Participants",
)
def list_participants(
    event_id: str,
    search: Optional[str] = Query(None, description="Match holder name, email or ticket number"),
    identity: Identity = Depends(get_current_identity),
    container: ServiceContainer = Depends(get_container),
):
    """Holders of the event's sold and used tickets, newest first. Producer only."""
    participants = container.events.list_participants(event_id, identity.user_id, search)
    return ParticipantListResponse(
        event_id=event_id,
        participants=[ParticipantResponse.from_domain(p) for p in participants],
        total=len(participants),
    )
