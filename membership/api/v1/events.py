"""Event endpoints: public listing, member registration, admin management."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from membership.api.v1.auth import get_current_user, require_admin
from membership.api.v1.deps import get_event_service
from membership.schemas.auth import CurrentUser
from membership.schemas.common import MessageResponse
from membership.schemas.event import EventCreate, EventListResponse, EventOut, EventResponse, EventUpdate
from membership.services.events import EventService

router = APIRouter()

Service = Annotated[EventService, Depends(get_event_service)]


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(
    body: EventCreate,
    service: Service,
    admin: Annotated[CurrentUser, Depends(require_admin)],
) -> EventResponse:
    """Create an event (admin only); the slug is derived from the title."""
    event = service.create(body, created_by=admin.id)
    return EventResponse(event=EventOut.model_validate(event))


@router.get("", response_model=EventListResponse)
def list_events(service: Service) -> EventListResponse:
    """All events, most recent start date first."""
    return EventListResponse(events=[EventOut.model_validate(e) for e in service.list_events()])


@router.get("/{slug}", response_model=EventResponse)
def get_event(slug: str, service: Service) -> EventResponse:
    return EventResponse(event=EventOut.model_validate(service.get_by_slug(slug)))


@router.post("/{slug}/register", response_model=MessageResponse)
def register_to_event(
    slug: str,
    service: Service,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> MessageResponse:
    """
    Register the caller to an event.

    404 for an unknown slug, 400 when already registered or the event is full.
    """
    service.register(slug, current_user.id)
    return MessageResponse(message="Registration confirmed")


@router.put("/{event_id}", response_model=EventResponse)
def update_event(
    event_id: int,
    body: EventUpdate,
    service: Service,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
) -> EventResponse:
    return EventResponse(event=EventOut.model_validate(service.update(event_id, body)))


@router.delete("/{event_id}", response_model=MessageResponse)
def delete_event(
    event_id: int,
    service: Service,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
) -> MessageResponse:
    service.delete(event_id)
    return MessageResponse(message="Event deleted")
