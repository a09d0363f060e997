"""Event registry endpoints plus the per-event ledger views."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from volunteerhub.core.auth import get_optional_user, require_organizer, require_volunteer
from volunteerhub.core.database import get_db
from volunteerhub.core.dependencies import get_event_service, get_participation_service
from volunteerhub.models.event import EventCategory, EventStatus
from volunteerhub.models.user import User
from volunteerhub.schemas.common import Pagination
from volunteerhub.schemas.event import (
    EventCreate,
    EventDetailResponse,
    EventListResponse,
    OrganizerEventResponse,
)
from volunteerhub.schemas.participation import (
    FeedbackSummary,
    RatingRequest,
    RegistrationResponse,
    RosterResponse,
)
from volunteerhub.services.event_service import EventService
from volunteerhub.services.participation_service import ParticipationService

router = APIRouter()


@router.get(
    "/",
    response_model=EventListResponse,
    summary="List open events",
)
async def list_events(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    category: EventCategory | None = None,
    search: str | None = Query(default=None, max_length=200),
    order_by: str | None = Query(default=None),
    viewer: User | None = Depends(get_optional_user),
    service: EventService = Depends(get_event_service),
) -> EventListResponse:
    """Approved events that have not ended, soonest first."""
    events, total = service.list_events(
        page=page,
        limit=limit,
        category=category.value if category else None,
        search=search,
        order_by=order_by,
        viewer=viewer,
    )
    return EventListResponse(events=events, pagination=Pagination.build(page, limit, total))


@router.post(
    "/",
    response_model=EventDetailResponse,
    status_code=201,
    summary="Create an event",
    responses={
        400: {"description": "Invalid event dates"},
        403: {"description": "Organizer role required"},
    },
)
async def create_event(
    data: EventCreate,
    organizer: User = Depends(require_organizer),
    service: EventService = Depends(get_event_service),
) -> EventDetailResponse:
    """Create an event awaiting admin approval."""
    event = service.create_event(data, organizer)
    return service.get_event_detail(event.id, organizer)  # type: ignore[arg-type]


@router.get(
    "/mine",
    response_model=list[OrganizerEventResponse],
    summary="List the caller's events",
    responses={403: {"description": "Organizer role required"}},
)
async def list_my_events(
    status: EventStatus | None = None,
    organizer: User = Depends(require_organizer),
    service: EventService = Depends(get_event_service),
) -> list[OrganizerEventResponse]:
    return service.list_organizer_events(organizer, status=status.value if status else None)


@router.get(
    "/{event_id}",
    response_model=EventDetailResponse,
    summary="Get event details",
    responses={404: {"description": "Event not found"}},
)
async def get_event(
    event_id: UUID,
    viewer: User | None = Depends(get_optional_user),
    service: EventService = Depends(get_event_service),
) -> EventDetailResponse:
    return service.get_event_detail(event_id, viewer)


@router.post(
    "/{event_id}/register",
    response_model=RegistrationResponse,
    status_code=201,
    summary="Register for an event",
    responses={
        400: {"description": "Event not open, full, or already registered"},
        404: {"description": "Event not found"},
    },
)
async def register_for_event(
    event_id: UUID,
    volunteer: User = Depends(require_volunteer),
    service: ParticipationService = Depends(get_participation_service),
) -> RegistrationResponse:
    participation = service.register(event_id, volunteer)
    event = service.event_repo.get_by_id(event_id)
    return service.registration_response(participation, event)  # type: ignore[arg-type]


@router.get(
    "/{event_id}/participants",
    response_model=RosterResponse,
    summary="Get the event roster",
    responses={
        403: {"description": "Not the event organizer"},
        404: {"description": "Event not found"},
    },
)
async def get_participants(
    event_id: UUID,
    organizer: User = Depends(require_organizer),
    service: ParticipationService = Depends(get_participation_service),
) -> RosterResponse:
    return service.get_roster(event_id, organizer)


@router.post(
    "/{event_id}/rating",
    response_model=RegistrationResponse,
    summary="Rate a completed event",
    responses={
        400: {"description": "Invalid rating, not completed, or already rated"},
        404: {"description": "Participation not found"},
    },
)
async def rate_event(
    event_id: UUID,
    data: RatingRequest,
    volunteer: User = Depends(require_volunteer),
    service: ParticipationService = Depends(get_participation_service),
) -> RegistrationResponse:
    participation = service.rate(event_id, volunteer, data.rating, data.feedback)
    event = service.event_repo.get_by_id(event_id)
    return service.registration_response(participation, event)  # type: ignore[arg-type]


@router.get(
    "/{event_id}/feedback",
    response_model=FeedbackSummary,
    summary="Get ratings and feedback for an event",
    responses={
        403: {"description": "Not the event organizer"},
        404: {"description": "Event not found"},
    },
)
async def get_feedback(
    event_id: UUID,
    organizer: User = Depends(require_organizer),
    service: ParticipationService = Depends(get_participation_service),
) -> FeedbackSummary:
    return service.get_feedback(event_id, organizer)


@router.get(
    "/{event_id}/feedback/public",
    response_model=FeedbackSummary,
    summary="Get the anonymous rating summary for an event",
    responses={404: {"description": "Event not found"}},
)
async def get_public_feedback(
    event_id: UUID,
    db: Session = Depends(get_db),
) -> FeedbackSummary:
    return ParticipationService(db).get_feedback(event_id)
