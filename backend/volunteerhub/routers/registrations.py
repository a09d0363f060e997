"""Registration endpoints for volunteers and roster decisions for organizers."""

from uuid import UUID

from fastapi import APIRouter, Depends

from volunteerhub.core.auth import require_organizer, require_volunteer
from volunteerhub.core.dependencies import get_participation_service
from volunteerhub.models.participation import ParticipationStatus
from volunteerhub.models.user import User
from volunteerhub.schemas.participation import (
    BulkParticipantStatusUpdate,
    BulkParticipantUpdateResponse,
    ParticipantStatusUpdate,
    ParticipationResponse,
    RegistrationResponse,
)
from volunteerhub.services.participation_service import ParticipationService

router = APIRouter()


@router.get(
    "/",
    response_model=list[RegistrationResponse],
    summary="List my registrations",
    responses={403: {"description": "Volunteer role required"}},
)
async def list_my_registrations(
    status: ParticipationStatus | None = None,
    volunteer: User = Depends(require_volunteer),
    service: ParticipationService = Depends(get_participation_service),
) -> list[RegistrationResponse]:
    return service.list_registrations(volunteer, status=status.value if status else None)


@router.delete(
    "/{registration_id}",
    status_code=204,
    summary="Cancel a registration",
    responses={
        400: {"description": "Event has already started"},
        403: {"description": "Not your registration"},
        404: {"description": "Registration not found"},
    },
)
async def cancel_registration(
    registration_id: UUID,
    volunteer: User = Depends(require_volunteer),
    service: ParticipationService = Depends(get_participation_service),
) -> None:
    service.cancel(registration_id, volunteer)


@router.patch(
    "/participants/{participant_id}",
    response_model=ParticipationResponse,
    summary="Approve, reject or mark a participant complete",
    responses={
        400: {"description": "Event full, event not ended, or invalid transition"},
        403: {"description": "Not the event organizer"},
        404: {"description": "Participant not found"},
    },
)
async def update_participant(
    participant_id: UUID,
    data: ParticipantStatusUpdate,
    organizer: User = Depends(require_organizer),
    service: ParticipationService = Depends(get_participation_service),
) -> ParticipationResponse:
    participation = service.update_status(
        participant_id,
        organizer,
        status=data.status,
        reason=data.reason,
        is_completed=data.is_completed,
    )
    return ParticipationResponse.model_validate(participation)


@router.post(
    "/participants/bulk",
    response_model=BulkParticipantUpdateResponse,
    summary="Apply one decision to many participants",
    responses={
        400: {"description": "Event full or events not ended"},
        403: {"description": "Some participants not found or not owned"},
    },
)
async def bulk_update_participants(
    data: BulkParticipantStatusUpdate,
    organizer: User = Depends(require_organizer),
    service: ParticipationService = Depends(get_participation_service),
) -> BulkParticipantUpdateResponse:
    """All-or-nothing: either every participant changes or none does."""
    updated = service.bulk_update_status(
        data.participant_ids,
        organizer,
        status=data.status,
        reason=data.reason,
        is_completed=data.is_completed,
    )
    return BulkParticipantUpdateResponse(
        updated=[ParticipationResponse.model_validate(p) for p in updated],
        count=len(updated),
    )
