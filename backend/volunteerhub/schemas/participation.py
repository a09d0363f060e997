"""Participation (registration) schemas."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from volunteerhub.schemas.event import EventSummary
from volunteerhub.schemas.user import UserSummary


class ParticipantDecision(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ParticipationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    event_id: UUID
    volunteer_id: UUID
    status: str
    registered_at: datetime
    completed_at: datetime | None = None
    rejection_reason: str | None = None
    rating: int | None = None
    feedback: str | None = None
    rated_at: datetime | None = None


class RegistrationResponse(ParticipationResponse):
    event: EventSummary
    can_cancel: bool


class ParticipantStatusUpdate(BaseModel):
    status: ParticipantDecision | None = None
    reason: str | None = Field(default=None, max_length=500)
    is_completed: bool | None = None

    @model_validator(mode="after")
    def has_change(self) -> "ParticipantStatusUpdate":
        if self.status is None and self.is_completed is None:
            raise ValueError("either status or is_completed must be provided")
        return self


class BulkParticipantStatusUpdate(ParticipantStatusUpdate):
    participant_ids: list[UUID] = Field(min_length=1)


class RosterEntry(ParticipationResponse):
    volunteer: UserSummary
    volunteer_email: str
    can_mark_completed: bool
    can_unmark_completed: bool


class RosterSummary(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
    completed: int
    capacity: int | None = None
    available_spots: int | None = None


class RosterResponse(BaseModel):
    event: EventSummary
    event_ended: bool
    participants: list[RosterEntry]
    summary: RosterSummary


class BulkParticipantUpdateResponse(BaseModel):
    updated: list[ParticipationResponse]
    count: int


class RatingRequest(BaseModel):
    # Range and type are checked by the ledger so bad values map to INVALID_RATING.
    rating: Any = None
    feedback: str | None = Field(default=None, max_length=1000)


class RatingEntry(BaseModel):
    rating: int
    feedback: str | None = None
    rated_at: datetime | None = None
    volunteer: UserSummary | None = None


class FeedbackSummary(BaseModel):
    event_id: UUID
    total_ratings: int
    average_rating: float
    distribution: dict[int, int]
    ratings: list[RatingEntry]
