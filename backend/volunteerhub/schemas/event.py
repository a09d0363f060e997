"""Event schemas."""

from datetime import datetime
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from volunteerhub.models.event import EventCategory
from volunteerhub.schemas.common import Pagination
from volunteerhub.schemas.user import UserSummary

REJECTION_REASON_MIN_LENGTH = 10
REJECTION_REASON_MAX_LENGTH = 500


class EventCreate(BaseModel):
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=20, max_length=2000)
    location: str = Field(min_length=5, max_length=500)
    start_date: datetime
    end_date: datetime
    capacity: int | None = Field(default=None, ge=1, le=10000)
    category: EventCategory
    image_url: str | None = Field(default=None, max_length=500)


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    location: str
    start_date: datetime
    end_date: datetime
    capacity: int | None = None
    category: str
    image_url: str | None = None
    status: str
    organizer_id: UUID
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime


class EventSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    location: str
    start_date: datetime
    end_date: datetime
    category: str
    image_url: str | None = None
    status: str


class EventDetailResponse(EventResponse):
    organizer: UserSummary | None = None
    approved_count: int
    available_spots: int | None = None
    is_full: bool
    user_registration: str | None = None
    can_user_register: bool
    channel_id: UUID | None = None


class EventListResponse(BaseModel):
    events: list[EventDetailResponse]
    pagination: Pagination


class OrganizerEventResponse(EventResponse):
    participant_counts: dict[str, int]


class DecisionAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class EventDecisionRequest(BaseModel):
    action: DecisionAction
    reason: str | None = Field(default=None, max_length=REJECTION_REASON_MAX_LENGTH)

    @model_validator(mode="after")
    def reason_required_for_reject(self) -> "EventDecisionRequest":
        if self.action != DecisionAction.REJECT:
            return self
        if len((self.reason or "").strip()) < REJECTION_REASON_MIN_LENGTH:
            raise ValueError(
                f"reason of at least {REJECTION_REASON_MIN_LENGTH} characters is required "
                "when rejecting an event"
            )
        return self


class BulkEventDecisionRequest(EventDecisionRequest):
    event_ids: list[UUID]


class BulkEventDecisionResponse(BaseModel):
    action: Literal["approve", "reject"]
    processed: list[EventResponse]
    skipped_ids: list[UUID]
