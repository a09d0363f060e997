"""Event model and its approval state machine values."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, ForeignKey, Integer, String, Text

from volunteerhub.core.database import Base
from volunteerhub.models.shared import UTCDateTime, UUIDType, generate_uuid, utc_now


class EventStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class EventCategory(str, Enum):
    ENVIRONMENT = "ENVIRONMENT"
    EDUCATION = "EDUCATION"
    HEALTHCARE = "HEALTHCARE"
    COMMUNITY = "COMMUNITY"
    CHARITY = "CHARITY"
    DISASTER_RELIEF = "DISASTER_RELIEF"


class Event(Base):
    __tablename__ = "events"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(500), nullable=False)
    start_date = Column(UTCDateTime, nullable=False, index=True)
    end_date = Column(UTCDateTime, nullable=False)
    # NULL means unlimited
    capacity = Column(Integer, nullable=True)
    category = Column(String(50), nullable=False, index=True)
    image_url = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default=EventStatus.PENDING.value, index=True)
    organizer_id = Column(
        UUIDType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    approved_by = Column(UUIDType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(UTCDateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def has_started(self, now: datetime) -> bool:
        return self.start_date <= now  # type: ignore[no-any-return]

    def has_ended(self, now: datetime) -> bool:
        return self.end_date < now  # type: ignore[no-any-return]
