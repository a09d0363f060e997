"""Participation: one volunteer's place on one event's roster."""

from enum import Enum

from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint

from volunteerhub.core.database import Base
from volunteerhub.models.shared import UTCDateTime, UUIDType, generate_uuid, utc_now


class ParticipationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"


class Participation(Base):
    __tablename__ = "participations"
    __table_args__ = (
        UniqueConstraint("event_id", "volunteer_id", name="uq_participations_event_id_volunteer_id"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    event_id = Column(
        UUIDType, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    volunteer_id = Column(
        UUIDType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(
        String(20), nullable=False, default=ParticipationStatus.PENDING.value, index=True
    )
    registered_at = Column(UTCDateTime, nullable=False, default=utc_now)
    completed_at = Column(UTCDateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    rating = Column(Integer, nullable=True)
    feedback = Column(Text, nullable=True)
    rated_at = Column(UTCDateTime, nullable=True)

    updated_at = Column(UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now)
