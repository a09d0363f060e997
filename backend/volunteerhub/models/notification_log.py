"""NotificationLog model: durable record of every notification sent to a user."""

from enum import Enum

from sqlalchemy import JSON, Boolean, Column, ForeignKey, String

from volunteerhub.core.database import Base
from volunteerhub.models.shared import UTCDateTime, UUIDType, generate_uuid, utc_now


class NotificationType(str, Enum):
    EVENT_APPROVAL_REQUIRED = "EVENT_APPROVAL_REQUIRED"
    EVENT_STATUS_CHANGE = "EVENT_STATUS_CHANGE"
    NEW_REGISTRATION = "NEW_REGISTRATION"
    REGISTRATION_STATUS_CHANGE = "REGISTRATION_STATUS_CHANGE"


class NotificationLog(Base):
    __tablename__ = "notification_logs"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    user_id = Column(
        UUIDType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(String(50), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    body = Column(String(1000), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    read_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utc_now, index=True)
