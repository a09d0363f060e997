from volunteerhub.models.channel import Comment, CommunicationChannel, Like, Post
from volunteerhub.models.event import Event, EventCategory, EventStatus
from volunteerhub.models.notification_log import NotificationLog, NotificationType
from volunteerhub.models.participation import Participation, ParticipationStatus
from volunteerhub.models.push_subscription import PushSubscription
from volunteerhub.models.refresh_token import RefreshToken
from volunteerhub.models.user import User, UserRole

__all__ = [
    "Comment",
    "CommunicationChannel",
    "Event",
    "EventCategory",
    "EventStatus",
    "Like",
    "NotificationLog",
    "NotificationType",
    "Participation",
    "ParticipationStatus",
    "Post",
    "PushSubscription",
    "RefreshToken",
    "User",
    "UserRole",
]
