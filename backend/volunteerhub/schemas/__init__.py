from volunteerhub.schemas.common import CountResponse, Pagination
from volunteerhub.schemas.event import EventCreate, EventDecisionRequest, EventResponse
from volunteerhub.schemas.notification import NotificationResponse
from volunteerhub.schemas.participation import ParticipationResponse
from volunteerhub.schemas.user import UserResponse, UserSummary

__all__ = [
    "CountResponse",
    "EventCreate",
    "EventDecisionRequest",
    "EventResponse",
    "NotificationResponse",
    "Pagination",
    "ParticipationResponse",
    "UserResponse",
    "UserSummary",
]
