from pydantic import BaseModel

from volunteerhub.schemas.common import Pagination
from volunteerhub.schemas.event import EventResponse


class DashboardStats(BaseModel):
    users_by_role: dict[str, int]
    total_users: int
    events_by_status: dict[str, int]
    pending_events: int
    participations_by_status: dict[str, int]


class ApprovalHistoryResponse(BaseModel):
    events: list[EventResponse]
    pagination: Pagination
