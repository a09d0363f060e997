"""Admin endpoints: dashboard, event review and user management."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from volunteerhub.core.auth import require_admin
from volunteerhub.core.database import get_db
from volunteerhub.core.dependencies import get_event_service
from volunteerhub.models.event import EventStatus
from volunteerhub.models.user import User, UserRole
from volunteerhub.schemas.admin import ApprovalHistoryResponse, DashboardStats
from volunteerhub.schemas.common import Pagination
from volunteerhub.schemas.event import (
    BulkEventDecisionRequest,
    BulkEventDecisionResponse,
    EventDecisionRequest,
    EventResponse,
)
from volunteerhub.schemas.user import UserListResponse, UserResponse
from volunteerhub.services.admin_service import AdminService
from volunteerhub.services.event_service import EventService

router = APIRouter()

_ADMIN_RESPONSES = {
    401: {"description": "Not authenticated"},
    403: {"description": "Admin role required"},
}


@router.get(
    "/stats",
    response_model=DashboardStats,
    summary="Get dashboard statistics",
    responses=_ADMIN_RESPONSES,
)
async def get_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> DashboardStats:
    return AdminService(db).get_stats()


@router.get(
    "/events/pending",
    response_model=list[EventResponse],
    summary="List events awaiting approval",
    responses=_ADMIN_RESPONSES,
)
async def list_pending_events(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> list[EventResponse]:
    """Oldest submission first."""
    return [EventResponse.model_validate(e) for e in AdminService(db).list_pending_events()]


@router.get(
    "/events/history",
    response_model=ApprovalHistoryResponse,
    summary="List decided events",
    responses=_ADMIN_RESPONSES,
)
async def get_approval_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    status: EventStatus | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ApprovalHistoryResponse:
    events, total = AdminService(db).get_approval_history(
        page=page, limit=limit, status=status.value if status else None
    )
    return ApprovalHistoryResponse(
        events=[EventResponse.model_validate(e) for e in events],
        pagination=Pagination.build(page, limit, total),
    )


@router.post(
    "/events/bulk_decision",
    response_model=BulkEventDecisionResponse,
    summary="Approve or reject several events",
    responses={
        **_ADMIN_RESPONSES,
        400: {"description": "No pending events among the given ids"},
    },
)
async def bulk_decide_events(
    data: BulkEventDecisionRequest,
    admin: User = Depends(require_admin),
    service: EventService = Depends(get_event_service),
) -> BulkEventDecisionResponse:
    """Events that are unknown or no longer pending are reported as skipped."""
    processed, skipped = service.bulk_decide(data.event_ids, data.action, admin, data.reason)
    return BulkEventDecisionResponse(
        action=data.action.value,
        processed=[EventResponse.model_validate(e) for e in processed],
        skipped_ids=skipped,
    )


@router.post(
    "/events/{event_id}/decision",
    response_model=EventResponse,
    summary="Approve or reject an event",
    responses={
        **_ADMIN_RESPONSES,
        400: {"description": "Event already processed"},
        404: {"description": "Event not found"},
    },
)
async def decide_event(
    event_id: UUID,
    data: EventDecisionRequest,
    admin: User = Depends(require_admin),
    service: EventService = Depends(get_event_service),
) -> EventResponse:
    """Approval also opens the event's channel."""
    event = service.decide_event(event_id, data.action, admin, data.reason)
    return EventResponse.model_validate(event)


@router.get(
    "/users",
    response_model=UserListResponse,
    summary="List users",
    responses=_ADMIN_RESPONSES,
)
async def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    role: UserRole | None = None,
    is_active: bool | None = None,
    search: str | None = Query(default=None, max_length=200),
    order_by: str | None = Query(default=None),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> UserListResponse:
    users, total = AdminService(db).list_users(
        page=page,
        limit=limit,
        role=role.value if role else None,
        is_active=is_active,
        search=search,
        order_by=order_by,
    )
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        pagination=Pagination.build(page, limit, total),
    )


@router.post(
    "/users/{user_id}/toggle_status",
    response_model=UserResponse,
    summary="Activate or deactivate a user",
    responses={
        **_ADMIN_RESPONSES,
        404: {"description": "User not found"},
    },
)
async def toggle_user_status(
    user_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> UserResponse:
    user = AdminService(db).toggle_user_status(user_id, admin)
    return UserResponse.model_validate(user)
