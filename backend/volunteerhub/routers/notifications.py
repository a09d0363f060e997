"""Notification API endpoints: history, live stream and push subscriptions."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from volunteerhub.core.auth import get_current_user, get_stream_user
from volunteerhub.core.database import get_db
from volunteerhub.models.user import User
from volunteerhub.schemas.common import CountResponse, Pagination
from volunteerhub.schemas.notification import (
    NotificationCountResponse,
    NotificationPage,
    NotificationResponse,
    PushStatusResponse,
    PushSubscriptionCreate,
    PushSubscriptionResponse,
    PushUnsubscribeRequest,
    VapidKeyResponse,
)
from volunteerhub.services.live_bus import LiveBus, get_live_bus, stream_user_events
from volunteerhub.services.notification_service import NotificationService

router = APIRouter()


@router.get(
    "/",
    response_model=NotificationPage,
    summary="List notifications",
    responses={401: {"description": "Not authenticated"}},
)
async def list_notifications(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> NotificationPage:
    """Newest first, with the caller's unread count."""
    notifications, total, unread = NotificationService(db).get_history(
        user.id, page=page, limit=limit  # type: ignore[arg-type]
    )
    return NotificationPage(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        pagination=Pagination.build(page, limit, total),
        unread_count=unread,
    )


@router.get(
    "/unread_count",
    response_model=NotificationCountResponse,
    summary="Get unread notification count",
    responses={401: {"description": "Not authenticated"}},
)
async def get_unread_count(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> NotificationCountResponse:
    count = NotificationService(db).unread_count(user.id)  # type: ignore[arg-type]
    return NotificationCountResponse(unread_count=count)


@router.post(
    "/read_all",
    response_model=CountResponse,
    summary="Mark all notifications as read",
    responses={401: {"description": "Not authenticated"}},
)
async def mark_all_as_read(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> CountResponse:
    return CountResponse(count=NotificationService(db).mark_all_as_read(user.id))  # type: ignore[arg-type]


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification as read",
    responses={
        401: {"description": "Not authenticated"},
        403: {"description": "Notification belongs to another user"},
        404: {"description": "Notification not found"},
    },
)
async def mark_as_read(
    notification_id: UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> NotificationResponse:
    notification = NotificationService(db).mark_as_read(notification_id, user.id)  # type: ignore[arg-type]
    return NotificationResponse.model_validate(notification)


@router.delete(
    "/read",
    response_model=CountResponse,
    summary="Delete read notifications",
    responses={401: {"description": "Not authenticated"}},
)
async def delete_read(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> CountResponse:
    return CountResponse(count=NotificationService(db).delete_read(user.id))  # type: ignore[arg-type]


@router.get(
    "/stream",
    summary="Live notification stream (Server-Sent Events)",
    responses={401: {"description": "Not authenticated"}},
)
async def stream_notifications(
    user: User = Depends(get_stream_user),
    live_bus: LiveBus = Depends(get_live_bus),
) -> StreamingResponse:
    """Accepts the access credential as a bearer header or ``?token=``."""
    return StreamingResponse(
        stream_user_events(live_bus, user.id),  # type: ignore[arg-type]
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


# ── Push subscriptions ──


@router.post(
    "/push/subscribe",
    response_model=PushSubscriptionResponse,
    status_code=201,
    summary="Register a push subscription",
    responses={
        400: {"description": "Subscription is missing its endpoint or keys"},
        401: {"description": "Not authenticated"},
    },
)
async def subscribe_push(
    data: PushSubscriptionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> PushSubscriptionResponse:
    subscription = NotificationService(db).subscribe(user.id, data)  # type: ignore[arg-type]
    return PushSubscriptionResponse.model_validate(subscription)


@router.post(
    "/push/unsubscribe",
    response_model=CountResponse,
    summary="Remove a push subscription",
    responses={401: {"description": "Not authenticated"}},
)
async def unsubscribe_push(
    data: PushUnsubscribeRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> CountResponse:
    removed = NotificationService(db).unsubscribe(user.id, data.endpoint)  # type: ignore[arg-type]
    return CountResponse(count=1 if removed else 0)


@router.get(
    "/push/status",
    response_model=PushStatusResponse,
    summary="Get push subscription status",
    responses={401: {"description": "Not authenticated"}},
)
async def push_status(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> PushStatusResponse:
    count = NotificationService(db).subscription_count(user.id)  # type: ignore[arg-type]
    return PushStatusResponse(has_valid_subscriptions=count > 0, subscription_count=count)


@router.get(
    "/push/vapid_public_key",
    response_model=VapidKeyResponse,
    summary="Get the VAPID public key",
)
async def vapid_public_key() -> VapidKeyResponse:
    return VapidKeyResponse(public_key=NotificationService.vapid_public_key())
