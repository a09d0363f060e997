import logging
from typing import Any
from uuid import UUID

from arq import cron

from volunteerhub.core.database import SessionLocal
from volunteerhub.models.shared import utc_now
from volunteerhub.services.notification_service import NotificationService
from volunteerhub.services.push_delivery import PushDelivery
from volunteerhub.services.push_provider import get_push_provider
from volunteerhub.tasks import redis_settings

logger = logging.getLogger(__name__)


async def cleanup_old_notifications_task(ctx: dict[str, Any]) -> int:
    """Background task: purge read notifications past the read retention and
    any notification past the overall retention.

    Runs daily.
    """
    db = SessionLocal()
    try:
        count = NotificationService(db).cleanup_expired(utc_now())
        logger.info("Deleted %d expired notifications", count)
        return count
    finally:
        db.close()


async def deliver_push_task(ctx: dict[str, Any], notification_id: str, urgency: str) -> int:
    """Background task: push a logged notification to its recipient's subscriptions.

    Enqueued by the API after the notification row is written.

    Returns:
        Number of subscriptions the message was delivered to.
    """
    db = SessionLocal()
    try:
        report = PushDelivery(db, get_push_provider()).deliver_notification(
            UUID(notification_id), urgency
        )
        return report.sent
    finally:
        db.close()


class WorkerSettings:
    functions = [
        cleanup_old_notifications_task,
        deliver_push_task,
    ]
    cron_jobs = [
        cron(cleanup_old_notifications_task, hour=3, minute=0),  # daily at 03:00
    ]
    redis_settings = redis_settings
