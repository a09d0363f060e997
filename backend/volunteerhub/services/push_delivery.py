"""Web Push fan-out, run off the request path.

A dispatched notification is persisted and published live inside the
request. Push delivery is slow (one HTTP round trip per subscription),
so routes hand it to a scheduler: the arq worker in production, or a
FastAPI background task in the API process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol
from uuid import UUID

from fastapi import BackgroundTasks, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from volunteerhub.core import database as db_module
from volunteerhub.core.config import settings
from volunteerhub.models.notification_log import NotificationLog
from volunteerhub.repositories.notification_log_repository import NotificationLogRepository
from volunteerhub.repositories.push_subscription_repository import PushSubscriptionRepository
from volunteerhub.services.push_provider import PushProvider, PushResult, get_push_provider
from volunteerhub.tasks import enqueue_push_delivery

logger = logging.getLogger(__name__)

URGENCY_NORMAL = "normal"
URGENCY_HIGH = "high"


@dataclass
class PushReport:
    sent: int = 0
    failed: int = 0
    removed: int = 0

    @property
    def attempted(self) -> int:
        return self.sent + self.failed


def notification_message(notification: NotificationLog) -> dict[str, Any]:
    """Client-facing message body shared by the live stream and push."""
    return {
        "id": str(notification.id),
        "type": notification.type,
        "title": notification.title,
        "body": notification.body,
        "data": notification.data,
        "is_read": bool(notification.is_read),
        "created_at": notification.created_at.isoformat(),
    }


class PushDelivery:
    def __init__(self, db: Session, push_provider: PushProvider, ttl: int | None = None):
        self.db = db
        self.push_provider = push_provider
        self.ttl = ttl if ttl is not None else settings.PUSH_TTL_SECONDS
        self.subscription_repo = PushSubscriptionRepository(db)

    def deliver(
        self, user_id: UUID, message: dict[str, Any], urgency: str = URGENCY_NORMAL
    ) -> PushReport:
        """Send to every subscription of the user independently.

        A subscription whose endpoint is gone is deleted; one failing
        subscription never stops delivery to the others.
        """
        report = PushReport()
        for subscription in self.subscription_repo.list_for_user(user_id):
            try:
                result = self.push_provider.send(
                    subscription.subscription_info(), message, ttl=self.ttl, urgency=urgency
                )
            except Exception:
                logger.exception("Push provider raised for subscription %s", subscription.id)
                result = PushResult.ERROR

            if result == PushResult.OK:
                report.sent += 1
                continue
            report.failed += 1
            if result == PushResult.GONE:
                self.subscription_repo.delete_by_id(subscription.id)  # type: ignore[arg-type]
                report.removed += 1
                logger.info(
                    "Removed expired push subscription %s for user %s", subscription.id, user_id
                )

        if report.attempted:
            logger.info(
                "Sent %d/%d push notifications to user %s",
                report.sent,
                report.attempted,
                user_id,
            )
        return report

    def deliver_notification(
        self, notification_id: UUID, urgency: str = URGENCY_NORMAL
    ) -> PushReport:
        """Load a logged notification and push it to its recipient."""
        notification = NotificationLogRepository(self.db).get_by_id(notification_id)
        if notification is None:
            # Purged or deleted by its owner before delivery ran.
            logger.warning("Notification %s not found for push delivery", notification_id)
            return PushReport()
        return self.deliver(
            notification.user_id,  # type: ignore[arg-type]
            notification_message(notification),
            urgency=urgency,
        )


def deliver_push_in_process(
    notification_id: UUID, urgency: str, push_provider: PushProvider
) -> PushReport:
    """Deliver with a session of its own; the request session is gone by now."""
    db = db_module.SessionLocal()
    try:
        return PushDelivery(db, push_provider).deliver_notification(notification_id, urgency)
    except Exception:
        db.rollback()
        logger.exception("Push delivery failed for notification %s", notification_id)
        return PushReport()
    finally:
        db.close()


async def _deliver_in_background(
    notification_id: UUID, urgency: str, push_provider: PushProvider
) -> None:
    await run_in_threadpool(deliver_push_in_process, notification_id, urgency, push_provider)


async def _enqueue_delivery(notification_id: UUID, urgency: str) -> None:
    try:
        await enqueue_push_delivery(notification_id, urgency)
    except Exception:
        logger.exception("Failed to enqueue push delivery for notification %s", notification_id)


class PushScheduler(Protocol):
    def schedule(self, notification_id: UUID, urgency: str = URGENCY_NORMAL) -> None: ...


class WorkerPushScheduler:
    """Enqueue an arq ``deliver_push_task`` once the response is sent."""

    def __init__(self, background_tasks: BackgroundTasks):
        self.background_tasks = background_tasks

    def schedule(self, notification_id: UUID, urgency: str = URGENCY_NORMAL) -> None:
        self.background_tasks.add_task(_enqueue_delivery, notification_id, urgency)


class InProcessPushScheduler:
    """Deliver from the API process on the threadpool once the response is sent."""

    def __init__(self, background_tasks: BackgroundTasks, push_provider: PushProvider):
        self.background_tasks = background_tasks
        self.push_provider = push_provider

    def schedule(self, notification_id: UUID, urgency: str = URGENCY_NORMAL) -> None:
        self.background_tasks.add_task(
            _deliver_in_background, notification_id, urgency, self.push_provider
        )


def get_push_scheduler(
    background_tasks: BackgroundTasks,
    push_provider: PushProvider = Depends(get_push_provider),
) -> PushScheduler:
    if settings.PUSH_DELIVERY_BACKEND == "worker":
        return WorkerPushScheduler(background_tasks)
    return InProcessPushScheduler(background_tasks, push_provider)
