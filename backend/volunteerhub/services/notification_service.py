"""Notification history and push subscription management."""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from volunteerhub.core.config import settings
from volunteerhub.core.errors import DomainError, ErrorKind
from volunteerhub.models.notification_log import NotificationLog
from volunteerhub.models.push_subscription import PushSubscription
from volunteerhub.repositories.notification_log_repository import NotificationLogRepository
from volunteerhub.repositories.push_subscription_repository import PushSubscriptionRepository
from volunteerhub.schemas.notification import PushSubscriptionCreate

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, db: Session):
        self.db = db
        self.log_repo = NotificationLogRepository(db)
        self.subscription_repo = PushSubscriptionRepository(db)

    def get_history(
        self, user_id: UUID, page: int = 1, limit: int = 20
    ) -> tuple[list[NotificationLog], int, int]:
        """Return (notifications newest first, total, unread_count)."""
        skip = (page - 1) * limit
        notifications = self.log_repo.get_page(user_id, skip=skip, limit=limit)
        return notifications, self.log_repo.count(user_id), self.log_repo.count_unread(user_id)

    def unread_count(self, user_id: UUID) -> int:
        return self.log_repo.count_unread(user_id)

    def mark_as_read(self, notification_id: UUID, user_id: UUID) -> NotificationLog:
        notification = self.log_repo.get_by_id(notification_id)
        if notification is None:
            raise DomainError(ErrorKind.NOTIFICATION_NOT_FOUND)
        if notification.user_id != user_id:
            raise DomainError(ErrorKind.UNAUTHORIZED)
        return self.log_repo.mark_as_read(notification)

    def mark_all_as_read(self, user_id: UUID) -> int:
        return self.log_repo.mark_all_as_read(user_id)

    def delete_read(self, user_id: UUID) -> int:
        count = self.log_repo.delete_read(user_id)
        logger.info("Deleted %d read notifications for user %s", count, user_id)
        return count

    def cleanup_expired(self, now: datetime) -> int:
        read_before = now - timedelta(days=settings.NOTIFICATION_READ_RETENTION_DAYS)
        any_before = now - timedelta(days=settings.NOTIFICATION_RETENTION_DAYS)
        return self.log_repo.delete_expired(read_before=read_before, any_before=any_before)

    # ── Push subscriptions ──

    def subscribe(self, user_id: UUID, data: PushSubscriptionCreate) -> PushSubscription:
        if not data.endpoint.strip() or not data.keys.p256dh or not data.keys.auth:
            raise DomainError(ErrorKind.INVALID_SUBSCRIPTION)
        subscription = self.subscription_repo.upsert(
            user_id=user_id,
            endpoint=data.endpoint.strip(),
            p256dh=data.keys.p256dh,
            auth=data.keys.auth,
            user_agent=data.user_agent,
        )
        logger.info("Stored push subscription %s for user %s", subscription.id, user_id)
        return subscription

    def unsubscribe(self, user_id: UUID, endpoint: str) -> bool:
        """Remove the subscription; unknown endpoints are not an error."""
        return self.subscription_repo.delete_by_endpoint(user_id, endpoint.strip()) > 0

    def subscription_count(self, user_id: UUID) -> int:
        return self.subscription_repo.count_for_user(user_id)

    @staticmethod
    def vapid_public_key() -> str:
        return settings.VAPID_PUBLIC_KEY
