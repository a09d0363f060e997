"""Repository for NotificationLog CRUD operations."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from volunteerhub.models.notification_log import NotificationLog
from volunteerhub.models.shared import utc_now


class NotificationLogRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        *,
        user_id: UUID,
        type: str,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> NotificationLog:
        notification = NotificationLog(
            user_id=user_id,
            type=type,
            title=title,
            body=body,
            data=data or {},
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def get_by_id(self, notification_id: UUID) -> NotificationLog | None:
        return (
            self.db.query(NotificationLog)
            .filter(NotificationLog.id == notification_id)
            .first()
        )

    def get_page(self, user_id: UUID, skip: int = 0, limit: int = 20) -> list[NotificationLog]:
        return (
            self.db.query(NotificationLog)
            .filter(NotificationLog.user_id == user_id)
            .order_by(NotificationLog.created_at.desc(), NotificationLog.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count(self, user_id: UUID) -> int:
        return self.db.query(NotificationLog).filter(NotificationLog.user_id == user_id).count()

    def count_unread(self, user_id: UUID) -> int:
        return (
            self.db.query(NotificationLog)
            .filter(
                NotificationLog.user_id == user_id,
                NotificationLog.is_read == False,  # noqa: E712
            )
            .count()
        )

    def mark_as_read(self, notification: NotificationLog) -> NotificationLog:
        if not notification.is_read:
            notification.is_read = True  # type: ignore[assignment]
            notification.read_at = utc_now()  # type: ignore[assignment]
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_as_read(self, user_id: UUID) -> int:
        count = (
            self.db.query(NotificationLog)
            .filter(
                NotificationLog.user_id == user_id,
                NotificationLog.is_read == False,  # noqa: E712
            )
            .update({"is_read": True, "read_at": utc_now()}, synchronize_session=False)
        )
        self.db.commit()
        return count

    def delete_read(self, user_id: UUID) -> int:
        count = (
            self.db.query(NotificationLog)
            .filter(
                NotificationLog.user_id == user_id,
                NotificationLog.is_read == True,  # noqa: E712
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return count

    def delete_expired(self, read_before: datetime, any_before: datetime) -> int:
        count = (
            self.db.query(NotificationLog)
            .filter(
                or_(
                    NotificationLog.created_at < any_before,
                    (NotificationLog.is_read == True)  # noqa: E712
                    & (NotificationLog.created_at < read_before),
                )
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return count
