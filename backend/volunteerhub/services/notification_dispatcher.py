"""Notification dispatcher: log, publish live, schedule push.

Every dispatch first persists a NotificationLog row, then hands the
message to the live bus and schedules push delivery to each stored
subscription. The delivery paths are independent, and none of them can
fail the caller: domain services call the ``notify_*`` triggers only
after their own transaction has committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from volunteerhub.models.event import Event, EventStatus
from volunteerhub.models.notification_log import NotificationLog, NotificationType
from volunteerhub.models.participation import Participation, ParticipationStatus
from volunteerhub.models.user import User, UserRole
from volunteerhub.repositories.notification_log_repository import NotificationLogRepository
from volunteerhub.repositories.user_repository import UserRepository
from volunteerhub.services.live_bus import LiveBus
from volunteerhub.services.push_delivery import (
    URGENCY_HIGH,
    URGENCY_NORMAL,
    PushDelivery,
    PushReport,
    PushScheduler,
    notification_message,
)
from volunteerhub.services.push_provider import PushProvider

logger = logging.getLogger(__name__)


@dataclass
class NotificationPayload:
    type: NotificationType
    title: str
    body: str
    url: str
    data: dict[str, Any] = field(default_factory=dict)
    urgency: str = URGENCY_NORMAL

    def log_data(self) -> dict[str, Any]:
        return {"type": self.type.value, "url": self.url, **self.data}


class NotificationDispatcher:
    def __init__(
        self,
        db: Session,
        live_bus: LiveBus,
        push_provider: PushProvider,
        ttl: int | None = None,
        push_scheduler: PushScheduler | None = None,
    ):
        self.db = db
        self.live_bus = live_bus
        self.push = PushDelivery(db, push_provider, ttl=ttl)
        # Without a scheduler push is delivered inline (worker and scripts).
        self.push_scheduler = push_scheduler
        self.log_repo = NotificationLogRepository(db)
        self.user_repo = UserRepository(db)

    # ── Delivery ──────────────────────────────────────────────────

    def dispatch(self, user_id: UUID, payload: NotificationPayload) -> NotificationLog:
        """Persist the notification, publish it live and push it.

        Raises only if the log row cannot be written; delivery failures
        are logged and swallowed.
        """
        notification = self.log_repo.create(
            user_id=user_id,
            type=payload.type.value,
            title=payload.title,
            body=payload.body,
            data=payload.log_data(),
        )
        message = notification_message(notification)

        try:
            self.live_bus.publish(user_id, message)
        except Exception:
            logger.exception("Live publish failed for user %s", user_id)

        try:
            if self.push_scheduler is not None:
                self.push_scheduler.schedule(notification.id, payload.urgency)  # type: ignore[arg-type]
            else:
                self.deliver_push(user_id, message, urgency=payload.urgency)
        except Exception:
            logger.exception("Push delivery failed for user %s", user_id)

        return notification

    def deliver_push(
        self, user_id: UUID, message: dict[str, Any], urgency: str = URGENCY_NORMAL
    ) -> PushReport:
        return self.push.deliver(user_id, message, urgency=urgency)

    def safe_dispatch(self, user_id: UUID, payload: NotificationPayload) -> NotificationLog | None:
        try:
            return self.dispatch(user_id, payload)
        except Exception:
            self.db.rollback()
            logger.exception("Failed to dispatch %s notification to user %s", payload.type.value, user_id)
            return None

    # ── Domain triggers ───────────────────────────────────────────

    def notify_admins_new_event(self, event: Event, organizer: User | None = None) -> int:
        """Tell every active admin that an event awaits review."""
        try:
            admins = self.user_repo.list_active_by_role(UserRole.ADMIN)
        except Exception:
            self.db.rollback()
            logger.exception("Could not load admins for event %s", event.id)
            return 0

        organizer_name = organizer.full_name if organizer else "An organizer"
        payload = NotificationPayload(
            type=NotificationType.EVENT_APPROVAL_REQUIRED,
            title="New event awaiting approval",
            body=f'{organizer_name} submitted "{event.title}" for review',
            url=f"/admin/events/pending/{event.id}",
            data={"event_id": str(event.id)},
            urgency=URGENCY_HIGH,
        )
        delivered = 0
        for admin in admins:
            if self.safe_dispatch(admin.id, payload) is not None:  # type: ignore[arg-type]
                delivered += 1
        return delivered

    def notify_organizer_event_status(self, event: Event) -> NotificationLog | None:
        if event.status == EventStatus.APPROVED.value:
            title = "Event approved"
            body = f'Your event "{event.title}" has been approved and is now open for registration'
        else:
            title = "Event rejected"
            body = f'Your event "{event.title}" was rejected'
            if event.rejection_reason:
                body = f"{body}. Reason: {event.rejection_reason}"
        payload = NotificationPayload(
            type=NotificationType.EVENT_STATUS_CHANGE,
            title=title,
            body=body,
            url=f"/organizer/events/{event.id}",
            data={"event_id": str(event.id), "status": event.status},
            urgency=URGENCY_HIGH,
        )
        return self.safe_dispatch(event.organizer_id, payload)  # type: ignore[arg-type]

    def notify_organizer_new_registration(
        self, event: Event, volunteer: User, participation: Participation
    ) -> NotificationLog | None:
        payload = NotificationPayload(
            type=NotificationType.NEW_REGISTRATION,
            title="New registration",
            body=f'{volunteer.full_name} registered for "{event.title}"',
            url=f"/organizer/events/{event.id}/registrations",
            data={
                "event_id": str(event.id),
                "participant_id": str(participation.id),
                "volunteer_id": str(volunteer.id),
            },
        )
        return self.safe_dispatch(event.organizer_id, payload)  # type: ignore[arg-type]

    def notify_volunteer_registration_status(
        self,
        participation: Participation,
        event: Event,
        is_completed: bool | None = None,
    ) -> NotificationLog | None:
        status = str(participation.status)
        if is_completed is True:
            title = "Congratulations on completing the event!"
            body = (
                f'You have completed "{event.title}". '
                "Thank you for your contribution, you can now rate the event."
            )
        elif is_completed is False:
            title = "Completion status updated"
            body = f'Your completion of "{event.title}" was unmarked by the organizer'
        elif status == ParticipationStatus.APPROVED.value:
            title = "Registration approved"
            body = f'You have been approved to take part in "{event.title}"'
        elif status == ParticipationStatus.REJECTED.value:
            title = "Registration rejected"
            body = f'Your registration for "{event.title}" was rejected'
            if participation.rejection_reason:
                body = f"{body}. Reason: {participation.rejection_reason}"
        else:
            title = "Registration updated"
            body = f'Your registration for "{event.title}" is now {status.lower()}'

        payload = NotificationPayload(
            type=NotificationType.REGISTRATION_STATUS_CHANGE,
            title=title,
            body=body,
            url=f"/volunteer/events/{event.id}",
            data={
                "event_id": str(event.id),
                "participant_id": str(participation.id),
                "status": status,
                "is_completed": is_completed,
            },
        )
        return self.safe_dispatch(participation.volunteer_id, payload)  # type: ignore[arg-type]
