"""Event registry: creation and the PENDING -> APPROVED/REJECTED decision."""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from volunteerhub.core.errors import DomainError, ErrorKind
from volunteerhub.models.event import Event, EventStatus
from volunteerhub.models.participation import ParticipationStatus
from volunteerhub.models.shared import as_utc, utc_now
from volunteerhub.models.user import User, UserRole
from volunteerhub.repositories.channel_repository import ChannelRepository
from volunteerhub.repositories.event_repository import EventRepository
from volunteerhub.repositories.participation_repository import ParticipationRepository
from volunteerhub.repositories.user_repository import UserRepository
from volunteerhub.schemas.event import (
    REJECTION_REASON_MIN_LENGTH,
    DecisionAction,
    EventCreate,
    EventDetailResponse,
    EventResponse,
    OrganizerEventResponse,
)
from volunteerhub.schemas.user import UserSummary
from volunteerhub.services.blob_store import check_media_reference
from volunteerhub.services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


def validated_rejection_reason(action: DecisionAction, reason: str | None) -> str | None:
    """Reasons are only kept for rejections, which require one."""
    if action != DecisionAction.REJECT:
        return None
    cleaned = (reason or "").strip()
    if len(cleaned) < REJECTION_REASON_MIN_LENGTH:
        raise DomainError(
            ErrorKind.REJECTION_REASON_REQUIRED,
            details={"reason": f"must be at least {REJECTION_REASON_MIN_LENGTH} characters"},
        )
    return cleaned


class EventService:
    """Service for event creation, decisions and denormalized event views."""

    def __init__(self, db: Session, dispatcher: NotificationDispatcher | None = None):
        self.db = db
        self.dispatcher = dispatcher
        self.event_repo = EventRepository(db)
        self.channel_repo = ChannelRepository(db)
        self.participation_repo = ParticipationRepository(db)
        self.user_repo = UserRepository(db)

    def create_event(self, data: EventCreate, organizer: User, now: datetime | None = None) -> Event:
        """Create an event in PENDING status and alert the admins."""
        now = now or utc_now()
        start_date = as_utc(data.start_date)
        end_date = as_utc(data.end_date)
        if start_date <= now:
            raise DomainError(ErrorKind.START_DATE_MUST_BE_FUTURE)
        if end_date <= start_date:
            raise DomainError(ErrorKind.END_DATE_MUST_BE_AFTER_START)
        check_media_reference(data.image_url, organizer.id)  # type: ignore[arg-type]

        event = self.event_repo.create(
            data.model_copy(update={"start_date": start_date, "end_date": end_date}),
            organizer.id,  # type: ignore[arg-type]
        )
        logger.info("Organizer %s created event %s", organizer.id, event.id)

        if self.dispatcher is not None:
            self.dispatcher.notify_admins_new_event(event, organizer)
        return event

    def _apply_decision(
        self,
        event: Event,
        status: EventStatus,
        admin_id: UUID,
        decided_at: datetime,
        reason: str | None,
    ) -> None:
        """Stage the status change (and channel on approval) without committing."""
        self.event_repo.apply_decision(
            event, status, admin_id, decided_at, reason=reason, commit=False
        )
        if status == EventStatus.APPROVED and self.channel_repo.get_by_event_id(event.id) is None:  # type: ignore[arg-type]
            self.channel_repo.create(event.id, commit=False)  # type: ignore[arg-type]

    def decide_event(
        self,
        event_id: UUID,
        action: DecisionAction,
        admin: User,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> Event:
        """Approve or reject a PENDING event.

        Approval and channel creation commit together or not at all.
        """
        reason = validated_rejection_reason(action, reason)
        status = EventStatus.APPROVED if action == DecisionAction.APPROVE else EventStatus.REJECTED
        try:
            event = self.event_repo.get_for_update(event_id)
            if event is None:
                raise DomainError(ErrorKind.EVENT_NOT_FOUND)
            if event.status != EventStatus.PENDING.value:
                raise DomainError(ErrorKind.EVENT_ALREADY_PROCESSED)
            self._apply_decision(event, status, admin.id, now or utc_now(), reason)  # type: ignore[arg-type]
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(event)
        logger.info("Admin %s set event %s to %s", admin.id, event.id, event.status)

        if self.dispatcher is not None:
            self.dispatcher.notify_organizer_event_status(event)
        return event

    def bulk_decide(
        self,
        event_ids: list[UUID],
        action: DecisionAction,
        admin: User,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> tuple[list[Event], list[UUID]]:
        """Decide every currently PENDING event in ``event_ids`` in one transaction.

        Returns (processed events, skipped ids). Ids that are unknown or
        already decided are skipped; if none qualify the batch fails.
        """
        if not event_ids:
            raise DomainError(ErrorKind.INVALID_EVENT_IDS)
        reason = validated_rejection_reason(action, reason)
        status = EventStatus.APPROVED if action == DecisionAction.APPROVE else EventStatus.REJECTED
        decided_at = now or utc_now()
        unique_ids = list(dict.fromkeys(event_ids))

        try:
            pending = self.event_repo.get_pending_by_ids_for_update(unique_ids)
            if not pending:
                raise DomainError(ErrorKind.NO_PENDING_EVENTS)
            for event in pending:
                self._apply_decision(event, status, admin.id, decided_at, reason)  # type: ignore[arg-type]
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        processed_ids = {event.id for event in pending}
        skipped = [event_id for event_id in unique_ids if event_id not in processed_ids]
        logger.info(
            "Admin %s bulk-%s %d events (%d skipped)", admin.id, action.value, len(pending), len(skipped)
        )

        for event in pending:
            self.db.refresh(event)
            if self.dispatcher is not None:
                self.dispatcher.notify_organizer_event_status(event)
        return pending, skipped

    # ── Views ─────────────────────────────────────────────────────

    def get_event(self, event_id: UUID) -> Event:
        event = self.event_repo.get_by_id(event_id)
        if event is None:
            raise DomainError(ErrorKind.EVENT_NOT_FOUND)
        return event

    def build_details(
        self, events: list[Event], viewer: User | None, now: datetime | None = None
    ) -> list[EventDetailResponse]:
        now = now or utc_now()
        event_ids = [e.id for e in events]
        approved_counts = self.participation_repo.count_approved_by_event(event_ids)
        organizers = self.user_repo.get_by_ids([e.organizer_id for e in events])
        details = []
        for event in events:
            registration = None
            if viewer is not None:
                participation = self.participation_repo.get_by_event_and_volunteer(
                    event.id, viewer.id  # type: ignore[arg-type]
                )
                registration = str(participation.status) if participation else None
            channel = self.channel_repo.get_by_event_id(event.id)  # type: ignore[arg-type]
            organizer = organizers.get(event.organizer_id)  # type: ignore[call-overload]

            approved = approved_counts.get(event.id, 0)  # type: ignore[call-overload]
            capacity = event.capacity
            available = max(capacity - approved, 0) if capacity is not None else None
            is_full = capacity is not None and approved >= capacity
            can_register = (
                viewer is not None
                and viewer.role == UserRole.VOLUNTEER.value
                and registration is None
                and event.status == EventStatus.APPROVED.value
                and not is_full
                and not event.has_started(now)
            )
            details.append(
                EventDetailResponse(
                    **EventResponse.model_validate(event).model_dump(),
                    organizer=UserSummary.model_validate(organizer) if organizer else None,
                    approved_count=approved,
                    available_spots=available,
                    is_full=is_full,
                    user_registration=registration,
                    can_user_register=can_register,
                    channel_id=channel.id if channel else None,
                )
            )
        return details

    def get_event_detail(
        self, event_id: UUID, viewer: User | None, now: datetime | None = None
    ) -> EventDetailResponse:
        return self.build_details([self.get_event(event_id)], viewer, now)[0]

    def list_events(
        self,
        page: int = 1,
        limit: int = 20,
        category: str | None = None,
        search: str | None = None,
        order_by: str | None = None,
        viewer: User | None = None,
        now: datetime | None = None,
    ) -> tuple[list[EventDetailResponse], int]:
        """Approved events that have not ended yet."""
        now = now or utc_now()
        events = self.event_repo.list_discoverable(
            now,
            skip=(page - 1) * limit,
            limit=limit,
            category=category,
            search=search,
            order_by=order_by,
        )
        total = self.event_repo.count_discoverable(now, category=category, search=search)
        return self.build_details(events, viewer, now), total

    def list_organizer_events(
        self, organizer: User, status: str | None = None
    ) -> list[OrganizerEventResponse]:
        events = self.event_repo.list_by_organizer(organizer.id, status=status)  # type: ignore[arg-type]
        counts = self.participation_repo.count_by_status_for_events([e.id for e in events])
        results = []
        for event in events:
            event_counts = counts.get(event.id, {})  # type: ignore[call-overload]
            results.append(
                OrganizerEventResponse(
                    **EventResponse.model_validate(event).model_dump(),
                    participant_counts={
                        s.value: event_counts.get(s.value, 0) for s in ParticipationStatus
                    },
                )
            )
        return results
