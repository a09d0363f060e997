"""Participation ledger: the per-event roster and its state machine.

    PENDING   -> APPROVED | REJECTED
    APPROVED  -> COMPLETED | REJECTED
    COMPLETED -> APPROVED (unmark) | REJECTED

Every transition into APPROVED goes through the repository's conditional
update, which re-checks capacity inside the write itself.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from volunteerhub.core.errors import DomainError, ErrorKind
from volunteerhub.models.event import Event, EventStatus
from volunteerhub.models.participation import Participation, ParticipationStatus
from volunteerhub.models.shared import utc_now
from volunteerhub.models.user import User
from volunteerhub.repositories.event_repository import EventRepository
from volunteerhub.repositories.participation_repository import ParticipationRepository
from volunteerhub.repositories.user_repository import UserRepository
from volunteerhub.schemas.event import EventSummary
from volunteerhub.schemas.participation import (
    FeedbackSummary,
    ParticipantDecision,
    ParticipationResponse,
    RatingEntry,
    RegistrationResponse,
    RosterEntry,
    RosterResponse,
    RosterSummary,
)
from volunteerhub.schemas.user import UserSummary
from volunteerhub.services.history_service import invalidate_history
from volunteerhub.services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5

_SLOT_HOLDING = {ParticipationStatus.APPROVED.value, ParticipationStatus.COMPLETED.value}


class ParticipationService:
    """Service for registrations, roster decisions, completion and ratings."""

    def __init__(self, db: Session, dispatcher: NotificationDispatcher | None = None):
        self.db = db
        self.dispatcher = dispatcher
        self.repo = ParticipationRepository(db)
        self.event_repo = EventRepository(db)
        self.user_repo = UserRepository(db)

    # ── Volunteer side ────────────────────────────────────────────

    def register(self, event_id: UUID, volunteer: User) -> Participation:
        """Create a PENDING participation for ``volunteer``."""
        try:
            event = self.event_repo.get_for_update(event_id)
            if event is None:
                raise DomainError(ErrorKind.EVENT_NOT_FOUND)
            if event.status != EventStatus.APPROVED.value:
                raise DomainError(ErrorKind.EVENT_NOT_APPROVED)
            if event.capacity is not None and self.repo.count_approved(event_id) >= event.capacity:
                raise DomainError(ErrorKind.EVENT_FULL)
            if self.repo.get_by_event_and_volunteer(event_id, volunteer.id) is not None:  # type: ignore[arg-type]
                raise DomainError(ErrorKind.ALREADY_REGISTERED)
            participation = self.repo.create(event_id, volunteer.id, commit=False)  # type: ignore[arg-type]
            self.db.commit()
        except IntegrityError:
            # A concurrent registration won the unique (event, volunteer) slot.
            self.db.rollback()
            raise DomainError(ErrorKind.ALREADY_REGISTERED) from None
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(participation)
        invalidate_history(volunteer.id)  # type: ignore[arg-type]
        logger.info("Volunteer %s registered for event %s", volunteer.id, event_id)

        if self.dispatcher is not None:
            self.dispatcher.notify_organizer_new_registration(event, volunteer, participation)
        return participation

    def cancel(self, participation_id: UUID, volunteer: User, now: datetime | None = None) -> None:
        """Delete the volunteer's own participation before the event starts."""
        participation = self.repo.get_by_id(participation_id)
        if participation is None:
            raise DomainError(ErrorKind.REGISTRATION_NOT_FOUND)
        if participation.volunteer_id != volunteer.id:
            raise DomainError(ErrorKind.NOT_YOUR_REGISTRATION)
        event = self.event_repo.get_by_id(participation.event_id)  # type: ignore[arg-type]
        if event is None:
            raise DomainError(ErrorKind.REGISTRATION_NOT_FOUND)
        if event.has_started(now or utc_now()):
            raise DomainError(ErrorKind.EVENT_ALREADY_STARTED)

        self.repo.delete(participation)
        invalidate_history(volunteer.id)  # type: ignore[arg-type]
        logger.info("Volunteer %s cancelled registration %s", volunteer.id, participation_id)

    @staticmethod
    def registration_response(
        participation: Participation, event: Event, now: datetime | None = None
    ) -> RegistrationResponse:
        return RegistrationResponse(
            **ParticipationResponse.model_validate(participation).model_dump(),
            event=EventSummary.model_validate(event),
            can_cancel=not event.has_started(now or utc_now()),
        )

    def list_registrations(
        self, volunteer: User, status: str | None = None, now: datetime | None = None
    ) -> list[RegistrationResponse]:
        now = now or utc_now()
        rows = self.repo.list_for_volunteer_with_events(volunteer.id, status=status)  # type: ignore[arg-type]
        return [self.registration_response(p, event, now) for p, event in rows]

    def rate(
        self,
        event_id: UUID,
        volunteer: User,
        rating: Any,
        feedback: str | None = None,
        now: datetime | None = None,
    ) -> Participation:
        """Record the volunteer's single rating of a completed participation."""
        if isinstance(rating, bool) or not isinstance(rating, int) or not (
            MIN_RATING <= rating <= MAX_RATING
        ):
            raise DomainError(ErrorKind.INVALID_RATING)
        participation = self.repo.get_by_event_and_volunteer(event_id, volunteer.id)  # type: ignore[arg-type]
        if participation is None:
            raise DomainError(ErrorKind.PARTICIPATION_NOT_FOUND)
        if participation.status != ParticipationStatus.COMPLETED.value:
            raise DomainError(ErrorKind.PARTICIPATION_NOT_COMPLETED)
        if participation.rating is not None:
            raise DomainError(ErrorKind.ALREADY_RATED)

        cleaned_feedback = feedback.strip() if feedback else None
        participation = self.repo.update(
            participation,
            {
                "rating": rating,
                "feedback": cleaned_feedback or None,
                "rated_at": now or utc_now(),
            },
        )
        invalidate_history(volunteer.id)  # type: ignore[arg-type]
        return participation

    # ── Organizer side ────────────────────────────────────────────

    def _owned_event(self, event_id: UUID, organizer: User) -> Event:
        event = self.event_repo.get_by_id(event_id)
        if event is None:
            raise DomainError(ErrorKind.EVENT_NOT_FOUND)
        if event.organizer_id != organizer.id:
            raise DomainError(ErrorKind.NOT_EVENT_ORGANIZER)
        return event

    def _stage_approval(self, participation: Participation, event_id: UUID) -> None:
        """Move to APPROVED inside the open transaction, or raise EVENT_FULL."""
        locked = self.event_repo.get_for_update(event_id)
        capacity = locked.capacity if locked is not None else None
        if not self.repo.approve_within_capacity(
            participation.id, event_id, capacity, commit=False  # type: ignore[arg-type]
        ):
            raise DomainError(ErrorKind.EVENT_FULL)

    def _stage_rejection(self, participation: Participation, reason: str) -> None:
        self.repo.update(
            participation,
            {
                "status": ParticipationStatus.REJECTED.value,
                "rejection_reason": reason,
                "completed_at": None,
                "rating": None,
                "feedback": None,
                "rated_at": None,
            },
            commit=False,
        )

    def _stage_completion(
        self, participation: Participation, is_completed: bool, now: datetime
    ) -> None:
        if is_completed:
            if participation.status == ParticipationStatus.COMPLETED.value:
                return
            self.repo.update(
                participation,
                {
                    "status": ParticipationStatus.COMPLETED.value,
                    "completed_at": now,
                    "rejection_reason": None,
                },
                commit=False,
            )
            return

        if participation.status == ParticipationStatus.APPROVED.value:
            return
        # Unmarking re-occupies an approved slot and voids the rating tied
        # to the completion.
        self._stage_approval(participation, participation.event_id)  # type: ignore[arg-type]
        self.repo.update(
            participation,
            {"rating": None, "feedback": None, "rated_at": None},
            commit=False,
        )

    @staticmethod
    def _decision_state(participation: Participation) -> tuple[str, str | None]:
        return str(participation.status), participation.rejection_reason  # type: ignore[return-value]

    @staticmethod
    def _rejection_reason(status: ParticipantDecision | None, reason: str | None) -> str | None:
        if status != ParticipantDecision.REJECTED:
            return None
        cleaned = (reason or "").strip()
        if not cleaned:
            raise DomainError(
                ErrorKind.REJECTION_REASON_REQUIRED, details={"reason": "must not be empty"}
            )
        return cleaned

    def _stage_change(
        self,
        participation: Participation,
        status: ParticipantDecision | None,
        reason: str | None,
        is_completed: bool | None,
        now: datetime,
    ) -> None:
        if is_completed is not None:
            self._stage_completion(participation, is_completed, now)
        elif status == ParticipantDecision.APPROVED:
            # Approving a completed participant voids the completion and its rating.
            self._stage_completion(participation, False, now)
        elif status == ParticipantDecision.REJECTED:
            self._stage_rejection(participation, reason or "")

    def update_status(
        self,
        participant_id: UUID,
        organizer: User,
        status: ParticipantDecision | None = None,
        reason: str | None = None,
        is_completed: bool | None = None,
        now: datetime | None = None,
    ) -> Participation:
        """Apply one organizer decision to one participant.

        ``is_completed`` takes precedence over ``status`` when both are given.
        """
        now = now or utc_now()
        participation = self.repo.get_by_id(participant_id)
        if participation is None:
            raise DomainError(ErrorKind.PARTICIPANT_NOT_FOUND)
        event = self.event_repo.get_by_id(participation.event_id)  # type: ignore[arg-type]
        if event is None or event.organizer_id != organizer.id:
            raise DomainError(ErrorKind.NOT_EVENT_ORGANIZER)

        cleaned_reason = self._rejection_reason(status, reason) if is_completed is None else None
        if is_completed is not None:
            if participation.status not in _SLOT_HOLDING:
                raise DomainError(ErrorKind.PARTICIPANT_NOT_APPROVED)
            if not event.has_ended(now):
                raise DomainError(ErrorKind.EVENT_NOT_ENDED)

        previous = self._decision_state(participation)
        try:
            self._stage_change(participation, status, cleaned_reason, is_completed, now)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(participation)
        invalidate_history(participation.volunteer_id)  # type: ignore[arg-type]
        logger.info(
            "Organizer %s set participant %s to %s", organizer.id, participant_id, participation.status
        )

        if self.dispatcher is not None and self._decision_state(participation) != previous:
            self.dispatcher.notify_volunteer_registration_status(participation, event, is_completed)
        return participation

    def bulk_update_status(
        self,
        participant_ids: list[UUID],
        organizer: User,
        status: ParticipantDecision | None = None,
        reason: str | None = None,
        is_completed: bool | None = None,
        now: datetime | None = None,
    ) -> list[Participation]:
        """Apply one decision to many participants, all or nothing.

        Every participant must exist and belong to an event owned by the
        organizer. Approvals are checked per event against remaining
        capacity before any row is written. Notifications go out per
        participant after the commit and never affect the result.
        """
        now = now or utc_now()
        unique_ids = list(dict.fromkeys(participant_ids))
        participations = self.repo.get_by_ids(unique_ids)
        events = {
            e.id: e
            for e in self.event_repo.get_by_ids(list({p.event_id for p in participations}))
        }
        owned = [
            p
            for p in participations
            if p.event_id in events and events[p.event_id].organizer_id == organizer.id
        ]
        if not unique_ids or len(owned) != len(unique_ids):
            raise DomainError(ErrorKind.SOME_PARTICIPANTS_NOT_FOUND_OR_NOT_AUTHORIZED)

        cleaned_reason = self._rejection_reason(status, reason) if is_completed is None else None
        if is_completed is not None:
            if any(p.status not in _SLOT_HOLDING for p in owned):
                raise DomainError(ErrorKind.PARTICIPANT_NOT_APPROVED)
            if any(not events[p.event_id].has_ended(now) for p in owned):
                raise DomainError(ErrorKind.SOME_EVENTS_NOT_ENDED)

        previous = {p.id: self._decision_state(p) for p in owned}
        by_event: dict[UUID, list[Participation]] = defaultdict(list)
        for p in owned:
            by_event[p.event_id].append(p)  # type: ignore[index]

        try:
            if self._adds_approvals(status, is_completed):
                for event_id, group in by_event.items():
                    locked = self.event_repo.get_for_update(event_id)
                    if locked is None or locked.capacity is None:
                        continue
                    new_approvals = sum(
                        1 for p in group if p.status != ParticipationStatus.APPROVED.value
                    )
                    if self.repo.count_approved(event_id) + new_approvals > locked.capacity:
                        raise DomainError(
                            ErrorKind.EVENT_FULL, details={"event_id": str(event_id)}
                        )
            for p in owned:
                self._stage_change(p, status, cleaned_reason, is_completed, now)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        for p in owned:
            self.db.refresh(p)
            invalidate_history(p.volunteer_id)  # type: ignore[arg-type]
        logger.info("Organizer %s bulk-updated %d participants", organizer.id, len(owned))

        if self.dispatcher is not None:
            for p in owned:
                if self._decision_state(p) == previous[p.id]:
                    continue
                self.dispatcher.notify_volunteer_registration_status(
                    p, events[p.event_id], is_completed
                )
        return owned

    @staticmethod
    def _adds_approvals(status: ParticipantDecision | None, is_completed: bool | None) -> bool:
        if is_completed is not None:
            return is_completed is False
        return status == ParticipantDecision.APPROVED

    def get_roster(
        self, event_id: UUID, organizer: User, now: datetime | None = None
    ) -> RosterResponse:
        now = now or utc_now()
        event = self._owned_event(event_id, organizer)
        participations = self.repo.list_for_event(event_id)
        volunteers = self.user_repo.get_by_ids([p.volunteer_id for p in participations])
        ended = event.has_ended(now)

        counts = {s.value: 0 for s in ParticipationStatus}
        entries = []
        for p in participations:
            counts[str(p.status)] += 1
            volunteer = volunteers[p.volunteer_id]  # type: ignore[index]
            entries.append(
                RosterEntry(
                    **ParticipationResponse.model_validate(p).model_dump(),
                    volunteer=UserSummary.model_validate(volunteer),
                    volunteer_email=str(volunteer.email),
                    can_mark_completed=ended and p.status == ParticipationStatus.APPROVED.value,
                    can_unmark_completed=ended and p.status == ParticipationStatus.COMPLETED.value,
                )
            )

        approved = counts[ParticipationStatus.APPROVED.value]
        capacity = event.capacity
        return RosterResponse(
            event=EventSummary.model_validate(event),
            event_ended=ended,
            participants=entries,
            summary=RosterSummary(
                total=len(participations),
                pending=counts[ParticipationStatus.PENDING.value],
                approved=approved,
                rejected=counts[ParticipationStatus.REJECTED.value],
                completed=counts[ParticipationStatus.COMPLETED.value],
                capacity=capacity,
                available_spots=max(capacity - approved, 0) if capacity is not None else None,
            ),
        )

    def get_feedback(
        self, event_id: UUID, organizer: User | None = None
    ) -> FeedbackSummary:
        """Rating aggregate for an event.

        With an ``organizer`` the caller must own the event and each rating
        carries the volunteer; without one the summary is anonymous.
        """
        if organizer is not None:
            self._owned_event(event_id, organizer)
        elif self.event_repo.get_by_id(event_id) is None:
            raise DomainError(ErrorKind.EVENT_NOT_FOUND)

        rated = self.repo.list_rated_for_event(event_id)
        volunteers = (
            self.user_repo.get_by_ids([p.volunteer_id for p in rated]) if organizer else {}
        )
        distribution = {score: 0 for score in range(MIN_RATING, MAX_RATING + 1)}
        for p in rated:
            distribution[int(p.rating)] += 1  # type: ignore[arg-type]
        average = round(sum(int(p.rating) for p in rated) / len(rated), 1) if rated else 0.0  # type: ignore[arg-type]

        entries = []
        for p in rated:
            volunteer = volunteers.get(p.volunteer_id)  # type: ignore[call-overload]
            entries.append(
                RatingEntry(
                    rating=int(p.rating),  # type: ignore[arg-type]
                    feedback=p.feedback,  # type: ignore[arg-type]
                    rated_at=p.rated_at,  # type: ignore[arg-type]
                    volunteer=UserSummary.model_validate(volunteer) if volunteer else None,
                )
            )
        return FeedbackSummary(
            event_id=event_id,
            total_ratings=len(rated),
            average_rating=average,
            distribution=distribution,
            ratings=entries,
        )
