"""Repository for Participation rows, including the capacity-guarded approval."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, aliased

from volunteerhub.models.event import Event
from volunteerhub.models.participation import Participation, ParticipationStatus


class ParticipationRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, event_id: UUID, volunteer_id: UUID, commit: bool = True) -> Participation:
        """Insert a PENDING row.

        Raises ``sqlalchemy.exc.IntegrityError`` when the volunteer already
        holds a row for the event.
        """
        participation = Participation(
            event_id=event_id,
            volunteer_id=volunteer_id,
            status=ParticipationStatus.PENDING.value,
        )
        self.db.add(participation)
        if commit:
            self.db.commit()
            self.db.refresh(participation)
        else:
            self.db.flush()
        return participation

    def get_by_id(self, participation_id: UUID) -> Participation | None:
        return self.db.query(Participation).filter(Participation.id == participation_id).first()

    def get_by_ids(self, participation_ids: list[UUID]) -> list[Participation]:
        if not participation_ids:
            return []
        return (
            self.db.query(Participation)
            .filter(Participation.id.in_(set(participation_ids)))
            .all()
        )

    def get_by_event_and_volunteer(self, event_id: UUID, volunteer_id: UUID) -> Participation | None:
        return (
            self.db.query(Participation)
            .filter(Participation.event_id == event_id, Participation.volunteer_id == volunteer_id)
            .first()
        )

    def list_for_event(self, event_id: UUID) -> list[Participation]:
        return (
            self.db.query(Participation)
            .filter(Participation.event_id == event_id)
            .order_by(Participation.registered_at.asc())
            .all()
        )

    def list_for_volunteer_with_events(
        self, volunteer_id: UUID, status: str | None = None
    ) -> list[tuple[Participation, Event]]:
        query = (
            self.db.query(Participation, Event)
            .join(Event, Event.id == Participation.event_id)
            .filter(Participation.volunteer_id == volunteer_id)
        )
        if status is not None:
            query = query.filter(Participation.status == status)
        return query.order_by(Participation.registered_at.desc()).all()  # type: ignore[return-value]

    def list_rated_for_event(self, event_id: UUID) -> list[Participation]:
        return (
            self.db.query(Participation)
            .filter(Participation.event_id == event_id, Participation.rating.isnot(None))
            .order_by(Participation.rated_at.desc())
            .all()
        )

    def count_approved(self, event_id: UUID) -> int:
        return (
            self.db.query(Participation)
            .filter(
                Participation.event_id == event_id,
                Participation.status == ParticipationStatus.APPROVED.value,
            )
            .count()
        )

    def count_approved_by_event(self, event_ids: list[UUID]) -> dict[UUID, int]:
        if not event_ids:
            return {}
        rows = (
            self.db.query(Participation.event_id, func.count(Participation.id))
            .filter(
                Participation.event_id.in_(set(event_ids)),
                Participation.status == ParticipationStatus.APPROVED.value,
            )
            .group_by(Participation.event_id)
            .all()
        )
        return {event_id: count for event_id, count in rows}

    def count_by_status_for_events(self, event_ids: list[UUID]) -> dict[UUID, dict[str, int]]:
        if not event_ids:
            return {}
        rows = (
            self.db.query(Participation.event_id, Participation.status, func.count(Participation.id))
            .filter(Participation.event_id.in_(set(event_ids)))
            .group_by(Participation.event_id, Participation.status)
            .all()
        )
        counts: dict[UUID, dict[str, int]] = {}
        for event_id, status, count in rows:
            counts.setdefault(event_id, {})[status] = count
        return counts

    def count_by_status(self) -> dict[str, int]:
        rows = (
            self.db.query(Participation.status, func.count(Participation.id))
            .group_by(Participation.status)
            .all()
        )
        return {status: count for status, count in rows}

    def approve_within_capacity(
        self,
        participation_id: UUID,
        event_id: UUID,
        capacity: int | None,
        commit: bool = True,
    ) -> bool:
        """Flip a participation to APPROVED only while the event has a free slot.

        The approved-count check and the write are a single UPDATE statement,
        so two concurrent approvals cannot both take the last slot. Returns
        False when no row was updated.
        """
        stmt = update(Participation).where(Participation.id == participation_id)
        if capacity is not None:
            counted = aliased(Participation)
            approved_count = (
                select(func.count(counted.id))
                .where(
                    counted.event_id == event_id,
                    counted.status == ParticipationStatus.APPROVED.value,
                )
                .scalar_subquery()
            )
            stmt = stmt.where(approved_count < capacity)
        stmt = stmt.values(
            status=ParticipationStatus.APPROVED.value,
            completed_at=None,
            rejection_reason=None,
        ).execution_options(synchronize_session=False)

        result = self.db.execute(stmt)
        if commit:
            self.db.commit()
        return bool(result.rowcount)  # type: ignore[attr-defined]

    def update(self, participation: Participation, data: dict[str, Any], commit: bool = True) -> Participation:
        for key, value in data.items():
            setattr(participation, key, value)
        if commit:
            self.db.commit()
            self.db.refresh(participation)
        else:
            self.db.flush()
        return participation

    def delete(self, participation: Participation) -> None:
        self.db.delete(participation)
        self.db.commit()

    def complete_ended(self, now: datetime, event_ids: list[UUID] | None = None) -> int:
        ended_event_ids = select(Event.id).where(Event.end_date < now)
        if event_ids:
            ended_event_ids = ended_event_ids.where(Event.id.in_(event_ids))
        count = (
            self.db.query(Participation)
            .filter(
                Participation.status == ParticipationStatus.APPROVED.value,
                Participation.event_id.in_(ended_event_ids),
            )
            .update(
                {"status": ParticipationStatus.COMPLETED.value, "completed_at": now},
                synchronize_session=False,
            )
        )
        self.db.commit()
        return count
