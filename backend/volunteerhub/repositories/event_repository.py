"""Repository for Event records and their approval state."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from volunteerhub.core.sorting import apply_order_by
from volunteerhub.models.event import Event, EventStatus
from volunteerhub.schemas.event import EventCreate

EVENT_SORT_FIELDS = frozenset({"start_date", "created_at", "title", "approved_at"})


class EventRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, data: EventCreate, organizer_id: UUID) -> Event:
        event = Event(
            title=data.title,
            description=data.description,
            location=data.location,
            start_date=data.start_date,
            end_date=data.end_date,
            capacity=data.capacity,
            category=data.category.value,
            image_url=data.image_url,
            status=EventStatus.PENDING.value,
            organizer_id=organizer_id,
        )
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event

    def get_by_id(self, event_id: UUID) -> Event | None:
        return self.db.query(Event).filter(Event.id == event_id).first()

    def get_for_update(self, event_id: UUID) -> Event | None:
        """Load the event row holding a write lock until the transaction ends."""
        return self.db.query(Event).filter(Event.id == event_id).with_for_update().first()

    def get_by_ids(self, event_ids: list[UUID]) -> list[Event]:
        if not event_ids:
            return []
        return self.db.query(Event).filter(Event.id.in_(set(event_ids))).all()

    def get_pending_by_ids_for_update(self, event_ids: list[UUID]) -> list[Event]:
        return (
            self.db.query(Event)
            .filter(Event.id.in_(set(event_ids)), Event.status == EventStatus.PENDING.value)
            .order_by(Event.created_at.asc())
            .with_for_update()
            .all()
        )

    def list_pending(self) -> list[Event]:
        return (
            self.db.query(Event)
            .filter(Event.status == EventStatus.PENDING.value)
            .order_by(Event.created_at.asc())
            .all()
        )

    def _discoverable(
        self,
        now: datetime,
        category: str | None = None,
        search: str | None = None,
    ) -> Query:  # type: ignore[type-arg]
        query = self.db.query(Event).filter(
            Event.status == EventStatus.APPROVED.value,
            Event.end_date > now,
        )
        if category is not None:
            query = query.filter(Event.category == category)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(Event.title).like(pattern),
                    func.lower(Event.description).like(pattern),
                    func.lower(Event.location).like(pattern),
                )
            )
        return query

    def list_discoverable(
        self,
        now: datetime,
        skip: int = 0,
        limit: int = 20,
        category: str | None = None,
        search: str | None = None,
        order_by: str | None = None,
    ) -> list[Event]:
        query = self._discoverable(now, category=category, search=search)
        query = apply_order_by(
            query,
            Event,
            order_by,
            allowed_fields=EVENT_SORT_FIELDS,
            default_field="start_date",
            default_direction="asc",
        )
        return query.offset(skip).limit(limit).all()

    def count_discoverable(
        self, now: datetime, category: str | None = None, search: str | None = None
    ) -> int:
        return self._discoverable(now, category=category, search=search).count()

    def _decided(self, status: str | None = None) -> Query:  # type: ignore[type-arg]
        query = self.db.query(Event).filter(Event.status != EventStatus.PENDING.value)
        if status is not None:
            query = query.filter(Event.status == status)
        return query

    def list_decided(self, skip: int = 0, limit: int = 20, status: str | None = None) -> list[Event]:
        query = apply_order_by(
            self._decided(status), Event, None, default_field="approved_at"
        )
        return query.offset(skip).limit(limit).all()

    def count_decided(self, status: str | None = None) -> int:
        return self._decided(status).count()

    def list_by_organizer(self, organizer_id: UUID, status: str | None = None) -> list[Event]:
        query = self.db.query(Event).filter(Event.organizer_id == organizer_id)
        if status is not None:
            query = query.filter(Event.status == status)
        return query.order_by(Event.start_date.desc()).all()

    def count_by_status(self) -> dict[str, int]:
        rows = self.db.query(Event.status, func.count(Event.id)).group_by(Event.status).all()
        return {status: count for status, count in rows}

    def apply_decision(
        self,
        event: Event,
        status: EventStatus,
        admin_id: UUID,
        decided_at: datetime,
        reason: str | None = None,
        commit: bool = True,
    ) -> Event:
        event.status = status.value  # type: ignore[assignment]
        event.approved_by = admin_id  # type: ignore[assignment]
        event.approved_at = decided_at  # type: ignore[assignment]
        event.rejection_reason = (  # type: ignore[assignment]
            reason if status == EventStatus.REJECTED else None
        )
        if commit:
            self.db.commit()
            self.db.refresh(event)
        else:
            self.db.flush()
        return event
