"""Concurrent approvals against a file-backed database.

The shared in-memory engine serializes everything on one connection, so
these tests use their own SQLite file with a connection per session.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from threading import Barrier

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from volunteerhub.core.database import Base
from volunteerhub.core.errors import DomainError, ErrorKind
from volunteerhub.core.security import hash_password
from volunteerhub.models.event import Event, EventCategory, EventStatus
from volunteerhub.models.participation import Participation, ParticipationStatus
from volunteerhub.models.shared import utc_now
from volunteerhub.models.user import User, UserRole
from volunteerhub.repositories.participation_repository import ParticipationRepository
from volunteerhub.schemas.participation import ParticipantDecision
from volunteerhub.services.participation_service import ParticipationService

CAPACITY = 3
APPLICANTS = 8


@pytest.fixture
def file_sessions(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'capacity.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def crowded_event(file_sessions):
    """An approved event with more pending applicants than seats."""
    db = file_sessions()
    try:
        organizer = User(
            email="organizer@example.com",
            password_hash=hash_password("correct-horse-battery"),
            first_name="Otto",
            last_name="Organizer",
            role=UserRole.ORGANIZER.value,
        )
        db.add(organizer)
        db.flush()
        start = utc_now() + timedelta(days=7)
        event = Event(
            title="Food bank shift",
            description="Sort donations and pack parcels for families.",
            location="Community hall",
            start_date=start,
            end_date=start + timedelta(hours=4),
            capacity=CAPACITY,
            category=EventCategory.COMMUNITY.value,
            status=EventStatus.APPROVED.value,
            organizer_id=organizer.id,
        )
        db.add(event)
        db.flush()
        participant_ids = []
        for n in range(APPLICANTS):
            volunteer = User(
                email=f"volunteer{n}@example.com",
                password_hash=hash_password("correct-horse-battery"),
                first_name="Vera",
                last_name=f"Volunteer{n}",
                role=UserRole.VOLUNTEER.value,
            )
            db.add(volunteer)
            db.flush()
            participation = Participation(
                event_id=event.id,
                volunteer_id=volunteer.id,
                status=ParticipationStatus.PENDING.value,
            )
            db.add(participation)
            db.flush()
            participant_ids.append(participation.id)
        db.commit()
        return event.id, organizer.id, participant_ids
    finally:
        db.close()


def _approve_all_at_once(file_sessions, organizer_id, participant_ids, approve):
    barrier = Barrier(len(participant_ids))

    def _worker(participant_id):
        db = file_sessions()
        try:
            organizer = db.get(User, organizer_id)
            barrier.wait()
            approve(ParticipationService(db), participant_id, organizer)
            return "approved"
        except DomainError as exc:
            return exc.kind
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=len(participant_ids)) as pool:
        return list(pool.map(_worker, participant_ids))


class TestConcurrentApprovals:
    def test_single_approvals_never_exceed_capacity(self, file_sessions, crowded_event):
        event_id, organizer_id, participant_ids = crowded_event

        results = _approve_all_at_once(
            file_sessions,
            organizer_id,
            participant_ids,
            lambda service, pid, organizer: service.update_status(
                pid, organizer, status=ParticipantDecision.APPROVED
            ),
        )

        assert results.count("approved") == CAPACITY
        assert results.count(ErrorKind.EVENT_FULL) == APPLICANTS - CAPACITY
        db = file_sessions()
        try:
            assert ParticipationRepository(db).count_approved(event_id) == CAPACITY
        finally:
            db.close()

    def test_bulk_approvals_never_exceed_capacity(self, file_sessions, crowded_event):
        event_id, organizer_id, participant_ids = crowded_event
        pairs = [participant_ids[i : i + 2] for i in range(0, APPLICANTS, 2)]

        results = _approve_all_at_once(
            file_sessions,
            organizer_id,
            pairs,
            lambda service, ids, organizer: service.bulk_update_status(
                ids, organizer, status=ParticipantDecision.APPROVED
            ),
        )

        db = file_sessions()
        try:
            approved = ParticipationRepository(db).count_approved(event_id)
        finally:
            db.close()
        assert approved <= CAPACITY
        assert approved == 2 * results.count("approved")
