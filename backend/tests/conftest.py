"""Shared test fixtures for all test modules."""

import contextlib
from datetime import timedelta
from typing import Any

import pytest
from fastapi import BackgroundTasks
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from volunteerhub.core import database as db_module
from volunteerhub.core.database import Base, get_db
from volunteerhub.core.security import create_access_token, hash_password
from volunteerhub.main import app
from volunteerhub.models.channel import CommunicationChannel
from volunteerhub.models.event import Event, EventCategory, EventStatus
from volunteerhub.models.participation import Participation, ParticipationStatus
from volunteerhub.models.shared import utc_now
from volunteerhub.models.user import User, UserRole
from volunteerhub.services.blob_store import LocalBlobStore, get_blob_store
from volunteerhub.services.history_service import clear_history_cache
from volunteerhub.services.live_bus import InMemoryLiveBus, get_live_bus
from volunteerhub.services.push_delivery import InProcessPushScheduler, get_push_scheduler
from volunteerhub.services.push_provider import PushResult, get_push_provider

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

TEST_PASSWORD = "correct-horse-battery"


class ScriptedPushProvider:
    """Push provider double returning a fixed result and recording every call."""

    def __init__(self, result: PushResult = PushResult.OK):
        self.result = result
        self.results_by_endpoint: dict[str, PushResult] = {}
        self.calls: list[dict[str, Any]] = []

    def send(
        self,
        subscription_info: dict[str, Any],
        payload: dict[str, Any],
        ttl: int,
        urgency: str = "normal",
    ) -> PushResult:
        self.calls.append(
            {"subscription": subscription_info, "payload": payload, "ttl": ttl, "urgency": urgency}
        )
        return self.results_by_endpoint.get(subscription_info["endpoint"], self.result)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database. Clears data after each test.
    """
    # Patch module-level engine and session factory
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)
    clear_history_cache()

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.commit()
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    # Restore originals
    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for direct repository/service testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def live_bus():
    return InMemoryLiveBus()


@pytest.fixture
def push_provider():
    return ScriptedPushProvider()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path)


@pytest.fixture
def client(live_bus, push_provider, blob_store):
    """Test client with in-memory delivery collaborators.

    Push runs as a background task, which TestClient finishes before returning.
    """

    def _push_scheduler(background_tasks: BackgroundTasks):
        return InProcessPushScheduler(background_tasks, push_provider)

    app.dependency_overrides[get_live_bus] = lambda: live_bus
    app.dependency_overrides[get_push_provider] = lambda: push_provider
    app.dependency_overrides[get_push_scheduler] = _push_scheduler
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ── Factories ─────────────────────────────────────────────────────


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(
        role: UserRole = UserRole.VOLUNTEER,
        email: str | None = None,
        first_name: str = "Test",
        last_name: str | None = None,
        is_active: bool = True,
    ) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"{role.value.lower()}{counter['n']}@example.com",
            password_hash=hash_password(TEST_PASSWORD),
            first_name=first_name,
            last_name=last_name or f"{role.value.title()}{counter['n']}",
            role=role.value,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_event(db_session):
    def _make_event(
        organizer: User,
        status: EventStatus = EventStatus.APPROVED,
        capacity: int | None = None,
        starts_in: timedelta = timedelta(days=7),
        duration: timedelta = timedelta(hours=3),
        category: EventCategory = EventCategory.COMMUNITY,
        title: str = "Beach clean-up day",
        image_url: str | None = None,
    ) -> Event:
        """Insert an event directly, bypassing the future-start check."""
        start = utc_now() + starts_in
        event = Event(
            title=title,
            description="Help us clean the beach and sort the recyclables.",
            location="North Beach, Pier 3",
            start_date=start,
            end_date=start + duration,
            capacity=capacity,
            category=category.value,
            image_url=image_url,
            status=status.value,
            organizer_id=organizer.id,
        )
        db_session.add(event)
        db_session.commit()
        if status == EventStatus.APPROVED:
            db_session.add(CommunicationChannel(event_id=event.id))
            db_session.commit()
        db_session.refresh(event)
        return event

    return _make_event


@pytest.fixture
def make_participation(db_session):
    def _make_participation(
        event: Event,
        volunteer: User,
        status: ParticipationStatus = ParticipationStatus.PENDING,
        rating: int | None = None,
    ) -> Participation:
        participation = Participation(
            event_id=event.id,
            volunteer_id=volunteer.id,
            status=status.value,
            rating=rating,
            completed_at=utc_now() if status == ParticipationStatus.COMPLETED else None,
            rated_at=utc_now() if rating is not None else None,
        )
        db_session.add(participation)
        db_session.commit()
        db_session.refresh(participation)
        return participation

    return _make_participation


@pytest.fixture
def test_password():
    return TEST_PASSWORD


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        token = create_access_token(user.id, str(user.role))
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def volunteer(make_user):
    return make_user(UserRole.VOLUNTEER, first_name="Vera")


@pytest.fixture
def organizer(make_user):
    return make_user(UserRole.ORGANIZER, first_name="Otto")


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, first_name="Ada")
