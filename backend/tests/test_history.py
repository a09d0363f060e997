"""Tests for volunteer history statistics and achievements."""

from datetime import timedelta

import pytest

from volunteerhub.models.event import Event, EventCategory, EventStatus
from volunteerhub.models.participation import Participation, ParticipationStatus
from volunteerhub.models.shared import utc_now
from volunteerhub.models.user import UserRole
from volunteerhub.services.history_service import (
    HistoryService,
    average_rating,
    counts_as_completed,
    earned_achievements,
    event_hours,
    favorite_category,
    invalidate_history,
    participation_streak,
)


def _event(hours: float, ends_days_ago: float = 1) -> Event:
    end = utc_now() - timedelta(days=ends_days_ago)
    return Event(start_date=end - timedelta(hours=hours), end_date=end)


class TestPureCalculations:
    """Aggregation helpers."""

    @pytest.mark.parametrize(
        ("hours", "expected"),
        [(3, 3), (2.5, 3), (0.25, 1), (0, 0)],
    )
    def test_event_hours_round_up(self, hours, expected):
        assert event_hours(_event(hours)) == expected

    def test_counts_as_completed(self):
        now = utc_now()
        ended = _event(2, ends_days_ago=1)
        running = Event(start_date=now - timedelta(hours=1), end_date=now + timedelta(hours=1))

        def participation(status):
            return Participation(status=status.value)

        assert counts_as_completed(participation(ParticipationStatus.COMPLETED), running, now)
        assert counts_as_completed(participation(ParticipationStatus.APPROVED), ended, now)
        assert not counts_as_completed(participation(ParticipationStatus.APPROVED), running, now)
        assert not counts_as_completed(participation(ParticipationStatus.PENDING), ended, now)
        assert not counts_as_completed(participation(ParticipationStatus.REJECTED), ended, now)

    def test_streak_breaks_on_gap(self):
        now = utc_now()
        ends = [now - timedelta(days=d) for d in (1, 20, 45, 100, 110)]
        assert participation_streak(ends) == 3

    def test_streak_window_is_inclusive(self):
        now = utc_now()
        assert participation_streak([now, now - timedelta(days=30)]) == 2
        assert participation_streak([now, now - timedelta(days=30, seconds=1)]) == 1

    def test_streak_empty(self):
        assert participation_streak([]) == 0

    def test_average_rating(self):
        assert average_rating([]) == 0.0
        assert average_rating([5, 4, 4]) == 4.3

    def test_favorite_category(self):
        assert favorite_category([]) is None
        assert favorite_category(["EDUCATION", "COMMUNITY", "EDUCATION"]) == "EDUCATION"

    def test_achievements_thresholds(self):
        assert earned_achievements(0, 0, 0) == []
        ids = {a.id for a in earned_achievements(5, 12, 3)}
        assert ids == {
            "first_volunteer",
            "committed_volunteer",
            "ten_hours",
            "diverse_volunteer",
        }
        ids = {a.id for a in earned_achievements(25, 100, 1)}
        assert {"veteran_volunteer", "hundred_hours", "fifty_hours"} <= ids
        assert "diverse_volunteer" not in ids


class TestHistoryEndpoint:
    """GET /v1/history."""

    @pytest.fixture
    def history_rows(self, organizer, volunteer, make_event, make_participation):
        recent = make_event(
            organizer,
            starts_in=timedelta(days=-2),
            category=EventCategory.ENVIRONMENT,
            title="Dune restoration",
        )
        earlier = make_event(
            organizer,
            starts_in=timedelta(days=-10),
            duration=timedelta(hours=2, minutes=30),
            category=EventCategory.EDUCATION,
            title="Homework club",
        )
        # Approved and ended, but never marked complete.
        oldest = make_event(
            organizer,
            starts_in=timedelta(days=-50),
            category=EventCategory.ENVIRONMENT,
            title="Park sweep",
        )
        upcoming = make_event(organizer, title="Food drive")
        pending = make_event(organizer, title="Clothing swap")
        rejected = make_event(organizer, title="Toy repair")

        make_participation(recent, volunteer, ParticipationStatus.COMPLETED, rating=5)
        make_participation(earlier, volunteer, ParticipationStatus.COMPLETED, rating=4)
        make_participation(oldest, volunteer, ParticipationStatus.APPROVED)
        make_participation(upcoming, volunteer, ParticipationStatus.APPROVED)
        make_participation(pending, volunteer, ParticipationStatus.PENDING)
        make_participation(rejected, volunteer, ParticipationStatus.REJECTED)

    def test_stats(self, client, volunteer, history_rows, auth_headers):
        response = client.get("/v1/history/", headers=auth_headers(volunteer))
        assert response.status_code == 200
        stats = response.json()["stats"]
        assert stats == {
            "total_events": 6,
            "completed_events": 3,
            "total_hours": 9,
            "completion_rate": 60,
            "average_rating": 4.5,
            "favorite_category": "ENVIRONMENT",
            "streak": 2,
            "categories": ["EDUCATION", "ENVIRONMENT"],
        }

    def test_sections(self, client, volunteer, history_rows, auth_headers):
        body = client.get("/v1/history/", headers=auth_headers(volunteer)).json()
        assert [i["event"]["title"] for i in body["upcoming"]] == ["Food drive"]
        assert sorted(i["event"]["title"] for i in body["completed"]) == [
            "Dune restoration",
            "Homework club",
            "Park sweep",
        ]
        assert [i["event"]["title"] for i in body["pending"]] == ["Clothing swap"]
        assert [i["event"]["title"] for i in body["rejected"]] == ["Toy repair"]
        assert [a["id"] for a in body["achievements"]] == ["first_volunteer"]

    def test_can_rate_only_unrated_completions(
        self, client, organizer, volunteer, make_event, make_participation, auth_headers
    ):
        unrated = make_event(organizer, starts_in=timedelta(days=-3), title="Unrated")
        rated = make_event(organizer, starts_in=timedelta(days=-4), title="Rated")
        make_participation(unrated, volunteer, ParticipationStatus.COMPLETED)
        make_participation(rated, volunteer, ParticipationStatus.COMPLETED, rating=3)

        completed = client.get("/v1/history/", headers=auth_headers(volunteer)).json()["completed"]
        flags = {i["event"]["title"]: i["can_rate"] for i in completed}
        assert flags == {"Unrated": True, "Rated": False}

    def test_empty_history(self, client, volunteer, auth_headers):
        body = client.get("/v1/history/", headers=auth_headers(volunteer)).json()
        assert body["stats"]["total_events"] == 0
        assert body["stats"]["completion_rate"] == 0
        assert body["stats"]["favorite_category"] is None
        assert body["achievements"] == []

    def test_upcoming_excludes_event_no_longer_approved(
        self, client, organizer, volunteer, make_event, make_participation, auth_headers
    ):
        withdrawn = make_event(organizer, status=EventStatus.REJECTED)
        make_participation(withdrawn, volunteer, ParticipationStatus.APPROVED)
        body = client.get("/v1/history/", headers=auth_headers(volunteer)).json()
        assert body["upcoming"] == []

    def test_volunteer_only(self, client, make_user, auth_headers):
        response = client.get("/v1/history/", headers=auth_headers(make_user(UserRole.ORGANIZER)))
        assert response.status_code == 403


class TestHistoryCache:
    """Memoized history and its invalidation on ledger writes."""

    def test_cached_until_invalidated(
        self, db_session, organizer, volunteer, make_event, make_participation
    ):
        service = HistoryService(db_session, cache_ttl=300)
        assert service.get_history(volunteer.id).stats.total_events == 0

        make_participation(make_event(organizer), volunteer)
        assert service.get_history(volunteer.id).stats.total_events == 0

        invalidate_history(volunteer.id)
        assert service.get_history(volunteer.id).stats.total_events == 1

    def test_registration_invalidates(
        self, client, db_session, organizer, volunteer, make_event, auth_headers
    ):
        service = HistoryService(db_session, cache_ttl=300)
        service.get_history(volunteer.id)

        event = make_event(organizer)
        client.post(f"/v1/events/{event.id}/register", headers=auth_headers(volunteer))
        assert len(service.get_history(volunteer.id).pending) == 1

    def test_disabled_cache_reads_through(
        self, db_session, organizer, volunteer, make_event, make_participation
    ):
        service = HistoryService(db_session, cache_ttl=0)
        service.get_history(volunteer.id)
        make_participation(make_event(organizer), volunteer)
        assert service.get_history(volunteer.id).stats.total_events == 1
