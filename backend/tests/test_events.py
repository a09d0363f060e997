"""Tests for event creation, admin decisions and the public event views."""

from datetime import timedelta
from unittest.mock import patch
from uuid import uuid4

import pytest

from volunteerhub.core.errors import DomainError, ErrorKind
from volunteerhub.models.channel import CommunicationChannel
from volunteerhub.models.event import Event, EventCategory, EventStatus
from volunteerhub.models.notification_log import NotificationLog, NotificationType
from volunteerhub.models.participation import ParticipationStatus
from volunteerhub.models.shared import utc_now
from volunteerhub.models.user import UserRole
from volunteerhub.repositories.channel_repository import ChannelRepository
from volunteerhub.schemas.event import DecisionAction
from volunteerhub.services.event_service import EventService, validated_rejection_reason

REJECT_REASON = "Missing safety briefing details"


def _event_payload(**overrides):
    start = utc_now() + timedelta(days=3)
    payload = {
        "title": "River bank restoration",
        "description": "Plant native shrubs along the eroded river bank section.",
        "location": "Riverside Park, east gate",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(hours=4)).isoformat(),
        "capacity": 12,
        "category": EventCategory.ENVIRONMENT.value,
    }
    payload.update(overrides)
    return payload


def _channel_count(db_session, event_id):
    db_session.expire_all()
    return (
        db_session.query(CommunicationChannel)
        .filter(CommunicationChannel.event_id == event_id)
        .count()
    )


class TestCreateEvent:
    """Organizer event submission."""

    def test_create_event_is_pending(self, client, organizer, auth_headers):
        response = client.post("/v1/events/", json=_event_payload(), headers=auth_headers(organizer))
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == EventStatus.PENDING.value
        assert body["organizer_id"] == str(organizer.id)
        assert body["channel_id"] is None
        assert body["approved_count"] == 0
        assert body["available_spots"] == 12

    def test_create_event_notifies_active_admins(
        self, client, db_session, organizer, admin, make_user, auth_headers
    ):
        make_user(UserRole.ADMIN, is_active=False)
        client.post("/v1/events/", json=_event_payload(), headers=auth_headers(organizer))

        logs = db_session.query(NotificationLog).all()
        assert len(logs) == 1
        assert logs[0].user_id == admin.id
        assert logs[0].type == NotificationType.EVENT_APPROVAL_REQUIRED.value

    def test_image_must_be_own_upload(self, client, organizer, make_user, auth_headers):
        someone_else = make_user()
        headers = auth_headers(organizer)

        foreign = client.post(
            "/v1/events/",
            json=_event_payload(image_url=f"avatars/{someone_else.id}/face.png"),
            headers=headers,
        )
        assert foreign.status_code == 400
        assert foreign.json()["error_code"] == "INVALID_MEDIA_REFERENCE"

        own = client.post(
            "/v1/events/",
            json=_event_payload(image_url=f"events/{organizer.id}/poster.png"),
            headers=headers,
        )
        assert own.status_code == 201

    def test_start_date_in_past(self, client, organizer, auth_headers):
        start = utc_now() - timedelta(hours=1)
        payload = _event_payload(
            start_date=start.isoformat(), end_date=(start + timedelta(hours=3)).isoformat()
        )
        response = client.post("/v1/events/", json=payload, headers=auth_headers(organizer))
        assert response.status_code == 400
        assert response.json()["error_code"] == "START_DATE_MUST_BE_FUTURE"

    def test_end_before_start(self, client, organizer, auth_headers):
        start = utc_now() + timedelta(days=1)
        payload = _event_payload(
            start_date=start.isoformat(), end_date=(start - timedelta(hours=1)).isoformat()
        )
        response = client.post("/v1/events/", json=payload, headers=auth_headers(organizer))
        assert response.status_code == 400
        assert response.json()["error_code"] == "END_DATE_MUST_BE_AFTER_START"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"title": "Hey"},
            {"description": "Too short"},
            {"capacity": 0},
            {"category": "PARTY"},
        ],
    )
    def test_field_validation(self, client, organizer, auth_headers, overrides):
        response = client.post(
            "/v1/events/", json=_event_payload(**overrides), headers=auth_headers(organizer)
        )
        assert response.status_code == 422

    def test_volunteer_cannot_create(self, client, volunteer, auth_headers):
        response = client.post("/v1/events/", json=_event_payload(), headers=auth_headers(volunteer))
        assert response.status_code == 403
        assert response.json()["error_code"] == "INSUFFICIENT_ROLE"

    def test_list_my_events_with_counts(
        self, client, organizer, make_event, make_user, make_participation, auth_headers
    ):
        event = make_event(organizer)
        make_event(organizer, status=EventStatus.PENDING)
        make_participation(event, make_user(), ParticipationStatus.APPROVED)
        make_participation(event, make_user(), ParticipationStatus.PENDING)

        response = client.get("/v1/events/mine", headers=auth_headers(organizer))
        assert response.status_code == 200
        events = {e["id"]: e for e in response.json()}
        assert len(events) == 2
        counts = events[str(event.id)]["participant_counts"]
        assert counts["APPROVED"] == 1
        assert counts["PENDING"] == 1
        assert counts["COMPLETED"] == 0


class TestDecideEvent:
    """Admin approval and rejection of a single event."""

    def test_approve_creates_exactly_one_channel(
        self, client, db_session, organizer, admin, make_event, auth_headers
    ):
        event = make_event(organizer, status=EventStatus.PENDING)
        response = client.post(
            f"/v1/admin/events/{event.id}/decision",
            json={"action": "approve"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == EventStatus.APPROVED.value
        assert body["approved_by"] == str(admin.id)
        assert body["approved_at"] is not None
        assert _channel_count(db_session, event.id) == 1

    def test_approve_notifies_organizer(
        self, client, db_session, organizer, admin, make_event, auth_headers, live_bus
    ):
        event = make_event(organizer, status=EventStatus.PENDING)
        client.post(
            f"/v1/admin/events/{event.id}/decision",
            json={"action": "approve"},
            headers=auth_headers(admin),
        )
        logs = db_session.query(NotificationLog).filter(NotificationLog.user_id == organizer.id).all()
        assert len(logs) == 1
        assert logs[0].type == NotificationType.EVENT_STATUS_CHANGE.value
        assert logs[0].data["status"] == EventStatus.APPROVED.value
        assert live_bus.messages_for(organizer.id)[0]["title"] == "Event approved"

    def test_approve_ignores_reason(self, client, organizer, admin, make_event, auth_headers):
        event = make_event(organizer, status=EventStatus.PENDING)
        response = client.post(
            f"/v1/admin/events/{event.id}/decision",
            json={"action": "approve", "reason": "ok"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert response.json()["rejection_reason"] is None

    def test_reject_stores_reason_without_channel(
        self, client, db_session, organizer, admin, make_event, auth_headers
    ):
        event = make_event(organizer, status=EventStatus.PENDING)
        response = client.post(
            f"/v1/admin/events/{event.id}/decision",
            json={"action": "reject", "reason": f"  {REJECT_REASON}  "},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert response.json()["status"] == EventStatus.REJECTED.value
        assert response.json()["rejection_reason"] == REJECT_REASON
        assert _channel_count(db_session, event.id) == 0

    def test_reject_with_short_reason(self, client, organizer, admin, make_event, auth_headers):
        event = make_event(organizer, status=EventStatus.PENDING)
        response = client.post(
            f"/v1/admin/events/{event.id}/decision",
            json={"action": "reject", "reason": "bad"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

    def test_decide_twice(self, client, organizer, admin, make_event, auth_headers):
        event = make_event(organizer, status=EventStatus.PENDING)
        url = f"/v1/admin/events/{event.id}/decision"
        client.post(url, json={"action": "approve"}, headers=auth_headers(admin))
        response = client.post(
            url, json={"action": "reject", "reason": REJECT_REASON}, headers=auth_headers(admin)
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "EVENT_ALREADY_PROCESSED"

    def test_decide_unknown_event(self, client, admin, auth_headers):
        response = client.post(
            f"/v1/admin/events/{uuid4()}/decision",
            json={"action": "approve"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 404
        assert response.json()["error_code"] == "EVENT_NOT_FOUND"

    def test_organizer_cannot_decide(self, client, organizer, make_event, auth_headers):
        event = make_event(organizer, status=EventStatus.PENDING)
        response = client.post(
            f"/v1/admin/events/{event.id}/decision",
            json={"action": "approve"},
            headers=auth_headers(organizer),
        )
        assert response.status_code == 403

    def test_channel_failure_rolls_back_approval(self, db_session, organizer, admin, make_event):
        event = make_event(organizer, status=EventStatus.PENDING)
        service = EventService(db_session)

        with (
            patch.object(ChannelRepository, "create", side_effect=RuntimeError("disk full")),
            pytest.raises(RuntimeError),
        ):
            service.decide_event(event.id, DecisionAction.APPROVE, admin)

        db_session.expire_all()
        reloaded = db_session.query(Event).filter(Event.id == event.id).one()
        assert reloaded.status == EventStatus.PENDING.value
        assert reloaded.approved_by is None
        assert _channel_count(db_session, event.id) == 0

    def test_service_requires_reason_for_reject(self, db_session, organizer, admin, make_event):
        event = make_event(organizer, status=EventStatus.PENDING)
        with pytest.raises(DomainError) as exc_info:
            EventService(db_session).decide_event(event.id, DecisionAction.REJECT, admin, "   ")
        assert exc_info.value.kind == ErrorKind.REJECTION_REASON_REQUIRED

    def test_validated_rejection_reason(self):
        assert validated_rejection_reason(DecisionAction.APPROVE, "short") is None
        assert validated_rejection_reason(DecisionAction.REJECT, f" {REJECT_REASON} ") == REJECT_REASON


class TestBulkDecision:
    """Batch approval and rejection."""

    def test_bulk_approve_skips_decided_and_unknown(
        self, client, db_session, organizer, admin, make_event, auth_headers
    ):
        first = make_event(organizer, status=EventStatus.PENDING)
        second = make_event(organizer, status=EventStatus.PENDING)
        decided = make_event(organizer, status=EventStatus.REJECTED)
        unknown = uuid4()

        response = client.post(
            "/v1/admin/events/bulk_decision",
            json={
                "action": "approve",
                "event_ids": [str(first.id), str(second.id), str(decided.id), str(unknown)],
            },
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        body = response.json()
        assert {e["id"] for e in body["processed"]} == {str(first.id), str(second.id)}
        assert set(body["skipped_ids"]) == {str(decided.id), str(unknown)}
        assert _channel_count(db_session, first.id) == 1
        assert _channel_count(db_session, second.id) == 1
        assert _channel_count(db_session, decided.id) == 0

    def test_bulk_reject_requires_reason(self, client, organizer, admin, make_event, auth_headers):
        event = make_event(organizer, status=EventStatus.PENDING)
        response = client.post(
            "/v1/admin/events/bulk_decision",
            json={"action": "reject", "event_ids": [str(event.id)]},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

    def test_bulk_no_pending_events(self, client, organizer, admin, make_event, auth_headers):
        event = make_event(organizer)
        response = client.post(
            "/v1/admin/events/bulk_decision",
            json={"action": "approve", "event_ids": [str(event.id)]},
            headers=auth_headers(admin),
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "NO_PENDING_EVENTS"

    def test_bulk_empty_ids(self, client, admin, auth_headers):
        response = client.post(
            "/v1/admin/events/bulk_decision",
            json={"action": "approve", "event_ids": []},
            headers=auth_headers(admin),
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_EVENT_IDS"


class TestPublicEventViews:
    """Discovery list and detail views."""

    def test_list_only_open_approved_events(self, client, organizer, make_event):
        upcoming = make_event(organizer)
        make_event(organizer, status=EventStatus.PENDING)
        make_event(organizer, status=EventStatus.REJECTED)
        make_event(organizer, starts_in=timedelta(days=-2), duration=timedelta(hours=2))

        response = client.get("/v1/events/")
        assert response.status_code == 200
        body = response.json()
        assert [e["id"] for e in body["events"]] == [str(upcoming.id)]
        assert body["pagination"]["total"] == 1

    def test_list_includes_in_progress_events(self, client, organizer, make_event):
        running = make_event(organizer, starts_in=timedelta(hours=-1), duration=timedelta(hours=3))
        response = client.get("/v1/events/")
        assert [e["id"] for e in response.json()["events"]] == [str(running.id)]

    def test_list_filters_by_category_and_search(self, client, organizer, make_event):
        make_event(organizer, category=EventCategory.EDUCATION, title="Reading buddies")
        make_event(organizer, category=EventCategory.ENVIRONMENT, title="Tree planting")

        by_category = client.get("/v1/events/", params={"category": "EDUCATION"}).json()
        assert [e["title"] for e in by_category["events"]] == ["Reading buddies"]

        by_search = client.get("/v1/events/", params={"search": "TREE"}).json()
        assert [e["title"] for e in by_search["events"]] == ["Tree planting"]

    def test_list_orders_by_start_date(self, client, organizer, make_event):
        later = make_event(organizer, starts_in=timedelta(days=10))
        sooner = make_event(organizer, starts_in=timedelta(days=2))
        response = client.get("/v1/events/")
        assert [e["id"] for e in response.json()["events"]] == [str(sooner.id), str(later.id)]

    def test_list_pagination(self, client, organizer, make_event):
        for days in range(1, 4):
            make_event(organizer, starts_in=timedelta(days=days))
        body = client.get("/v1/events/", params={"page": 2, "limit": 2}).json()
        assert len(body["events"]) == 1
        assert body["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}

    def test_detail_capacity_fields(
        self, client, organizer, make_event, make_user, make_participation
    ):
        event = make_event(organizer, capacity=2)
        make_participation(event, make_user(), ParticipationStatus.APPROVED)
        make_participation(event, make_user(), ParticipationStatus.PENDING)

        body = client.get(f"/v1/events/{event.id}").json()
        assert body["approved_count"] == 1
        assert body["available_spots"] == 1
        assert body["is_full"] is False
        assert body["can_user_register"] is False
        assert body["channel_id"] is not None
        assert body["organizer"]["id"] == str(organizer.id)

    def test_detail_for_volunteer_viewer(
        self, client, organizer, volunteer, make_event, make_participation, auth_headers
    ):
        open_event = make_event(organizer)
        registered = make_event(organizer)
        make_participation(registered, volunteer, ParticipationStatus.PENDING)

        open_body = client.get(f"/v1/events/{open_event.id}", headers=auth_headers(volunteer)).json()
        assert open_body["can_user_register"] is True
        assert open_body["user_registration"] is None

        registered_body = client.get(
            f"/v1/events/{registered.id}", headers=auth_headers(volunteer)
        ).json()
        assert registered_body["can_user_register"] is False
        assert registered_body["user_registration"] == ParticipationStatus.PENDING.value

    def test_detail_full_event(
        self, client, organizer, volunteer, make_event, make_user, make_participation, auth_headers
    ):
        event = make_event(organizer, capacity=1)
        make_participation(event, make_user(), ParticipationStatus.APPROVED)
        body = client.get(f"/v1/events/{event.id}", headers=auth_headers(volunteer)).json()
        assert body["is_full"] is True
        assert body["available_spots"] == 0
        assert body["can_user_register"] is False

    def test_detail_started_event_cannot_register(
        self, client, organizer, volunteer, make_event, auth_headers
    ):
        event = make_event(organizer, starts_in=timedelta(hours=-1))
        body = client.get(f"/v1/events/{event.id}", headers=auth_headers(volunteer)).json()
        assert body["can_user_register"] is False

    def test_detail_not_found(self, client):
        response = client.get(f"/v1/events/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["error_code"] == "EVENT_NOT_FOUND"
