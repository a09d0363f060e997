"""Tests for the sorting utility and sortable list endpoints."""

from datetime import timedelta

from sqlalchemy.orm import Session

from volunteerhub.core.sorting import apply_order_by
from volunteerhub.models.user import User, UserRole


class TestApplyOrderBy:
    """Tests for the core sorting utility function."""

    def _emails(self, db_session: Session, order_by, **kwargs):
        query = apply_order_by(db_session.query(User), User, order_by, **kwargs)
        return [u.email for u in query.all()]

    def test_default_sort_created_at_desc(self, db_session, make_user):
        make_user(email="first@example.com")
        make_user(email="second@example.com")
        assert self._emails(db_session, None) == ["second@example.com", "first@example.com"]

    def test_field_and_direction(self, db_session, make_user):
        make_user(email="b@example.com")
        make_user(email="a@example.com")
        make_user(email="c@example.com")
        assert self._emails(db_session, "email:desc") == [
            "c@example.com",
            "b@example.com",
            "a@example.com",
        ]

    def test_bare_field_sorts_ascending(self, db_session, make_user):
        make_user(email="b@example.com")
        make_user(email="a@example.com")
        assert self._emails(db_session, "email") == ["a@example.com", "b@example.com"]

    def test_unknown_direction_uses_default(self, db_session, make_user):
        make_user(email="a@example.com")
        make_user(email="b@example.com")
        assert self._emails(db_session, "email:sideways") == ["b@example.com", "a@example.com"]

    def test_unknown_field_falls_back(self, db_session, make_user):
        make_user(email="first@example.com")
        make_user(email="second@example.com")
        assert self._emails(db_session, "no_such_column:asc") == [
            "second@example.com",
            "first@example.com",
        ]

    def test_field_outside_allow_list_falls_back(self, db_session, make_user):
        make_user(email="first@example.com")
        make_user(email="second@example.com")
        emails = self._emails(
            db_session, "password_hash:asc", allowed_fields=frozenset({"email"})
        )
        assert emails == ["second@example.com", "first@example.com"]


class TestSortableEndpoints:
    def test_public_events_by_start_date(self, client, organizer, make_event):
        make_event(organizer, starts_in=timedelta(days=9), title="Later")
        make_event(organizer, starts_in=timedelta(days=2), title="Sooner")

        default = client.get("/v1/events/").json()
        assert [e["title"] for e in default["events"]] == ["Sooner", "Later"]

        by_title = client.get("/v1/events/", params={"order_by": "title:desc"}).json()
        assert [e["title"] for e in by_title["events"]] == ["Sooner", "Later"]

    def test_admin_users_by_role(self, client, admin, make_user, auth_headers):
        make_user(UserRole.VOLUNTEER)
        make_user(UserRole.ORGANIZER)
        body = client.get(
            "/v1/admin/users", params={"order_by": "role:asc"}, headers=auth_headers(admin)
        ).json()
        assert [u["role"] for u in body["users"]] == ["ADMIN", "ORGANIZER", "VOLUNTEER"]
