"""Minimal smoke tests: the app boots, routes are mounted and errors are shaped."""

from fastapi.testclient import TestClient
from sqlalchemy import inspect

from volunteerhub.core import database as db_module
from volunteerhub.core.database import init_db
from volunteerhub.main import app


class TestSmoke:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        body = response.json()
        assert body["app"] == "VolunteerHub"
        assert body["status"] == "running"

    def test_openapi_lists_every_area(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        for prefix in (
            "/v1/auth/",
            "/v1/events/",
            "/v1/registrations/",
            "/v1/channels/",
            "/v1/notifications/",
            "/v1/history/",
            "/v1/admin/",
            "/v1/uploads/",
        ):
            assert any(p.startswith(prefix) for p in paths), prefix

    def test_options_preflight(self, client):
        response = client.options("/v1/events/", headers={"Origin": "https://volunteer.example"})
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "https://volunteer.example"

    def test_domain_error_shape(self, client):
        response = client.get("/v1/events/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404
        assert set(response.json()) >= {"error_code", "message"}

    def test_unhandled_error_is_masked(self, client, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("database on fire")

        monkeypatch.setattr(
            "volunteerhub.services.event_service.EventService.list_events", explode
        )
        response = TestClient(app, raise_server_exceptions=False).get("/v1/events/")
        assert response.status_code == 500
        assert response.json() == {
            "error_code": "INTERNAL_ERROR",
            "message": "Internal server error",
        }


class TestDatabase:
    def test_init_db_is_idempotent(self):
        """Tables already exist from the autouse fixture."""
        init_db()

        tables = inspect(db_module.engine).get_table_names()
        for table in ("users", "events", "participations", "communication_channels"):
            assert table in tables
