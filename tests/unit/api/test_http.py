"""Tests for the HTTP surface."""

import pytest
import uvicorn
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from src.authlink.api.http.app import create_app, run
from src.authlink.api.http.errors import encode_error
from src.authlink.core.errors import ECONFLICT, EINTERNAL, AppError
from src.authlink.core.services.user.user_service import UserService
from src.authlink.runtime.config.config_data import AppConfig, ConfigData
from src.authlink.runtime.context import with_context
from tests.utils import make_credential


@pytest.fixture
def client(db):
    with TestClient(create_app(db)) as client:
        yield client


class TestUsersRouter:
    def test_get_user(self, client, credential_service):
        credential = make_credential(source_id="1001")
        credential_service.create_credential(credential)

        response = client.get(f"/api/users/{credential.user_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == credential.user_id
        assert body["name"] == "Jane Doe"
        assert body["avatar_url"] == "https://avatars1.githubusercontent.com/u/1001?s=64"
        assert body["credentials"][0]["source"] == "github"
        assert "access-1" not in response.text
        assert "refresh-1" not in response.text

    def test_missing_user(self, client):
        response = client.get("/api/users/999999")

        assert response.status_code == 404
        assert response.json() == {"error": "User not found."}


class TestHealthRouter:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "authlink"}

    def test_ready(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["database"] == "healthy"


class TestEncodeError:
    def test_conflict(self):
        response = encode_error(AppError(ECONFLICT, "Credential is linked to another user."))

        assert response.status_code == 409
        assert response.body == b'{"error":"Credential is linked to another user."}'

    def test_internal_hides_details(self):
        response = encode_error(AppError(EINTERNAL, "Unknown table 'x'."))

        assert response.status_code == 500
        assert response.body == b'{"error":"Internal error."}'

    def test_foreign_exception(self):
        response = encode_error(RuntimeError("connection refused"))

        assert response.status_code == 500
        assert b"connection refused" not in response.body


class TestUnclassifiedErrors:
    def test_store_failure_returns_json_body(self, db, monkeypatch):
        """Should answer unexpected failures with the generic JSON error."""

        def broken(self, user_id, cancel_event=None):
            raise OperationalError("SELECT", {}, Exception("connection refused"))

        monkeypatch.setattr(UserService, "get_user_by_id", broken)

        with TestClient(create_app(db), raise_server_exceptions=False) as client:
            response = client.get("/api/users/1")

        assert response.status_code == 500
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {"error": "Internal error."}


class TestRun:
    def test_serves_configured_host_and_port(self, monkeypatch):
        calls = []
        monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append(kwargs))
        override = ConfigData(app=AppConfig(host="0.0.0.0", port=9000))

        with with_context(override):
            run()

        assert calls == [{"host": "0.0.0.0", "port": 9000, "access_log": False}]
