"""
tests/test_api_routes.py -- Integration tests for the auth API routes.

These tests exercise the full stack: FastAPI routing -> auth dependencies ->
SessionManager -> AuthStore -> response model serialization. They check that
every credential failure reaches the client as the same generic 401.

Fixtures used (from conftest.py):
  - api_client: (client, sessions) -- TestClient over an isolated shared-memory DB
"""

from __future__ import annotations

import uuid
from datetime import timedelta

from fastapi.testclient import TestClient

from auth import sessions as auth_sessions
from auth.dependencies import get_session_manager
from auth.errors import EntropyFailure
from auth.refresh import generate_refresh_token
from auth.sessions import SessionManager
from auth.tokens import issue_access_token
from core.config import get_settings

PASSWORD = "correct horse battery staple"


def _email() -> str:
    return f"user-{uuid.uuid4().hex[:12]}@example.com"


def _register(client: TestClient, email: str, password: str = PASSWORD) -> dict:
    resp = client.post("/api/v1/users", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.text
    return resp.json()


def _login(client: TestClient, email: str, password: str = PASSWORD) -> dict:
    resp = client.post("/api/v1/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestUsers:
    def test_register_returns_user_without_password(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, _ = api_client
        email = _email()
        data = _register(client, email)
        assert data["email"] == email
        uuid.UUID(data["id"])
        assert "password" not in data
        assert "hashed_password" not in data

    def test_duplicate_email_is_409(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, _ = api_client
        email = _email()
        _register(client, email)
        resp = client.post("/api/v1/users", json={"email": email, "password": "other"})
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "email_taken"

    def test_password_over_72_bytes_is_422(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, _ = api_client
        resp = client.post("/api/v1/users", json={"email": _email(), "password": "a" * 73})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "password_too_long"

    def test_validation_error_does_not_echo_password(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, _ = api_client
        resp = client.post("/api/v1/users", json={"email": "", "password": "s3cret-value"})
        assert resp.status_code == 422
        assert "s3cret-value" not in resp.text

    def test_update_requires_access_token(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, _ = api_client
        resp = client.put("/api/v1/users", json={"email": _email(), "password": "x"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_update_with_malformed_header_is_401(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, _ = api_client
        resp = client.put(
            "/api/v1/users",
            json={"email": _email(), "password": "x"},
            headers={"Authorization": "Token abc"},
        )
        assert resp.status_code == 401

    def test_update_with_valid_token(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, _ = api_client
        email, new_email = _email(), _email()
        _register(client, email)
        token = _login(client, email)["token"]
        resp = client.put("/api/v1/users", json={"email": new_email, "password": "new-pass"}, headers=_bearer(token))
        assert resp.status_code == 200, resp.text
        assert resp.json()["email"] == new_email
        _login(client, new_email, "new-pass")


class TestLogin:
    def test_login_returns_both_tokens(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, _ = api_client
        email = _email()
        user = _register(client, email)
        resp = client.post("/api/v1/login", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "no-store"
        data = resp.json()
        assert data["id"] == user["id"]
        assert data["token"].count(".") == 2
        assert len(data["refresh_token"]) == 64

    def test_wrong_password_and_unknown_email_look_identical(
        self, api_client: tuple[TestClient, SessionManager]
    ) -> None:
        client, _ = api_client
        email = _email()
        _register(client, email)
        wrong = client.post("/api/v1/login", json={"email": email, "password": "wrong"})
        unknown = client.post("/api/v1/login", json={"email": _email(), "password": PASSWORD})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()


    def test_login_uses_injected_session_manager(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, sessions = api_client
        calls = []

        class RecordingSessions:
            def login(self, email: str, password: str):
                calls.append(email)
                return sessions.login(email, password)

        email = _email()
        _register(client, email)
        client.app.dependency_overrides[get_session_manager] = RecordingSessions
        try:
            _login(client, email)
        finally:
            client.app.dependency_overrides.pop(get_session_manager)
        assert calls == [email]


class TestRefreshAndRevoke:
    def test_refresh_returns_new_access_token(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, sessions = api_client
        email = _email()
        user = _register(client, email)
        refresh_token = _login(client, email)["refresh_token"]
        resp = client.post("/api/v1/refresh", headers=_bearer(refresh_token))
        assert resp.status_code == 200, resp.text
        assert str(sessions.authenticate(resp.json()["token"])) == user["id"]

    def test_refresh_without_header_is_401(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, _ = api_client
        assert client.post("/api/v1/refresh").status_code == 401

    def test_refresh_with_unknown_token_is_401(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, _ = api_client
        resp = client.post("/api/v1/refresh", headers=_bearer(generate_refresh_token()))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_revoke_then_refresh_is_401(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, _ = api_client
        email = _email()
        _register(client, email)
        refresh_token = _login(client, email)["refresh_token"]
        assert client.post("/api/v1/revoke", headers=_bearer(refresh_token)).status_code == 204
        assert client.post("/api/v1/refresh", headers=_bearer(refresh_token)).status_code == 401

    def test_expired_refresh_token_is_401(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, sessions = api_client
        user = sessions.store.create_user(_email(), "$2b$04$placeholder")
        token = generate_refresh_token()
        sessions.store.create_refresh_token(token, user.id, ttl_seconds=-1)
        assert client.post("/api/v1/refresh", headers=_bearer(token)).status_code == 401

    def test_expired_access_token_is_401(self, api_client: tuple[TestClient, SessionManager]) -> None:
        client, _ = api_client
        token = issue_access_token(uuid.uuid4(), get_settings().auth_secret, -timedelta(minutes=5))
        resp = client.put("/api/v1/users", json={"email": _email(), "password": "x"}, headers=_bearer(token))
        assert resp.status_code == 401


def test_health(api_client: tuple[TestClient, SessionManager]) -> None:
    client, _ = api_client
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["components"] == {"app": "ok", "database": "ok"}


def test_entropy_failure_aborts_login_with_500(api_client: tuple[TestClient, SessionManager], monkeypatch) -> None:
    client, _ = api_client
    email = _email()
    _register(client, email)

    def broken_generator() -> str:
        raise EntropyFailure("OS random source unavailable")

    monkeypatch.setattr(auth_sessions, "generate_refresh_token", broken_generator)
    resp = client.post("/api/v1/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "internal_error"
    assert "random" not in resp.text
