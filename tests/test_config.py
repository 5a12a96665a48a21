"""Unit tests for core/config.py -- Settings validation and defaults."""

from datetime import timedelta

import pytest

from auth.sessions import SessionManager
from auth.store import AuthStore
from core.config import Settings

GOOD_SECRET = "x" * 32


def test_production_requires_auth_secret():
    with pytest.raises(ValueError, match="AUTH_SECRET is required"):
        Settings(debug=False, auth_secret="")


def test_short_secret_rejected():
    with pytest.raises(ValueError, match="at least 32 characters"):
        Settings(debug=False, auth_secret="too-short")


def test_debug_generates_secret():
    settings = Settings(debug=True, auth_secret="")
    assert len(settings.auth_secret) == 64


def test_token_lifetime_defaults():
    settings = Settings(debug=False, auth_secret=GOOD_SECRET)
    assert settings.access_token_ttl_seconds == 3600
    # 60 * 60 * 60 * 24 seconds is 60 days
    assert settings.refresh_token_ttl_seconds == 60 * 60 * 60 * 24 == 60 * 86400
    assert settings.verify_token_issuer is False


def test_hash_rounds_bounds():
    with pytest.raises(ValueError):
        Settings(debug=False, auth_secret=GOOD_SECRET, password_hash_rounds=3)
    with pytest.raises(ValueError):
        Settings(debug=False, auth_secret=GOOD_SECRET, password_hash_rounds=32)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("AUTH_SECRET", GOOD_SECRET)
    monkeypatch.setenv("ACCESS_TOKEN_TTL_SECONDS", "900")
    monkeypatch.setenv("VERIFY_TOKEN_ISSUER", "true")
    settings = Settings()
    assert settings.auth_secret == GOOD_SECRET
    assert settings.access_token_ttl_seconds == 900
    assert settings.verify_token_issuer is True


def test_session_manager_from_settings():
    settings = Settings(
        debug=False,
        auth_secret=GOOD_SECRET,
        access_token_ttl_seconds=900,
        password_hash_rounds=5,
        verify_token_issuer=True,
    )
    sessions = SessionManager.from_settings(AuthStore("sqlite:///:memory:"), settings)
    try:
        assert sessions.access_ttl == timedelta(seconds=900)
        assert sessions.refresh_ttl == timedelta(days=60)
        assert sessions.hash_rounds == 5
        assert sessions.verify_issuer is True
    finally:
        sessions.store.close()
