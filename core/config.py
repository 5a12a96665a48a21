"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Chirpy happen here. No module should call
os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. auth_secret -> AUTH_SECRET). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Dev mode generates a signing secret with a
      warning, production mode refuses to start without one.

Security notes:
  AUTH_SECRET shorter than 32 chars is rejected outright. HS256 signing relies
  on key entropy -- a short key weakens every access token.

  The settings object is read by the application boundary only. The token
  codec never reads it; the secret is passed into issue/validate explicitly.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("chirpy.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'chirpy_auth.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    auth_secret: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    access_token_ttl_seconds: int = Field(default=3600, gt=0)
    # 60 days. The upstream service wrote this as 60 * 60 * 60 * 24.
    refresh_token_ttl_seconds: int = Field(default=60 * 24 * 60 * 60, gt=0)
    # Issuer is always written; checking it on validate is opt-in.
    verify_token_issuer: bool = False

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    # bcrypt accepts 4..31. Tests drop this to 4 to keep the suite fast.
    password_hash_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_auth_secret(self) -> "Settings":
        """Enforce the AUTH_SECRET policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Access tokens will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            AUTH_SECRET is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.auth_secret:
            if self.debug:
                self.auth_secret = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated AUTH_SECRET. " "Access tokens will not survive restarts."
                )
            else:
                raise ValueError(
                    "AUTH_SECRET is required in production mode. "
                    "Set AUTH_SECRET in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.auth_secret) < 32:
            raise ValueError("AUTH_SECRET must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
