"""
auth/sessions.py -- Login, refresh and revoke flows.

SessionManager wires the leaf components (password hasher, access token
codec, refresh token generator) to the AuthStore:

  login:   verify password -> issue access token -> generate + persist
           refresh token
  refresh: look up refresh record -> reject if unknown/revoked/expired ->
           issue a new access token
  revoke:  monotonic revocation of a refresh token

Every failure is raised as a typed AuthError. Nothing here writes an HTTP
response; the boundary maps CredentialError to a generic 401.

Refresh tokens are not single-use. A usable token mints any number of access
tokens until it expires or is revoked.

Blocking: register/login/update_credentials run bcrypt and block the calling
thread. Call them from sync route handlers (threadpool), not the event loop.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from auth.errors import MismatchError, RefreshTokenRejected, UnknownUserError
from auth.models import User
from auth.passwords import DEFAULT_ROUNDS, check_password, dummy_hash, hash_password, verify_password
from auth.refresh import generate_refresh_token, is_refresh_token
from auth.store import AuthStore
from auth.tokens import ISSUER, issue_access_token, validate_access_token

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("chirpy.sessions")


@dataclass(frozen=True)
class Session:
    """Credentials handed to a client after a successful login."""

    user: User
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime


class SessionManager:
    """Runs the credential lifecycle against one store and one signing secret."""

    def __init__(
        self,
        store: AuthStore,
        secret: str,
        access_ttl: timedelta = timedelta(hours=1),
        refresh_ttl: timedelta = timedelta(days=60),
        hash_rounds: int | None = None,
        verify_issuer: bool = False,
    ) -> None:
        self.store = store
        self._secret = secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.hash_rounds = hash_rounds
        self.verify_issuer = verify_issuer

    @classmethod
    def from_settings(cls, store: AuthStore, settings: Settings) -> SessionManager:
        return cls(
            store,
            secret=settings.auth_secret,
            access_ttl=timedelta(seconds=settings.access_token_ttl_seconds),
            refresh_ttl=timedelta(seconds=settings.refresh_token_ttl_seconds),
            hash_rounds=settings.password_hash_rounds,
            verify_issuer=settings.verify_token_issuer,
        )

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def register(self, email: str, password: str) -> User:
        """Create a user with a freshly hashed password.

        Raises sqlalchemy.exc.IntegrityError if the email is taken.
        """
        user = self.store.create_user(email, hash_password(password, rounds=self.hash_rounds))
        logger.info("User registered user_id=%s", user.id)
        return user

    def update_credentials(self, user_id: uuid.UUID, email: str, password: str) -> User:
        user = self.store.update_user(user_id, email, hash_password(password, rounds=self.hash_rounds))
        if user is None:
            raise UnknownUserError("user no longer exists")
        logger.info("Credentials updated user_id=%s", user_id)
        return user

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> Session:
        """Exchange an email and password for an access + refresh token pair.

        Unknown emails still pay for one bcrypt verification (against a dummy
        hash) and fail with the same MismatchError as a wrong password, so
        neither timing nor error type reveals whether the account exists.
        """
        user = self.store.get_user_by_email(email)
        if user is None:
            check_password(password, dummy_hash(self.hash_rounds or DEFAULT_ROUNDS))
            logger.info("Login failed: unknown account")
            raise MismatchError("password does not match")
        try:
            verify_password(password, user.hashed_password)
        except MismatchError:
            logger.info("Login failed: bad password user_id=%s", user.id)
            raise

        access_token = issue_access_token(user.id, self._secret, self.access_ttl)
        record = self.store.create_refresh_token(
            generate_refresh_token(), user.id, ttl_seconds=self.refresh_ttl.total_seconds()
        )
        logger.info("Login succeeded user_id=%s", user.id)
        return Session(
            user=user,
            access_token=access_token,
            refresh_token=record.token,
            refresh_expires_at=record.expires_at,
        )

    def authenticate(self, access_token: str) -> uuid.UUID:
        """Validate an access token and return its user id."""
        issuer = ISSUER if self.verify_issuer else None
        return validate_access_token(access_token, self._secret, issuer=issuer)

    def refresh(self, refresh_token: str) -> str:
        """Mint a new access token from a usable refresh token."""
        record = self.store.get_refresh_token(refresh_token) if is_refresh_token(refresh_token) else None
        if record is None:
            raise RefreshTokenRejected("refresh token not found")
        if not record.is_usable():
            reason = "revoked" if record.is_revoked else "expired"
            logger.info("Refresh rejected: %s token user_id=%s", reason, record.user_id)
            raise RefreshTokenRejected(f"refresh token {reason}")
        return issue_access_token(record.user_id, self._secret, self.access_ttl)

    def revoke(self, refresh_token: str) -> None:
        """Revoke a refresh token. Revoking twice keeps the first revocation time."""
        record = self.store.revoke_refresh_token(refresh_token) if is_refresh_token(refresh_token) else None
        if record is None:
            raise RefreshTokenRejected("refresh token not found")
