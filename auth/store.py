"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper. AuthStore is the repository;
_row_to_user / _row_to_refresh_token are the mappers. Session and route code
never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Revocation is a single conditional UPDATE (WHERE revoked_at IS NULL), so a
  revoked token can never be un-revoked or have its revocation time moved.

  Checking-and-using a refresh token is not atomic here. Two concurrent
  refresh calls may both read the same unrevoked record; both succeed, which
  is the intended policy (refresh tokens are not single-use).

Timestamps are stored as ISO 8601 UTC strings and mapped back to aware
datetimes. User ids are stored as canonical UUID strings.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import Column, ForeignKey, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from auth.models import RefreshToken, User

logger = logging.getLogger("chirpy.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_refresh_tokens = Table(
    "refresh_tokens",
    _metadata,
    Column("token", String(64), primary_key=True),  # generator output, 64 hex chars
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("expires_at", String(32), nullable=False),
    Column("revoked_at", String(32)),  # NULL until revoked
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: str | None) -> datetime | None:
    if value is None:
        return None
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AuthStore:
    """Repository for User and RefreshToken records.

    Usage:
        store = AuthStore()
        user = store.create_user("a@example.com", hash_password("secret"))
        store.create_refresh_token(generate_refresh_token(), user.id, ttl_seconds=3600)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, email: str, hashed_password: str) -> User:
        """Insert a new user with a fresh UUID and return it.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        now = _now()
        user = User(
            id=uuid.uuid4(),
            email=email,
            hashed_password=hashed_password,
            created_at=now,
            updated_at=now,
        )
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=str(user.id),
                    email=email,
                    hashed_password=hashed_password,
                    created_at=now.isoformat(),
                    updated_at=now.isoformat(),
                )
            )
            conn.commit()
        return user

    def get_user_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_user_by_id(self, user_id: uuid.UUID) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == str(user_id))).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_user(self, user_id: uuid.UUID, email: str, hashed_password: str) -> User | None:
        """Replace a user's email and password hash.

        Returns the updated User, or None if user_id was not found. Raises
        IntegrityError if the new email belongs to another user.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == str(user_id))
                .values(email=email, hashed_password=hashed_password, updated_at=_now().isoformat())
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_user_by_id(user_id)

    # ------------------------------------------------------------------
    # Refresh tokens
    # ------------------------------------------------------------------

    def create_refresh_token(self, token: str, user_id: uuid.UUID, ttl_seconds: float) -> RefreshToken:
        """Persist a newly generated refresh token expiring ttl_seconds from now."""
        now = _now()
        record = RefreshToken(
            token=token,
            user_id=user_id,
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
        )
        with self.engine.connect() as conn:
            conn.execute(
                _refresh_tokens.insert().values(
                    token=token,
                    user_id=str(user_id),
                    created_at=now.isoformat(),
                    updated_at=now.isoformat(),
                    expires_at=record.expires_at.isoformat(),
                    revoked_at=None,
                )
            )
            conn.commit()
        return record

    def get_refresh_token(self, token: str) -> RefreshToken | None:
        """Look up a refresh token record. Returns None if unknown.

        Revoked and expired records are returned as-is; the caller decides
        usability via RefreshToken.is_usable().
        """
        with self.engine.connect() as conn:
            row = conn.execute(_refresh_tokens.select().where(_refresh_tokens.c.token == token)).fetchone()
        return _row_to_refresh_token(row) if row is not None else None

    def revoke_refresh_token(self, token: str) -> RefreshToken | None:
        """Mark a refresh token revoked and return the resulting record.

        Only rows with revoked_at IS NULL are touched, so revoking an already
        revoked token keeps the original revocation time. Returns None if the
        token does not exist.
        """
        now = _now().isoformat()
        with self.engine.connect() as conn:
            result = conn.execute(
                _refresh_tokens.update()
                .where((_refresh_tokens.c.token == token) & (_refresh_tokens.c.revoked_at.is_(None)))
                .values(revoked_at=now, updated_at=now)
            )
            conn.commit()
        if result.rowcount:
            logger.info("Refresh token revoked")
        return self.get_refresh_token(token)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(_users.select().limit(1)).fetchall()
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=uuid.UUID(row.id),
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=_parse_ts(row.created_at),
        updated_at=_parse_ts(row.updated_at),
    )


def _row_to_refresh_token(row) -> RefreshToken:
    return RefreshToken(
        token=row.token,
        user_id=uuid.UUID(row.user_id),
        created_at=_parse_ts(row.created_at),
        updated_at=_parse_ts(row.updated_at),
        expires_at=_parse_ts(row.expires_at),
        revoked_at=_parse_ts(row.revoked_at),
    )
