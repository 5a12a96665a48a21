"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class. Stores build these from rows; the session service and
routes consume them. RefreshToken carries the one piece of logic that belongs
with the data: whether the token may still mint access tokens.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass
class User:
    """A registered account.

    hashed_password is the bcrypt string produced by auth.passwords. It is
    never serialized into API responses.
    """

    id: uuid.UUID
    email: str
    hashed_password: str
    created_at: datetime
    updated_at: datetime


@dataclass
class RefreshToken:
    """A persisted refresh token record.

    token is the 64-hex-char value handed to the client and doubles as the
    primary key. revoked_at is None until the token is revoked; once set it
    never changes.
    """

    token: str
    user_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    revoked_at: datetime | None = None

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    def is_usable(self, now: datetime | None = None) -> bool:
        """True iff the token is unrevoked and `now` is before expires_at."""
        return not self.is_revoked and not self.is_expired(now)
