"""
auth/refresh.py -- Opaque refresh token generation.

secrets.token_hex(32) gives 32 random bytes from the OS CSPRNG as 64 lowercase
hex characters: 256 bits of entropy. Collisions are improbable enough that the
store uses the token itself as the primary key without a prior existence check.
"""

from __future__ import annotations

import re
import secrets

from auth.errors import EntropyFailure

REFRESH_TOKEN_BYTES = 32

_TOKEN_RE = re.compile(r"[0-9a-f]{64}")


def generate_refresh_token() -> str:
    """Return a new 64-character lowercase hex refresh token.

    Raises EntropyFailure if the OS random source cannot supply bytes. There
    is no fallback to a non-cryptographic generator.
    """
    try:
        return secrets.token_hex(REFRESH_TOKEN_BYTES)
    except (OSError, NotImplementedError) as exc:
        raise EntropyFailure("OS random source unavailable") from exc


def is_refresh_token(value: str) -> bool:
    """Return True if `value` has the refresh token wire format."""
    return _TOKEN_RE.fullmatch(value) is not None
