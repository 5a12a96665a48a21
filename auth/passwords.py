"""
auth/passwords.py -- One-way password hashing with bcrypt.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

bcrypt hashes are self-describing ($2b$<cost>$<salt><digest>), so verify needs
nothing but the stored string. checkpw compares in constant time.

The plaintext is never logged, stored, or placed in an exception message.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache

import bcrypt

from auth.errors import HashingFailure, MalformedHashError, MismatchError, PasswordTooLongError

logger = logging.getLogger("chirpy.auth")

DEFAULT_ROUNDS = 12
MIN_ROUNDS = 4
MAX_ROUNDS = 31

# bcrypt only reads the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72

# $2b$<cost>$ followed by 22 salt + 31 digest chars in bcrypt's base64 alphabet.
_HASH_RE = re.compile(rb"\$2[aby]\$(\d\d)\$[./A-Za-z0-9]{53}")


def hash_password(password: str, rounds: int | None = None) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Raises PasswordTooLongError for inputs over 72 UTF-8 bytes instead of
    letting bcrypt truncate them. Raises HashingFailure if a salt cannot be
    drawn from the OS random source.
    """
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise PasswordTooLongError(f"password exceeds {MAX_PASSWORD_BYTES} bytes")
    try:
        salt = bcrypt.gensalt(rounds=rounds or DEFAULT_ROUNDS)
    except (OSError, NotImplementedError) as exc:
        logger.error("bcrypt salt generation failed: %s", type(exc).__name__)
        raise HashingFailure("could not generate a password salt") from exc
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> None:
    """Check a plaintext password against a stored bcrypt hash.

    Returns None on success. Raises MismatchError when the password is wrong
    (the empty password is an ordinary input and simply does not match), and
    MalformedHashError when `hashed` is not a bcrypt hash at all.
    """
    encoded = password.encode("utf-8")
    try:
        hashed_bytes = hashed.encode("ascii")
    except UnicodeEncodeError as exc:
        raise MalformedHashError("stored hash is not ASCII") from exc
    _check_hash_format(hashed_bytes)
    if len(encoded) > MAX_PASSWORD_BYTES:
        # Could never have been hashed by hash_password().
        raise MismatchError("password does not match")
    try:
        matched = bcrypt.checkpw(encoded, hashed_bytes)
    except ValueError as exc:
        raise MalformedHashError("stored hash is not a bcrypt hash") from exc
    if not matched:
        raise MismatchError("password does not match")


def check_password(password: str, hashed: str) -> bool:
    """Boolean form of verify_password(). MalformedHashError still propagates."""
    try:
        verify_password(password, hashed)
    except MismatchError:
        return False
    return True


def _check_hash_format(hashed: bytes) -> None:
    # checkpw only rejects a bad salt; a truncated digest just fails to match.
    match = _HASH_RE.fullmatch(hashed)
    if match is None or not MIN_ROUNDS <= int(match.group(1)) <= MAX_ROUNDS:
        raise MalformedHashError("stored hash is not a bcrypt hash")


@lru_cache(maxsize=None)
def dummy_hash(rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a fixed bcrypt hash used to equalize login timing.

    Computed once per cost factor. Verifying against it when an account does
    not exist costs the same as verifying a real password, so response time
    does not reveal whether an email is registered.
    """
    return hash_password("chirpy_timing_dummy", rounds=rounds)
