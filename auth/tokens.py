"""
auth/tokens.py -- Short-lived signed access tokens (JWT, HS256).

Security design decisions:
  JWT: python-jose with HS256. Tokens carry iss="chirpy", sub=<user UUID>,
       iat and exp. They are never persisted; the only way to read the claims
       back is to validate the signed string again.

  Secret: passed into every call. This module never reads settings, so the
       key can be rotated or varied per test without a process restart.

  Validation order:
       1. Parse without verifying. Anything that is not three base64url JSON
          segments is MalformedTokenError.
       2. jwt.decode() verifies the signature first and then the exp claim.
          Signature failure -> InvalidSignatureError, past exp ->
          TokenExpiredError. Expiry is enforced by the library, not by a
          hand-written comparison.
       3. The subject must parse as a UUID, otherwise MalformedTokenError.

  Issuer: always written. Checked only when the caller passes `issuer`.

Every function here is pure: no I/O, no shared mutable state.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.errors import InvalidIssuerError, InvalidSignatureError, MalformedTokenError, TokenExpiredError

ALGORITHM = "HS256"
ISSUER = "chirpy"
DEFAULT_TTL = timedelta(hours=1)


def issue_access_token(user_id: uuid.UUID, secret: str, ttl: timedelta | int | float = DEFAULT_TTL) -> str:
    """Encode a signed JWT for `user_id` that expires `ttl` from now.

    Args:
        user_id: Subject of the token.
        secret:  HMAC signing key.
        ttl:     Lifetime as a timedelta or a number of seconds. Negative
                 values produce a token that is already expired.
    """
    if not isinstance(ttl, timedelta):
        ttl = timedelta(seconds=ttl)
    now = datetime.now(timezone.utc)
    claims = {
        "iss": ISSUER,
        "sub": str(user_id),
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def validate_access_token(token: str, secret: str, issuer: str | None = None) -> uuid.UUID:
    """Verify a signed access token and return the user id it was issued for.

    Raises:
        MalformedTokenError:   token is unparseable, or its claims are unusable.
        InvalidSignatureError: token was not signed with `secret`.
        TokenExpiredError:     token is past its exp claim.
        InvalidIssuerError:    `issuer` was given and the token's iss differs.
    """
    try:
        jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise MalformedTokenError("token is not a parseable JWT") from exc

    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM], options={"verify_aud": False})
    except ExpiredSignatureError as exc:
        raise TokenExpiredError("token has expired") from exc
    except JWTClaimsError as exc:
        raise MalformedTokenError("token claims are invalid") from exc
    except JWTError as exc:
        raise InvalidSignatureError("token signature verification failed") from exc

    if issuer is not None and claims.get("iss") != issuer:
        raise InvalidIssuerError("token was issued by a different issuer")

    subject = claims.get("sub")
    if not subject:
        raise MalformedTokenError("token has no subject")
    try:
        return uuid.UUID(subject)
    except ValueError as exc:
        raise MalformedTokenError("token subject is not a user id") from exc
