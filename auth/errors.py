"""
auth/errors.py -- Typed failure outcomes for the auth core.

Two families:
  CredentialError -- expected failures (wrong password, bad or expired token,
      revoked refresh token). The HTTP boundary maps every one of them to the
      same generic 401. None of them is transient, so none is ever retried.

  HashingFailure / EntropyFailure -- fatal resource failures. The request is
      aborted with a 500; the core never degrades to a weaker primitive.

Messages are for logs only. They never contain passwords or token values.

Layer rule: stdlib only.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every error raised by the auth package."""


# ---------------------------------------------------------------------------
# Expected failures (-> 401)
# ---------------------------------------------------------------------------


class CredentialError(AuthError):
    """The presented credential is not acceptable."""


class MismatchError(CredentialError):
    """Password does not match the stored hash."""


class MalformedHashError(CredentialError):
    """Stored value is not a hash produced by the password hasher."""


class PasswordTooLongError(CredentialError):
    """Password exceeds bcrypt's 72-byte input limit."""


class TokenError(CredentialError):
    """Base class for access token validation failures."""


class InvalidSignatureError(TokenError):
    """Signature does not verify under the secret, or the algorithm is not HS256."""


class TokenExpiredError(TokenError):
    """Signature is valid but the exp claim is in the past."""


class MalformedTokenError(TokenError):
    """Token is not a parseable JWS, or its claims are unusable."""


class InvalidIssuerError(TokenError):
    """The iss claim differs from the issuer the caller requires."""


class RefreshTokenRejected(CredentialError):
    """Refresh token is unknown, revoked, or expired."""


class UnknownUserError(CredentialError):
    """Token subject no longer maps to a user record."""


# ---------------------------------------------------------------------------
# Fatal failures (-> 500)
# ---------------------------------------------------------------------------


class HashingFailure(AuthError):
    """The password hash could not be computed (salt generation failed)."""


class EntropyFailure(AuthError):
    """The OS random source could not supply bytes."""
