"""
auth/headers.py -- Authorization header parsing.

Recognised forms (scheme keyword case-insensitive, exactly one space):
  Authorization: Bearer <token>
  Authorization: ApiKey <token>

This module only parses syntax. Whether a missing or malformed credential is
an authorization failure is the caller's decision.

Two layers:
  parse_authorization() / extract_bearer() / extract_api_key() return a
      HeaderCredential with a three-way status (missing / malformed / present)
      so the boundary can tell "no auth attempted" from "garbled header".

  get_bearer_token() / get_api_key() keep the never-fail string contract:
      the credential value, or "" for both missing and malformed headers.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

AUTHORIZATION = "Authorization"

BEARER = "bearer"
API_KEY = "apikey"


class CredentialStatus(str, Enum):
    MISSING = "missing"
    MALFORMED = "malformed"
    PRESENT = "present"


@dataclass(frozen=True)
class HeaderCredential:
    """Outcome of parsing one Authorization header for one scheme.

    value is non-empty only when status is PRESENT.
    """

    status: CredentialStatus
    value: str = ""

    @property
    def present(self) -> bool:
        return self.status is CredentialStatus.PRESENT


_MISSING = HeaderCredential(CredentialStatus.MISSING)
_MALFORMED = HeaderCredential(CredentialStatus.MALFORMED)


def get_authorization(headers: Mapping[str, str]) -> str | None:
    """Return the raw Authorization header value, matching the name case-insensitively.

    Works with Starlette's Headers (already case-insensitive) and plain dicts.
    """
    value = headers.get(AUTHORIZATION)
    if value is not None:
        return value
    for name, raw in headers.items():
        if name.lower() == AUTHORIZATION.lower():
            return raw
    return None


def parse_authorization(value: str | None, scheme: str) -> HeaderCredential:
    """Parse a raw Authorization value for the given scheme keyword.

    The value must split on single spaces into exactly two parts: the scheme
    (compared case-insensitively) and a non-empty credential (kept verbatim).
    """
    if not value:
        return _MISSING
    parts = value.split(" ")
    if len(parts) != 2 or parts[0].lower() != scheme.lower() or not parts[1]:
        return _MALFORMED
    return HeaderCredential(CredentialStatus.PRESENT, parts[1])


def extract_bearer(headers: Mapping[str, str]) -> HeaderCredential:
    return parse_authorization(get_authorization(headers), BEARER)


def extract_api_key(headers: Mapping[str, str]) -> HeaderCredential:
    return parse_authorization(get_authorization(headers), API_KEY)


def get_bearer_token(headers: Mapping[str, str]) -> str:
    """Return the bearer token, or "" when the header is missing or malformed. Never raises."""
    return extract_bearer(headers).value


def get_api_key(headers: Mapping[str, str]) -> str:
    """Return the API key, or "" when the header is missing or malformed. Never raises."""
    return extract_api_key(headers).value
