"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Credentials are read from the Authorization header only:
  Authorization: Bearer <access token>   -- protected routes
  Authorization: Bearer <refresh token>  -- POST /refresh and POST /revoke

The three-way header result is used here for auditing: a missing header and a
garbled one both end in the same 401, but they are logged differently.
Token values are never logged.

Layer rule: auth/dependencies.py may import from fastapi (for HTTPException /
Request) because this module is part of the FastAPI dependency injection
system. It does not import from api/ or core/.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import HTTPException, Request

from auth.errors import CredentialError
from auth.headers import CredentialStatus, extract_bearer
from auth.sessions import SessionManager

logger = logging.getLogger("chirpy.auth")

_UNAUTHORIZED = {"code": "unauthorized", "message": "Authentication required."}


def unauthorized() -> HTTPException:
    return HTTPException(status_code=401, detail=_UNAUTHORIZED, headers={"WWW-Authenticate": "Bearer"})


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.sessions


def require_bearer(request: Request) -> str:
    """Return the bearer credential or raise HTTP 401.

    Missing and malformed headers produce the same response; only the log
    line tells them apart.
    """
    credential = extract_bearer(request.headers)
    if credential.status is CredentialStatus.MALFORMED:
        logger.info("Malformed Authorization header on %s %s", request.method, request.url.path)
        raise unauthorized()
    if credential.status is CredentialStatus.MISSING:
        logger.debug("No Authorization header on %s %s", request.method, request.url.path)
        raise unauthorized()
    return credential.value


def get_current_user_id(request: Request) -> uuid.UUID:
    """Require a valid access token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.put("/users")
        def route(user_id: uuid.UUID = Depends(get_current_user_id)): ...
    """
    token = require_bearer(request)
    try:
        return get_session_manager(request).authenticate(token)
    except CredentialError as exc:
        logger.info("Access token rejected: %s", type(exc).__name__)
        raise unauthorized() from exc
