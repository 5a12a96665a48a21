"""
api/routes/v1/auth.py -- Account and session REST endpoints.

Routes:
  POST /api/v1/users    -- register (public)
  PUT  /api/v1/users    -- change own email + password (access token)
  POST /api/v1/login    -- email/password -> access token + refresh token
  POST /api/v1/refresh  -- Bearer <refresh token> -> new access token
  POST /api/v1/revoke   -- Bearer <refresh token> -> 204, token revoked

Security:
  POST /login is rate-limited per IP (Settings.login_rate_limit).
  Wrong email and wrong password produce the same 401 body. SessionManager
  runs bcrypt in both cases, so timing does not tell them apart either.
  Login and refresh responses carry Cache-Control: no-store.

Routes that hash or verify passwords are plain `def`: FastAPI runs them in
its threadpool, keeping bcrypt off the event loop.

CredentialError raised by SessionManager propagates to the handler in
api/main.py, which turns it into a generic 401.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter, login_rate_limit
from api.models import CredentialsRequest, LoginResponse, TokenResponse, UserResponse
from auth.dependencies import get_current_user_id, get_session_manager, require_bearer
from auth.errors import PasswordTooLongError
from auth.sessions import SessionManager

# Auth policy:
# - POST /api/v1/users:    public -- registration
# - PUT  /api/v1/users:    requires access token (get_current_user_id)
# - POST /api/v1/login:    public, rate-limited
# - POST /api/v1/refresh:  requires refresh token (require_bearer)
# - POST /api/v1/revoke:   requires refresh token (require_bearer)
router = APIRouter()


def _password_too_long() -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"code": "password_too_long", "message": "Password must be at most 72 bytes."},
    )


def _email_taken() -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={"code": "email_taken", "message": "Email is already registered."},
    )


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(
    body: CredentialsRequest,
    sessions: SessionManager = Depends(get_session_manager),
) -> UserResponse:
    """Register a new account."""
    try:
        user = sessions.register(body.email, body.password)
    except PasswordTooLongError as exc:
        raise _password_too_long() from exc
    except IntegrityError as exc:
        raise _email_taken() from exc
    return UserResponse.from_user(user)


@router.put("/users", response_model=UserResponse)
def update_user(
    body: CredentialsRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    sessions: SessionManager = Depends(get_session_manager),
) -> UserResponse:
    """Replace the caller's email and password."""
    try:
        user = sessions.update_credentials(user_id, body.email, body.password)
    except PasswordTooLongError as exc:
        raise _password_too_long() from exc
    except IntegrityError as exc:
        raise _email_taken() from exc
    return UserResponse.from_user(user)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@limiter.limit(login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/login", response_model=LoginResponse)
def login(
    request: Request,
    body: CredentialsRequest,
    sessions: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    """Exchange email and password for an access token and a refresh token."""
    session = sessions.login(body.email, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            id=session.user.id,
            email=session.user.email,
            created_at=session.user.created_at,
            updated_at=session.user.updated_at,
            token=session.access_token,
            refresh_token=session.refresh_token,
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    refresh_token: str = Depends(require_bearer),
    sessions: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    """Mint a new access token from a usable refresh token."""
    token = sessions.refresh(refresh_token)
    resp = JSONResponse(content=TokenResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/revoke", status_code=204)
def revoke(
    refresh_token: str = Depends(require_bearer),
    sessions: SessionManager = Depends(get_session_manager),
) -> Response:
    """Revoke a refresh token. Access tokens already issued stay valid until they expire."""
    sessions.revoke(refresh_token)
    return Response(status_code=204)
