"""
api/routes/auth.py -- Registration, login and current-user endpoints.

Routes:
  POST /register  -- create an account; 201 with the public user record
  POST /login     -- password login; 200 with a bearer token
  GET  /me        -- current user info (requires auth)

Security:
  POST /login is rate-limited per client IP (Settings.login_rate_limit).
  authenticate_user() provides timing equalization -- use it, never inline
  get_user_by_username() + verify_password().
  Cache-Control: no-store on login responses so tokens are not cached.
  Passwords are bcrypt-hashed before they reach the store.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.limiter import limiter, login_rate_limit
from api.models import ErrorDetail, ErrorResponse, LoginRequest, LoginResponse, RegisterRequest, UserResponse
from auth.dependencies import get_current_user
from auth.tokens import TokenError, TokenService, authenticate_user, hash_password
from core.models import User
from store.base import DuplicateUsernameError, NewsStore

logger = logging.getLogger("newsapi.api.auth")

# Auth policy:
# - POST /register: public -- account creation needs no prior auth
# - POST /login:    public -- login endpoint must be unauthenticated
# - GET  /me:       requires auth (get_current_user)
router = APIRouter()

_BAD_CREDENTIALS = "Invalid username or password."


def _no_store(status_code: int, body: BaseModel) -> JSONResponse:
    """JSON response that caches and proxies must not keep."""
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(),
        headers={"Cache-Control": "no-store"},
    )


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/register", response_model=UserResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create a user account.

    Returns 409 when the username is taken. Other store failures propagate to
    the StoreError handler in api/main.py (500).
    """
    store: NewsStore = request.app.state.store
    user = User(
        id=str(uuid.uuid4()),
        username=body.username,
        password_hash=hash_password(body.password),
    )
    try:
        created = store.create_user(user)
    except DuplicateUsernameError as exc:
        raise HTTPException(
            status_code=409,
            detail=ErrorDetail(code="conflict", message="A user with that username already exists.").model_dump(),
        ) from exc

    logger.info("Registered user %s (%s)", created.username, created.id)
    return UserResponse.from_user(created)


@router.post("/login", response_model=LoginResponse)
@limiter.limit(login_rate_limit)  # below @router, so the route registers the limited function
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a bearer token.

    Returns the same generic error for wrong username and wrong password
    ("bad_credentials") to avoid leaking username existence information.
    """
    store: NewsStore = request.app.state.store
    tokens: TokenService = request.app.state.tokens

    user = authenticate_user(store, body.username, body.password)
    if user is None:
        logger.info("Failed login for username %r", body.username)
        return _no_store(401, ErrorResponse(error=ErrorDetail(code="bad_credentials", message=_BAD_CREDENTIALS)))

    try:
        token = tokens.issue(user.id)
    except TokenError:
        logger.exception("Could not issue token for user %s", user.id)
        return _no_store(500, ErrorResponse(error=ErrorDetail(code="token_error", message="Could not generate token.")))

    logger.info("Login: %s (%s)", user.username, user.id)
    return _no_store(200, LoginResponse(token=token, expires_in=tokens.expire_seconds))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return identity information for the currently authenticated user."""
    return UserResponse.from_user(current_user)
