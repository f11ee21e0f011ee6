"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The auth gate reads the Authorization header, verifies the token with the
TokenService on app.state.tokens, and binds the subject (a user id) to
request.state.user_id for downstream handlers.

Accepted header forms:
  1. Authorization: Bearer <token>  -- standard scheme, always accepted.
  2. Authorization: <token>         -- raw token with no scheme, accepted only
                                       while Settings.accept_raw_token is true
                                       (compatibility with older clients).

require_subject() is the hard gate (raises 401).
news_author() applies the gate only when Settings.auth_required is true; in the
open deployment it returns None and news routes take the author from the body.
get_current_user() resolves the subject to a stored User.

Layer rule: no imports from api/. auth/dependencies.py may import from fastapi
(for Request/HTTPException) because it is part of the dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request

from auth.tokens import InvalidToken, TokenExpired, TokenService
from core.models import User

logger = logging.getLogger("newsapi.auth")

_BEARER = "bearer"


def extract_token(header_value: str, accept_raw: bool = True) -> str | None:
    """Pull the token out of an Authorization header value.

    Returns None when the value holds no usable token (blank, a scheme other
    than Bearer, or a raw token while raw tokens are disabled).
    """
    value = header_value.strip()
    if not value:
        return None
    scheme, _, credentials = value.partition(" ")
    if credentials:
        if scheme.lower() != _BEARER:
            return None
        return credentials.strip() or None
    if accept_raw and scheme.lower() != _BEARER:
        return value
    return None


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": code, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_subject(request: Request) -> str:
    """Require a valid token. Returns the subject and binds it to request.state.user_id.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user_id: str = Depends(require_subject)): ...
    """
    header = request.headers.get("Authorization")
    if header is None or not header.strip():
        raise _unauthorized("missing_token", "Authorization header is missing.")

    accept_raw = request.app.state.settings.accept_raw_token
    token = extract_token(header, accept_raw=accept_raw)
    if token is None:
        raise _unauthorized("invalid_token", "Invalid token.")

    tokens: TokenService = request.app.state.tokens
    try:
        subject = tokens.verify(token)
    except TokenExpired:
        logger.info("Rejected expired token on %s %s", request.method, request.url.path)
        raise _unauthorized("token_expired", "Token has expired.") from None
    except InvalidToken as exc:
        logger.debug("Rejected token on %s %s: %s", request.method, request.url.path, exc)
        raise _unauthorized("invalid_token", "Invalid token.") from None

    request.state.user_id = subject
    return subject


def news_author(request: Request) -> str | None:
    """Gate news routes when auth is required; pass through in the open deployment."""
    if not request.app.state.settings.auth_required:
        return None
    return require_subject(request)


def get_current_user(request: Request) -> User:
    """Require a valid token whose subject is still a stored user."""
    subject = require_subject(request)
    user = request.app.state.store.get_user_by_id(subject)
    if user is None:
        raise _unauthorized("invalid_token", "Token subject does not match any user.")
    return user
