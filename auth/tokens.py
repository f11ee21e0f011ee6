"""
auth/tokens.py -- JWT issuance/verification and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry the user id as the subject claim
       ("sub") plus issued-at and expiry. TokenService.verify() raises
       InvalidToken on any failure; the auth dependency turns that into a 401.
       Expiry is checked against the service clock rather than inside jose so
       issue() and verify() always agree on "now".

  Passwords: bcrypt used directly (no passlib wrapper). Bcrypt's cost factor
       makes brute force of low-entropy secrets expensive. _DUMMY_HASH lets
       authenticate_user() run bcrypt even for unknown usernames, so response
       time does not reveal whether a username exists.

  Secret: TokenService refuses an empty secret. Settings validation already
       stops the process at startup when JWT_SECRET is missing; the check here
       covers services built outside get_settings() (tests, scripts).

Layer rule: no imports from api/. Imports from core/ and store/ are allowed.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.config import DEFAULT_TOKEN_EXPIRE_SECONDS

if TYPE_CHECKING:
    from core.models import User
    from store.base import NewsStore

logger = logging.getLogger("newsapi.auth")

_ALGORITHM = "HS256"


class InvalidToken(Exception):
    """The token is malformed, carries a bad signature, or lacks required claims."""


class TokenExpired(InvalidToken):
    """The token verified but its expiry has passed."""


class TokenError(Exception):
    """A token could not be signed."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


class TokenService:
    """Issues and verifies signed bearer tokens.

    One instance is built at startup from Settings and stored on app.state.

    Args:
        secret:         HS256 signing key. Must be non-empty.
        expire_seconds: Token lifetime. Defaults to 72 hours.
        clock:          Returns the current time as an aware datetime.
                        Injected so tests can move time forward.
    """

    def __init__(
        self,
        secret: str,
        expire_seconds: int = DEFAULT_TOKEN_EXPIRE_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("token signing secret must not be empty")
        if expire_seconds <= 0:
            raise ValueError("expire_seconds must be positive")
        self._secret = secret
        self.expire_seconds = expire_seconds
        self._clock = clock

    def issue(self, subject: str) -> str:
        """Return a signed JWT for subject, valid for expire_seconds from now."""
        issued_at = self._clock()
        claims = {
            "sub": subject,
            "iat": int(issued_at.timestamp()),
            # Rounded up: a token must never expire before its full lifetime.
            "exp": math.ceil((issued_at + timedelta(seconds=self.expire_seconds)).timestamp()),
        }
        try:
            return jwt.encode(claims, self._secret, algorithm=_ALGORITHM)
        except JWTError as exc:
            raise TokenError(str(exc)) from exc

    def verify(self, token: str) -> str:
        """Return the subject claim of a valid token.

        Raises TokenExpired when the clock has reached the exp claim, and
        InvalidToken for every other failure.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidToken(str(exc)) from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidToken("token has no subject")
        exp = claims.get("exp")
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            raise InvalidToken("token has no expiry")
        if self._clock().timestamp() >= exp:
            raise TokenExpired("token has expired")
        return subject


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


# bcrypt only reads the first 72 bytes; bcrypt>=5 raises on longer input
# instead of truncating, so truncate here for both hashing and checking.
_BCRYPT_MAX_BYTES = 72


def _password_bytes(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(_password_bytes(plain), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than later ones.
_DUMMY_HASH: str = hash_password("newsapi_timing_dummy")


def authenticate_user(store: NewsStore, username: str, password: str) -> User | None:
    """Check a username/password pair with timing equalization.

    bcrypt runs whether or not the user exists:
    - Unknown username: against _DUMMY_HASH
    - Known username: against the stored hash

    Returns the User on success, None on any failure.
    """
    user = store.get_user_by_username(username)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user
