"""
api/models.py -- Request bodies and response shapes for the News API.

Bodies are validated here before a handler runs: strings are stripped and
must be non-empty, and any failure becomes a 400 through the validation
handler in api/main.py. Responses are built from the core/models.py
dataclasses with from_user()/from_news(), which is where password hashes
are dropped.
"""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from core.models import News, User

# ---------------------------------------------------------------------------
# Field types
# ---------------------------------------------------------------------------

# Surrounding whitespace is dropped before the length check, so "   " is empty.
_Text = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
_Username = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
# Login names get the same stripping as registration, but no length rule.
_LoginName = Annotated[str, StringConstraints(strip_whitespace=True)]
# Passwords are taken verbatim; whitespace is significant.
_Password = Annotated[str, StringConstraints(min_length=1, max_length=128)]


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /register."""

    username: _Username
    password: _Password


class LoginRequest(BaseModel):
    """Request body for POST /login.

    No length rules here: a wrong or empty password is a 401, not a 400.
    """

    username: _LoginName
    password: str


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user. The password hash is never part of it."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, username=user.username, created_at=user.created_at)


class LoginResponse(BaseModel):
    """Response for POST /login."""

    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int


# ---------------------------------------------------------------------------
# News -- request models
# ---------------------------------------------------------------------------


class NewsCreate(BaseModel):
    """Request body for POST /news.

    author is read only when the service runs without auth; with auth enabled
    the author is always the token subject and this field is ignored.
    """

    title: _Text
    body: _Text
    author: Optional[_Text] = None


class NewsUpdate(BaseModel):
    """Request body for PUT /news/{id}. Omitted fields keep their stored value."""

    title: Optional[_Text] = None
    body: Optional[_Text] = None
    author: Optional[_Text] = None


# ---------------------------------------------------------------------------
# News -- response models
# ---------------------------------------------------------------------------


class NewsResponse(BaseModel):
    """A stored news record."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    body: str
    author: str
    created_at: str

    @classmethod
    def from_news(cls, news: News) -> "NewsResponse":
        """Build a NewsResponse from a core News instance."""
        return cls(
            id=news.id,
            title=news.title,
            body=news.body,
            author=news.author,
            created_at=news.created_at,
        )


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


class HelloResponse(BaseModel):
    """Response for GET /hello."""

    model_config = ConfigDict(frozen=True)

    message: str
    name: str
