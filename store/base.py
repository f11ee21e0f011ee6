"""
store/base.py -- The storage contract shared by every backend.

NewsStore is the Repository interface: route handlers and the auth layer talk
to it and never to SQL or to backend internals. Backends translate their own
failures into the StoreError hierarchy below so callers handle one set of
exceptions regardless of which backend is configured.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from core.models import News, User


class StoreError(Exception):
    """The backend failed to complete an operation."""


class DuplicateUsernameError(StoreError):
    """A user with the same username already exists."""


class UnknownAuthorError(StoreError):
    """A news record referenced an author id with no matching user."""


class NewsStore(ABC):
    """Persistence for User and News records.

    Lookups return None when nothing matches; they never raise for a miss.
    Writes raise StoreError subclasses on constraint violations.
    """

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @abstractmethod
    def create_user(self, user: User) -> User:
        """Insert a user and return the stored record (created_at filled in).

        Raises DuplicateUsernameError if the username is taken.
        """

    @abstractmethod
    def get_user_by_id(self, user_id: str) -> User | None: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> User | None:
        """Exact, case-sensitive username match."""

    # ------------------------------------------------------------------
    # News
    # ------------------------------------------------------------------

    @abstractmethod
    def create_news(self, news: News) -> News:
        """Insert a news record and return it with created_at assigned.

        Raises UnknownAuthorError if news.author is not a user id.
        """

    @abstractmethod
    def get_news(self, news_id: str) -> News | None: ...

    @abstractmethod
    def list_news(self) -> list[News]:
        """Return every news record in backend order. Empty store -> []."""

    @abstractmethod
    def update_news(self, news_id: str, **fields) -> News | None:
        """Overwrite title, body and/or author on an existing record.

        id and created_at are never changed. Returns the updated record, or
        None if news_id does not exist.
        """

    @abstractmethod
    def delete_news(self, news_id: str) -> bool:
        """Remove a record. Returns True if deleted, False if not found."""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    def ping(self) -> None:
        """Raise StoreError if the backend is unreachable."""

    def close(self) -> None:
        """Release backend resources. No-op by default."""


# Fields update_news() accepts. Anything else is a programming error.
UPDATABLE_NEWS_FIELDS: frozenset[str] = frozenset({"title", "body", "author"})


def check_news_fields(fields: dict) -> None:
    unknown = set(fields) - UPDATABLE_NEWS_FIELDS
    if unknown:
        raise ValueError(f"Unknown news fields: {sorted(unknown)!r}")
