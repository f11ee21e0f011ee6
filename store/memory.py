"""
store/memory.py -- In-process NewsStore backend.

Route handlers run in FastAPI's worker threadpool, so several threads touch
the same dicts at once. Every public method takes self._lock for its whole
body; no method calls another public method while holding it.

Records are copied on the way in and on the way out so callers cannot mutate
stored state through a returned dataclass.

Data does not survive a restart. Use SQLStore for anything persistent.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone

from core.models import News, User
from store.base import DuplicateUsernameError, NewsStore, UnknownAuthorError, check_news_fields


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class MemoryStore(NewsStore):
    """Lock-guarded dict storage.

    Usage:
        store = MemoryStore()
        store.create_user(User(id=str(uuid4()), username="alice", password_hash=h))
        store.list_news()
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, User] = {}
        self._user_ids_by_name: dict[str, str] = {}
        # dict preserves insertion order, which is the list order for this backend
        self._news: dict[str, News] = {}

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        with self._lock:
            if user.username in self._user_ids_by_name:
                raise DuplicateUsernameError(f"username {user.username!r} already exists")
            stored = replace(user, created_at=_now_iso())
            self._users[stored.id] = stored
            self._user_ids_by_name[stored.username] = stored.id
            return replace(stored)

    def get_user_by_id(self, user_id: str) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return replace(user) if user is not None else None

    def get_user_by_username(self, username: str) -> User | None:
        with self._lock:
            user_id = self._user_ids_by_name.get(username)
            return replace(self._users[user_id]) if user_id is not None else None

    # ------------------------------------------------------------------
    # News
    # ------------------------------------------------------------------

    def create_news(self, news: News) -> News:
        with self._lock:
            if news.author not in self._users:
                raise UnknownAuthorError(f"author {news.author!r} does not exist")
            stored = replace(news, created_at=_now_iso())
            self._news[stored.id] = stored
            return replace(stored)

    def get_news(self, news_id: str) -> News | None:
        with self._lock:
            news = self._news.get(news_id)
            return replace(news) if news is not None else None

    def list_news(self) -> list[News]:
        with self._lock:
            return [replace(n) for n in self._news.values()]

    def update_news(self, news_id: str, **fields) -> News | None:
        check_news_fields(fields)
        with self._lock:
            current = self._news.get(news_id)
            if current is None:
                return None
            if "author" in fields and fields["author"] not in self._users:
                raise UnknownAuthorError(f"author {fields['author']!r} does not exist")
            updated = replace(current, **fields)
            self._news[news_id] = updated
            return replace(updated)

    def delete_news(self, news_id: str) -> bool:
        with self._lock:
            return self._news.pop(news_id, None) is not None

    def ping(self) -> None:
        return None
