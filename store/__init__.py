"""store/ -- Credential Store backends for users and news.

Two interchangeable implementations sit behind the NewsStore interface:
MemoryStore (in-process, lock-guarded) and SQLStore (SQLAlchemy Core).
create_store() picks one from Settings.storage_backend.

Layer rule: store/ imports from core/ only. api/ and auth/ import from store/,
not the other way around.
"""

from __future__ import annotations

from core.config import Settings
from store.base import DuplicateUsernameError, NewsStore, StoreError, UnknownAuthorError
from store.memory import MemoryStore
from store.sql import SQLStore

__all__ = [
    "DuplicateUsernameError",
    "MemoryStore",
    "NewsStore",
    "SQLStore",
    "StoreError",
    "UnknownAuthorError",
    "create_store",
]


def create_store(settings: Settings) -> NewsStore:
    """Build the store selected by STORAGE_BACKEND.

    An empty DATABASE_URL falls back to the SQLite file next to store/sql.py.
    """
    if settings.storage_backend == "memory":
        return MemoryStore()
    if settings.database_url:
        return SQLStore(settings.database_url)
    return SQLStore()
