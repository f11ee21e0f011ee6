"""
store/sql.py -- SQLAlchemy Core persistence layer for users and news.

Pattern: Repository + Data Mapper. SQLStore is the repository; _row_to_user /
_row_to_news are the mappers. Route and dependency code never touches SQL
directly.

Uses SQLAlchemy Core (not ORM) so the dataclasses in core/models.py remain the
authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change:

    store = SQLStore()                                        # SQLite file
    store = SQLStore("postgresql+psycopg://user:pw@host/db")  # PostgreSQL

Security: all queries use bound parameters. No f-strings in SQL.

Constraints:
  users.username is UNIQUE; a violating insert surfaces as DuplicateUsernameError.
  news.author is a FOREIGN KEY to users.id; a violating insert or update
  surfaces as UnknownAuthorError. SQLite only enforces foreign keys when
  PRAGMA foreign_keys=ON, which is set on every new connection below.

Tables are created with metadata.create_all(), which is idempotent.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, ForeignKey, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.models import News, User
from store.base import DuplicateUsernameError, NewsStore, StoreError, UnknownAuthorError, check_news_fields

logger = logging.getLogger("newsapi.store")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'newsapi.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("username", Text, nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_news = Table(
    "news",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("title", Text, nullable=False),
    Column("body", Text, nullable=False),
    Column("author", String(36), ForeignKey("users.id"), nullable=False),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SQLStore(NewsStore):
    """Database-backed NewsStore.

    The engine's connection pool is shared by every request thread. Each
    method opens its own connection; writes run inside engine.begin() so they
    commit on success and roll back on error.
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StoreError(f"could not create tables: {exc}") from exc

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        created_at = _now_iso()
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    _users.insert().values(
                        id=user.id,
                        username=user.username,
                        password_hash=user.password_hash,
                        created_at=created_at,
                    )
                )
        except IntegrityError as exc:
            raise DuplicateUsernameError(f"username {user.username!r} already exists") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"could not create user: {exc}") from exc
        return User(id=user.id, username=user.username, password_hash=user.password_hash, created_at=created_at)

    def get_user_by_id(self, user_id: str) -> User | None:
        row = self._fetch_one(_users.select().where(_users.c.id == user_id))
        return _row_to_user(row) if row is not None else None

    def get_user_by_username(self, username: str) -> User | None:
        row = self._fetch_one(_users.select().where(_users.c.username == username))
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # News
    # ------------------------------------------------------------------

    def create_news(self, news: News) -> News:
        created_at = _now_iso()
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    _news.insert().values(
                        id=news.id,
                        title=news.title,
                        body=news.body,
                        author=news.author,
                        created_at=created_at,
                    )
                )
        except IntegrityError as exc:
            raise UnknownAuthorError(f"author {news.author!r} does not exist") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"could not create news: {exc}") from exc
        return News(id=news.id, title=news.title, body=news.body, author=news.author, created_at=created_at)

    def get_news(self, news_id: str) -> News | None:
        row = self._fetch_one(_news.select().where(_news.c.id == news_id))
        return _row_to_news(row) if row is not None else None

    def list_news(self) -> list[News]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(_news.select().order_by(_news.c.created_at, _news.c.id)).fetchall()
        except SQLAlchemyError as exc:
            raise StoreError(f"could not list news: {exc}") from exc
        return [_row_to_news(r) for r in rows]

    def update_news(self, news_id: str, **fields) -> News | None:
        """Update and re-read inside one transaction so the returned row is the one written."""
        check_news_fields(fields)
        if not fields:
            return self.get_news(news_id)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_news.update().where(_news.c.id == news_id).values(**fields))
                if result.rowcount == 0:
                    return None
                row = conn.execute(_news.select().where(_news.c.id == news_id)).fetchone()
        except IntegrityError as exc:
            raise UnknownAuthorError(f"author {fields.get('author')!r} does not exist") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"could not update news: {exc}") from exc
        return _row_to_news(row) if row is not None else None

    def delete_news(self, news_id: str) -> bool:
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_news.delete().where(_news.c.id == news_id))
        except SQLAlchemyError as exc:
            raise StoreError(f"could not delete news: {exc}") from exc
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StoreError(f"database unreachable: {exc}") from exc

    def close(self) -> None:
        self.engine.dispose()

    def _fetch_one(self, stmt):
        try:
            with self.engine.connect() as conn:
                return conn.execute(stmt).fetchone()
        except SQLAlchemyError as exc:
            logger.error("Query failed: %s", exc)
            raise StoreError(f"query failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )


def _row_to_news(row) -> News:
    return News(
        id=row.id,
        title=row.title,
        body=row.body,
        author=row.author,
        created_at=row.created_at,
    )
