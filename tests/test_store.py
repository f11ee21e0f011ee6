"""Unit tests for the store backends -- MemoryStore and SQLStore.

Every test in this module runs once per backend through the parametrized
``store`` fixture in conftest.py.

Covers:
- User insert and lookup by id / username, username uniqueness
- News create/get/list/update/delete, immutable id and created_at
- Author must reference an existing user
- Deleting or updating a missing id reports not-found, not an error
- 100+ concurrent creates yield exactly that many distinct records
- create_store() backend selection
"""

from __future__ import annotations

import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest

from core.config import Settings
from core.models import News, User
from store import (
    DuplicateUsernameError,
    MemoryStore,
    NewsStore,
    SQLStore,
    UnknownAuthorError,
    create_store,
)

SECRET = "store-test-secret-0123456789abcdef01234"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _user(username: str = "alice") -> User:
    return User(id=str(uuid.uuid4()), username=username, password_hash="$2b$12$placeholder")


def _news(author: str, title: str = "T", body: str = "B") -> News:
    return News(id=str(uuid.uuid4()), title=title, body=body, author=author)


@pytest.fixture
def author(store: NewsStore) -> User:
    return store.create_user(_user())


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class TestUsers:
    def test_create_and_lookup(self, store: NewsStore) -> None:
        created = store.create_user(_user("alice"))
        assert created.created_at
        by_id = store.get_user_by_id(created.id)
        by_name = store.get_user_by_username("alice")
        assert by_id == created
        assert by_name == created

    def test_lookup_miss_returns_none(self, store: NewsStore) -> None:
        assert store.get_user_by_id("nope") is None
        assert store.get_user_by_username("nobody") is None

    def test_username_lookup_is_case_sensitive(self, store: NewsStore) -> None:
        store.create_user(_user("alice"))
        assert store.get_user_by_username("Alice") is None

    def test_duplicate_username_rejected(self, store: NewsStore) -> None:
        store.create_user(_user("alice"))
        with pytest.raises(DuplicateUsernameError):
            store.create_user(_user("alice"))

    def test_ids_are_distinct(self, store: NewsStore) -> None:
        a = store.create_user(_user("a"))
        b = store.create_user(_user("b"))
        assert a.id != b.id


# ---------------------------------------------------------------------------
# News
# ---------------------------------------------------------------------------


class TestNews:
    def test_create_then_get_is_identical(self, store: NewsStore, author: User) -> None:
        created = store.create_news(_news(author.id, title="Título", body="Corpo\nlinha 2"))
        fetched = store.get_news(created.id)
        assert fetched == created
        assert fetched.title == "Título"
        assert fetched.body == "Corpo\nlinha 2"
        assert fetched.author == author.id

    def test_created_at_is_non_decreasing(self, store: NewsStore, author: User) -> None:
        stamps = [store.create_news(_news(author.id)).created_at for _ in range(5)]
        assert stamps == sorted(stamps)

    def test_list_empty(self, store: NewsStore) -> None:
        assert store.list_news() == []

    def test_list_returns_all(self, store: NewsStore, author: User) -> None:
        ids = {store.create_news(_news(author.id)).id for _ in range(3)}
        assert {n.id for n in store.list_news()} == ids

    def test_get_missing_returns_none(self, store: NewsStore) -> None:
        assert store.get_news(str(uuid.uuid4())) is None

    def test_unknown_author_rejected(self, store: NewsStore) -> None:
        with pytest.raises(UnknownAuthorError):
            store.create_news(_news("no-such-user"))

    def test_update_keeps_id_and_created_at(self, store: NewsStore, author: User) -> None:
        created = store.create_news(_news(author.id))
        updated = store.update_news(created.id, title="T2")
        assert updated is not None
        assert updated.id == created.id
        assert updated.created_at == created.created_at
        assert updated.title == "T2"
        assert updated.body == "B"
        assert store.get_news(created.id) == updated

    def test_update_author(self, store: NewsStore, author: User) -> None:
        other = store.create_user(_user("bob"))
        created = store.create_news(_news(author.id))
        assert store.update_news(created.id, author=other.id).author == other.id

    def test_update_to_unknown_author_rejected(self, store: NewsStore, author: User) -> None:
        created = store.create_news(_news(author.id))
        with pytest.raises(UnknownAuthorError):
            store.update_news(created.id, author="ghost")
        assert store.get_news(created.id).author == author.id

    def test_update_missing_returns_none(self, store: NewsStore) -> None:
        assert store.update_news(str(uuid.uuid4()), title="x") is None

    def test_update_rejects_unknown_fields(self, store: NewsStore, author: User) -> None:
        created = store.create_news(_news(author.id))
        with pytest.raises(ValueError):
            store.update_news(created.id, created_at="2000-01-01")

    def test_delete(self, store: NewsStore, author: User) -> None:
        created = store.create_news(_news(author.id))
        assert store.delete_news(created.id) is True
        assert store.get_news(created.id) is None
        assert store.delete_news(created.id) is False

    def test_delete_missing_returns_false(self, store: NewsStore) -> None:
        assert store.delete_news(str(uuid.uuid4())) is False

    def test_returned_records_are_copies(self, store: NewsStore, author: User) -> None:
        created = store.create_news(_news(author.id))
        created.title = "mutated"
        assert store.get_news(created.id).title == "T"

    def test_ping(self, store: NewsStore) -> None:
        store.ping()


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


@pytest.fixture(params=["memory", "sql"])
def concurrent_store(request, tmp_path):
    """File-backed SQLite rather than shared memory: shared-cache memory DBs
    fail concurrent writers with 'table is locked' instead of waiting."""
    if request.param == "memory":
        s: NewsStore = MemoryStore()
    else:
        s = SQLStore(f"sqlite:///{tmp_path / 'concurrent.db'}")
    yield s
    s.close()


def test_concurrent_creates_lose_nothing(concurrent_store: NewsStore) -> None:
    n = 120
    author = concurrent_store.create_user(_user("writer"))

    def create(i: int) -> str:
        return concurrent_store.create_news(_news(author.id, title=f"T{i}")).id

    with ThreadPoolExecutor(max_workers=16) as pool:
        ids = list(pool.map(create, range(n)))

    assert len(set(ids)) == n
    stored = concurrent_store.list_news()
    assert len(stored) == n
    assert {s.id for s in stored} == set(ids)
    assert {s.title for s in stored} == {f"T{i}" for i in range(n)}


def test_concurrent_duplicate_usernames_admit_one(concurrent_store: NewsStore) -> None:
    def register(_: int) -> bool:
        try:
            concurrent_store.create_user(_user("same-name"))
        except DuplicateUsernameError:
            return False
        return True

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(register, range(20)))

    assert results.count(True) == 1


# ---------------------------------------------------------------------------
# Backend selection
# ---------------------------------------------------------------------------


def test_create_store_memory() -> None:
    s = create_store(Settings(jwt_secret=SECRET, storage_backend="memory"))
    assert isinstance(s, MemoryStore)


def test_create_store_database(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'selected.db'}"
    s = create_store(Settings(jwt_secret=SECRET, storage_backend="database", database_url=url))
    try:
        assert isinstance(s, SQLStore)
        s.ping()
    finally:
        s.close()


def test_sql_tables_created_idempotently(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'twice.db'}"
    first = SQLStore(url)
    user = first.create_user(_user("alice"))
    first.close()
    second = SQLStore(url)
    try:
        assert second.get_user_by_id(user.id) == user
    finally:
        second.close()
