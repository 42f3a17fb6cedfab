"""Unit tests for auth/store.py -- UserStore repository.

Covers:
- create_user() returns an id; get_by_username()/get_by_id() map rows back
- username lookups are exact and case-sensitive
- duplicate insert raises DuplicateUsernameError and leaves the original row
- connectivity failures surface as StoreUnavailableError; other driver
  errors (bad data, bad SQL) propagate unchanged
- connections are returned to the pool on success and error paths
- pool options are bounded for server and file databases, and an
  exhausted pool times out as StoreUnavailableError
"""

from pathlib import Path

import pytest
from sqlalchemy.exc import DataError, InterfaceError, OperationalError, ProgrammingError

from auth.exceptions import DuplicateUsernameError, StoreUnavailableError
from auth.store import MAX_USERNAME_LENGTH, UserStore, _engine_options


class _FailingConnection:
    """Stands in for a checked-out connection whose statements fail with exc."""

    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> bool:
        return False

    def execute(self, *args, **kwargs):
        raise self.exc


class TestUserQueries:
    def test_create_and_lookup(self, store: UserStore) -> None:
        uid = store.create_user("alice", "$2b$04$hash")
        by_name = store.get_by_username("alice")
        by_id = store.get_by_id(uid)
        assert by_name is not None and by_id is not None
        assert by_name == by_id
        assert by_name.id == uid
        assert by_name.password_hash == "$2b$04$hash"
        assert by_name.created_at

    def test_ids_are_distinct(self, store: UserStore) -> None:
        assert store.create_user("a", "h1") != store.create_user("b", "h2")

    def test_missing_user_returns_none(self, store: UserStore) -> None:
        assert store.get_by_username("nobody") is None
        assert store.get_by_id(999) is None

    def test_username_lookup_is_case_sensitive(self, store: UserStore) -> None:
        store.create_user("Bob", "h")
        assert store.get_by_username("bob") is None
        assert store.get_by_username("Bob") is not None

    def test_duplicate_username_raises(self, store: UserStore) -> None:
        store.create_user("alice", "original")
        with pytest.raises(DuplicateUsernameError) as excinfo:
            store.create_user("alice", "replacement")
        assert excinfo.value.username == "alice"
        assert store.get_by_username("alice").password_hash == "original"

    def test_delete_user(self, store: UserStore) -> None:
        uid = store.create_user("carol", "h")
        assert store.delete_user(uid) is True
        assert store.get_by_id(uid) is None
        assert store.delete_user(uid) is False

    def test_ping(self, store: UserStore) -> None:
        assert store.ping() is True


class TestStoreFailures:
    """Connectivity errors come out as StoreUnavailableError; other driver errors do not."""

    @pytest.fixture
    def broken_store(self, store: UserStore, monkeypatch: pytest.MonkeyPatch) -> UserStore:
        def _refuse():
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        monkeypatch.setattr(store.engine, "connect", _refuse)
        return store

    def test_lookup_by_username(self, broken_store: UserStore) -> None:
        with pytest.raises(StoreUnavailableError):
            broken_store.get_by_username("alice")

    def test_lookup_by_id(self, broken_store: UserStore) -> None:
        with pytest.raises(StoreUnavailableError):
            broken_store.get_by_id(1)

    def test_insert(self, broken_store: UserStore) -> None:
        with pytest.raises(StoreUnavailableError):
            broken_store.create_user("alice", "h")

    def test_ping_reports_false(self, broken_store: UserStore) -> None:
        assert broken_store.ping() is False

    def test_interface_error_is_unavailable(self, store: UserStore, monkeypatch: pytest.MonkeyPatch) -> None:
        exc = InterfaceError("SELECT", {}, Exception("connection already closed"))
        monkeypatch.setattr(store.engine, "connect", lambda: _FailingConnection(exc))
        with pytest.raises(StoreUnavailableError):
            store.get_by_username("alice")

    @pytest.mark.parametrize(
        "exc",
        [
            DataError("INSERT INTO users", {}, Exception("value too long for type character varying(255)")),
            ProgrammingError("INSERT INTO users", {}, Exception("syntax error")),
        ],
    )
    def test_non_connectivity_errors_propagate(
        self, store: UserStore, monkeypatch: pytest.MonkeyPatch, exc: Exception
    ) -> None:
        monkeypatch.setattr(store.engine, "connect", lambda: _FailingConnection(exc))
        with pytest.raises(type(exc)):
            store.create_user("x" * (MAX_USERNAME_LENGTH + 45), "h")


class TestConnectionRelease:
    """Every exit path must hand its connection back to the pool."""

    @pytest.fixture
    def file_store(self, tmp_path: Path):
        s = UserStore(f"sqlite:///{tmp_path / 'users.db'}")
        yield s
        s.close()

    def test_no_connections_checked_out_after_queries(self, file_store: UserStore) -> None:
        uid = file_store.create_user("alice", "h")
        file_store.get_by_username("alice")
        file_store.get_by_id(uid)
        file_store.get_by_username("missing")
        assert file_store.engine.pool.checkedout() == 0

    def test_no_connections_checked_out_after_duplicate(self, file_store: UserStore) -> None:
        file_store.create_user("alice", "h")
        with pytest.raises(DuplicateUsernameError):
            file_store.create_user("alice", "h2")
        assert file_store.engine.pool.checkedout() == 0

    def test_exhausted_pool_times_out(self, tmp_path: Path) -> None:
        s = UserStore(f"sqlite:///{tmp_path / 'users.db'}", pool_size=1, max_overflow=0, pool_timeout=0.2)
        try:
            assert s.engine.pool.size() == 1
            with s.engine.connect():
                with pytest.raises(StoreUnavailableError):
                    s.get_by_username("alice")
            assert s.get_by_username("alice") is None
        finally:
            s.close()


class TestEngineOptions:
    def test_server_database_gets_bounded_pool(self) -> None:
        opts = _engine_options("postgresql+psycopg://u:p@db:5432/app", 3, 0, 7.5)
        assert opts["pool_size"] == 3
        assert opts["max_overflow"] == 0
        assert opts["pool_timeout"] == 7.5
        assert opts["pool_pre_ping"] is True

    def test_file_sqlite_gets_bounded_pool(self) -> None:
        opts = _engine_options("sqlite:///./locallogin.db", 3, 0, 7.5)
        assert opts["pool_size"] == 3
        assert opts["max_overflow"] == 0
        assert opts["pool_timeout"] == 7.5
        assert opts["connect_args"] == {"check_same_thread": False}
        assert "pool_pre_ping" not in opts

    @pytest.mark.parametrize(
        "url",
        [
            "sqlite://",
            "sqlite:///:memory:",
            "sqlite:///file:shared?mode=memory&cache=shared&uri=true",
        ],
    )
    def test_memory_sqlite_keeps_default_pool(self, url: str) -> None:
        assert _engine_options(url, 3, 0, 7.5) == {"connect_args": {"check_same_thread": False}}
