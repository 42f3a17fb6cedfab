"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Route and service
code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Username uniqueness is the database's job (UNIQUE on users.username).
  create_user() does not pre-check; the IntegrityError from a duplicate
  insert is translated into DuplicateUsernameError.

Connections:
  Every method checks out a connection with `with self._connect()`, which
  returns it to the pool on every exit path, including errors. Except for
  in-memory SQLite the pool is bounded (pool_size + max_overflow) and a
  caller that finds it exhausted waits up to pool_timeout seconds before the
  checkout fails with StoreUnavailableError.

  Connectivity failures (OperationalError, InterfaceError, pool timeouts)
  are re-raised as StoreUnavailableError so callers depend only on auth/
  types. Other driver errors, such as DataError for a value the column
  cannot hold, propagate unchanged: they are bugs or bad input, not outages.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, select, text
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from auth.exceptions import DuplicateUsernameError, StoreUnavailableError
from auth.models import User

logger = logging.getLogger("locallogin.auth")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

MAX_USERNAME_LENGTH = 255

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(MAX_USERNAME_LENGTH), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_memory_sqlite(db_url: str) -> bool:
    url = make_url(db_url)
    if url.get_backend_name() != "sqlite":
        return False
    return url.database in (None, "", ":memory:") or url.query.get("mode") == "memory"


def _engine_options(
    db_url: str,
    pool_size: int,
    max_overflow: int,
    pool_timeout: float,
) -> dict:
    """Return create_engine() keyword arguments for db_url.

    SQLite gets check_same_thread=False (TestClient and FastAPI's thread pool
    touch the engine from several threads). In-memory SQLite keeps its
    SingletonThreadPool, which does not accept pool bounds. File SQLite and
    server databases get a bounded QueuePool; only server databases ping
    connections on checkout.
    """
    if _is_memory_sqlite(db_url):
        return {"connect_args": {"check_same_thread": False}}
    options: dict = {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_timeout": pool_timeout,
    }
    if make_url(db_url).get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_pre_ping"] = True
    return options


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("postgresql+psycopg://app@db/app")
        user_id = store.create_user("alice", hasher.hash("secret1"))
        user = store.get_by_username("alice")
        store.close()
    """

    def __init__(
        self,
        db_url: str,
        *,
        pool_size: int = 5,
        max_overflow: int = 0,
        pool_timeout: float = 30.0,
    ) -> None:
        self.engine: Engine = create_engine(
            db_url,
            **_engine_options(db_url, pool_size, max_overflow, pool_timeout),
        )
        with self._connect() as conn:
            _metadata.create_all(conn)
            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        """Check out a pooled connection and translate connectivity failures.

        IntegrityError is not translated, so create_user() can map it to
        DuplicateUsernameError.
        """
        try:
            with self.engine.connect() as conn:
                yield conn
        except (OperationalError, InterfaceError, PoolTimeoutError) as exc:
            logger.error("Credential store unavailable: %s", exc.__class__.__name__)
            raise StoreUnavailableError(str(exc)) from exc

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def create_user(self, username: str, password_hash: str) -> int:
        """Insert a new user and return its assigned database ID.

        Raises DuplicateUsernameError if the username already exists.
        """
        try:
            with self._connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=username,
                        password_hash=password_hash,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DuplicateUsernameError(username) from exc

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(select(_users).where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(select(_users).where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        No HTTP route calls this. Sessions that still reference the id resolve
        to anonymous on their next request.
        """
        with self._connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self._connect() as conn:
                conn.execute(text("SELECT 1"))
        except StoreUnavailableError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )
