"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. UserStore is the repository;
_row_to_user / _row_to_profile are the mappers. Route and service code never
touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  The public projection (_PUBLIC_COLUMNS) never selects hashed_password, so
  get_by_id() and list_users() cannot leak a digest even by accident.

Connection pool:
  Server databases (MySQL, PostgreSQL) and file-backed SQLite use a bounded
  QueuePool: pool_size connections, no overflow, and callers wait up to
  pool_timeout seconds for a free connection before the operation fails with
  StorageUnavailableError. In-memory SQLite (":memory:" or mode=memory) keeps
  SQLAlchemy's single-connection pool, which rejects sizing arguments.

  Each public method borrows one connection for one logical statement and
  returns it before exiting.

Error translation:
  IntegrityError   -> DuplicateKeyError (a UNIQUE constraint fired)
  SQLAlchemyError  -> StorageUnavailableError (logged with traceback here;
                      callers only ever see the generic message)

IDs are never reused: sqlite_autoincrement=True emits AUTOINCREMENT so SQLite
does not hand out the id of a deleted max row again; MySQL AUTO_INCREMENT is
monotonic already.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, event, select, text
from sqlalchemy.engine import URL, Connection, Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateKeyError, NoFieldsProvidedError, StorageUnavailableError
from auth.models import User, UserProfile, UserUpdate

logger = logging.getLogger("credstore.store")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'credstore_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("email", String(100), nullable=False, unique=True),
    Column("hashed_password", String(255), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    sqlite_autoincrement=True,
)

_PUBLIC_COLUMNS = (
    _users.c.id,
    _users.c.username,
    _users.c.email,
    _users.c.created_at,
    _users.c.updated_at,
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    # Fixed microsecond width keeps ISO strings lexicographically sortable.
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _is_memory_sqlite(url: URL) -> bool:
    """True for SQLite URLs with no backing file (":memory:", empty path, mode=memory)."""
    if url.get_backend_name() != "sqlite":
        return False
    return url.database in (None, "", ":memory:") or url.query.get("mode") == "memory"


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """SQL-backed UserRepository.

    Usage:
        store = UserStore("mysql+pymysql://user:pw@host/db", pool_size=10, pool_timeout=10)
        user_id = store.create_user("alice", "alice@x.com", hash_password("secret1"))
        profile = store.get_by_id(user_id)
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL, pool_size: int = 10, pool_timeout: float = 10.0) -> None:
        url = make_url(db_url)
        is_sqlite = url.get_backend_name() == "sqlite"
        connect_args: dict = {}
        engine_kwargs: dict = {}
        if is_sqlite:
            connect_args["check_same_thread"] = False
        if not _is_memory_sqlite(url):
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=0,
                pool_timeout=pool_timeout,
                pool_pre_ping=True,
                pool_recycle=3600,
            )
        try:
            self.engine: Engine = create_engine(url, connect_args=connect_args, **engine_kwargs)
        except ImportError as exc:
            # Missing DBAPI module: a configuration error, not a storage failure.
            raise ValueError(
                f"Database driver for {url.drivername!r} is not installed ({exc}). "
                "Install PyMySQL for mysql+pymysql URLs."
            ) from exc
        if is_sqlite:
            event.listen(self.engine, "connect", _set_wal_mode)
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        """Create the users table if it does not exist. Idempotent."""
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.exception("Storage failure during schema creation")
            raise StorageUnavailableError() from exc

    @contextmanager
    def _connect(self, action: str) -> Iterator[Connection]:
        """Borrow one pooled connection and translate driver errors into domain errors."""
        try:
            with self.engine.connect() as conn:
                yield conn
        except IntegrityError as exc:
            logger.info("Unique constraint rejected %s", action)
            raise DuplicateKeyError() from exc
        except SQLAlchemyError as exc:
            logger.exception("Storage failure during %s", action)
            raise StorageUnavailableError() from exc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Returns None if not found."""
        with self._connect("get_by_email") as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self._connect("get_by_username") as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> UserProfile | None:
        with self._connect("get_by_id") as conn:
            row = conn.execute(select(*_PUBLIC_COLUMNS).where(_users.c.id == user_id)).fetchone()
        return _row_to_profile(row) if row is not None else None

    def list_users(self) -> list[UserProfile]:
        """Return all users, newest first. Ties on created_at fall back to id."""
        with self._connect("list_users") as conn:
            rows = conn.execute(
                select(*_PUBLIC_COLUMNS).order_by(_users.c.created_at.desc(), _users.c.id.desc())
            ).fetchall()
        return [_row_to_profile(r) for r in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, username: str, email: str, hashed_password: str) -> int:
        """Insert a new user and return its assigned database ID.

        Raises DuplicateKeyError if the username or email already exists.
        The UNIQUE constraints are the final word even when the caller
        pre-checked -- two concurrent registrations can both pass the check.
        """
        now = _now_iso()
        with self._connect("create_user") as conn:
            result = conn.execute(
                _users.insert().values(
                    username=username,
                    email=email,
                    hashed_password=hashed_password,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return result.inserted_primary_key[0]

    def update_user(self, user_id: int, update: UserUpdate) -> bool:
        """Update mutable fields on an existing user and refresh updated_at.

        Returns True if a row was updated, False if user_id was not found.
        """
        fields = update.fields()
        if not fields:
            raise NoFieldsProvidedError()
        with self._connect("update_user") as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(**fields, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found."""
        with self._connect("delete_user") as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if a connection can run a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning("Database ping failed: %s", exc)
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_profile(row) -> UserProfile:
    return UserProfile(
        id=row.id,
        username=row.username,
        email=row.email,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
