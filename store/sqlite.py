"""
store/sqlite.py -- SQLAlchemy Core / SQLite backend for the Store contract.

The engine is used as an embedded ordered key-value store: a single `records`
table with a TEXT primary key and a BLOB value. SQLite's default BINARY
collation compares keys as UTF-8 bytes, which gives lexicographic key order,
and the primary-key index makes prefix scans a range lookup.

Transactions:
  Reads run on a plain connection. Each read is one SELECT, so it observes
  one snapshot; WAL mode lets readers proceed while a writer is active.
  Writes run inside engine.begin() and touch exactly one key.

  Upsert is INSERT ... ON CONFLICT DO UPDATE. Insert-if-absent is a plain
  INSERT where the primary key constraint decides the winner; the resulting
  IntegrityError is the "already taken" signal.

Process lock:
  A file-backed store holds an exclusive flock on <path>.lock for its
  lifetime. A second open of the same path fails fast with StoreUnavailable
  instead of sharing the file with another writer. In-memory URLs skip the
  lock. The lock is advisory and POSIX-only.

Security: all queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

import fcntl
import logging
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import Column, LargeBinary, MetaData, Table, Text, create_engine, event, make_url, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.config import get_settings
from core.errors import StoreUnavailable
from store.base import Store, prefix_successor

logger = logging.getLogger("registry.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_records = Table(
    "records",
    _metadata,
    Column("key", Text, primary_key=True),  # <prefix><identifier>
    Column("value", LargeBinary, nullable=False),  # codec output
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers never block on a writer.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _database_file(db_url: str) -> Path | None:
    """Return the on-disk database path for db_url, or None for in-memory databases."""
    database = make_url(db_url).database
    if not database or database == ":memory:" or database.startswith("file:"):
        return None
    return Path(database)


def _acquire_lock(db_file: Path):
    lock_file = open(db_file.with_name(db_file.name + ".lock"), "a+")  # noqa: SIM115
    try:
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError as exc:
        lock_file.close()
        raise StoreUnavailable(f"store {db_file} is already open elsewhere") from exc
    return lock_file


@contextmanager
def _engine_errors(operation: str):
    """Translate engine failures into StoreUnavailable, keeping the cause chain."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("sqlite %s failed: %s", operation, exc)
        raise StoreUnavailable(f"sqlite {operation}") from exc


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SQLiteStore(Store):
    """Store backed by a single SQLite file (or an in-memory database).

    Usage:
        store = SQLiteStore("sqlite:////var/lib/registry/registry.db")
        store = SQLiteStore("sqlite:///:memory:")   # single-thread tests only
    """

    def __init__(self, db_url: str, busy_timeout: float = 5.0) -> None:
        db_file = _database_file(db_url)
        self._lock_file = _acquire_lock(db_file) if db_file is not None else None
        try:
            self.engine: Engine = create_engine(
                db_url,
                connect_args={"check_same_thread": False, "timeout": busy_timeout},
            )
            if db_file is not None:
                event.listen(self.engine, "connect", _set_wal_mode)
            with _engine_errors("create schema"):
                _metadata.create_all(self.engine)
        except BaseException:
            self._release_lock()
            raise
        logger.info("opened store %s", db_file or db_url)

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def _get(self, key: str) -> bytes | None:
        with _engine_errors("get"), self.engine.connect() as conn:
            return conn.execute(select(_records.c.value).where(_records.c.key == key)).scalar_one_or_none()

    def _put(self, key: str, value: bytes) -> None:
        stmt = sqlite_insert(_records).values(key=key, value=value)
        stmt = stmt.on_conflict_do_update(index_elements=[_records.c.key], set_={"value": stmt.excluded.value})
        with _engine_errors("put"), self.engine.begin() as conn:
            conn.execute(stmt)

    def _insert(self, key: str, value: bytes) -> bool:
        with _engine_errors("insert"):
            try:
                with self.engine.begin() as conn:
                    conn.execute(_records.insert().values(key=key, value=value))
            except IntegrityError:
                return False
        return True

    def _delete(self, key: str) -> None:
        with _engine_errors("delete"), self.engine.begin() as conn:
            conn.execute(_records.delete().where(_records.c.key == key))

    def _scan(self, prefix: str) -> list[tuple[str, bytes]]:
        query = (
            select(_records.c.key, _records.c.value)
            .where((_records.c.key >= prefix) & (_records.c.key < prefix_successor(prefix)))
            .order_by(_records.c.key)
        )
        with _engine_errors("scan"), self.engine.connect() as conn:
            return [(key, value) for key, value in conn.execute(query)]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _release_lock(self) -> None:
        if self._lock_file is not None:
            fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_UN)
            self._lock_file.close()
            self._lock_file = None

    def close(self) -> None:
        self.engine.dispose()
        self._release_lock()


def open_store(path: str | Path | None = None, busy_timeout: float | None = None) -> SQLiteStore:
    """Open (creating if needed) the file-backed store at path.

    Arguments left as None come from Settings (STORE_PATH, STORE_BUSY_TIMEOUT).
    Raises StoreUnavailable if the store is already open elsewhere.
    """
    if path is None or busy_timeout is None:
        settings = get_settings()
        path = settings.store_path if path is None else path
        busy_timeout = settings.store_busy_timeout if busy_timeout is None else busy_timeout
    db_file = Path(path)
    db_file.parent.mkdir(parents=True, exist_ok=True)
    return SQLiteStore(f"sqlite:///{db_file}", busy_timeout=busy_timeout)
