# ABOUTME: SQLite storage driver and process-wide handle for the archive database.
# ABOUTME: Opens or creates the database, applies schema and migrations, and publishes commits.

import asyncio
import logging
import sqlite3
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

from deadly.db.gateway import ChangeListener
from deadly.db.schema import MIGRATIONS, SCHEMA_V1

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DB_PATH = Path.home() / ".deadly" / "archive.db"


def _schema_exists(conn: sqlite3.Connection) -> bool:
    """Check if the schema has already been applied."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
    )
    return cursor.fetchone() is not None


def _apply_schema(conn: sqlite3.Connection) -> None:
    """Execute the DDL to create all tables, indexes, and triggers."""
    conn.executescript(SCHEMA_V1)


def _get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the current schema version from the database."""
    cursor = conn.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
    row = cursor.fetchone()
    return row[0] if row else 0


def _apply_migrations(conn: sqlite3.Connection) -> None:
    """Apply pending schema migrations sequentially.

    Reads the current schema version and applies any migrations with a higher
    version number. No-op if the database is already at the latest version.
    """
    current = _get_schema_version(conn)
    for version, sql in MIGRATIONS:
        if version > current:
            logger.info("Applying schema migration v%d", version)
            conn.executescript(sql)


class SqliteGateway:
    """StorageGateway backed by a single sqlite3 connection.

    The connection runs in autocommit mode; transactions are opened
    explicitly so that a batch either commits as a whole or not at all.
    Listeners are notified only after a successful COMMIT.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._listeners: list[tuple[frozenset[str], ChangeListener]] = []
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        return self._conn.execute(sql, params).fetchall()

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        return self._conn.execute(sql, params).fetchone()

    @contextmanager
    def transaction(self, *tables: str) -> Iterator[sqlite3.Connection]:
        """Run the enclosed statements in one transaction.

        Rolls back and re-raises on any exception. On commit, listeners
        registered for any of ``tables`` are notified.
        """
        if self._conn.in_transaction:
            raise RuntimeError("Nested transactions are not supported")

        self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield self._conn
            self._conn.execute("COMMIT")
        except BaseException:
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")
            raise

        self._notify(frozenset(tables))

    async def write(
        self, work: Callable[[sqlite3.Connection], T], *, tables: Iterable[str]
    ) -> T:
        """Serialize writers and run ``work`` inside a single transaction.

        ``work`` runs synchronously, so no other coroutine can observe the
        transaction before it commits or rolls back.
        """
        async with self._writer_lock():
            with self.transaction(*tables) as conn:
                return work(conn)

    def add_listener(
        self, tables: Iterable[str], callback: ChangeListener
    ) -> Callable[[], None]:
        """Register a callback for commits touching any of ``tables``.

        Returns a function that removes the registration.
        """
        entry = (frozenset(tables), callback)
        self._listeners.append(entry)

        def remove() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return remove

    def close(self) -> None:
        self._listeners.clear()
        self._conn.close()

    def __enter__(self) -> "SqliteGateway":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _writer_lock(self) -> asyncio.Lock:
        # asyncio.Lock binds to the loop it first waits on
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    def _notify(self, changed: frozenset[str]) -> None:
        if not changed:
            return
        for tables, callback in list(self._listeners):
            if tables & changed:
                try:
                    callback(changed)
                except Exception:
                    logger.exception("Change listener failed for tables %s", sorted(changed))


def open_archive(path: Path | None = None) -> SqliteGateway:
    """Open or create the archive database.

    Creates the database file and parent directories if they don't exist.
    Applies the schema on first creation and any pending migrations. Sets WAL
    journal mode, enables foreign keys, and uses sqlite3.Row for dict-like
    column access.

    Args:
        path: Path to the database file. Defaults to ~/.deadly/archive.db.

    Returns:
        The process-wide SqliteGateway. Close it (or use it as a context
        manager) at shutdown.
    """
    db_path = path or DEFAULT_DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path), isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    if not _schema_exists(conn):
        logger.info("Creating archive database at %s", db_path)
        _apply_schema(conn)

    _apply_migrations(conn)

    return SqliteGateway(conn)
