# ABOUTME: User library state: membership, pins, and notes for shows.
# ABOUTME: Keeps library_shows and the denormalized shows columns consistent in one transaction.

import logging
import sqlite3
from collections.abc import Callable

from deadly.core.result import OperationResult
from deadly.core.streams import QueryStream
from deadly.db.gateway import StorageGateway
from deadly.db.mapping import LibraryShow, LibraryStats, row_to_show_record
from deadly.errors import LibraryOperationFailure, NotInLibrary, ShowNotFound

logger = logging.getLogger(__name__)

LIBRARY_TABLES = ("library_shows", "shows")

_LIBRARY_SELECT = (
    "SELECT s.*, l.added_at AS lib_added_at, l.is_pinned AS lib_pinned, l.notes AS lib_notes "
    "FROM library_shows l JOIN shows s ON s.show_id = l.show_id "
)


def _row_to_library_show(row: sqlite3.Row) -> LibraryShow:
    return LibraryShow(
        show=row_to_show_record(row),
        added_at=row["lib_added_at"],
        is_pinned=bool(row["lib_pinned"]),
        notes=row["lib_notes"],
    )


def _require_member(conn: sqlite3.Connection, show_id: str) -> None:
    row = conn.execute("SELECT 1 FROM library_shows WHERE show_id = ?", (show_id,)).fetchone()
    if row is None:
        raise NotInLibrary(show_id)


class LibraryStore:
    """Library mutations and observable library views.

    Every mutation runs as a single transaction that updates both the
    library_shows row and the matching columns on shows, and reports the
    outcome as an OperationResult instead of raising.
    """

    def __init__(self, gateway: StorageGateway) -> None:
        self._gateway = gateway

    # --- mutations ---

    async def add_to_library(self, show_id: str, timestamp: int) -> OperationResult:
        """Add a show, or refresh its added time if it is already a member.

        Pin state and notes of an existing member are kept.
        """

        def work(conn: sqlite3.Connection) -> None:
            exists = conn.execute(
                "SELECT 1 FROM shows WHERE show_id = ?", (show_id,)
            ).fetchone()
            if exists is None:
                raise ShowNotFound(show_id)
            conn.execute(
                "INSERT INTO library_shows (show_id, added_at) VALUES (?, ?) "
                "ON CONFLICT(show_id) DO UPDATE SET added_at = excluded.added_at",
                (show_id, timestamp),
            )
            conn.execute(
                "UPDATE shows SET is_in_library = 1, library_added_at = ? WHERE show_id = ?",
                (timestamp, show_id),
            )

        return await self._mutate(work, f"add {show_id}")

    async def remove_from_library(self, show_id: str) -> OperationResult:
        """Remove a show. Removing a show that is not a member is a no-op."""

        def work(conn: sqlite3.Connection) -> None:
            conn.execute("DELETE FROM library_shows WHERE show_id = ?", (show_id,))
            conn.execute(
                "UPDATE shows SET is_in_library = 0, library_added_at = NULL, is_pinned = 0 "
                "WHERE show_id = ?",
                (show_id,),
            )

        return await self._mutate(work, f"remove {show_id}")

    async def update_pin_status(self, show_id: str, pinned: bool) -> OperationResult:
        def work(conn: sqlite3.Connection) -> None:
            _require_member(conn, show_id)
            conn.execute(
                "UPDATE library_shows SET is_pinned = ? WHERE show_id = ?",
                (int(pinned), show_id),
            )
            conn.execute(
                "UPDATE shows SET is_pinned = ? WHERE show_id = ?", (int(pinned), show_id)
            )

        return await self._mutate(work, f"pin {show_id}" if pinned else f"unpin {show_id}")

    async def update_library_notes(self, show_id: str, notes: str | None) -> OperationResult:
        def work(conn: sqlite3.Connection) -> None:
            _require_member(conn, show_id)
            conn.execute(
                "UPDATE library_shows SET notes = ? WHERE show_id = ?", (notes, show_id)
            )

        return await self._mutate(work, f"update notes for {show_id}")

    async def clear_library(self) -> OperationResult:
        def work(conn: sqlite3.Connection) -> None:
            conn.execute("DELETE FROM library_shows")
            conn.execute(
                "UPDATE shows SET is_in_library = 0, library_added_at = NULL, is_pinned = 0 "
                "WHERE is_in_library = 1 OR is_pinned = 1 OR library_added_at IS NOT NULL"
            )

        return await self._mutate(work, "clear library")

    async def unpin_all_shows(self) -> OperationResult:
        def work(conn: sqlite3.Connection) -> None:
            conn.execute("UPDATE library_shows SET is_pinned = 0 WHERE is_pinned = 1")
            conn.execute("UPDATE shows SET is_pinned = 0 WHERE is_pinned = 1")

        return await self._mutate(work, "unpin all shows")

    # --- reads ---

    def get_library_shows(self) -> list[LibraryShow]:
        """Library members, pinned first, then most recently added."""
        rows = self._gateway.query(
            _LIBRARY_SELECT + "ORDER BY l.is_pinned DESC, l.added_at DESC, l.show_id"
        )
        return [_row_to_library_show(row) for row in rows]

    def get_library_show(self, show_id: str) -> LibraryShow | None:
        row = self._gateway.query_one(_LIBRARY_SELECT + "WHERE l.show_id = ?", (show_id,))
        return _row_to_library_show(row) if row else None

    def get_stats(self) -> LibraryStats:
        row = self._gateway.query_one(
            "SELECT COUNT(*) AS total, COALESCE(SUM(is_pinned), 0) AS pinned FROM library_shows"
        )
        return LibraryStats(total_shows=row["total"], total_pinned=row["pinned"])

    def is_in_library(self, show_id: str) -> bool:
        row = self._gateway.query_one(
            "SELECT 1 FROM library_shows WHERE show_id = ?", (show_id,)
        )
        return row is not None

    def is_pinned(self, show_id: str) -> bool:
        row = self._gateway.query_one(
            "SELECT is_pinned FROM library_shows WHERE show_id = ?", (show_id,)
        )
        return bool(row["is_pinned"]) if row else False

    # --- observable views ---
    # Each call returns a new stream; close() it when no longer observed.

    def get_library_shows_flow(self) -> QueryStream[list[LibraryShow]]:
        return self._stream(self.get_library_shows)

    def get_library_stats_flow(self) -> QueryStream[LibraryStats]:
        return self._stream(self.get_stats)

    def is_show_in_library_flow(self, show_id: str) -> QueryStream[bool]:
        return self._stream(lambda: self.is_in_library(show_id))

    def is_show_pinned_flow(self, show_id: str) -> QueryStream[bool]:
        return self._stream(lambda: self.is_pinned(show_id))

    def _stream(self, compute: Callable[[], object]) -> QueryStream:
        return QueryStream(self._gateway, LIBRARY_TABLES, compute)

    async def _mutate(
        self, work: Callable[[sqlite3.Connection], None], action: str
    ) -> OperationResult:
        try:
            await self._gateway.write(work, tables=LIBRARY_TABLES)
        except LibraryOperationFailure as exc:
            logger.warning("Could not %s: %s", action, exc)
            return OperationResult.fail(exc)
        except sqlite3.Error as exc:
            logger.error("Library write failed (%s): %s", action, exc)
            return OperationResult.fail(LibraryOperationFailure(f"Could not {action}: {exc}"))
        logger.debug("Library: %s", action)
        return OperationResult.ok()
