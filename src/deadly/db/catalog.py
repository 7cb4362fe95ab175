# ABOUTME: Typed queries and importer writes for the shows, recordings, and recent_shows tables.
# ABOUTME: Reads see committed state only; writes are staged inside a caller's transaction.

import json
import logging
import sqlite3
from collections.abc import Iterable, Sequence

from deadly.archive.types import Recording, ShowMetadata
from deadly.clock import now_ms
from deadly.db.gateway import StorageGateway
from deadly.db.mapping import (
    RECORDING_COLUMNS,
    SHOW_METADATA_COLUMNS,
    RecentPlay,
    ShowRecord,
    recording_to_row,
    row_to_recording,
    row_to_show_record,
    show_to_row,
)

logger = logging.getLogger(__name__)

_SHOW_INSERT = (
    f"INSERT INTO shows ({', '.join(SHOW_METADATA_COLUMNS)}, created_at, updated_at) "
    f"VALUES ({', '.join(':' + c for c in SHOW_METADATA_COLUMNS)}, :now, :now) "
    "ON CONFLICT(show_id) DO UPDATE SET "
    + ", ".join(f"{c} = excluded.{c}" for c in SHOW_METADATA_COLUMNS if c != "show_id")
    + ", updated_at = excluded.updated_at"
)

_RECORDING_INSERT = (
    f"INSERT INTO recordings ({', '.join(RECORDING_COLUMNS)}) "
    f"VALUES ({', '.join(':' + c for c in RECORDING_COLUMNS)}) "
    "ON CONFLICT(identifier) DO NOTHING"
)

_BEST_RECORDING_UPDATE = (
    "UPDATE shows SET best_recording_id = ("
    "  SELECT identifier FROM recordings r WHERE r.show_id = shows.show_id "
    "  ORDER BY r.rating DESC, r.review_count DESC, r.identifier LIMIT 1"
    ") WHERE show_id = ? AND best_recording_id IS NULL"
)

_RECORDING_COUNT_UPDATE = (
    "UPDATE shows SET recording_count = MAX(recording_count, ("
    "  SELECT COUNT(*) FROM recordings r WHERE r.show_id = shows.show_id"
    ")) WHERE show_id = ?"
)

SHOW_TABLES = ("shows",)
RECORDING_TABLES = ("recordings", "shows")


class ShowCatalog:
    """Wraps the storage gateway and provides typed access to shows and recordings."""

    def __init__(self, gateway: StorageGateway) -> None:
        self._gateway = gateway

    # --- importer writes (run inside the caller's transaction) ---

    def stage_shows(self, conn: sqlite3.Connection, shows: Sequence[ShowMetadata]) -> None:
        """Upsert show metadata, leaving library columns untouched."""
        now = now_ms()
        conn.executemany(_SHOW_INSERT, [{**show_to_row(s), "now": now} for s in shows])

    def stage_recordings(
        self, conn: sqlite3.Connection, recordings: Sequence[Recording]
    ) -> None:
        """Insert recordings (existing identifiers are left as imported) and
        refresh the owning shows' best recording and count."""
        now = now_ms()
        conn.executemany(_RECORDING_INSERT, [recording_to_row(r, now) for r in recordings])
        show_ids = sorted({r.show_id for r in recordings if r.show_id is not None})
        for show_id in show_ids:
            conn.execute(_BEST_RECORDING_UPDATE, (show_id,))
            conn.execute(_RECORDING_COUNT_UPDATE, (show_id,))

    # --- reads ---

    def get_show(self, show_id: str) -> ShowRecord | None:
        """Retrieve a show by its id."""
        row = self._gateway.query_one("SELECT * FROM shows WHERE show_id = ?", (show_id,))
        return row_to_show_record(row) if row else None

    def show_exists(self, show_id: str) -> bool:
        row = self._gateway.query_one("SELECT 1 FROM shows WHERE show_id = ?", (show_id,))
        return row is not None

    def get_shows_by_ids(self, show_ids: Sequence[str]) -> list[ShowRecord]:
        """Return shows for the given ids in the order requested.

        Unknown ids are dropped and duplicates collapse to their first position.
        """
        ordered = list(dict.fromkeys(show_ids))
        if not ordered:
            return []
        placeholders = ", ".join("?" for _ in ordered)
        rows = self._gateway.query(
            f"SELECT * FROM shows WHERE show_id IN ({placeholders})", ordered
        )
        by_id = {row["show_id"]: row_to_show_record(row) for row in rows}
        return [by_id[show_id] for show_id in ordered if show_id in by_id]

    def all_shows(self) -> list[ShowRecord]:
        """Return every show, ordered by date then sequence."""
        rows = self._gateway.query("SELECT * FROM shows ORDER BY date, show_sequence, show_id")
        return [row_to_show_record(row) for row in rows]

    def shows_between(self, start_date: str, end_date: str) -> list[ShowRecord]:
        """Return shows dated within [start_date, end_date] inclusive."""
        rows = self._gateway.query(
            "SELECT * FROM shows WHERE date BETWEEN ? AND ? "
            "ORDER BY date, show_sequence, show_id",
            (start_date, end_date),
        )
        return [row_to_show_record(row) for row in rows]

    def shows_on_month_day(self, month: int, day: int) -> list[ShowRecord]:
        """Return shows played on this calendar day in any year, oldest first."""
        rows = self._gateway.query(
            "SELECT * FROM shows WHERE substr(date, 6, 5) = ? "
            "ORDER BY date, show_sequence, show_id",
            (f"{month:02d}-{day:02d}",),
        )
        return [row_to_show_record(row) for row in rows]

    def count_shows(self) -> int:
        row = self._gateway.query_one("SELECT COUNT(*) FROM shows")
        return row[0] if row else 0

    def count_recordings(self) -> int:
        row = self._gateway.query_one("SELECT COUNT(*) FROM recordings")
        return row[0] if row else 0

    def get_recordings_for_show(self, show_id: str) -> list[Recording]:
        """Return a show's recordings, best rated first."""
        rows = self._gateway.query(
            "SELECT * FROM recordings WHERE show_id = ? "
            "ORDER BY rating DESC, review_count DESC, identifier",
            (show_id,),
        )
        return [row_to_recording(row) for row in rows]

    def show_ids(self) -> set[str]:
        return {row["show_id"] for row in self._gateway.query("SELECT show_id FROM shows")}

    def recording_owners(self, identifiers: Iterable[str] | None = None) -> dict[str, str]:
        """Map recording identifiers to the show that lists them.

        Reads the ``recordings_raw`` lists written during the shows phase.
        When several shows list the same recording the earliest show id wins.
        With no identifiers, every listed recording is mapped.
        """
        wanted = set(identifiers) if identifiers is not None else None
        owners: dict[str, str] = {}
        if wanted is not None and not wanted:
            return owners
        rows = self._gateway.query(
            "SELECT show_id, recordings_raw FROM shows "
            "WHERE recordings_raw IS NOT NULL ORDER BY show_id"
        )
        for row in rows:
            for identifier in json.loads(row["recordings_raw"]):
                if identifier in owners:
                    continue
                if wanted is None or identifier in wanted:
                    owners[identifier] = row["show_id"]
        return owners

    # --- play history ---

    async def record_show_play(self, show_id: str, played_at: int | None = None) -> None:
        """Record that a show was played, creating or bumping its history row."""
        timestamp = played_at if played_at is not None else now_ms()

        def work(conn: sqlite3.Connection) -> None:
            conn.execute(
                "INSERT INTO recent_shows (show_id, last_played_at, first_played_at) "
                "VALUES (?, ?, ?) "
                "ON CONFLICT(show_id) DO UPDATE SET "
                "last_played_at = MAX(last_played_at, excluded.last_played_at), "
                "total_play_count = total_play_count + 1",
                (show_id, timestamp, timestamp),
            )

        await self._gateway.write(work, tables=("recent_shows",))
        logger.debug("Recorded play of %s at %d", show_id, timestamp)

    def get_recent_shows(self, limit: int = 8) -> list[RecentPlay]:
        """Return the most recently played shows, newest first."""
        rows = self._gateway.query(
            "SELECT s.*, r.last_played_at, r.total_play_count FROM recent_shows r "
            "JOIN shows s ON s.show_id = r.show_id "
            "ORDER BY r.last_played_at DESC, s.show_id LIMIT ?",
            (limit,),
        )
        return [
            RecentPlay(
                show=row_to_show_record(row),
                last_played_at=row["last_played_at"],
                total_play_count=row["total_play_count"],
            )
            for row in rows
        ]

    async def clear_recent_shows(self) -> None:
        await self._gateway.write(
            lambda conn: conn.execute("DELETE FROM recent_shows"), tables=("recent_shows",)
        )
