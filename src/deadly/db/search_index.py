# ABOUTME: Full-text search index over shows, backed by an FTS5 external-content table.
# ABOUTME: Mutations return OperationResult; user queries are tokenised, never raw FTS syntax.

import logging
import re
import sqlite3
from collections.abc import Iterable, Sequence

from deadly.archive.search_text import build_search_text
from deadly.core.result import OperationResult
from deadly.db.gateway import StorageGateway
from deadly.db.mapping import row_to_metadata
from deadly.errors import IndexWriteFailure, QueryFailure

logger = logging.getLogger(__name__)

INDEX_TABLES = ("show_search",)

_UPSERT = (
    "INSERT INTO show_search (show_id, search_text) VALUES (?, ?) "
    "ON CONFLICT(show_id) DO UPDATE SET search_text = excluded.search_text"
)

_TOKEN = re.compile(r"\w+", re.UNICODE)


def to_match_expression(query: str) -> str | None:
    """Turn free text into an FTS5 MATCH expression.

    Every word becomes a quoted prefix term and terms are implicitly ANDed.
    Returns None when the query has no searchable words.
    """
    tokens = _TOKEN.findall(query)
    if not tokens:
        return None
    return " ".join(f'"{token}"*' for token in tokens)


def write_entries(conn: sqlite3.Connection, entries: Iterable[tuple[str, str]]) -> int:
    """Upsert (show_id, search_text) pairs inside the caller's transaction."""
    rows = list(entries)
    conn.executemany(_UPSERT, rows)
    return len(rows)


class SearchIndexer:
    """Maintains and queries the show search index."""

    def __init__(self, gateway: StorageGateway) -> None:
        self._gateway = gateway

    async def insert_or_update(self, show_id: str, search_text: str) -> OperationResult:
        """Create or replace the index entry for one show.

        The show must already be stored; entries for unknown shows fail.
        """
        return await self._mutate(
            lambda conn: write_entries(conn, [(show_id, search_text)]),
            f"Failed to index {show_id}",
        )

    async def insert_batch(self, entries: Sequence[tuple[str, str]]) -> OperationResult:
        """Index several shows in one transaction. Either all entries land or none."""
        return await self._mutate(
            lambda conn: write_entries(conn, entries),
            f"Failed to index batch of {len(entries)} shows",
        )

    async def remove(self, show_id: str) -> OperationResult:
        return await self._mutate(
            lambda conn: conn.execute("DELETE FROM show_search WHERE show_id = ?", (show_id,)),
            f"Failed to remove {show_id} from the index",
        )

    async def clear(self) -> OperationResult:
        return await self._mutate(
            lambda conn: conn.execute("DELETE FROM show_search"),
            "Failed to clear the search index",
        )

    async def backfill(self) -> OperationResult:
        """Index every stored show that has no entry yet."""

        def work(conn: sqlite3.Connection) -> int:
            rows = conn.execute(
                "SELECT * FROM shows WHERE show_id NOT IN (SELECT show_id FROM show_search)"
            ).fetchall()
            return write_entries(
                conn,
                ((row["show_id"], build_search_text(row_to_metadata(row))) for row in rows),
            )

        return await self._mutate(work, "Failed to backfill the search index")

    async def rebuild(self) -> OperationResult:
        """Drop every entry and re-index all stored shows from their rows."""

        def work(conn: sqlite3.Connection) -> int:
            conn.execute("DELETE FROM show_search")
            rows = conn.execute("SELECT * FROM shows").fetchall()
            return write_entries(
                conn,
                ((row["show_id"], build_search_text(row_to_metadata(row))) for row in rows),
            )

        return await self._mutate(work, "Failed to rebuild the search index")

    def search(self, query: str, limit: int | None = None) -> list[str]:
        """Return matching show ids, best match first.

        Ties in rank are broken by show id. Queries without searchable words
        return an empty list.

        Raises:
            QueryFailure: If the index cannot be queried.
        """
        return [show_id for show_id, _rank in self.search_ranked(query, limit)]

    def search_ranked(self, query: str, limit: int | None = None) -> list[tuple[str, float]]:
        """Like search(), but also returns each match's BM25 rank (lower is better)."""
        expression = to_match_expression(query)
        if expression is None:
            return []
        try:
            rows = self._gateway.query(
                "SELECT s.show_id, show_search_fts.rank AS rank FROM show_search_fts "
                "JOIN show_search s ON s.id = show_search_fts.rowid "
                "WHERE show_search_fts MATCH ? "
                "ORDER BY show_search_fts.rank, s.show_id "
                "LIMIT ?",
                (expression, limit if limit is not None else -1),
            )
        except sqlite3.Error as exc:
            raise QueryFailure(f"Search for {query!r} failed: {exc}") from exc
        return [(row["show_id"], row["rank"]) for row in rows]

    def count(self) -> int:
        row = self._gateway.query_one("SELECT COUNT(*) FROM show_search")
        return row[0] if row else 0

    def is_indexed(self, show_id: str) -> bool:
        row = self._gateway.query_one(
            "SELECT 1 FROM show_search WHERE show_id = ?", (show_id,)
        )
        return row is not None

    def get_search_text(self, show_id: str) -> str | None:
        row = self._gateway.query_one(
            "SELECT search_text FROM show_search WHERE show_id = ?", (show_id,)
        )
        return row["search_text"] if row else None

    async def _mutate(self, work, failure_message: str) -> OperationResult:
        try:
            await self._gateway.write(work, tables=INDEX_TABLES)
        except sqlite3.Error as exc:
            logger.error("%s: %s", failure_message, exc)
            return OperationResult.fail(IndexWriteFailure(f"{failure_message}: {exc}"))
        return OperationResult.ok()
