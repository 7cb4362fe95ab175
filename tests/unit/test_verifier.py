# ABOUTME: Unit tests for archive consistency verification.
# ABOUTME: Corrupts library and index state directly and checks each violation is reported.

import asyncio

from deadly.core.verifier import verify_archive
from deadly.db.connection import SqliteGateway
from deadly.db.library import LibraryStore

CORNELL_ID = "1977-05-08-barton-hall-cornell-u-ithaca-ny-usa"


class TestVerifyArchive:
    """Tests for verify_archive()."""

    def test_clean_archive(self, seeded_gateway: SqliteGateway) -> None:
        asyncio.run(LibraryStore(seeded_gateway).add_to_library(CORNELL_ID, 1000))
        result = verify_archive(seeded_gateway)
        assert result.shows_checked == 3
        assert result.total_issues == 0

    def test_empty_archive(self, gateway: SqliteGateway) -> None:
        result = verify_archive(gateway)
        assert result.shows_checked == 0
        assert result.violations == []

    def test_flag_without_library_row(self, seeded_gateway: SqliteGateway) -> None:
        """is_in_library set with no library_shows row is a membership violation."""
        seeded_gateway.connection.execute(
            "UPDATE shows SET is_in_library = 1, library_added_at = 5 WHERE show_id = ?",
            (CORNELL_ID,),
        )
        result = verify_archive(seeded_gateway)
        assert [v.show_id for v in result.membership] == [CORNELL_ID]
        assert len(result.added_at) == 1

    def test_library_row_without_flag(self, seeded_gateway: SqliteGateway) -> None:
        seeded_gateway.connection.execute(
            "INSERT INTO library_shows (show_id, added_at) VALUES (?, 7)", (CORNELL_ID,)
        )
        result = verify_archive(seeded_gateway)
        assert result.membership[0].issue == "library row without is_in_library"

    def test_added_at_mismatch(self, seeded_gateway: SqliteGateway) -> None:
        asyncio.run(LibraryStore(seeded_gateway).add_to_library(CORNELL_ID, 1000))
        seeded_gateway.connection.execute(
            "UPDATE shows SET library_added_at = 999 WHERE show_id = ?", (CORNELL_ID,)
        )
        result = verify_archive(seeded_gateway)
        assert result.added_at[0].issue == "library_added_at 999 != 1000"
        assert result.total_issues == 1

    def test_pinned_non_member(self, seeded_gateway: SqliteGateway) -> None:
        seeded_gateway.connection.execute(
            "UPDATE shows SET is_pinned = 1 WHERE show_id = ?", (CORNELL_ID,)
        )
        result = verify_archive(seeded_gateway)
        assert [v.show_id for v in result.pinned] == [CORNELL_ID]

    def test_missing_index_entry(self, seeded_gateway: SqliteGateway) -> None:
        seeded_gateway.connection.execute(
            "DELETE FROM show_search WHERE show_id = ?", (CORNELL_ID,)
        )
        result = verify_archive(seeded_gateway)
        assert result.search_index[0].issue == "0 search index entries"

    def test_orphan_index_entry(self, seeded_gateway: SqliteGateway) -> None:
        """Orphans can only appear with foreign keys off, e.g. from an external writer."""
        conn = seeded_gateway.connection
        conn.execute("PRAGMA foreign_keys=OFF")
        conn.execute("INSERT INTO show_search (show_id, search_text) VALUES ('ghost', 'boo')")
        conn.execute("PRAGMA foreign_keys=ON")
        result = verify_archive(seeded_gateway)
        assert [(v.show_id, v.issue) for v in result.search_index] == [
            ("ghost", "index entry for unknown show")
        ]
