# ABOUTME: Integration tests for the full sync pipeline over a real zip archive.
# ABOUTME: Runs LocalArchiveSource, ZipArchiveExtractor, importer, and index backfill together.

import asyncio
from pathlib import Path

from deadly.archive.extract import ZipArchiveExtractor
from deadly.archive.source import LocalArchiveSource
from deadly.core.search import SearchService, SearchStatus
from deadly.core.sync import SyncOrchestrator, SyncPhase, SyncStatus
from deadly.core.verifier import verify_archive
from deadly.db.catalog import ShowCatalog
from deadly.db.connection import SqliteGateway
from deadly.db.library import LibraryStore
from deadly.db.search_index import SearchIndexer
from tests.fixtures.archive_records import (
    CORNELL_77,
    CORNELL_SBD,
    ORPHAN_RECORDING,
    write_archive_zip,
)

CORNELL_ID = CORNELL_77["show_id"]


def _orchestrator(gateway: SqliteGateway, archive: Path, tmp_path: Path) -> SyncOrchestrator:
    return SyncOrchestrator(
        gateway,
        LocalArchiveSource(archive),
        ZipArchiveExtractor(),
        cache_dir=tmp_path / "cache",
        batch_size=2,
    )


class TestSyncPipeline:
    """Integration tests for a sync from data.zip to searchable shows."""

    def test_full_sync(self, gateway: SqliteGateway, archive_zip: Path, tmp_path: Path) -> None:
        orchestrator = _orchestrator(gateway, archive_zip, tmp_path)

        result = asyncio.run(orchestrator.start())

        assert result.status is SyncStatus.SUCCESS
        assert (result.show_count, result.recording_count) == (3, 4)
        assert orchestrator.phase is SyncPhase.COMPLETED
        catalog = ShowCatalog(gateway)
        assert catalog.count_shows() == 3
        assert catalog.get_show(CORNELL_ID).metadata.best_recording_id == CORNELL_SBD["identifier"]
        assert verify_archive(gateway).total_issues == 0

    def test_synced_shows_are_searchable(
        self, gateway: SqliteGateway, archive_zip: Path, tmp_path: Path
    ) -> None:
        asyncio.run(_orchestrator(gateway, archive_zip, tmp_path).start())
        service = SearchService(SearchIndexer(gateway), ShowCatalog(gateway))

        asyncio.run(service.update_search_query("Cornell 77"))

        assert service.search_status.value is SearchStatus.SUCCESS
        assert [r.show_id for r in service.search_results.value] == [CORNELL_ID]

    def test_resync_keeps_library(
        self, gateway: SqliteGateway, archive_zip: Path, tmp_path: Path
    ) -> None:
        """A second sync over the same data leaves library state intact."""
        first = _orchestrator(gateway, archive_zip, tmp_path)
        asyncio.run(first.start())
        library = LibraryStore(gateway)
        asyncio.run(library.add_to_library(CORNELL_ID, 1000))
        asyncio.run(library.update_pin_status(CORNELL_ID, True))

        first.reset()
        result = asyncio.run(first.start())

        assert result.ok
        assert ShowCatalog(gateway).count_shows() == 3
        assert library.is_pinned(CORNELL_ID)
        assert verify_archive(gateway).total_issues == 0

    def test_orphan_recordings_skipped(
        self, gateway: SqliteGateway, tmp_path: Path
    ) -> None:
        archive = write_archive_zip(
            tmp_path / "data.zip", [CORNELL_77], [CORNELL_SBD, ORPHAN_RECORDING]
        )

        result = asyncio.run(_orchestrator(gateway, archive, tmp_path).start())

        assert result.status is SyncStatus.SUCCESS
        assert result.recording_count == 1

    def test_corrupt_archive(self, gateway: SqliteGateway, tmp_path: Path) -> None:
        archive = tmp_path / "data.zip"
        archive.write_bytes(b"garbage")

        result = asyncio.run(_orchestrator(gateway, archive, tmp_path).start())

        assert result.status is SyncStatus.ERROR
        assert "Could not open" in result.message
        assert ShowCatalog(gateway).count_shows() == 0
