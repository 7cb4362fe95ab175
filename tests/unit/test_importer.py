# ABOUTME: Unit tests for the batched archive importer.
# ABOUTME: Verifies all-or-nothing batches, recording resolution, idempotence, and progress.

import asyncio

import pytest

from deadly.core.importer import Importer
from deadly.db.catalog import ShowCatalog
from deadly.db.connection import SqliteGateway
from deadly.db.library import LibraryStore
from deadly.db.search_index import SearchIndexer
from deadly.errors import ParseFailure, SyncCancelled
from tests.fixtures.archive_records import (
    CORNELL_77,
    CORNELL_AUD,
    CORNELL_SBD,
    ENGLAND_72,
    ENGLAND_SBD,
    ORPHAN_RECORDING,
    WINTERLAND_77,
    broken_entry,
    entries,
    entry,
    make_recording,
)

CORNELL_ID = CORNELL_77["show_id"]
ENGLAND_ID = ENGLAND_72["show_id"]


def _import_shows(importer: Importer, payloads: list[dict], **kwargs):
    return asyncio.run(importer.import_shows(entries(payloads), **kwargs))


class TestImportShows:
    """Tests for Importer.import_shows()."""

    def test_imports_shows_and_index_entries(
        self, gateway: SqliteGateway, catalog: ShowCatalog
    ) -> None:
        importer = Importer(gateway, catalog)
        result = _import_shows(importer, [CORNELL_77, ENGLAND_72, WINTERLAND_77])

        assert result.added == 3
        assert result.batches == 1
        assert catalog.count_shows() == 3
        assert SearchIndexer(gateway).count() == 3

    def test_malformed_record_aborts_whole_batch(
        self, gateway: SqliteGateway, catalog: ShowCatalog
    ) -> None:
        """A bad record mid-batch means nothing from that batch is stored."""
        importer = Importer(gateway, catalog, batch_size=3)
        batch = [entry(CORNELL_77), broken_entry("bad.json"), entry(WINTERLAND_77)]

        with pytest.raises(ParseFailure, match="bad.json"):
            asyncio.run(importer.import_shows(batch))

        assert catalog.count_shows() == 0
        assert SearchIndexer(gateway).count() == 0

    def test_earlier_batches_stay_committed(
        self, gateway: SqliteGateway, catalog: ShowCatalog
    ) -> None:
        importer = Importer(gateway, catalog, batch_size=1)
        batch = [entry(CORNELL_77), broken_entry(), entry(WINTERLAND_77)]

        with pytest.raises(ParseFailure):
            asyncio.run(importer.import_shows(batch))

        assert catalog.show_ids() == {CORNELL_ID}
        assert SearchIndexer(gateway).is_indexed(CORNELL_ID)

    def test_rerun_is_idempotent(self, gateway: SqliteGateway, catalog: ShowCatalog) -> None:
        importer = Importer(gateway, catalog)
        _import_shows(importer, [CORNELL_77, ENGLAND_72])
        _import_shows(importer, [CORNELL_77, ENGLAND_72])

        assert catalog.count_shows() == 2
        assert SearchIndexer(gateway).count() == 2

    def test_reimport_preserves_library_state(
        self, gateway: SqliteGateway, catalog: ShowCatalog
    ) -> None:
        """Updating metadata never touches library membership or pins."""
        importer = Importer(gateway, catalog)
        _import_shows(importer, [CORNELL_77])
        library = LibraryStore(gateway)
        asyncio.run(library.add_to_library(CORNELL_ID, 1000))
        asyncio.run(library.update_pin_status(CORNELL_ID, True))

        _import_shows(importer, [{**CORNELL_77, "venue": "Barton Hall"}])

        record = catalog.get_show(CORNELL_ID)
        assert record.metadata.venue_name == "Barton Hall"
        assert record.is_in_library is True
        assert record.library_added_at == 1000
        assert record.is_pinned is True

    def test_progress_per_batch(self, gateway: SqliteGateway, catalog: ShowCatalog) -> None:
        """Progress is reported after each committed batch with the last record name."""
        importer = Importer(gateway, catalog, batch_size=2)
        calls: list[tuple[int, int, str | None]] = []
        _import_shows(
            importer,
            [CORNELL_77, ENGLAND_72, WINTERLAND_77],
            on_progress=lambda *args: calls.append(args),
        )

        assert calls == [
            (2, 3, f"{ENGLAND_ID}.json"),
            (3, 3, f"{WINTERLAND_77['show_id']}.json"),
        ]

    def test_unknown_total_for_generators(
        self, gateway: SqliteGateway, catalog: ShowCatalog
    ) -> None:
        importer = Importer(gateway, catalog, batch_size=1)
        calls: list[tuple[int, int, str | None]] = []
        asyncio.run(
            importer.import_shows(
                (e for e in entries([CORNELL_77, ENGLAND_72])),
                on_progress=lambda *args: calls.append(args),
            )
        )
        assert [(c, t) for c, t, _ in calls] == [(1, 1), (2, 2)]

    def test_cancel_before_batch(self, gateway: SqliteGateway, catalog: ShowCatalog) -> None:
        importer = Importer(gateway, catalog)
        with pytest.raises(SyncCancelled):
            _import_shows(importer, [CORNELL_77], should_cancel=lambda: True)
        assert catalog.count_shows() == 0

    def test_rejects_non_positive_batch_size(
        self, gateway: SqliteGateway, catalog: ShowCatalog
    ) -> None:
        with pytest.raises(ValueError):
            Importer(gateway, catalog, batch_size=0)


class TestImportRecordings:
    """Tests for Importer.import_recordings()."""

    def _importer(self, gateway: SqliteGateway, catalog: ShowCatalog) -> Importer:
        importer = Importer(gateway, catalog)
        _import_shows(importer, [CORNELL_77, ENGLAND_72])
        return importer

    def test_resolves_owner_from_show_lists(
        self, gateway: SqliteGateway, catalog: ShowCatalog
    ) -> None:
        """Recordings without a show_id attach to the show that lists them."""
        importer = self._importer(gateway, catalog)
        result = asyncio.run(importer.import_recordings(entries([CORNELL_SBD, CORNELL_AUD])))

        assert result.added == 2
        recordings = catalog.get_recordings_for_show(CORNELL_ID)
        assert [r.identifier for r in recordings] == [
            CORNELL_SBD["identifier"],
            CORNELL_AUD["identifier"],
        ]

    def test_explicit_show_id(self, gateway: SqliteGateway, catalog: ShowCatalog) -> None:
        importer = self._importer(gateway, catalog)
        asyncio.run(importer.import_recordings(entries([ENGLAND_SBD])))
        assert catalog.get_recordings_for_show(ENGLAND_ID)[0].show_id == ENGLAND_ID

    def test_orphans_are_skipped(self, gateway: SqliteGateway, catalog: ShowCatalog) -> None:
        importer = self._importer(gateway, catalog)
        unknown = make_recording("gd70-01-01.x", show_id="1970-01-01-nowhere")
        result = asyncio.run(
            importer.import_recordings(entries([CORNELL_SBD, ORPHAN_RECORDING, unknown]))
        )

        assert result.added == 1
        assert result.skipped == 2
        assert dict(result.skipped_details) == {
            ORPHAN_RECORDING["identifier"]: "no show lists this recording",
            "gd70-01-01.x": "unknown show 1970-01-01-nowhere",
        }
        assert catalog.count_recordings() == 1

    def test_fills_missing_best_recording(
        self, gateway: SqliteGateway, catalog: ShowCatalog
    ) -> None:
        """Shows without a best recording get their top-rated one."""
        importer = self._importer(gateway, catalog)
        asyncio.run(importer.import_recordings(entries([ENGLAND_SBD, CORNELL_AUD])))

        assert catalog.get_show(ENGLAND_ID).metadata.best_recording_id == ENGLAND_SBD["identifier"]
        # Cornell names its best recording explicitly
        cornell = catalog.get_show(CORNELL_ID).metadata
        assert cornell.best_recording_id == CORNELL_SBD["identifier"]

    def test_rerun_is_idempotent(self, gateway: SqliteGateway, catalog: ShowCatalog) -> None:
        importer = self._importer(gateway, catalog)
        asyncio.run(importer.import_recordings(entries([CORNELL_SBD, ENGLAND_SBD])))
        asyncio.run(importer.import_recordings(entries([CORNELL_SBD, ENGLAND_SBD])))
        assert catalog.count_recordings() == 2

    def test_malformed_recording_aborts_batch(
        self, gateway: SqliteGateway, catalog: ShowCatalog
    ) -> None:
        importer = self._importer(gateway, catalog)
        with pytest.raises(ParseFailure):
            asyncio.run(importer.import_recordings([entry(CORNELL_SBD), broken_entry()]))
        assert catalog.count_recordings() == 0
