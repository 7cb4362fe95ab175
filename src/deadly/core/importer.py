# ABOUTME: Batched import of archive show and recording records into the database.
# ABOUTME: Each batch commits rows and search entries in one transaction or not at all.

import asyncio
import dataclasses
import logging
import sqlite3
from collections.abc import Callable, Iterable, Iterator, Sized
from dataclasses import dataclass, field
from itertools import islice

from deadly.archive.parser import parse_recording_entry, parse_show_entry
from deadly.archive.search_text import build_search_text
from deadly.archive.types import ArchiveEntry, Recording, ShowMetadata
from deadly.db.catalog import RECORDING_TABLES, SHOW_TABLES, ShowCatalog
from deadly.db.gateway import StorageGateway
from deadly.db.search_index import INDEX_TABLES, write_entries
from deadly.errors import ImportWriteFailure, IndexWriteFailure, SyncCancelled

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 250

# (current, total, name of the last record in the batch)
ProgressCallback = Callable[[int, int, str | None], None]
CancelCheck = Callable[[], bool]


@dataclass
class ImportResult:
    """Summary of an import phase."""

    added: int = 0
    skipped: int = 0
    batches: int = 0
    skipped_details: list[tuple[str, str]] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.added + self.skipped


def _batches(entries: Iterable[ArchiveEntry], size: int) -> Iterator[list[ArchiveEntry]]:
    iterator = iter(entries)
    while batch := list(islice(iterator, size)):
        yield batch


def _resolve_total(entries: Iterable[ArchiveEntry], total: int | None) -> int:
    if total is not None:
        return total
    if isinstance(entries, Sized):
        return len(entries)
    return 0


class Importer:
    """Writes parsed archive records to storage in fixed-size batches.

    A ParseFailure or write failure aborts the current batch before anything
    from it is committed. Batches committed earlier stay committed and a
    re-run converges to the same state.
    """

    def __init__(
        self,
        gateway: StorageGateway,
        catalog: ShowCatalog,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._gateway = gateway
        self._catalog = catalog
        self._batch_size = batch_size

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def import_shows(
        self,
        entries: Iterable[ArchiveEntry],
        *,
        total: int | None = None,
        on_progress: ProgressCallback | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> ImportResult:
        """Import show records together with their search index entries.

        Raises:
            ParseFailure: A record in the current batch is malformed.
            ImportWriteFailure: Show rows could not be written.
            IndexWriteFailure: Search entries could not be written.
            SyncCancelled: should_cancel returned True between batches.
        """
        result = ImportResult()
        expected = _resolve_total(entries, total)

        for batch in _batches(entries, self._batch_size):
            self._check_cancelled(should_cancel)
            shows = [parse_show_entry(entry) for entry in batch]
            await self._gateway.write(
                lambda conn: self._stage_shows(conn, shows),
                tables=SHOW_TABLES + INDEX_TABLES,
            )
            result.added += len(shows)
            result.batches += 1
            logger.debug("Committed batch %d of %d shows", result.batches, len(shows))
            self._report(on_progress, result.processed, expected, batch[-1].name)
            await asyncio.sleep(0)

        logger.info("Imported %d shows in %d batches", result.added, result.batches)
        return result

    async def import_recordings(
        self,
        entries: Iterable[ArchiveEntry],
        *,
        total: int | None = None,
        on_progress: ProgressCallback | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> ImportResult:
        """Import recording records, attaching each to a known show.

        A recording's show comes from its own ``show_id`` field, or else from
        the recording lists of already-imported shows. Recordings with no
        known show are skipped.

        Raises:
            ParseFailure: A record in the current batch is malformed.
            ImportWriteFailure: Recording rows could not be written.
            SyncCancelled: should_cancel returned True between batches.
        """
        result = ImportResult()
        expected = _resolve_total(entries, total)
        known_shows = self._catalog.show_ids()
        owners = self._catalog.recording_owners()

        for batch in _batches(entries, self._batch_size):
            self._check_cancelled(should_cancel)
            resolved: list[Recording] = []
            for entry in batch:
                recording = parse_recording_entry(entry)
                show_id = recording.show_id or owners.get(recording.identifier)
                if show_id is None or show_id not in known_shows:
                    reason = (
                        f"unknown show {show_id}" if show_id else "no show lists this recording"
                    )
                    logger.warning("Skipping recording %s: %s", recording.identifier, reason)
                    result.skipped += 1
                    result.skipped_details.append((recording.identifier, reason))
                    continue
                resolved.append(dataclasses.replace(recording, show_id=show_id))

            if resolved:
                await self._gateway.write(
                    lambda conn: self._stage_recordings(conn, resolved),
                    tables=RECORDING_TABLES,
                )
            result.added += len(resolved)
            result.batches += 1
            logger.debug("Committed batch %d of %d recordings", result.batches, len(resolved))
            self._report(on_progress, result.processed, expected, batch[-1].name)
            await asyncio.sleep(0)

        logger.info(
            "Imported %d recordings (%d skipped) in %d batches",
            result.added,
            result.skipped,
            result.batches,
        )
        return result

    def _stage_shows(self, conn: sqlite3.Connection, shows: list[ShowMetadata]) -> None:
        try:
            self._catalog.stage_shows(conn, shows)
        except sqlite3.Error as exc:
            raise ImportWriteFailure(f"Failed to write batch of {len(shows)} shows: {exc}") from exc
        try:
            write_entries(conn, [(show.show_id, build_search_text(show)) for show in shows])
        except sqlite3.Error as exc:
            raise IndexWriteFailure(
                f"Failed to index batch of {len(shows)} shows: {exc}"
            ) from exc

    def _stage_recordings(self, conn: sqlite3.Connection, recordings: list[Recording]) -> None:
        try:
            self._catalog.stage_recordings(conn, recordings)
        except sqlite3.Error as exc:
            raise ImportWriteFailure(
                f"Failed to write batch of {len(recordings)} recordings: {exc}"
            ) from exc

    @staticmethod
    def _check_cancelled(should_cancel: CancelCheck | None) -> None:
        if should_cancel is not None and should_cancel():
            raise SyncCancelled("Sync cancelled")

    @staticmethod
    def _report(
        on_progress: ProgressCallback | None, current: int, total: int, name: str | None
    ) -> None:
        if on_progress is not None:
            on_progress(current, max(total, current), name)
