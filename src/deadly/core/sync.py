# ABOUTME: Runs download, extract, and the shows then recordings import as a state machine.
# ABOUTME: Publishes SyncProgress on a hot stream; any failure ends in a terminal ERROR phase.

import asyncio
import dataclasses
import enum
import logging
from dataclasses import dataclass
from pathlib import Path

from deadly.archive.release import DEFAULT_CACHE_DIR
from deadly.archive.source import ArchiveExtractor, ArchiveSource, ExtractedArchive
from deadly.clock import now_ms
from deadly.core.importer import DEFAULT_BATCH_SIZE, Importer
from deadly.core.streams import StateStream
from deadly.db.catalog import ShowCatalog
from deadly.db.gateway import StorageGateway
from deadly.db.search_index import SearchIndexer
from deadly.errors import (
    DeadlyError,
    DownloadFailure,
    ExtractionFailure,
    ImportWriteFailure,
    InvalidSyncTransition,
    SyncCancelled,
)

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Sync cancelled"


class SyncPhase(enum.Enum):
    IDLE = "idle"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    IMPORTING_SHOWS = "importing_shows"
    IMPORTING_RECORDINGS = "importing_recordings"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SyncPhase.COMPLETED, SyncPhase.ERROR)

    @property
    def is_running(self) -> bool:
        return self not in (SyncPhase.IDLE, SyncPhase.COMPLETED, SyncPhase.ERROR)


# Forward order of the pipeline. ERROR sits outside it.
_PIPELINE = (
    SyncPhase.IDLE,
    SyncPhase.DOWNLOADING,
    SyncPhase.EXTRACTING,
    SyncPhase.IMPORTING_SHOWS,
    SyncPhase.IMPORTING_RECORDINGS,
    SyncPhase.COMPLETED,
)

# Failure kind used when a phase raises something outside the taxonomy.
_PHASE_FAILURE: dict[SyncPhase, type[DeadlyError]] = {
    SyncPhase.DOWNLOADING: DownloadFailure,
    SyncPhase.EXTRACTING: ExtractionFailure,
    SyncPhase.IMPORTING_SHOWS: ImportWriteFailure,
    SyncPhase.IMPORTING_RECORDINGS: ImportWriteFailure,
}


@dataclass(frozen=True)
class SyncProgress:
    """Snapshot of the pipeline's position.

    ``current_items``/``total_items`` are bytes while downloading, archive
    members while extracting, and committed records while importing.
    """

    phase: SyncPhase = SyncPhase.IDLE
    current_items: int = 0
    total_items: int = 0
    current_item_name: str | None = None
    start_time: int | None = None
    error: str | None = None

    @property
    def percent(self) -> float:
        if self.total_items <= 0:
            return 0.0
        return self.current_items / self.total_items * 100.0


class SyncStatus(enum.Enum):
    SUCCESS = "success"
    ALREADY_EXISTS = "already_exists"
    ERROR = "error"


@dataclass(frozen=True)
class SyncResult:
    status: SyncStatus
    show_count: int = 0
    recording_count: int = 0
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is not SyncStatus.ERROR


class SyncOrchestrator:
    """Runs one sync at a time and reports progress.

    A run may start from IDLE or ERROR. It ends in COMPLETED or ERROR and
    stays there until reset() or the next start().
    """

    def __init__(
        self,
        gateway: StorageGateway,
        source: ArchiveSource,
        extractor: ArchiveExtractor,
        *,
        cache_dir: Path = DEFAULT_CACHE_DIR,
        batch_size: int = DEFAULT_BATCH_SIZE,
        catalog: ShowCatalog | None = None,
        indexer: SearchIndexer | None = None,
    ) -> None:
        self._source = source
        self._extractor = extractor
        self._cache_dir = cache_dir
        self._catalog = catalog or ShowCatalog(gateway)
        self._indexer = indexer or SearchIndexer(gateway)
        self._importer = Importer(gateway, self._catalog, batch_size=batch_size)
        self._progress: StateStream[SyncProgress] = StateStream(SyncProgress())
        self._cancel_requested = False

    @property
    def progress(self) -> StateStream[SyncProgress]:
        return self._progress

    @property
    def phase(self) -> SyncPhase:
        return self._progress.value.phase

    def cancel(self) -> None:
        """Ask a running sync to stop at the next batch boundary."""
        if self.phase.is_running:
            logger.info("Cancellation requested during %s", self.phase.value)
            self._cancel_requested = True

    def reset(self) -> None:
        """Return a finished run to IDLE.

        Raises:
            InvalidSyncTransition: A sync is still running.
        """
        if self.phase.is_running:
            raise InvalidSyncTransition(f"Cannot reset while {self.phase.value}")
        self._cancel_requested = False
        self._progress.publish(SyncProgress())

    async def sync_if_needed(self, *, force_download: bool = False) -> SyncResult:
        """Run a sync only when the archive has not been imported yet."""
        show_count = self._catalog.count_shows()
        recording_count = self._catalog.count_recordings()
        if show_count > 0 and recording_count > 0:
            logger.info(
                "Archive already imported (%d shows, %d recordings), skipping sync",
                show_count,
                recording_count,
            )
            return SyncResult(
                status=SyncStatus.ALREADY_EXISTS,
                show_count=show_count,
                recording_count=recording_count,
                message="Archive already imported",
            )
        return await self.start(force_download=force_download)

    async def start(self, *, force_download: bool = False) -> SyncResult:
        """Run the full pipeline.

        Raises:
            InvalidSyncTransition: Called while a run is active or completed.
            asyncio.CancelledError: The task running the sync was cancelled.
        """
        if self.phase not in (SyncPhase.IDLE, SyncPhase.ERROR):
            raise InvalidSyncTransition(f"Cannot start a sync from {self.phase.value}")

        self._cancel_requested = False
        self._progress.publish(
            SyncProgress(phase=SyncPhase.DOWNLOADING, start_time=now_ms())
        )
        logger.info("Sync started")

        archive: ExtractedArchive | None = None
        try:
            archive_path = await self._download(force_download)
            self._check_cancelled()

            self._enter(SyncPhase.EXTRACTING)
            archive = await self._extract(archive_path)
            self._check_cancelled()

            self._enter(SyncPhase.IMPORTING_SHOWS, total=archive.show_count)
            shows = await self._importer.import_shows(
                archive.shows(),
                total=archive.show_count,
                on_progress=self._reporter(SyncPhase.IMPORTING_SHOWS),
                should_cancel=self._should_cancel,
            )

            self._enter(SyncPhase.IMPORTING_RECORDINGS, total=archive.recording_count)
            recordings = await self._importer.import_recordings(
                archive.recordings(),
                total=archive.recording_count,
                on_progress=self._reporter(SyncPhase.IMPORTING_RECORDINGS),
                should_cancel=self._should_cancel,
            )

            backfill = await self._indexer.backfill()
            if not backfill.success:
                raise backfill.error

            archive.cleanup()
            archive = None
            self._enter(SyncPhase.COMPLETED)
        except asyncio.CancelledError:
            self._fail(CANCELLED_MESSAGE)
            raise
        except SyncCancelled:
            logger.info("Sync cancelled during %s", self.phase.value)
            self._fail(CANCELLED_MESSAGE)
            return SyncResult(status=SyncStatus.ERROR, message=CANCELLED_MESSAGE)
        except DeadlyError as exc:
            logger.error("Sync failed during %s: %s", self.phase.value, exc)
            self._fail(str(exc))
            return SyncResult(status=SyncStatus.ERROR, message=str(exc))
        except Exception as exc:
            failure_type = _PHASE_FAILURE.get(self.phase, DeadlyError)
            failure = failure_type(f"Unexpected error during {self.phase.value}: {exc}")
            logger.exception("Sync failed during %s", self.phase.value)
            self._fail(str(failure))
            return SyncResult(status=SyncStatus.ERROR, message=str(failure))
        finally:
            if archive is not None:
                self._discard(archive)

        logger.info(
            "Sync completed: %d shows, %d recordings (%d skipped)",
            shows.added,
            recordings.added,
            recordings.skipped,
        )
        return SyncResult(
            status=SyncStatus.SUCCESS,
            show_count=shows.added,
            recording_count=recordings.added,
            message=f"Imported {shows.added} shows and {recordings.added} recordings",
        )

    # --- phases ---

    async def _download(self, force: bool) -> Path:
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        return await asyncio.to_thread(
            self._source.fetch,
            self._cache_dir,
            self._threadsafe_reporter(SyncPhase.DOWNLOADING),
            force=force,
        )

    async def _extract(self, archive_path: Path) -> ExtractedArchive:
        return await asyncio.to_thread(
            self._extractor.open,
            archive_path,
            self._threadsafe_reporter(SyncPhase.EXTRACTING),
        )

    # --- state ---

    def _enter(self, phase: SyncPhase, total: int = 0) -> None:
        current = self._progress.value
        if _PIPELINE.index(phase) <= _PIPELINE.index(current.phase):
            raise InvalidSyncTransition(f"Cannot move from {current.phase.value} to {phase.value}")
        logger.info("Sync phase: %s", phase.value)
        self._progress.publish(
            SyncProgress(phase=phase, total_items=total, start_time=current.start_time)
        )

    def _advance(self, phase: SyncPhase, current: int, total: int, name: str | None) -> None:
        progress = self._progress.value
        # Reports can arrive from a worker thread after the phase moved on.
        if progress.phase is not phase:
            return
        self._progress.publish(
            dataclasses.replace(
                progress,
                current_items=max(current, progress.current_items),
                total_items=max(total, progress.total_items),
                current_item_name=name if name is not None else progress.current_item_name,
            )
        )

    def _fail(self, message: str) -> None:
        progress = self._progress.value
        self._progress.publish(
            dataclasses.replace(progress, phase=SyncPhase.ERROR, error=message)
        )

    def _reporter(self, phase: SyncPhase):
        def report(current: int, total: int, name: str | None) -> None:
            self._advance(phase, current, total, name)

        return report

    def _threadsafe_reporter(self, phase: SyncPhase):
        loop = asyncio.get_running_loop()

        def report(current: int, total: int) -> None:
            loop.call_soon_threadsafe(self._advance, phase, current, total, None)

        return report

    def _should_cancel(self) -> bool:
        return self._cancel_requested

    def _check_cancelled(self) -> None:
        if self._cancel_requested:
            raise SyncCancelled(CANCELLED_MESSAGE)

    @staticmethod
    def _discard(archive: ExtractedArchive) -> None:
        try:
            archive.cleanup()
        except Exception:
            logger.warning("Archive cleanup failed", exc_info=True)
