# ABOUTME: Collaborator protocols for fetching and opening the archive dataset.
# ABOUTME: The sync pipeline depends only on these; LocalArchiveSource serves files already on disk.

import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Protocol, runtime_checkable

from deadly.archive.types import ArchiveEntry
from deadly.errors import DownloadFailure

logger = logging.getLogger(__name__)

# (current, total) in bytes for fetching, in entries for extraction
ChunkProgress = Callable[[int, int], None]


@runtime_checkable
class ArchiveSource(Protocol):
    """Produces a local copy of the archive dataset."""

    def fetch(self, dest_dir: Path, on_progress: ChunkProgress, *, force: bool = False) -> Path:
        """Make the archive available under ``dest_dir`` and return its path.

        Raises:
            DownloadFailure: The archive could not be obtained.
        """
        ...


@runtime_checkable
class ExtractedArchive(Protocol):
    """An opened archive whose records can be iterated lazily."""

    @property
    def show_count(self) -> int: ...

    @property
    def recording_count(self) -> int: ...

    def shows(self) -> Iterator[ArchiveEntry]: ...

    def recordings(self) -> Iterator[ArchiveEntry]: ...

    def cleanup(self) -> None: ...


@runtime_checkable
class ArchiveExtractor(Protocol):
    """Opens a fetched archive file."""

    def open(self, archive_path: Path, on_progress: ChunkProgress) -> ExtractedArchive:
        """Open the archive and index its records.

        Raises:
            ExtractionFailure: The archive is unreadable or has no records.
        """
        ...


class LocalArchiveSource:
    """An ArchiveSource for an archive file that already exists locally."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def fetch(self, dest_dir: Path, on_progress: ChunkProgress, *, force: bool = False) -> Path:
        if not self._path.is_file():
            raise DownloadFailure(f"Archive not found: {self._path}")
        size = self._path.stat().st_size
        on_progress(size, size)
        logger.info("Using local archive %s (%d bytes)", self._path, size)
        return self._path
