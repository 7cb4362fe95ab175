# ABOUTME: ArchiveExtractor for the zipped dataset of per-show and per-recording JSON files.
# ABOUTME: Members are read lazily from the open zip; nothing is unpacked to disk.

import logging
import zipfile
from collections.abc import Iterator
from pathlib import Path, PurePosixPath

from deadly.archive.source import ChunkProgress
from deadly.archive.types import ArchiveEntry
from deadly.errors import ExtractionFailure

logger = logging.getLogger(__name__)

SHOWS_DIR = "shows"
RECORDINGS_DIR = "recordings"


def _classify(member: str) -> str | None:
    """Return the record kind of a zip member, or None if it is not a record.

    Records are ``.json`` files whose parent directory is ``shows`` or
    ``recordings`` at any depth, so a zip wrapped in a top-level folder works.
    """
    path = PurePosixPath(member)
    if path.suffix.lower() != ".json" or path.name.startswith("."):
        return None
    if path.parent.name in (SHOWS_DIR, RECORDINGS_DIR):
        return path.parent.name
    return None


class ZipArchive:
    """An opened zip archive. Close it with cleanup()."""

    def __init__(self, zf: zipfile.ZipFile, shows: list[str], recordings: list[str]) -> None:
        self._zf = zf
        self._shows = shows
        self._recordings = recordings

    @property
    def show_count(self) -> int:
        return len(self._shows)

    @property
    def recording_count(self) -> int:
        return len(self._recordings)

    def shows(self) -> Iterator[ArchiveEntry]:
        return self._read(self._shows)

    def recordings(self) -> Iterator[ArchiveEntry]:
        return self._read(self._recordings)

    def cleanup(self) -> None:
        self._zf.close()

    def _read(self, members: list[str]) -> Iterator[ArchiveEntry]:
        for member in members:
            try:
                data = self._zf.read(member)
            except (zipfile.BadZipFile, OSError, ValueError) as exc:
                raise ExtractionFailure(f"Could not read {member}: {exc}") from exc
            yield ArchiveEntry(name=PurePosixPath(member).name, data=data)


class ZipArchiveExtractor:
    """Opens ``data.zip`` style archives."""

    def open(self, archive_path: Path, on_progress: ChunkProgress) -> ZipArchive:
        try:
            zf = zipfile.ZipFile(archive_path)
        except (zipfile.BadZipFile, OSError) as exc:
            raise ExtractionFailure(f"Could not open {archive_path}: {exc}") from exc

        members = [info.filename for info in zf.infolist() if not info.is_dir()]
        shows: list[str] = []
        recordings: list[str] = []
        for index, member in enumerate(members, start=1):
            kind = _classify(member)
            if kind == SHOWS_DIR:
                shows.append(member)
            elif kind == RECORDINGS_DIR:
                recordings.append(member)
            on_progress(index, len(members))

        if not shows:
            zf.close()
            raise ExtractionFailure(f"No show records found in {archive_path}")

        shows.sort()
        recordings.sort()
        logger.info(
            "Opened %s: %d shows, %d recordings", archive_path.name, len(shows), len(recordings)
        )
        return ZipArchive(zf, shows, recordings)
