# ABOUTME: Unit tests for opening zipped archive datasets.
# ABOUTME: Checks member classification, lazy reads, progress, and unreadable archives.

from pathlib import Path

import pytest

from deadly.archive.extract import ZipArchiveExtractor
from deadly.archive.parser import parse_show_entry
from deadly.archive.source import ArchiveExtractor, ExtractedArchive
from deadly.errors import ExtractionFailure
from tests.fixtures.archive_records import CORNELL_77, CORNELL_SBD, ENGLAND_72, write_archive_zip


def _noop(current: int, total: int) -> None:
    pass


class TestZipArchiveExtractor:
    """Tests for ZipArchiveExtractor.open()."""

    def test_satisfies_protocols(self, archive_zip: Path) -> None:
        extractor = ZipArchiveExtractor()
        assert isinstance(extractor, ArchiveExtractor)
        archive = extractor.open(archive_zip, _noop)
        assert isinstance(archive, ExtractedArchive)
        archive.cleanup()

    def test_counts_records(self, archive_zip: Path) -> None:
        archive = ZipArchiveExtractor().open(archive_zip, _noop)
        assert archive.show_count == 3
        assert archive.recording_count == 4
        archive.cleanup()

    def test_entries_are_sorted_basenames(self, archive_zip: Path) -> None:
        archive = ZipArchiveExtractor().open(archive_zip, _noop)
        names = [e.name for e in archive.shows()]
        archive.cleanup()
        assert names == sorted(names)
        assert names[0] == "1972-04-07-wembley-empire-pool-london-england.json"

    def test_entries_parse(self, archive_zip: Path) -> None:
        archive = ZipArchiveExtractor().open(archive_zip, _noop)
        shows = [parse_show_entry(e) for e in archive.shows()]
        archive.cleanup()
        assert {s.venue_name for s in shows} >= {"Wembley Empire Pool", "Winterland Arena"}

    def test_nested_top_level_folder(self, tmp_path: Path) -> None:
        """Records inside a wrapping directory are still found."""
        path = write_archive_zip(
            tmp_path / "data.zip", [CORNELL_77, ENGLAND_72], [CORNELL_SBD], prefix="data-v1/"
        )
        archive = ZipArchiveExtractor().open(path, _noop)
        assert (archive.show_count, archive.recording_count) == (2, 1)
        archive.cleanup()

    def test_reports_progress_per_member(self, archive_zip: Path) -> None:
        progress: list[tuple[int, int]] = []
        archive = ZipArchiveExtractor().open(archive_zip, lambda c, t: progress.append((c, t)))
        archive.cleanup()
        # 3 shows, 4 recordings, README
        assert progress == [(i, 8) for i in range(1, 9)]

    def test_not_a_zip(self, tmp_path: Path) -> None:
        path = tmp_path / "data.zip"
        path.write_bytes(b"not a zip")
        with pytest.raises(ExtractionFailure, match="Could not open"):
            ZipArchiveExtractor().open(path, _noop)

    def test_no_shows(self, tmp_path: Path) -> None:
        path = write_archive_zip(tmp_path / "data.zip", [], [CORNELL_SBD])
        with pytest.raises(ExtractionFailure, match="No show records"):
            ZipArchiveExtractor().open(path, _noop)
