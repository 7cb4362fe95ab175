# ABOUTME: Shared pytest fixtures for deadly tests.
# ABOUTME: Provides temporary archive databases, seeded catalogs, and sample data.zip files.

import asyncio
from collections.abc import Iterator
from pathlib import Path

import pytest

from deadly.core.importer import Importer
from deadly.db.catalog import ShowCatalog
from deadly.db.connection import SqliteGateway, open_archive
from deadly.db.library import LibraryStore
from deadly.db.search_index import SearchIndexer
from tests.fixtures.archive_records import (
    CORNELL_77,
    CORNELL_AUD,
    CORNELL_SBD,
    ENGLAND_72,
    ENGLAND_SBD,
    WINTERLAND_77,
    entries,
    make_recording,
    write_archive_zip,
)

SAMPLE_SHOWS = [CORNELL_77, ENGLAND_72, WINTERLAND_77]
SAMPLE_RECORDINGS = [
    CORNELL_SBD,
    CORNELL_AUD,
    ENGLAND_SBD,
    make_recording("gd77-06-09.sbd.miller.1111.shnf", source_type="SBD", rating=4.7),
]


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "archive.db"


@pytest.fixture
def gateway(db_path: Path) -> Iterator[SqliteGateway]:
    """An empty, migrated archive database."""
    gw = open_archive(db_path)
    yield gw
    gw.close()


@pytest.fixture
def catalog(gateway: SqliteGateway) -> ShowCatalog:
    return ShowCatalog(gateway)


@pytest.fixture
def indexer(gateway: SqliteGateway) -> SearchIndexer:
    return SearchIndexer(gateway)


@pytest.fixture
def library(gateway: SqliteGateway) -> LibraryStore:
    return LibraryStore(gateway)


@pytest.fixture
def seeded_gateway(gateway: SqliteGateway, catalog: ShowCatalog) -> SqliteGateway:
    """A database with three imported shows and their recordings."""
    importer = Importer(gateway, catalog)
    asyncio.run(importer.import_shows(entries(SAMPLE_SHOWS)))
    asyncio.run(importer.import_recordings(entries(SAMPLE_RECORDINGS)))
    return gateway


@pytest.fixture
def archive_zip(tmp_path: Path) -> Path:
    """A data.zip holding the sample shows and recordings."""
    return write_archive_zip(tmp_path / "data.zip", SAMPLE_SHOWS, SAMPLE_RECORDINGS)
