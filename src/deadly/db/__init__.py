# ABOUTME: Public API for the deadly archive database layer.
# ABOUTME: Exports connection management, catalog queries, and stored record types.

from deadly.db.catalog import ShowCatalog
from deadly.db.connection import DEFAULT_DB_PATH, SqliteGateway, open_archive
from deadly.db.gateway import StorageGateway
from deadly.db.mapping import LibraryShow, LibraryStats, RecentPlay, ShowRecord

__all__ = [
    "DEFAULT_DB_PATH",
    "LibraryShow",
    "LibraryStats",
    "RecentPlay",
    "ShowCatalog",
    "ShowRecord",
    "SqliteGateway",
    "StorageGateway",
    "open_archive",
]
