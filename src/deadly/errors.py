# ABOUTME: Exception taxonomy shared by the sync pipeline, search index, and library store.
# ABOUTME: Pipeline failures are raised; library and index mutations wrap them in results.


class DeadlyError(Exception):
    """Base class for all errors raised by the archive engine."""


class DownloadFailure(DeadlyError):
    """Raised when the archive dataset cannot be fetched."""


class ExtractionFailure(DeadlyError):
    """Raised when the downloaded archive cannot be opened or read."""


class ParseFailure(DeadlyError):
    """Raised when an archive record is malformed."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Malformed record {name}: {reason}")
        self.name = name
        self.reason = reason


class ImportWriteFailure(DeadlyError):
    """Raised when a batch of show or recording rows fails to commit."""


class IndexWriteFailure(DeadlyError):
    """Raised when search index rows fail to commit."""


class LibraryOperationFailure(DeadlyError):
    """A library mutation could not be applied."""


class NotInLibrary(LibraryOperationFailure):
    """The show must be in the library for this operation."""

    def __init__(self, show_id: str) -> None:
        super().__init__(f"Show {show_id} is not in the library")
        self.show_id = show_id


class ShowNotFound(LibraryOperationFailure):
    """The show does not exist in the archive."""

    def __init__(self, show_id: str) -> None:
        super().__init__(f"Show {show_id} not found")
        self.show_id = show_id


class QueryFailure(DeadlyError):
    """Raised when a search query cannot be executed."""


class SyncCancelled(DeadlyError):
    """Raised inside the pipeline when a cancellation request is observed."""


class InvalidSyncTransition(DeadlyError):
    """Raised when the sync state machine is driven out of order."""
