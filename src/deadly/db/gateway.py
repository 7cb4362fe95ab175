# ABOUTME: StorageGateway protocol shared by every storage driver.
# ABOUTME: Components depend on this contract; the SQLite driver lives in connection.py.

import sqlite3
from collections.abc import Callable, Iterable, Sequence
from contextlib import AbstractContextManager
from typing import Any, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")

ChangeListener = Callable[[frozenset[str]], None]


@runtime_checkable
class StorageGateway(Protocol):
    """Data-access contract over the archive's relational store.

    Reads run synchronously against committed state. Writes go through
    ``write``, which serializes writers, runs the work inside one transaction,
    and notifies listeners of the declared tables after commit.
    """

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]: ...

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None: ...

    def transaction(self, *tables: str) -> AbstractContextManager[sqlite3.Connection]: ...

    async def write(
        self, work: Callable[[sqlite3.Connection], T], *, tables: Iterable[str]
    ) -> T: ...

    def add_listener(
        self, tables: Iterable[str], callback: ChangeListener
    ) -> Callable[[], None]: ...

    def close(self) -> None: ...
