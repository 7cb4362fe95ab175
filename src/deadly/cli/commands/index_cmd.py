# ABOUTME: The `deadly index` command group for maintaining the search index.
# ABOUTME: Provides status, backfill, and rebuild subcommands.

import asyncio
from pathlib import Path

import click
from rich.console import Console

from deadly.cli.options import db_option
from deadly.db.catalog import ShowCatalog
from deadly.db.connection import DEFAULT_DB_PATH, open_archive
from deadly.db.search_index import SearchIndexer

console = Console()


@click.group("index")
def index() -> None:
    """Inspect and maintain the search index."""


@index.command("status")
@db_option
def index_status(db_path: Path | None) -> None:
    """Compare indexed entries with imported shows."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        indexed = SearchIndexer(gateway).count()
        shows = ShowCatalog(gateway).count_shows()

    style = "green" if indexed == shows else "yellow"
    console.print(f"[{style}]{indexed} of {shows} show(s) indexed.[/{style}]")


@index.command("backfill")
@db_option
def index_backfill(db_path: Path | None) -> None:
    """Index every show that has no entry."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        indexer = SearchIndexer(gateway)
        before = indexer.count()
        result = asyncio.run(indexer.backfill())
        after = indexer.count()

    if not result.success:
        console.print(f"[red]{result.message}[/red]")
        raise SystemExit(1)
    console.print(f"Indexed {after - before} show(s).")


@index.command("rebuild")
@db_option
def index_rebuild(db_path: Path | None) -> None:
    """Rebuild the whole index from stored shows."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        indexer = SearchIndexer(gateway)
        result = asyncio.run(indexer.rebuild())
        count = indexer.count()

    if not result.success:
        console.print(f"[red]{result.message}[/red]")
        raise SystemExit(1)
    console.print(f"Rebuilt index with {count} show(s).")
