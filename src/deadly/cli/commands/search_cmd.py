# ABOUTME: The `deadly search` command for full-text search of the archive.
# ABOUTME: Matches venues, dates, locations, songs, and lineup using SQLite FTS5.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from deadly.cli.options import db_option
from deadly.db.catalog import ShowCatalog
from deadly.db.connection import DEFAULT_DB_PATH, open_archive
from deadly.db.search_index import SearchIndexer
from deadly.errors import QueryFailure

console = Console()


@click.command("search")
@click.argument("query")
@click.option("--limit", type=click.IntRange(min=1), default=25, show_default=True)
@db_option
def search(query: str, limit: int, db_path: Path | None) -> None:
    """Search shows by venue, date, location, song, or band member."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        indexer = SearchIndexer(gateway)
        catalog = ShowCatalog(gateway)

        try:
            show_ids = indexer.search(query, limit)
        except QueryFailure as exc:
            console.print(f"[red]{exc}[/red]")
            raise SystemExit(1) from exc

        results = catalog.get_shows_by_ids(show_ids)

    if not results:
        console.print("[yellow]No results found.[/yellow]")
        return

    table = Table()
    table.add_column("Date", style="bold", width=10)
    table.add_column("Venue")
    table.add_column("Location")
    table.add_column("Lib", width=3)
    table.add_column("Show ID", style="dim")

    for record in results:
        meta = record.metadata
        marker = ""
        if record.is_in_library:
            marker = "*" if record.is_pinned else "+"
        table.add_row(meta.date, meta.venue_name, meta.location_display, marker, record.show_id)

    console.print(table)
    console.print(f"\n[dim]{len(results)} result(s)[/dim]")
