# ABOUTME: The `deadly info` command for displaying a show's details.
# ABOUTME: Shows metadata, setlist, lineup, library state, and recordings for one show.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from deadly.cli.options import db_option
from deadly.db.catalog import ShowCatalog
from deadly.db.connection import DEFAULT_DB_PATH, open_archive
from deadly.db.library import LibraryStore

console = Console()


@click.command("info")
@click.argument("show_id")
@db_option
def info(show_id: str, db_path: Path | None) -> None:
    """Show detailed metadata for a show by ID."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        catalog = ShowCatalog(gateway)
        record = catalog.get_show(show_id)

        if record is None:
            console.print(f"[red]Show {show_id} not found.[/red]")
            raise SystemExit(1)

        library_entry = LibraryStore(gateway).get_library_show(show_id)
        recordings = catalog.get_recordings_for_show(show_id)

    meta = record.metadata
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Field", style="bold", width=14)
    table.add_column("Value")

    table.add_row("ID", meta.show_id)
    table.add_row("Date", meta.date)
    table.add_row("Band", meta.band)
    table.add_row("Venue", meta.venue_name)
    if meta.location_display:
        table.add_row("Location", meta.location_display)
    if meta.average_rating is not None:
        table.add_row("Rating", f"{meta.average_rating:.2f} ({meta.total_reviews} reviews)")
    for s in meta.setlist:
        songs = ", ".join(song.name + (" >" if song.segue_into_next else "") for song in s.songs)
        table.add_row(s.name or "Set", songs)
    if meta.lineup:
        table.add_row("Lineup", ", ".join(meta.member_names))
    if library_entry is not None:
        state = "pinned" if library_entry.is_pinned else "in library"
        table.add_row("Library", state)
        if library_entry.notes:
            table.add_row("Notes", library_entry.notes)
    if meta.url:
        table.add_row("URL", meta.url)

    console.print(table)

    if recordings:
        rec_table = Table(title="Recordings")
        rec_table.add_column("Identifier", style="bold")
        rec_table.add_column("Source", width=6)
        rec_table.add_column("Rating", justify="right")
        rec_table.add_column("Reviews", justify="right")
        for rec in recordings:
            best = " [green](best)[/green]" if rec.identifier == meta.best_recording_id else ""
            rec_table.add_row(
                rec.identifier + best,
                rec.source_type or "?",
                f"{rec.rating:.2f}",
                str(rec.review_count),
            )
        console.print(rec_table)
