# ABOUTME: The `deadly library` command group for managing the user's library.
# ABOUTME: Provides ls, add, rm, pin, unpin, note, clear, unpin-all, and stats subcommands.

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from deadly.cli.options import db_option
from deadly.clock import now_ms
from deadly.core.result import OperationResult
from deadly.db.connection import DEFAULT_DB_PATH, open_archive
from deadly.db.library import LibraryStore

console = Console()


def _report(result: OperationResult, success_message: str) -> None:
    if not result.success:
        console.print(f"[red]{result.message}[/red]")
        raise SystemExit(1)
    console.print(success_message)


@click.group("library")
def library() -> None:
    """Manage the shows in your library."""


@library.command("ls")
@db_option
def library_ls(db_path: Path | None) -> None:
    """List library shows, pinned first."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        shows = LibraryStore(gateway).get_library_shows()

    if not shows:
        console.print("[yellow]Your library is empty.[/yellow]")
        return

    table = Table()
    table.add_column("Pin", width=3)
    table.add_column("Date", style="bold", width=10)
    table.add_column("Venue")
    table.add_column("Notes")
    table.add_column("Show ID", style="dim")

    for entry in shows:
        meta = entry.show.metadata
        table.add_row(
            "*" if entry.is_pinned else "",
            meta.date,
            meta.venue_name,
            entry.notes or "",
            entry.show_id,
        )

    console.print(table)
    console.print(f"\n[dim]{len(shows)} show(s)[/dim]")


@library.command("add")
@click.argument("show_id")
@db_option
def library_add(show_id: str, db_path: Path | None) -> None:
    """Add a show to the library."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        result = asyncio.run(LibraryStore(gateway).add_to_library(show_id, now_ms()))
    _report(result, f"Added [bold]{show_id}[/bold] to the library.")


@library.command("rm")
@click.argument("show_id")
@db_option
def library_rm(show_id: str, db_path: Path | None) -> None:
    """Remove a show from the library."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        result = asyncio.run(LibraryStore(gateway).remove_from_library(show_id))
    _report(result, f"Removed [bold]{show_id}[/bold] from the library.")


@library.command("pin")
@click.argument("show_id")
@db_option
def library_pin(show_id: str, db_path: Path | None) -> None:
    """Pin a library show to the top."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        result = asyncio.run(LibraryStore(gateway).update_pin_status(show_id, True))
    _report(result, f"Pinned [bold]{show_id}[/bold].")


@library.command("unpin")
@click.argument("show_id")
@db_option
def library_unpin(show_id: str, db_path: Path | None) -> None:
    """Unpin a library show."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        result = asyncio.run(LibraryStore(gateway).update_pin_status(show_id, False))
    _report(result, f"Unpinned [bold]{show_id}[/bold].")


@library.command("note")
@click.argument("show_id")
@click.argument("text", required=False)
@click.option("--clear", "clear_note", is_flag=True, default=False, help="Remove the note.")
@db_option
def library_note(
    show_id: str, text: str | None, clear_note: bool, db_path: Path | None
) -> None:
    """Set or clear the note on a library show."""
    if text is None and not clear_note:
        raise click.UsageError("Provide note TEXT or --clear.")
    notes = None if clear_note else text
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        result = asyncio.run(LibraryStore(gateway).update_library_notes(show_id, notes))
    _report(result, f"Updated notes for [bold]{show_id}[/bold].")


@library.command("clear")
@click.confirmation_option(prompt="Remove every show from the library?")
@db_option
def library_clear(db_path: Path | None) -> None:
    """Remove every show from the library."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        result = asyncio.run(LibraryStore(gateway).clear_library())
    _report(result, "Library cleared.")


@library.command("unpin-all")
@db_option
def library_unpin_all(db_path: Path | None) -> None:
    """Unpin every library show."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        result = asyncio.run(LibraryStore(gateway).unpin_all_shows())
    _report(result, "All shows unpinned.")


@library.command("stats")
@db_option
def library_stats(db_path: Path | None) -> None:
    """Show library totals."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        stats = LibraryStore(gateway).get_stats()
    console.print(f"{stats.total_shows} show(s), {stats.total_pinned} pinned")
