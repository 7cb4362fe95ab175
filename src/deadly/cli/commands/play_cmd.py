# ABOUTME: The `deadly play` command for recording that a show was played.
# ABOUTME: Play history feeds the recently played section of the home view.

import asyncio
from pathlib import Path

import click
from rich.console import Console

from deadly.cli.options import db_option
from deadly.db.catalog import ShowCatalog
from deadly.db.connection import DEFAULT_DB_PATH, open_archive

console = Console()


@click.command("play")
@click.argument("show_id")
@db_option
def play(show_id: str, db_path: Path | None) -> None:
    """Record a play of a show."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        catalog = ShowCatalog(gateway)
        record = catalog.get_show(show_id)
        if record is None:
            console.print(f"[red]Show {show_id} not found.[/red]")
            raise SystemExit(1)
        asyncio.run(catalog.record_show_play(show_id))

    console.print(f"Playing [bold]{record.metadata.display_title}[/bold]")
