# ABOUTME: The `deadly home` command for the home overview.
# ABOUTME: Prints today in history, recently played shows, and featured collections.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from deadly.cli.options import db_option
from deadly.core.home import HomeService
from deadly.db.connection import DEFAULT_DB_PATH, open_archive
from deadly.db.mapping import ShowRecord

console = Console()


def _show_table(title: str, shows: list[ShowRecord]) -> Table:
    table = Table(title=title, title_justify="left")
    table.add_column("Date", style="bold", width=10)
    table.add_column("Venue")
    table.add_column("Location")
    table.add_column("Show ID", style="dim")
    for record in shows:
        meta = record.metadata
        table.add_row(meta.date, meta.venue_name, meta.location_display, record.show_id)
    return table


@click.command("home")
@db_option
def home(db_path: Path | None) -> None:
    """Show today in history, recent plays, and featured collections."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        service = HomeService(gateway)
        content = service.home_content.value
        service.close()

    if not content.has_content:
        console.print("[yellow]Nothing to show yet. Run `deadly sync` first.[/yellow]")
        return

    if content.today_in_history:
        console.print(_show_table("Today in History", list(content.today_in_history)))

    if content.recent_shows:
        console.print(
            _show_table("Recently Played", [play.show for play in content.recent_shows])
        )

    if content.featured_collections:
        table = Table(title="Featured Collections", title_justify="left")
        table.add_column("Collection", style="bold")
        table.add_column("Shows", justify="right")
        table.add_column("Description")
        for collection in content.featured_collections:
            table.add_row(
                collection.name, collection.show_count_text, collection.display_description
            )
        console.print(table)
