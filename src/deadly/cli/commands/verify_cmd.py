# ABOUTME: The `deadly verify` command for checking archive consistency.
# ABOUTME: Detects library rows out of sync with shows and gaps in the search index.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from deadly.cli.options import db_option
from deadly.core.verifier import verify_archive
from deadly.db.connection import DEFAULT_DB_PATH, open_archive

console = Console()


@click.command("verify")
@db_option
def verify(db_path: Path | None) -> None:
    """Verify library state and search index consistency."""
    with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
        result = verify_archive(gateway)

    if result.total_issues > 0:
        table = Table()
        table.add_column("Show ID", style="bold")
        table.add_column("Check")
        table.add_column("Issue", style="red")

        for check, violations in (
            ("membership", result.membership),
            ("added_at", result.added_at),
            ("pinned", result.pinned),
            ("search index", result.search_index),
        ):
            for violation in violations:
                table.add_row(violation.show_id, check, violation.issue)

        console.print(table)
        console.print(
            f"\n[red]{result.total_issues} issue(s) found across "
            f"{result.shows_checked} show(s).[/red]"
        )
        raise SystemExit(1)

    console.print(f"[green]All {result.shows_checked} show(s) verified.[/green]")
