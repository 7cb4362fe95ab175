# ABOUTME: The `deadly sync` command for downloading and importing the archive dataset.
# ABOUTME: Runs the sync pipeline with a rich progress bar and reports the outcome.

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)

from deadly.archive.extract import ZipArchiveExtractor
from deadly.archive.http import ArchiveHttpClient
from deadly.archive.release import DEFAULT_CACHE_DIR, GitHubReleaseSource
from deadly.archive.source import ArchiveSource, LocalArchiveSource
from deadly.cli.options import cache_dir_option, db_option
from deadly.core.importer import DEFAULT_BATCH_SIZE
from deadly.core.sync import SyncOrchestrator, SyncPhase, SyncProgress, SyncResult, SyncStatus
from deadly.db.connection import DEFAULT_DB_PATH, open_archive

console = Console()

_PHASE_LABELS = {
    SyncPhase.IDLE: "Waiting",
    SyncPhase.DOWNLOADING: "Downloading",
    SyncPhase.EXTRACTING: "Extracting",
    SyncPhase.IMPORTING_SHOWS: "Importing shows",
    SyncPhase.IMPORTING_RECORDINGS: "Importing recordings",
    SyncPhase.COMPLETED: "Completed",
    SyncPhase.ERROR: "Failed",
}


def _make_progress(console: Console) -> Progress:
    """Create a Rich progress bar for the sync phases."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        console=console,
        transient=True,
    )


def _run(orchestrator: SyncOrchestrator, force_download: bool, if_needed: bool) -> SyncResult:
    with _make_progress(console) as progress:
        task = progress.add_task(_PHASE_LABELS[SyncPhase.IDLE], total=None)

        def show(p: SyncProgress) -> None:
            progress.update(
                task,
                description=_PHASE_LABELS[p.phase],
                completed=p.current_items,
                total=p.total_items or None,
            )

        unsubscribe = orchestrator.progress.subscribe(show)
        try:
            if if_needed:
                return asyncio.run(orchestrator.sync_if_needed(force_download=force_download))
            return asyncio.run(orchestrator.start(force_download=force_download))
        finally:
            unsubscribe()


@click.command("sync")
@db_option
@cache_dir_option
@click.option(
    "--archive",
    "archive_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Import a local data.zip instead of downloading the latest release.",
)
@click.option(
    "--force-download",
    is_flag=True,
    default=False,
    help="Download the archive even if a cached copy exists.",
)
@click.option(
    "--if-needed",
    is_flag=True,
    default=False,
    help="Skip the sync when shows and recordings are already imported.",
)
@click.option(
    "--batch-size",
    type=click.IntRange(min=1),
    default=DEFAULT_BATCH_SIZE,
    show_default=True,
    help="Records committed per transaction.",
)
def sync(
    db_path: Path | None,
    cache_dir: Path | None,
    archive_path: Path | None,
    force_download: bool,
    if_needed: bool,
    batch_size: int,
) -> None:
    """Download the archive dataset and import it into the local database."""
    client: ArchiveHttpClient | None = None
    source: ArchiveSource
    if archive_path is not None:
        source = LocalArchiveSource(archive_path)
    else:
        client = ArchiveHttpClient()
        source = GitHubReleaseSource(client)

    try:
        with open_archive(db_path or DEFAULT_DB_PATH) as gateway:
            orchestrator = SyncOrchestrator(
                gateway,
                source,
                ZipArchiveExtractor(),
                cache_dir=cache_dir or DEFAULT_CACHE_DIR,
                batch_size=batch_size,
            )
            result = _run(orchestrator, force_download, if_needed)
    finally:
        if client is not None:
            client.close()

    if result.status is SyncStatus.ERROR:
        console.print(f"[red]Sync failed: {result.message}[/red]")
        raise SystemExit(1)

    if result.status is SyncStatus.ALREADY_EXISTS:
        console.print(
            f"[yellow]Archive already imported:[/yellow] {result.show_count} shows, "
            f"{result.recording_count} recordings."
        )
        return

    console.print(
        f"[green]Imported {result.show_count} shows and "
        f"{result.recording_count} recordings.[/green]"
    )
