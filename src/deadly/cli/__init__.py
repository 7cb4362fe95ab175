# ABOUTME: CLI package for deadly, built on Click.
# ABOUTME: Defines the root command group, configures logging, and registers subcommands.

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from deadly.cli.commands import (
    home_cmd,
    index_cmd,
    info_cmd,
    library_cmd,
    play_cmd,
    search_cmd,
    sync_cmd,
    verify_cmd,
)


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(package_name="deadly")
@click.option("-v", "--verbose", count=True, help="Log progress (-v) or debug detail (-vv).")
def cli(verbose: int) -> None:
    """deadly - sync, search, and curate a live-music archive."""
    _configure_logging(verbose)


cli.add_command(sync_cmd.sync)
cli.add_command(search_cmd.search)
cli.add_command(info_cmd.info)
cli.add_command(home_cmd.home)
cli.add_command(library_cmd.library)
cli.add_command(play_cmd.play)
cli.add_command(index_cmd.index)
cli.add_command(verify_cmd.verify)
