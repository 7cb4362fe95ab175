# ABOUTME: Shared Click options for deadly CLI commands.
# ABOUTME: Provides reusable decorators for the database and download cache locations.

from pathlib import Path

import click

from deadly.archive.release import DEFAULT_CACHE_DIR
from deadly.db.connection import DEFAULT_DB_PATH

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help=f"Path to archive database (default: {DEFAULT_DB_PATH})",
)

cache_dir_option = click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help=f"Directory for the downloaded archive (default: {DEFAULT_CACHE_DIR})",
)
