# ABOUTME: Shared Click options for shelfmatch CLI commands.
# ABOUTME: Provides reusable decorators for common flags like --db.

from pathlib import Path

import click

from shelfmatch.config import DEFAULT_DB_PATH

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help=f"Path to results database (default: $SHELFMATCH_DB_PATH or {DEFAULT_DB_PATH})",
)
