# ABOUTME: CLI package for shelfmatch, built on Click.
# ABOUTME: Defines the root command group, logging setup, and registers subcommands.

import logging

import click
from rich.logging import RichHandler

from shelfmatch.cli.commands import match_cmd, results_cmd


@click.group()
@click.version_option(package_name="shelfmatch")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """shelfmatch - match retail shelf photos against a product catalog."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


cli.add_command(match_cmd.match)
cli.add_command(results_cmd.results)
