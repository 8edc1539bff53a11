# ABOUTME: CLI package for shelfmerge, built on Click.
# ABOUTME: Defines the root command group, configures logging, and registers subcommands.

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from shelfmerge.cli.commands import (
    collections_cmd,
    genres_cmd,
    import_cmd,
    lookup_cmd,
    ls_cmd,
    reverify_cmd,
)


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr through Rich; DEBUG when verbose, else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                rich_tracebacks=True,
                show_path=False,
            )
        ],
        force=True,
    )
    # httpx logs every request at INFO/DEBUG; keep it quiet unless asked.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.INFO if verbose else logging.WARNING)


@click.group()
@click.version_option(package_name="shelfmerge")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """shelfmerge - import and enrich a reading-library export."""
    configure_logging(verbose)


cli.add_command(import_cmd.import_command)
cli.add_command(lookup_cmd.lookup)
cli.add_command(ls_cmd.ls)
cli.add_command(collections_cmd.collections)
cli.add_command(genres_cmd.genres)
cli.add_command(genres_cmd.normalize_genres_command)
cli.add_command(reverify_cmd.reverify)
