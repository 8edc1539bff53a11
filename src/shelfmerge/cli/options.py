# ABOUTME: Shared Click options for shelfmerge CLI commands.
# ABOUTME: Reusable decorators for the database, user, enrichment mode, and API credentials.

from pathlib import Path

import click

from shelfmerge.db.connection import DEFAULT_DB_PATH
from shelfmerge.metadata.enricher import EnrichmentMode

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help=f"Path to library database (default: {DEFAULT_DB_PATH})",
)

user_option = click.option(
    "--user",
    "user_id",
    required=True,
    help="Owner of the library records.",
)

mode_option = click.option(
    "--mode",
    type=click.Choice([m.value for m in EnrichmentMode]),
    default=EnrichmentMode.FULL.value,
    show_default=True,
    help="Which sources to consult when enriching.",
)

hardcover_token_option = click.option(
    "--hardcover-token",
    envvar="HARDCOVER_API_TOKEN",
    default=None,
    help="Hardcover API token (or set HARDCOVER_API_TOKEN).",
)

google_api_key_option = click.option(
    "--google-api-key",
    envvar="GOOGLE_BOOKS_API_KEY",
    default=None,
    help="Google Books API key (or set GOOGLE_BOOKS_API_KEY).",
)
