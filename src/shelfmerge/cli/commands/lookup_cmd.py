# ABOUTME: The `shelfmerge lookup` command for enriching a single book from the command line.
# ABOUTME: Queries the metadata sources and prints the fused cover, description, and genre.

import asyncio
import json
from dataclasses import asdict

import click
from rich.console import Console
from rich.table import Table

from shelfmerge.cli.options import google_api_key_option, hardcover_token_option, mode_option
from shelfmerge.metadata.enricher import Enricher, EnrichmentMode, EnrichmentSettings
from shelfmerge.metadata.isbn import clean_isbn
from shelfmerge.metadata.types import EnrichedResult


async def _lookup(
    settings: EnrichmentSettings, isbn: str | None, title: str, author: str
) -> EnrichedResult:
    async with settings.http_client() as http_client:
        enricher = Enricher.from_settings(settings, http_client)
        return await enricher.enrich(isbn, title, author)


@click.command("lookup")
@click.option("--title", required=True, help="Book title.")
@click.option("--author", required=True, help="Book author.")
@click.option("--isbn", default=None, help="ISBN-10 or ISBN-13, if known.")
@mode_option
@hardcover_token_option
@google_api_key_option
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the result as JSON.")
def lookup(
    title: str,
    author: str,
    isbn: str | None,
    mode: str,
    hardcover_token: str | None,
    google_api_key: str | None,
    as_json: bool,
) -> None:
    """Look up metadata for one book without storing anything."""
    console = Console()
    settings = EnrichmentSettings(
        mode=EnrichmentMode(mode),
        hardcover_token=hardcover_token,
        google_api_key=google_api_key,
    )
    result = asyncio.run(_lookup(settings, clean_isbn(isbn), title, author))

    if as_json:
        data = asdict(result)
        data["sources"] = list(result.sources)
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    if result.is_empty:
        console.print(f"[yellow]No acceptable match for {title} by {author}.[/yellow]")
        raise SystemExit(1)

    table = Table(title=f"{title} by {author}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Cover", result.cover_url or "[dim]none[/dim]")
    table.add_row("Genre", result.genre or "[dim]none[/dim]")
    table.add_row("Publisher", result.publisher or "[dim]none[/dim]")
    table.add_row("Published", result.published_date or "[dim]none[/dim]")
    table.add_row("Pages", str(result.page_count) if result.page_count else "[dim]none[/dim]")
    table.add_row("Sources", ", ".join(result.sources))
    if result.confidence is not None:
        table.add_row("Confidence", f"{result.confidence:.0%}")
    table.add_row("Description", result.description or "[dim]none[/dim]")
    console.print(table)
