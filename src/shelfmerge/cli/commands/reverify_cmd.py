# ABOUTME: The `shelfmerge reverify` command for retrying lookups of books flagged at import.
# ABOUTME: Fills missing covers and descriptions from the sources and clears resolved flags.

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from shelfmerge.cli.options import (
    db_option,
    google_api_key_option,
    hardcover_token_option,
    mode_option,
    user_option,
)
from shelfmerge.core.maintenance import DEFAULT_REVERIFY_DELAY, ReverifyResult, reverify_library
from shelfmerge.core.progress import ProgressEvent
from shelfmerge.db.catalog import LibraryCatalog
from shelfmerge.db.connection import DEFAULT_DB_PATH, open_library
from shelfmerge.metadata.enricher import Enricher, EnrichmentMode, EnrichmentSettings


async def _run(
    catalog: LibraryCatalog,
    user_id: str,
    settings: EnrichmentSettings,
    delay: float,
    console: Console,
) -> ReverifyResult:
    with Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task("Re-verifying", total=None)

        async def report(event: ProgressEvent) -> None:
            progress.update(
                task_id,
                completed=event.current,
                total=event.total,
                description=event.current_book[:40],
            )

        async with settings.http_client() as http_client:
            enricher = Enricher.from_settings(settings, http_client)
            return await reverify_library(
                catalog, user_id, enricher, progress=report, delay=delay
            )


def _print_result(console: Console, result: ReverifyResult) -> None:
    if not result.checked:
        console.print("[green]No books need verification.[/green]")
        return

    console.print(
        f"Checked {result.checked}: [green]{len(result.resolved)} resolved[/green], "
        f"[yellow]{len(result.improved)} improved[/yellow], "
        f"{result.unchanged} unchanged, [red]{result.failed} failed[/red]"
    )

    changed = result.resolved + result.improved
    if changed:
        table = Table()
        table.add_column("ID", style="dim", width=5)
        table.add_column("Title", style="bold")
        table.add_column("Still missing", style="yellow")
        for record in changed:
            table.add_row(str(record.id), record.title, record.verification_reason or "")
        console.print(table)

    for record, error in result.errors:
        console.print(f"  [dim]{record.title}:[/dim] {error}")


@click.command("reverify")
@user_option
@db_option
@mode_option
@click.option(
    "--delay",
    type=click.FloatRange(min=0),
    default=DEFAULT_REVERIFY_DELAY,
    show_default=True,
    help="Seconds to wait between books.",
)
@hardcover_token_option
@google_api_key_option
def reverify(
    user_id: str,
    db_path: Path | None,
    mode: str,
    delay: float,
    hardcover_token: str | None,
    google_api_key: str | None,
) -> None:
    """Look up books flagged for verification again and fill in what is found."""
    console = Console()
    settings = EnrichmentSettings(
        mode=EnrichmentMode(mode),
        hardcover_token=hardcover_token,
        google_api_key=google_api_key,
    )

    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        result = asyncio.run(_run(LibraryCatalog(conn), user_id, settings, delay, console))
    finally:
        conn.close()

    _print_result(console, result)
