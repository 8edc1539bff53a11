# ABOUTME: The `shelfmerge import` command for importing a reading-library export.
# ABOUTME: Parses the CSV, enriches and stores each book, and reports progress as a bar or NDJSON.

import asyncio
import logging
import signal
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
from rich.table import Table

from shelfmerge.cli.options import (
    db_option,
    google_api_key_option,
    hardcover_token_option,
    mode_option,
    user_option,
)
from shelfmerge.core.importer import ImportOptions, stream_import
from shelfmerge.core.parser import (
    ExportFormatError,
    ParseResult,
    decode_export,
    detect_export_format,
    parse_export,
)
from shelfmerge.core.progress import CompleteEvent, ErrorEvent, ImportEvent, encode_event
from shelfmerge.db.catalog import LibraryCatalog
from shelfmerge.db.connection import DEFAULT_DB_PATH, open_library
from shelfmerge.metadata.enricher import Enricher, EnrichmentMode, EnrichmentSettings

logger = logging.getLogger(__name__)


def _make_progress(console: Console) -> Progress:
    """Create a Rich progress bar for the import run."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        console=console,
    )


def _install_cancel_handler(cancel: asyncio.Event) -> None:
    """First Ctrl-C stops the run after the current group instead of killing it."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
    except (NotImplementedError, RuntimeError):
        logger.debug("Graceful cancellation is not available on this platform")


def _print_preview(console: Console, parsed: ParseResult) -> None:
    table = Table(title="Preview")
    table.add_column("Row", style="dim", width=5)
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("ISBN")
    table.add_column("Status")
    table.add_column("Shelves")

    for book in parsed.books:
        table.add_row(
            str(book.row),
            book.title,
            book.author,
            book.isbn or "[dim]none[/dim]",
            book.reading_status.value,
            ", ".join(book.shelves),
        )

    console.print(table)
    console.print(f"\n[dim]{len(parsed.books)} book(s) ready to import[/dim]")
    _print_messages(console, parsed.errors, "red", "skipped")
    _print_messages(console, parsed.warnings, "yellow", "warning(s)")


def _print_messages(console: Console, messages: list[str], color: str, label: str) -> None:
    if not messages:
        return
    console.print(f"\n[{color}]{len(messages)} row(s) {label}:[/{color}]")
    for message in messages:
        console.print(f"  [dim]{message}[/dim]")


def _report_failure(console: Console, message: str, as_json: bool) -> None:
    if as_json:
        click.echo(encode_event(ErrorEvent(message)), nl=False)
    else:
        console.print(f"[red]Import failed:[/red] {message}")


def _print_summary(console: Console, result: dict) -> None:
    parts = []
    if result["imported"]:
        parts.append(f"[green]{result['imported']} imported[/green]")
    if result["skipped"]:
        parts.append(f"[yellow]{result['skipped']} skipped[/yellow]")
    if result["failed"]:
        parts.append(f"[red]{result['failed']} failed[/red]")
    console.print(", ".join(parts) or "[yellow]Nothing imported.[/yellow]")

    if result["cancelled"]:
        console.print("[yellow]Import cancelled before all books were processed.[/yellow]")

    if result["collectionsCreated"]:
        console.print(f"Collections created: {', '.join(result['collectionsCreated'])}")

    if result["errors"]:
        console.print(f"\n[red]{len(result['errors'])} book(s) could not be imported:[/red]")
        for error in result["errors"]:
            console.print(f"  [dim]Row {error['row']} {error['book']}:[/dim] {error['error']}")

    flagged = result["needsVerification"]
    if flagged:
        table = Table(title="Needs verification")
        table.add_column("ID", style="dim", width=5)
        table.add_column("Title", style="bold")
        table.add_column("Author")
        table.add_column("Reason", style="yellow")
        for flag in flagged:
            table.add_row(str(flag["bookId"]), flag["title"], flag["author"], flag["reason"])
        console.print(table)

    _print_messages(console, result["parseErrors"], "red", "skipped while parsing")


async def _run_import(
    text: str,
    catalog: LibraryCatalog,
    user_id: str,
    options: ImportOptions,
    settings: EnrichmentSettings,
    *,
    as_json: bool,
    console: Console,
) -> ImportEvent | None:
    cancel = asyncio.Event()
    _install_cancel_handler(cancel)

    async def consume(enricher: Enricher | None) -> ImportEvent | None:
        final: ImportEvent | None = None
        progress = None if as_json else _make_progress(console)
        task_id = progress.add_task("Importing", total=None) if progress else None
        if progress:
            progress.start()
        try:
            async for event in stream_import(
                text, catalog, user_id, options, enricher=enricher, cancel=cancel
            ):
                if as_json:
                    click.echo(encode_event(event), nl=False)
                elif isinstance(event, (CompleteEvent, ErrorEvent)):
                    pass
                elif progress is not None and task_id is not None:
                    progress.update(
                        task_id,
                        completed=event.current,
                        total=event.total,
                        description=event.current_book[:40],
                    )
                final = event
        finally:
            if progress:
                progress.stop()
        return final

    if not options.enrich:
        return await consume(None)

    async with settings.http_client() as http_client:
        return await consume(Enricher.from_settings(settings, http_client))


@click.command("import")
@click.argument(
    "export_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@user_option
@db_option
@click.option(
    "--skip-duplicates/--import-duplicates",
    default=True,
    help="Skip books already in the library (default: skip).",
)
@click.option(
    "--collections/--no-collections",
    "create_collections",
    default=True,
    help="Turn custom shelves into collections (default: on).",
)
@click.option(
    "--enrich/--no-enrich",
    default=True,
    help="Look up covers, descriptions, and genres online (default: on).",
)
@mode_option
@click.option(
    "--batch-size",
    type=click.IntRange(min=1),
    default=None,
    help="Books processed concurrently per group (default: 10 enriched, 50 plain).",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Write NDJSON events.")
@click.option("--preview", is_flag=True, default=False, help="Parse and show, import nothing.")
@hardcover_token_option
@google_api_key_option
def import_command(
    export_file: Path,
    user_id: str,
    db_path: Path | None,
    skip_duplicates: bool,
    create_collections: bool,
    enrich: bool,
    mode: str,
    batch_size: int | None,
    as_json: bool,
    preview: bool,
    hardcover_token: str | None,
    google_api_key: str | None,
) -> None:
    """Import a Goodreads CSV export into the library."""
    console = Console()
    try:
        text = decode_export(export_file.read_bytes())
    except ExportFormatError as exc:
        _report_failure(console, str(exc), as_json)
        raise SystemExit(1) from exc

    detection = detect_export_format(text)
    if not detection.is_goodreads:
        Console(stderr=True).print(
            "[yellow]Warning:[/yellow] not a Goodreads export; importing by title and author only."
        )

    if preview:
        try:
            parsed = parse_export(text)
        except ExportFormatError as exc:
            console.print(f"[red]{exc}[/red]")
            raise SystemExit(1) from exc
        _print_preview(console, parsed)
        return

    options = ImportOptions(
        skip_duplicates=skip_duplicates,
        create_collections=create_collections,
        enrich=enrich,
        batch_size=batch_size,
    )
    settings = EnrichmentSettings(
        mode=EnrichmentMode(mode),
        hardcover_token=hardcover_token,
        google_api_key=google_api_key,
    )

    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        final = asyncio.run(
            _run_import(
                text,
                LibraryCatalog(conn),
                user_id,
                options,
                settings,
                as_json=as_json,
                console=console,
            )
        )
    finally:
        conn.close()

    if isinstance(final, ErrorEvent):
        if not as_json:
            _report_failure(console, final.error, as_json)
        raise SystemExit(1)
    if isinstance(final, CompleteEvent) and not as_json:
        _print_summary(console, final.result)
