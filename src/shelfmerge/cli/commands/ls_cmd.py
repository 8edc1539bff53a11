# ABOUTME: The `shelfmerge ls` command for listing a user's imported books.
# ABOUTME: Prints a Rich table, optionally limited to one collection or to flagged books.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from shelfmerge.cli.options import db_option, user_option
from shelfmerge.db.catalog import LibraryCatalog
from shelfmerge.db.connection import DEFAULT_DB_PATH, open_library


@click.command("ls")
@user_option
@db_option
@click.option(
    "--collection",
    "collection_filter",
    default=None,
    help="Only books in this collection.",
)
@click.option(
    "--needs-verification",
    is_flag=True,
    default=False,
    help="Only books imported without a cover or description.",
)
def ls(
    user_id: str,
    db_path: Path | None,
    collection_filter: str | None,
    needs_verification: bool,
) -> None:
    """List the books in a user's library."""
    console = Console()
    filters: dict[str, object] = {}
    if collection_filter:
        filters["collection"] = collection_filter
    if needs_verification:
        filters["needs_verification"] = True

    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        records = LibraryCatalog(conn).find_books(user_id, **filters)
    finally:
        conn.close()

    if not records:
        console.print("[yellow]No books in the library.[/yellow]")
        return

    table = Table()
    table.add_column("ID", style="dim", width=4)
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Status")
    table.add_column("Rating", width=6)
    table.add_column("Genre")
    table.add_column("Check", style="yellow")

    for record in records:
        table.add_row(
            str(record.id),
            record.title,
            record.author,
            record.reading_status,
            "★" * record.rating if record.rating else "",
            record.genre or "",
            record.verification_reason or "",
        )

    console.print(table)
    console.print(f"\n[dim]{len(records)} book(s)[/dim]")
