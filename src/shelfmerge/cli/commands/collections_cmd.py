# ABOUTME: The `shelfmerge collections` command for listing a user's collections.
# ABOUTME: Shows each collection with its colour and the number of books linked to it.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from shelfmerge.cli.options import db_option, user_option
from shelfmerge.db.catalog import LibraryCatalog
from shelfmerge.db.connection import DEFAULT_DB_PATH, open_library


@click.command("collections")
@user_option
@db_option
def collections(user_id: str, db_path: Path | None) -> None:
    """List collections created from imported shelves."""
    console = Console()
    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        rows = LibraryCatalog(conn).list_collections_with_counts(user_id)
    finally:
        conn.close()

    if not rows:
        console.print("[yellow]No collections.[/yellow]")
        return

    table = Table()
    table.add_column("Collection", style="bold")
    table.add_column("Books", justify="right")
    table.add_column("Colour")

    for collection, count in rows:
        colour = collection.color or ""
        swatch = f"[{colour}]■[/{colour}] {colour}" if colour else ""
        table.add_row(f"{collection.icon or ''} {collection.name}".strip(), str(count), swatch)

    console.print(table)
