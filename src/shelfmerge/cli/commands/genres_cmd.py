# ABOUTME: The `shelfmerge genres` and `normalize-genres` commands for genre normalization.
# ABOUTME: Lists the canonical genres, maps raw category strings, and rewrites stored genres.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from shelfmerge.cli.options import db_option, user_option
from shelfmerge.core.maintenance import renormalize_genres
from shelfmerge.db.catalog import LibraryCatalog
from shelfmerge.db.connection import DEFAULT_DB_PATH, open_library
from shelfmerge.metadata.genres import normalize_genre_list, standard_genres


@click.command("genres")
@click.argument("raw", nargs=-1)
def genres(raw: tuple[str, ...]) -> None:
    """Show canonical genres, or normalize RAW category strings."""
    console = Console()

    if not raw:
        for genre in standard_genres():
            console.print(genre)
        return

    table = Table()
    table.add_column("Raw")
    table.add_column("Genres", style="bold")
    for value in raw:
        normalized = normalize_genre_list(value)
        table.add_row(value, ", ".join(normalized) if normalized else "[dim]none[/dim]")
    console.print(table)


@click.command("normalize-genres")
@user_option
@db_option
@click.option("--dry-run", is_flag=True, default=False, help="Show changes without saving them.")
def normalize_genres_command(user_id: str, db_path: Path | None, dry_run: bool) -> None:
    """Re-run genre normalization over a user's stored books."""
    console = Console()
    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        report = renormalize_genres(LibraryCatalog(conn), user_id, dry_run=dry_run)
    finally:
        conn.close()

    if not report.changes:
        console.print(f"[green]All {report.total} genre(s) already normalized.[/green]")
        return

    table = Table(title="Genre changes (not saved)" if dry_run else "Genre changes")
    table.add_column("ID", style="dim", width=5)
    table.add_column("Title", style="bold")
    table.add_column("Old")
    table.add_column("New", style="green")
    for change in report.changes:
        table.add_row(str(change.book_id), change.title, change.old, change.new)
    console.print(table)
    verb = "would change" if dry_run else "changed"
    console.print(f"\n[dim]{len(report.changes)} {verb}, {report.unchanged} unchanged[/dim]")
