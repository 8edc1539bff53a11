# ABOUTME: End-to-end tests for the shelfmerge CLI commands with a real database.
# ABOUTME: Drives import, ls, collections, genres, reverify, and lookup through Click's CliRunner.

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from shelfmerge.cli import cli
from shelfmerge.cli.commands import lookup_cmd
from shelfmerge.core.importer import MISSING_BOTH, PLACEHOLDER_DESCRIPTION
from shelfmerge.db.catalog import LibraryCatalog
from shelfmerge.db.connection import open_library
from shelfmerge.db.mapping import BookRecord
from shelfmerge.metadata.enricher import Enricher, EnrichmentSettings
from shelfmerge.metadata.http import HttpClient
from shelfmerge.metadata.types import (
    GOOGLE_BOOKS,
    HARDCOVER,
    OPEN_LIBRARY,
    WORLDCAT,
    CandidateRecord,
    EnrichedResult,
)
from tests.fakes import FakeAdapter

MARTIAN_DESCRIPTION = (
    "Six days ago, astronaut Mark Watney became one of the first people to walk on Mars. "
    "Now, he's sure he'll be the first person to die there, unless he can science his way home."
)


def import_args(export_file: Path, db_path: Path, *extra: str) -> list[str]:
    return ["import", str(export_file), "--user", "reader", "--db", str(db_path), *extra]


def stored_books(db_path: Path) -> list[BookRecord]:
    conn = open_library(db_path)
    try:
        return LibraryCatalog(conn).find_books("reader")
    finally:
        conn.close()


@pytest.fixture
def offline_enricher(monkeypatch: pytest.MonkeyPatch) -> None:
    """Replace the real sources with canned ones that only know The Martian."""

    def from_settings(cls: type, settings: EnrichmentSettings, http_client: HttpClient) -> Enricher:
        martian = CandidateRecord(
            title="The Martian",
            author="Andy Weir",
            source_name=HARDCOVER,
            isbn="9780553418026",
            cover_url="https://assets.hardcover.app/martian.jpg",
            description=MARTIAN_DESCRIPTION,
            genre_raw="Science Fiction",
        )
        return Enricher(
            [
                FakeAdapter(HARDCOVER, [martian]),
                FakeAdapter(GOOGLE_BOOKS),
                FakeAdapter(WORLDCAT),
                FakeAdapter(OPEN_LIBRARY),
            ],
            mode=settings.mode,
        )

    monkeypatch.setattr(Enricher, "from_settings", classmethod(from_settings))


class TestImportCommand:
    """E2E tests for shelfmerge import."""

    def test_import_without_enrichment(self, export_file: Path, db_path: Path) -> None:
        """Every valid row lands in the database and the summary says so."""
        result = CliRunner().invoke(cli, import_args(export_file, db_path, "--no-enrich"))

        assert result.exit_code == 0, result.output
        assert "3 imported" in result.output
        assert "Collections created" in result.output
        assert "not a Goodreads export" not in result.output
        titles = sorted(b.title for b in stored_books(db_path))
        assert titles[0] == "Atomic Habits"
        assert len(titles) == 3

    def test_reimport_skips_everything(self, export_file: Path, db_path: Path) -> None:
        """A second run over the same export finds only duplicates."""
        runner = CliRunner()
        runner.invoke(cli, import_args(export_file, db_path, "--no-enrich"))

        result = runner.invoke(cli, import_args(export_file, db_path, "--no-enrich"))

        assert result.exit_code == 0, result.output
        assert "3 skipped" in result.output
        assert "Collections created" not in result.output
        assert len(stored_books(db_path)) == 3

    def test_json_output_is_ndjson(self, export_file: Path, db_path: Path) -> None:
        """--json writes one event per line and ends with the complete event."""
        result = CliRunner().invoke(
            cli, import_args(export_file, db_path, "--no-enrich", "--json")
        )

        assert result.exit_code == 0, result.output
        events = [json.loads(line) for line in result.stdout.splitlines() if line.strip()]
        assert [e["type"] for e in events] == ["progress", "progress", "progress", "complete"]
        assert events[0]["total"] == 3
        assert "currentBook" in events[0]
        summary = events[-1]["result"]
        assert summary["imported"] == 3
        assert summary["failed"] == 0

    def test_enriched_import_flags_unmatched_books(
        self, export_file: Path, db_path: Path, offline_enricher: None
    ) -> None:
        """Matched books get a cover; the rest are flagged for verification."""
        result = CliRunner().invoke(cli, import_args(export_file, db_path, "--batch-size", "2"))

        assert result.exit_code == 0, result.output
        assert "Needs verification" in result.output
        books = {b.title: b for b in stored_books(db_path)}
        martian = books["The Martian"]
        assert martian.cover_url == "https://assets.hardcover.app/martian.jpg"
        assert martian.genre == "Science Fiction"
        assert martian.enrichment_sources == [HARDCOVER]
        assert not martian.needs_verification
        habits = books["Atomic Habits"]
        assert habits.verification_reason == "missing cover and description"
        assert habits.description == "No description available."

    def test_mode_reaches_the_enricher(
        self,
        export_file: Path,
        db_path: Path,
        offline_enricher: None,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """--mode picks which sources the enricher consults."""
        modes: list[str] = []
        build = Enricher.from_settings

        def recording(settings: EnrichmentSettings, http_client: HttpClient) -> Enricher:
            modes.append(settings.mode.value)
            return build(settings, http_client)

        monkeypatch.setattr(Enricher, "from_settings", recording)

        result = CliRunner().invoke(
            cli, import_args(export_file, db_path, "--mode", "hardcover-only")
        )

        assert result.exit_code == 0, result.output
        assert modes == ["hardcover-only"]
        books = {b.title: b for b in stored_books(db_path)}
        assert books["The Martian"].enrichment_sources == [HARDCOVER]

    def test_preview_imports_nothing(self, export_file: Path, db_path: Path) -> None:
        """--preview lists the parsed rows without touching the database."""
        result = CliRunner().invoke(cli, import_args(export_file, db_path, "--preview"))

        assert result.exit_code == 0, result.output
        assert "3 book(s) ready to import" in result.output
        assert "warning" in result.output
        assert not db_path.exists()

    def test_export_without_author_column_fails(self, tmp_path: Path, db_path: Path) -> None:
        """An export missing required columns exits non-zero with the reason."""
        bad = tmp_path / "bad.csv"
        bad.write_text("Title,ISBN\nDune,123\n", encoding="utf-8")

        result = CliRunner().invoke(cli, import_args(bad, db_path, "--no-enrich"))

        assert result.exit_code == 1
        assert "Import failed" in result.output
        assert "author" in result.output

    def test_non_utf8_export_fails_cleanly(self, tmp_path: Path, db_path: Path) -> None:
        """An export in another encoding is reported, not raised."""
        latin1 = tmp_path / "latin1.csv"
        latin1.write_bytes("Title,Author\nLes Mis\u00e9rables,Victor Hugo\n".encode("latin-1"))

        result = CliRunner().invoke(cli, import_args(latin1, db_path, "--no-enrich"))

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Import failed" in result.output
        assert "UTF-8" in result.output
        assert not db_path.exists()

    def test_non_utf8_export_json_error_event(self, tmp_path: Path, db_path: Path) -> None:
        latin1 = tmp_path / "latin1.csv"
        latin1.write_bytes("Title,Author\nLes Mis\u00e9rables,Victor Hugo\n".encode("latin-1"))

        result = CliRunner().invoke(cli, import_args(latin1, db_path, "--json"))

        assert result.exit_code == 1
        events = [json.loads(line) for line in result.stdout.splitlines() if line.strip()]
        assert len(events) == 1
        assert events[0]["type"] == "error"
        assert "UTF-8" in events[0]["error"]

    def test_generic_csv_warns_but_imports(self, tmp_path: Path, db_path: Path) -> None:
        """A plain title/author CSV is imported after a format warning."""
        generic = tmp_path / "books.csv"
        generic.write_text("Title,Author\nDune,Frank Herbert\n", encoding="utf-8")

        result = CliRunner().invoke(cli, import_args(generic, db_path, "--no-enrich"))

        assert result.exit_code == 0, result.output
        assert "not a Goodreads export" in result.output
        assert "1 imported" in result.output

    def test_missing_user_is_a_usage_error(self, export_file: Path) -> None:
        result = CliRunner().invoke(cli, ["import", str(export_file)])
        assert result.exit_code == 2
        assert "--user" in result.output


class TestLibraryCommands:
    """E2E tests for ls and collections after an import."""

    @pytest.fixture(autouse=True)
    def imported(self, export_file: Path, db_path: Path) -> None:
        result = CliRunner().invoke(cli, import_args(export_file, db_path, "--no-enrich"))
        assert result.exit_code == 0, result.output

    def test_ls_lists_books(self, db_path: Path) -> None:
        result = CliRunner().invoke(cli, ["ls", "--user", "reader", "--db", str(db_path)])
        assert result.exit_code == 0, result.output
        assert "3 book(s)" in result.output

    def test_ls_by_collection(self, db_path: Path) -> None:
        result = CliRunner().invoke(
            cli, ["ls", "--user", "reader", "--db", str(db_path), "--collection", "sci-fi"]
        )
        assert result.exit_code == 0, result.output
        assert "2 book(s)" in result.output

    def test_ls_other_user_is_empty(self, db_path: Path) -> None:
        result = CliRunner().invoke(cli, ["ls", "--user", "nobody", "--db", str(db_path)])
        assert result.exit_code == 0
        assert "No books in the library." in result.output

    def test_collections_shows_counts(self, db_path: Path) -> None:
        result = CliRunner().invoke(
            cli, ["collections", "--user", "reader", "--db", str(db_path)]
        )
        assert result.exit_code == 0, result.output
        assert "favorites" in result.output
        assert "self-improvement" in result.output


class TestGenresCommand:
    """E2E tests for shelfmerge genres."""

    def test_lists_canonical_genres(self) -> None:
        result = CliRunner().invoke(cli, ["genres"])
        assert result.exit_code == 0
        assert "Science Fiction" in result.output
        assert "Graphic Novel & Comics" in result.output

    def test_normalizes_raw_strings(self) -> None:
        result = CliRunner().invoke(cli, ["genres", "sci-fi, Thriller"])
        assert result.exit_code == 0
        assert "Science Fiction" in result.output
        assert "Mystery & Thriller" in result.output


class TestMaintenanceCommands:
    """E2E tests for reverify and normalize-genres on an imported library."""

    @pytest.fixture(autouse=True)
    def imported(self, export_file: Path, db_path: Path) -> None:
        result = CliRunner().invoke(cli, import_args(export_file, db_path, "--no-enrich"))
        assert result.exit_code == 0, result.output

    def update(self, db_path: Path, title: str, data: dict[str, object]) -> None:
        conn = open_library(db_path)
        try:
            catalog = LibraryCatalog(conn)
            (book,) = catalog.find_books("reader", title=title)
            catalog.update_book(book.id, data)
        finally:
            conn.close()

    def test_reverify_resolves_found_books(self, db_path: Path, offline_enricher: None) -> None:
        self.update(
            db_path,
            "The Martian",
            {"description": PLACEHOLDER_DESCRIPTION, "verification_reason": MISSING_BOTH},
        )

        result = CliRunner().invoke(
            cli, ["reverify", "--user", "reader", "--db", str(db_path), "--delay", "0"]
        )

        assert result.exit_code == 0, result.output
        assert "1 resolved" in result.output
        martian = {b.title: b for b in stored_books(db_path)}["The Martian"]
        assert martian.cover_url == "https://assets.hardcover.app/martian.jpg"
        assert martian.description == MARTIAN_DESCRIPTION
        assert not martian.needs_verification

    def test_reverify_with_nothing_flagged(self, db_path: Path, offline_enricher: None) -> None:
        result = CliRunner().invoke(cli, ["reverify", "--user", "reader", "--db", str(db_path)])
        assert result.exit_code == 0, result.output
        assert "No books need verification" in result.output

    def test_normalize_genres(self, db_path: Path) -> None:
        self.update(db_path, "Atomic Habits", {"genre": "self help"})
        args = ["normalize-genres", "--user", "reader", "--db", str(db_path)]

        preview = CliRunner().invoke(cli, [*args, "--dry-run"])
        assert preview.exit_code == 0, preview.output
        assert "1 would change" in preview.output
        habits = {b.title: b for b in stored_books(db_path)}["Atomic Habits"]
        assert habits.genre == "self help"

        result = CliRunner().invoke(cli, args)
        assert result.exit_code == 0, result.output
        assert "1 changed" in result.output
        habits = {b.title: b for b in stored_books(db_path)}["Atomic Habits"]
        assert habits.genre == "Self-Help & Personal Development"


class TestLookupCommand:
    """E2E tests for shelfmerge lookup with the network call stubbed out."""

    def test_json_result(self, monkeypatch: pytest.MonkeyPatch) -> None:
        seen: list[tuple[str | None, str, str]] = []

        async def fake_lookup(
            settings: EnrichmentSettings, isbn: str | None, title: str, author: str
        ) -> EnrichedResult:
            seen.append((isbn, title, author))
            return EnrichedResult(publisher="Crown", sources=(HARDCOVER, GOOGLE_BOOKS))

        monkeypatch.setattr(lookup_cmd, "_lookup", fake_lookup)

        result = CliRunner().invoke(
            cli,
            [
                "lookup",
                "--title",
                "The Martian",
                "--author",
                "Andy Weir",
                "--isbn",
                "978-0-553-41802-6",
                "--json",
            ],
        )

        assert result.exit_code == 0, result.output
        assert seen == [("9780553418026", "The Martian", "Andy Weir")]
        data = json.loads(result.stdout)
        assert data["publisher"] == "Crown"
        assert data["sources"] == [HARDCOVER, GOOGLE_BOOKS]

    def test_no_match_exits_non_zero(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def fake_lookup(*args: object) -> EnrichedResult:
            return EnrichedResult()

        monkeypatch.setattr(lookup_cmd, "_lookup", fake_lookup)

        result = CliRunner().invoke(
            cli, ["lookup", "--title", "Nothing", "--author", "Nobody"]
        )

        assert result.exit_code == 1
        assert "No acceptable match" in result.output
