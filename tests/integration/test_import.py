# ABOUTME: Integration tests for the import coordinator writing into a real SQLite catalog.
# ABOUTME: Checks per-record atomicity, collection links, and duplicate skipping on re-import.

from datetime import datetime, timezone

import pytest

from shelfmerge.core.importer import ImportCoordinator, ImportOptions
from shelfmerge.core.parser import ParsedBook, ReadingStatus
from shelfmerge.db.catalog import CatalogError, LibraryCatalog

ADDED = datetime(2024, 1, 15, tzinfo=timezone.utc)


def book(title: str, *shelves: str) -> ParsedBook:
    return ParsedBook(
        title=title,
        author="Frank Herbert",
        reading_status=ReadingStatus.WANT_TO_READ,
        date_added=ADDED,
        shelves=shelves,
    )


def coordinator(catalog: LibraryCatalog) -> ImportCoordinator:
    return ImportCoordinator(catalog, "reader", ImportOptions(enrich=False, batch_delay=0))


class TestImportIntoCatalog:
    """Tests for ImportCoordinator.run() against LibraryCatalog."""

    async def test_books_and_links_are_stored(self, catalog: LibraryCatalog) -> None:
        result = await coordinator(catalog).run(
            [book("Dune", "sci-fi", "favorites"), book("Children of Dune", "sci-fi")]
        )

        assert (result.imported, result.failed) == (2, 0)
        counts = {c.name: n for c, n in catalog.list_collections_with_counts("reader")}
        assert counts == {"favorites": 1, "sci-fi": 2}

    async def test_failed_link_leaves_no_book_row(
        self, catalog: LibraryCatalog, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def refuse(book_id: int, collection_id: int) -> None:
            raise CatalogError(f"Cannot link book {book_id} to collection {collection_id}")

        monkeypatch.setattr(catalog, "link_book_to_collection", refuse)

        result = await coordinator(catalog).run([book("Dune", "sci-fi")])

        assert result.failed == 1
        assert result.imported == 0
        assert "Cannot link" in result.errors[0].error
        assert catalog.count_books("reader") == 0

    async def test_failure_only_affects_its_own_record(
        self, catalog: LibraryCatalog, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def refuse(book_id: int, collection_id: int) -> None:
            raise CatalogError("link refused")

        monkeypatch.setattr(catalog, "link_book_to_collection", refuse)

        result = await coordinator(catalog).run([book("Dune", "sci-fi"), book("Dune Messiah")])

        assert (result.imported, result.failed) == (1, 1)
        assert [b.title for b in catalog.find_books("reader")] == ["Dune Messiah"]

    async def test_reimport_skips_stored_books(self, catalog: LibraryCatalog) -> None:
        books = [book("Dune", "sci-fi"), book("Dune Messiah")]
        await coordinator(catalog).run(books)

        result = await coordinator(catalog).run(books)

        assert (result.imported, result.skipped) == (0, 2)
        assert result.collections_created == []
        assert catalog.count_books("reader") == 2
