# ABOUTME: Import coordinator turning parsed export records into stored, enriched library books.
# ABOUTME: Runs records in ordered groups, counts partial failures, and streams progress events.

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from shelfmerge.core.collections import CollectionMap, materialize_collections
from shelfmerge.core.duplicates import DuplicateDetector
from shelfmerge.core.parser import ExportFormatError, ParsedBook, parse_export
from shelfmerge.core.progress import (
    CompleteEvent,
    ErrorEvent,
    ImportEvent,
    ProgressCallback,
    ProgressChannel,
    ProgressEvent,
)
from shelfmerge.db.store import LibraryStore
from shelfmerge.metadata.enricher import Enricher
from shelfmerge.metadata.types import EnrichedResult

logger = logging.getLogger(__name__)

ENRICHED_BATCH_SIZE = 10
PLAIN_BATCH_SIZE = 50
DEFAULT_BATCH_DELAY = 0.5
EXTERNAL_SOURCE = "goodreads"
PLACEHOLDER_DESCRIPTION = "No description available."

MISSING_COVER = "missing cover"
MISSING_DESCRIPTION = "missing description"
MISSING_BOTH = "missing cover and description"


@dataclass
class ImportOptions:
    """Run-time switches for one import run."""

    skip_duplicates: bool = True
    create_collections: bool = True
    enrich: bool = True
    batch_size: int | None = None
    batch_delay: float = DEFAULT_BATCH_DELAY

    @property
    def effective_batch_size(self) -> int:
        if self.batch_size and self.batch_size > 0:
            return self.batch_size
        return ENRICHED_BATCH_SIZE if self.enrich else PLAIN_BATCH_SIZE


@dataclass
class RowError:
    row: int
    book: str
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "book": self.book, "error": self.error}


@dataclass
class VerificationFlag:
    """An imported book whose cover or description could not be found."""

    book_id: int
    title: str
    author: str
    isbn: str | None
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "bookId": self.book_id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "reason": self.reason,
        }


@dataclass
class ImportResult:
    """Summary of an import run."""

    total_processed: int = 0
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[RowError] = field(default_factory=list)
    collections_created: list[str] = field(default_factory=list)
    needs_verification: list[VerificationFlag] = field(default_factory=list)
    parse_errors: list[str] = field(default_factory=list)
    cancelled: bool = False

    def to_dict(self) -> dict[str, Any]:
        """The external JSON shape (camelCase keys)."""
        return {
            "totalProcessed": self.total_processed,
            "imported": self.imported,
            "skipped": self.skipped,
            "failed": self.failed,
            "errors": [e.to_dict() for e in self.errors],
            "collectionsCreated": list(self.collections_created),
            "needsVerification": [f.to_dict() for f in self.needs_verification],
            "parseErrors": list(self.parse_errors),
            "cancelled": self.cancelled,
        }


def verification_reason(enriched: EnrichedResult) -> str | None:
    missing_cover = not enriched.cover_url
    missing_description = not enriched.description
    if missing_cover and missing_description:
        return MISSING_BOTH
    if missing_cover:
        return MISSING_COVER
    if missing_description:
        return MISSING_DESCRIPTION
    return None


def build_book_data(
    book: ParsedBook,
    enriched: EnrichedResult | None,
    reason: str | None = None,
) -> dict[str, Any]:
    """Merge a parsed record with its enrichment into create_book input.

    Values from the export win over enriched ones for fields the export
    carries (page count, publisher); covers and descriptions only come from
    enrichment.
    """
    enriched = enriched or EnrichedResult()
    description = enriched.description
    if reason and not description:
        description = PLACEHOLDER_DESCRIPTION

    published_date = enriched.published_date
    if not published_date and book.year_published:
        published_date = str(book.year_published)

    return {
        "title": book.title,
        "author": book.author,
        "isbn": book.isbn,
        "external_id": book.external_id,
        "external_source": EXTERNAL_SOURCE,
        "rating": book.rating,
        "review": book.review,
        "reading_status": book.reading_status,
        "total_pages": book.total_pages or enriched.page_count,
        "date_added": book.date_added,
        "date_finished": book.date_finished,
        "original_shelves": list(book.shelves),
        "genre": book.genre or enriched.genre,
        "cover_url": enriched.cover_url,
        "description": description,
        "publisher": book.publisher or enriched.publisher,
        "published_date": published_date,
        "enrichment_sources": list(enriched.sources),
        "verification_reason": reason,
    }


def chunked(items: Sequence[ParsedBook], size: int) -> list[Sequence[ParsedBook]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class ImportCoordinator:
    """Imports parsed records for one user into a LibraryStore.

    Records are processed in groups, strictly in order, with a pause between
    groups; records inside a group run concurrently. A failing record is
    counted and reported without stopping the run.
    """

    def __init__(
        self,
        store: LibraryStore,
        user_id: str,
        options: ImportOptions | None = None,
        enricher: Enricher | None = None,
    ) -> None:
        self._store = store
        self._user_id = user_id
        self._options = options or ImportOptions()
        self._enricher = enricher
        if self._options.enrich and enricher is None:
            raise ValueError("Enrichment is enabled but no enricher was provided")

    async def run(
        self,
        books: Sequence[ParsedBook],
        progress: ProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> ImportResult:
        """Import the books and return the run summary.

        Args:
            books: Parsed records, in export order.
            progress: Awaited with a ProgressEvent after each record completes.
            cancel: When set, the run stops before the next group starts.
        """
        result = ImportResult()
        total = len(books)

        detector = DuplicateDetector.from_records(self._store.find_books(self._user_id))
        collections = CollectionMap()
        if self._options.create_collections:
            collections = materialize_collections(self._store, self._user_id, books)
            result.collections_created.extend(collections.created)

        groups = chunked(books, self._options.effective_batch_size)
        for index, group in enumerate(groups):
            if cancel is not None and cancel.is_set():
                logger.info(
                    "Import cancelled after %d of %d record(s)", result.total_processed, total
                )
                result.cancelled = True
                break

            if index > 0 and self._options.batch_delay > 0:
                await asyncio.sleep(self._options.batch_delay)

            await asyncio.gather(
                *(
                    self._import_one(book, detector, collections, result, total, progress)
                    for book in group
                )
            )
            logger.info(
                "Group %d/%d done (%d/%d record(s))",
                index + 1,
                len(groups),
                result.total_processed,
                total,
            )

        return result

    async def _import_one(
        self,
        book: ParsedBook,
        detector: DuplicateDetector,
        collections: CollectionMap,
        result: ImportResult,
        total: int,
        progress: ProgressCallback | None,
    ) -> None:
        try:
            await self._import_record(book, detector, collections, result)
        except Exception as exc:
            logger.warning("Failed to import row %d (%s): %s", book.row, book.label, exc)
            result.failed += 1
            result.errors.append(RowError(row=book.row, book=book.label, error=str(exc)))

        result.total_processed += 1
        if progress is not None:
            await progress(
                ProgressEvent(current=result.total_processed, total=total, current_book=book.title)
            )

    async def _import_record(
        self,
        book: ParsedBook,
        detector: DuplicateDetector,
        collections: CollectionMap,
        result: ImportResult,
    ) -> None:
        if self._options.skip_duplicates and detector.is_duplicate(book):
            logger.debug("Skipping duplicate %s", book.label)
            result.skipped += 1
            return

        enriched: EnrichedResult | None = None
        reason: str | None = None
        if self._options.enrich and self._enricher is not None:
            enriched = await self._enricher.enrich(book.isbn, book.title, book.author)
            reason = verification_reason(enriched)

        data = build_book_data(book, enriched, reason)
        # No await below: one record's writes never interleave with another's.
        with self._store.transaction():
            record = self._store.create_book(self._user_id, data)
            for collection_id in collections.ids_for(book.shelves):
                self._store.link_book_to_collection(record.id, collection_id)

        result.imported += 1
        if reason:
            result.needs_verification.append(
                VerificationFlag(
                    book_id=record.id,
                    title=book.title,
                    author=book.author,
                    isbn=book.isbn,
                    reason=reason,
                )
            )


async def stream_import(
    text: str,
    store: LibraryStore,
    user_id: str,
    options: ImportOptions | None = None,
    *,
    enricher: Enricher | None = None,
    cancel: asyncio.Event | None = None,
    channel: ProgressChannel | None = None,
) -> AsyncIterator[ImportEvent]:
    """Parse and import an export, yielding progress events as they happen.

    Ends with exactly one CompleteEvent or ErrorEvent. Format errors and
    unexpected failures become an ErrorEvent instead of an exception.
    """
    channel = channel or ProgressChannel()

    async def produce() -> None:
        try:
            parsed = parse_export(text)
            if not parsed.books:
                await channel.put(ErrorEvent("No valid books found in export"))
                return
            coordinator = ImportCoordinator(store, user_id, options, enricher)
            result = await coordinator.run(parsed.books, progress=channel.put, cancel=cancel)
            result.parse_errors.extend(parsed.errors)
            await channel.put(CompleteEvent(result.to_dict()))
        except ExportFormatError as exc:
            await channel.put(ErrorEvent(str(exc)))
        except Exception as exc:
            logger.exception("Import failed")
            await channel.put(ErrorEvent(str(exc) or exc.__class__.__name__))
        finally:
            await channel.close()

    task = asyncio.create_task(produce())
    try:
        async for event in channel:
            yield event
    finally:
        if not task.done():
            task.cancel()
            channel.discard_pending()
        try:
            await task
        except asyncio.CancelledError:
            logger.info("Import stream closed before completion")
