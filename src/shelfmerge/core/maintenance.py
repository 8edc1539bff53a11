# ABOUTME: Follow-up passes over an already imported library.
# ABOUTME: Re-enriches books flagged for verification and re-normalizes stored genre strings.

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from shelfmerge.core.importer import PLACEHOLDER_DESCRIPTION, verification_reason
from shelfmerge.core.progress import ProgressCallback, ProgressEvent
from shelfmerge.db.catalog import LibraryCatalog
from shelfmerge.db.mapping import BookRecord
from shelfmerge.metadata.enricher import Enricher
from shelfmerge.metadata.genres import DEFAULT_MAX_GENRES, normalize_genres
from shelfmerge.metadata.types import EnrichedResult

logger = logging.getLogger(__name__)

DEFAULT_REVERIFY_DELAY = 0.2


@dataclass
class ReverifyResult:
    """Outcome of re-enriching the flagged books of one user."""

    checked: int = 0
    # Books whose cover and description are now both present.
    resolved: list[BookRecord] = field(default_factory=list)
    # Books that gained some fields but are still flagged.
    improved: list[BookRecord] = field(default_factory=list)
    unchanged: int = 0
    failed: int = 0
    errors: list[tuple[BookRecord, str]] = field(default_factory=list)


@dataclass
class GenreChange:
    book_id: int
    title: str
    old: str
    new: str


@dataclass
class GenreReport:
    total: int = 0
    changes: list[GenreChange] = field(default_factory=list)

    @property
    def unchanged(self) -> int:
        return self.total - len(self.changes)


def _has_real_description(record: BookRecord) -> bool:
    return bool(record.description) and record.description != PLACEHOLDER_DESCRIPTION


def merge_enrichment(record: BookRecord, enriched: EnrichedResult) -> dict[str, Any]:
    """Column updates that fill a stored book's gaps from a fresh lookup.

    Existing values are never overwritten, except the placeholder
    description. The verification reason is recomputed from the merged
    cover and description.
    """
    updates: dict[str, Any] = {}
    if enriched.cover_url and not record.cover_url:
        updates["cover_url"] = enriched.cover_url
    if enriched.description and not _has_real_description(record):
        updates["description"] = enriched.description
    if enriched.genre and not record.genre:
        updates["genre"] = enriched.genre
    if enriched.page_count and not record.total_pages:
        updates["total_pages"] = enriched.page_count
    if enriched.publisher and not record.publisher:
        updates["publisher"] = enriched.publisher
    if enriched.published_date and not record.published_date:
        updates["published_date"] = enriched.published_date
    if not updates:
        return {}

    new_sources = [s for s in enriched.sources if s not in record.enrichment_sources]
    if new_sources:
        updates["enrichment_sources"] = [*record.enrichment_sources, *new_sources]

    description = updates.get("description")
    if description is None and _has_real_description(record):
        description = record.description
    merged = EnrichedResult(
        cover_url=updates.get("cover_url", record.cover_url),
        description=description,
    )
    reason = verification_reason(merged)
    if reason != record.verification_reason:
        updates["verification_reason"] = reason
    return updates


async def reverify_library(
    catalog: LibraryCatalog,
    user_id: str,
    enricher: Enricher,
    *,
    progress: ProgressCallback | None = None,
    delay: float = DEFAULT_REVERIFY_DELAY,
) -> ReverifyResult:
    """Look up every book flagged for verification again and store what is found.

    Books are processed one at a time with ``delay`` seconds between them.
    A failing book is counted and reported without stopping the pass.
    """
    result = ReverifyResult()
    flagged = catalog.find_books(user_id, needs_verification=True)
    total = len(flagged)
    logger.info("Re-verifying %d flagged book(s) for %s", total, user_id)

    for index, record in enumerate(flagged):
        if index > 0 and delay > 0:
            await asyncio.sleep(delay)
        try:
            enriched = await enricher.enrich(record.isbn, record.title, record.author)
            updates = merge_enrichment(record, enriched)
            if updates:
                with catalog.transaction():
                    updated = catalog.update_book(record.id, updates)
                if updated.needs_verification:
                    result.improved.append(updated)
                else:
                    result.resolved.append(updated)
            else:
                result.unchanged += 1
        except Exception as exc:
            logger.warning("Failed to re-verify %r: %s", record.title, exc)
            result.failed += 1
            result.errors.append((record, str(exc)))

        result.checked += 1
        if progress is not None:
            await progress(
                ProgressEvent(current=result.checked, total=total, current_book=record.title)
            )

    return result


def renormalize_genres(
    catalog: LibraryCatalog,
    user_id: str,
    *,
    max_genres: int = DEFAULT_MAX_GENRES,
    dry_run: bool = False,
) -> GenreReport:
    """Run every stored genre string through the normalizer again.

    Only books whose normalized genre differs, and is not empty, are
    rewritten. With ``dry_run`` nothing is written.
    """
    report = GenreReport()
    changes: list[GenreChange] = []
    for record in catalog.find_books(user_id):
        if not record.genre:
            continue
        report.total += 1
        normalized = normalize_genres(record.genre, max_genres)
        if normalized and normalized != record.genre:
            changes.append(GenreChange(record.id, record.title, record.genre, normalized))

    if changes and not dry_run:
        with catalog.transaction():
            for change in changes:
                catalog.update_book(change.book_id, {"genre": change.new})
    logger.info("%d of %d genre(s) renormalized", len(changes), report.total)

    report.changes = changes
    return report
