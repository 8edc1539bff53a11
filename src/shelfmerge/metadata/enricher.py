# ABOUTME: Enricher fanning a book lookup out to the source adapters and fusing the results.
# ABOUTME: Chooses which sources to query per EnrichmentMode and ranks each source's hits.

import asyncio
import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from shelfmerge.metadata.context import EnrichmentContext, MatchThresholds
from shelfmerge.metadata.fusion import fuse
from shelfmerge.metadata.googlebooks import GoogleBooksAdapter
from shelfmerge.metadata.hardcover import HardcoverAdapter
from shelfmerge.metadata.http import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    HttpClient,
    RetryingHttpClient,
)
from shelfmerge.metadata.openlibrary import OpenLibraryAdapter
from shelfmerge.metadata.provider import SourceAdapter
from shelfmerge.metadata.scoring import ExpectedBook, evaluate_candidate, rank_candidates
from shelfmerge.metadata.types import (
    GOOGLE_BOOKS,
    HARDCOVER,
    OPEN_LIBRARY,
    WORLDCAT,
    CandidateRecord,
    EnrichedResult,
    ScoredCandidate,
)
from shelfmerge.metadata.worldcat import WorldCatAdapter

logger = logging.getLogger(__name__)

# Sources queried when the primary source leaves gaps.
FALLBACK_SOURCES: tuple[str, ...] = (GOOGLE_BOOKS, WORLDCAT, OPEN_LIBRARY)


class EnrichmentMode(enum.Enum):
    FULL = "full"
    HARDCOVER_ONLY = "hardcover-only"


@dataclass
class EnrichmentSettings:
    """Run-time configuration for enrichment, populated from CLI options."""

    mode: EnrichmentMode = EnrichmentMode.FULL
    thresholds: MatchThresholds = field(default_factory=MatchThresholds)
    hardcover_token: str | None = None
    google_api_key: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY

    def http_client(self) -> RetryingHttpClient:
        return RetryingHttpClient(
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            timeout=self.timeout,
        )


def build_adapters(settings: EnrichmentSettings, http_client: HttpClient) -> list[SourceAdapter]:
    """One adapter per source, sharing a single HTTP client."""
    return [
        HardcoverAdapter(http_client, token=settings.hardcover_token),
        GoogleBooksAdapter(http_client, api_key=settings.google_api_key),
        WorldCatAdapter(http_client),
        OpenLibraryAdapter(http_client),
    ]


class Enricher:
    """Looks a book up across sources and fuses the accepted hits.

    In FULL mode the primary source (Hardcover) is queried first. If its best
    match lacks a cover or description, the other three sources are queried
    concurrently; otherwise only Google Books is queried, as a cross-check.
    """

    def __init__(
        self,
        adapters: Iterable[SourceAdapter],
        mode: EnrichmentMode = EnrichmentMode.FULL,
        context: EnrichmentContext | None = None,
    ) -> None:
        self._adapters = {adapter.name: adapter for adapter in adapters}
        self._mode = mode
        self.context = context or EnrichmentContext()

    @classmethod
    def from_settings(cls, settings: EnrichmentSettings, http_client: HttpClient) -> "Enricher":
        return cls(
            build_adapters(settings, http_client),
            mode=settings.mode,
            context=EnrichmentContext(thresholds=settings.thresholds),
        )

    @property
    def mode(self) -> EnrichmentMode:
        return self._mode

    async def enrich(self, isbn: str | None, title: str, author: str) -> EnrichedResult:
        """Fused metadata for one book. Empty when no source found an acceptable match."""
        expected = ExpectedBook(title=title, author=author, isbn=isbn)
        label = f"{title} by {author}"

        best = await self._best_from_many((HARDCOVER,), expected)
        primary = best[0] if best else None

        if self._mode is EnrichmentMode.FULL:
            if primary and primary.candidate.has_cover and primary.candidate.has_description:
                others: tuple[str, ...] = (GOOGLE_BOOKS,)
            else:
                others = FALLBACK_SOURCES
            best.extend(await self._best_from_many(others, expected))

        if not best:
            logger.info("No acceptable match for %s", label)
        return fuse(best, self.context.thresholds, label=label)

    async def _best_from_many(
        self, names: Iterable[str], expected: ExpectedBook
    ) -> list[ScoredCandidate]:
        names = [name for name in names if name in self._adapters]
        results = await asyncio.gather(
            *(self._best_from(name, expected) for name in names),
            return_exceptions=True,
        )
        best: list[ScoredCandidate] = []
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                logger.warning("%s failed for %r: %s", name, expected.title, result)
                continue
            if result is not None:
                best.append(result)
        return best

    async def _best_from(self, name: str, expected: ExpectedBook) -> ScoredCandidate | None:
        adapter = self._adapters.get(name)
        if adapter is None:
            return None

        def acceptable(candidate: CandidateRecord) -> bool:
            return evaluate_candidate(candidate, expected, self.context) is not None

        key = self.context.lookup_key(name, expected.isbn, expected.title, expected.author)
        candidates = self.context.cached_lookup(key)
        if candidates is None:
            candidates = await adapter.fetch(
                expected.isbn, expected.title, expected.author, accept=acceptable
            )
            self.context.store_lookup(key, candidates)

        ranked = rank_candidates(candidates, expected, self.context)
        if not ranked:
            logger.debug("%s: none of %d candidate(s) accepted", name, len(candidates))
            return None
        return ranked[0]
