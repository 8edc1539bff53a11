# ABOUTME: SourceAdapter protocol defining the contract for bibliographic data sources.
# ABOUTME: BaseSourceAdapter runs the shared query fallback chain and contains adapter failures.

import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from shelfmerge.metadata.http import HttpClient, MetadataFetchError
from shelfmerge.metadata.queries import Query, build_queries, first_hit
from shelfmerge.metadata.types import CandidateRecord

logger = logging.getLogger(__name__)

CandidateFilter = Callable[[CandidateRecord], bool]


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for bibliographic sources (Hardcover, Google Books, etc.).

    ``fetch`` never raises: a failing source simply yields no candidates.
    When ``accept`` is given, a query whose hits all fail it counts as
    empty and the next formulation is tried.
    """

    @property
    def name(self) -> str: ...

    async def fetch(
        self,
        isbn: str | None,
        title: str,
        author: str,
        accept: CandidateFilter | None = None,
    ) -> list[CandidateRecord]: ...


class BaseSourceAdapter:
    """Shared fetch logic: try each query formulation until one returns usable candidates.

    Subclasses set ``name`` and implement ``_run_query``, which renders a
    Query into the source's request shape and translates the response through
    the source's parser module. ``_run_query`` may return an empty list for
    formulations the source cannot express.
    """

    name = "base"

    def __init__(self, http_client: HttpClient) -> None:
        self._http = http_client

    async def fetch(
        self,
        isbn: str | None,
        title: str,
        author: str,
        accept: CandidateFilter | None = None,
    ) -> list[CandidateRecord]:
        queries = build_queries(isbn, title, author)
        try:
            candidates = await first_hit(queries, self._run_query, accept)
        except MetadataFetchError as exc:
            logger.warning("%s lookup failed for %r by %r: %s", self.name, title, author, exc)
            return []

        logger.debug("%s returned %d candidate(s) for %r", self.name, len(candidates), title)
        return candidates

    async def _run_query(self, query: Query) -> list[CandidateRecord]:
        raise NotImplementedError
