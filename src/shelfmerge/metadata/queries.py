# ABOUTME: Ordered search formulations tried by every source adapter.
# ABOUTME: Builds the fallback query list and the short-circuit combinator that evaluates it.

import enum
import logging
import re
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import TypeVar

from shelfmerge.metadata.http import SourceRequestError
from shelfmerge.metadata.isbn import isbn_variants

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Shortest title worth searching for on its own once subtitles or series markers are removed.
_MIN_TITLE_LENGTH = 3

_SUBTITLE_RE = re.compile(r"\s*:.*$")
_SERIES_RE = re.compile(r"\s*[\(\[][^\)\]]*[\)\]]")
_SPACE_RE = re.compile(r"\s+")


class QueryKind(enum.Enum):
    IDENTIFIER = "identifier"
    EXACT = "exact"
    NO_SUBTITLE = "no-subtitle"
    NO_SERIES = "no-series"
    SURNAME = "surname"
    LOOSE = "loose"
    TITLE_ONLY = "title-only"


@dataclass(frozen=True)
class Query:
    """One search formulation. Adapters render it into their own request shape."""

    kind: QueryKind
    title: str = ""
    author: str | None = None
    isbns: tuple[str, ...] = ()

    @property
    def exact(self) -> bool:
        """Whether the adapter should quote title/author terms."""
        return self.kind is not QueryKind.LOOSE


def strip_subtitle(title: str) -> str | None:
    """Remove the subtitle (text from the first colon on).

    Returns None when there is no subtitle or the remainder is too short.
    """
    stripped = _SUBTITLE_RE.sub("", title).strip()
    if stripped != title.strip() and len(stripped) > _MIN_TITLE_LENGTH:
        return stripped
    return None


def strip_series(title: str) -> str | None:
    """Remove parenthetical or bracketed series markers like "(Mistborn, #1)"."""
    stripped = _SPACE_RE.sub(" ", _SERIES_RE.sub("", title)).strip()
    if stripped != title.strip() and len(stripped) > _MIN_TITLE_LENGTH:
        return stripped
    return None


def author_surname(author: str) -> str | None:
    """Last word of the author name, when it differs from the full name."""
    parts = author.strip().split()
    if len(parts) < 2:
        return None
    surname = parts[-1].strip(".,")
    return surname if len(surname) > 2 else None


def build_queries(isbn: str | None, title: str, author: str) -> list[Query]:
    """Build the ordered list of search formulations for one book.

    Order: identifier (all ISBN variants), exact title+author, title without
    subtitle, title without series markers, title + author surname, loose
    title+author, title alone. Formulations identical to an earlier one are
    dropped.
    """
    title = _SPACE_RE.sub(" ", title).strip()
    author = _SPACE_RE.sub(" ", author).strip()

    queries: list[Query] = []
    variants = isbn_variants(isbn)
    if variants:
        queries.append(Query(QueryKind.IDENTIFIER, isbns=tuple(variants)))

    if title:
        queries.append(Query(QueryKind.EXACT, title, author or None))

        no_subtitle = strip_subtitle(title)
        if no_subtitle:
            queries.append(Query(QueryKind.NO_SUBTITLE, no_subtitle, author or None))

        no_series = strip_series(title)
        if no_series:
            queries.append(Query(QueryKind.NO_SERIES, no_series, author or None))

        surname = author_surname(author)
        if surname:
            queries.append(Query(QueryKind.SURNAME, title, surname))

        if author:
            queries.append(Query(QueryKind.LOOSE, title, author))
            queries.append(Query(QueryKind.TITLE_ONLY, title))

    return _dedupe(queries)


def _dedupe(queries: list[Query]) -> list[Query]:
    seen: set[tuple[str, str | None, tuple[str, ...], bool]] = set()
    unique: list[Query] = []
    for query in queries:
        key = (query.title.lower(), (query.author or "").lower() or None, query.isbns, query.exact)
        if key in seen:
            continue
        seen.add(key)
        unique.append(query)
    return unique


async def first_hit(
    strategies: Iterable[T],
    run: Callable[[T], Awaitable[list[R]]],
    accept: Callable[[R], bool] | None = None,
) -> list[R]:
    """Run strategies in order and return the first usable result.

    A result is usable when it is non-empty and, if ``accept`` is given, at
    least one of its items passes ``accept``; otherwise the next strategy is
    tried. A strategy that fails with a 4xx response counts as empty. Any
    other MetadataFetchError (source unavailable, malformed payload)
    propagates so the caller can give up on the source entirely.
    """
    for strategy in strategies:
        try:
            results = await run(strategy)
        except SourceRequestError as exc:
            logger.debug("Strategy %s rejected by source: %s", strategy, exc)
            continue
        if not results:
            continue
        if accept is None or any(accept(item) for item in results):
            return results
        logger.debug("Strategy %s returned %d unusable result(s)", strategy, len(results))
    return []
