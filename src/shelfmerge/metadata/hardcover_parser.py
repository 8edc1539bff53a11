# ABOUTME: Parsing functions for Hardcover GraphQL search responses.
# ABOUTME: Converts Hardcover search hits into CandidateRecord instances.

import json
import logging
from typing import Any

from shelfmerge.metadata.http import MetadataFetchError
from shelfmerge.metadata.isbn import clean_isbn, preferred_isbn
from shelfmerge.metadata.text import first_str, positive_int, str_list
from shelfmerge.metadata.types import HARDCOVER, CandidateRecord

logger = logging.getLogger(__name__)


def _search_hits(data: dict[str, Any]) -> list[dict[str, Any]]:
    """Dig the hit list out of a search response.

    Hardcover returns ``results`` as a JSON scalar column, which some
    deployments serialize as a string rather than an object.
    """
    search = (data.get("data") or {}).get("search") or {}
    results = search.get("results") or {}
    if isinstance(results, str):
        try:
            results = json.loads(results)
        except ValueError as exc:
            raise MetadataFetchError(f"Hardcover results are not valid JSON: {exc}") from exc
    if not isinstance(results, dict):
        return []
    hits = results.get("hits") or []
    return [hit for hit in hits if isinstance(hit, dict)]


def parse_search_response(data: dict[str, Any]) -> list[CandidateRecord]:
    """Parse a Hardcover ``search`` response into candidates.

    GraphQL errors without any data are treated as a failed request. Hits
    without a title are skipped.
    """
    errors = data.get("errors")
    if errors and not data.get("data"):
        raise MetadataFetchError(f"Hardcover GraphQL errors: {errors}")
    if errors:
        logger.warning("Hardcover returned partial data with errors: %s", errors)

    candidates: list[CandidateRecord] = []
    for hit in _search_hits(data):
        document = hit.get("document") or {}
        candidate = parse_document(document)
        if candidate is not None:
            candidates.append(candidate)
    return candidates


def parse_document(document: dict[str, Any]) -> CandidateRecord | None:
    """Convert a single Hardcover search document into a CandidateRecord."""
    title = first_str(document.get("title"))
    if not title:
        return None

    authors = str_list(document.get("author_names"))
    isbns = tuple(c for c in (clean_isbn(i) for i in str_list(document.get("isbns"))) if c)

    image = document.get("image")
    cover_url = first_str(image.get("url")) if isinstance(image, dict) else first_str(image)

    genres = str_list(document.get("genres"))

    release = first_str(document.get("release_date"))
    if not release and document.get("release_year"):
        release = str(document["release_year"])

    return CandidateRecord(
        title=title,
        author=", ".join(authors),
        source_name=HARDCOVER,
        isbn=preferred_isbn(isbns),
        isbns=isbns,
        cover_url=cover_url,
        description=first_str(document.get("description")),
        genre_raw=", ".join(genres[:5]) or None,
        published_date=release,
        page_count=positive_int(document.get("pages")),
    )
