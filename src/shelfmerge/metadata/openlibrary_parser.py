# ABOUTME: Parsing functions for Open Library API JSON responses.
# ABOUTME: Converts edition, works, and search payloads into CandidateRecord instances.

from dataclasses import dataclass
from typing import Any

from shelfmerge.metadata.isbn import clean_isbn, preferred_isbn
from shelfmerge.metadata.text import first_str, positive_int, str_list
from shelfmerge.metadata.types import OPEN_LIBRARY, CandidateRecord

_COVERS_BASE_URL = "https://covers.openlibrary.org/b"
_MAX_SUBJECTS = 3


@dataclass
class SearchDoc:
    """A search hit plus the works key needed to fetch its description later."""

    candidate: CandidateRecord
    works_key: str | None


def build_cover_url(cover_id: int | str, size: str = "L") -> str:
    """Build an Open Library cover image URL for a cover id.

    Args:
        cover_id: Numeric cover id from an edition's ``covers`` or a doc's ``cover_i``.
        size: Image size: "S" (small), "M" (medium), or "L" (large).
    """
    return f"{_COVERS_BASE_URL}/id/{cover_id}-{size}.jpg"


def build_isbn_cover_url(isbn: str, size: str = "L") -> str:
    """Build an Open Library cover image URL keyed by ISBN."""
    return f"{_COVERS_BASE_URL}/isbn/{isbn}-{size}.jpg"


def _isbns(*lists: Any) -> tuple[str, ...]:
    isbns: list[str] = []
    for values in lists:
        for value in str_list(values):
            isbn = clean_isbn(value)
            if isbn and isbn not in isbns:
                isbns.append(isbn)
    return tuple(isbns)


def _first_cover_id(covers: Any) -> int | None:
    if not isinstance(covers, list):
        return None
    for cover_id in covers:
        # Open Library uses -1 for "no cover".
        if isinstance(cover_id, int) and cover_id > 0:
            return cover_id
    return None


def parse_works_response(data: dict[str, Any]) -> str | None:
    """Extract the description from an Open Library Works (or edition) response.

    Handles the OL quirk where description can be either a plain string
    or a dict with {"type": ..., "value": "actual text"}.
    """
    desc = data.get("description")
    if desc is None:
        return None
    if isinstance(desc, str):
        return desc.strip() or None
    if isinstance(desc, dict):
        return first_str(desc.get("value"))
    return None


def parse_works_subjects(data: dict[str, Any]) -> str | None:
    """Comma-joined leading subjects from a works response."""
    subjects = str_list(data.get("subjects"))[:_MAX_SUBJECTS]
    return ", ".join(subjects) or None


def parse_works_key(data: dict[str, Any]) -> str | None:
    """Works key ("/works/OL123W") referenced by an edition response."""
    works = data.get("works")
    if isinstance(works, list) and works and isinstance(works[0], dict):
        return first_str(works[0].get("key"))
    return None


def parse_author_keys(data: dict[str, Any]) -> list[str]:
    """Author keys ("/authors/OL1A") referenced by an edition response."""
    keys: list[str] = []
    for entry in data.get("authors") or []:
        if isinstance(entry, dict):
            key = first_str(entry.get("key"))
            if key:
                keys.append(key)
    return keys


def parse_author_name(data: dict[str, Any]) -> str | None:
    """Extract the author name from an Open Library Author response."""
    return first_str(data.get("name"))


def parse_edition_response(data: dict[str, Any]) -> CandidateRecord | None:
    """Parse an Open Library ``/isbn/{isbn}.json`` edition response.

    Authors come back as keys only and are resolved by the adapter.
    """
    title = first_str(data.get("title"))
    if not title:
        return None
    subtitle = first_str(data.get("subtitle"))
    if subtitle:
        title = f"{title}: {subtitle}"

    isbns = _isbns(data.get("isbn_13"), data.get("isbn_10"))
    cover_id = _first_cover_id(data.get("covers"))

    return CandidateRecord(
        title=title,
        author="",
        source_name=OPEN_LIBRARY,
        isbn=preferred_isbn(isbns),
        isbns=isbns,
        cover_url=build_cover_url(cover_id) if cover_id else None,
        description=parse_works_response(data),
        publisher=first_str(data.get("publishers")),
        published_date=first_str(data.get("publish_date")),
        page_count=positive_int(data.get("number_of_pages")),
    )


def parse_search_doc(doc: dict[str, Any]) -> SearchDoc | None:
    """Convert one ``docs[]`` entry of a search response."""
    title = first_str(doc.get("title"))
    if not title:
        return None

    isbns = _isbns(doc.get("isbn"))
    cover_url = None
    if isinstance(doc.get("cover_i"), int) and doc["cover_i"] > 0:
        cover_url = build_cover_url(doc["cover_i"])
    elif isbns:
        cover_url = build_isbn_cover_url(isbns[0])

    year = doc.get("first_publish_year")
    subjects = str_list(doc.get("subject"))[:_MAX_SUBJECTS]

    candidate = CandidateRecord(
        title=title,
        author=", ".join(str_list(doc.get("author_name"))),
        source_name=OPEN_LIBRARY,
        isbn=preferred_isbn(isbns),
        isbns=isbns,
        cover_url=cover_url,
        genre_raw=", ".join(subjects) or None,
        publisher=first_str(doc.get("publisher")),
        published_date=str(year) if isinstance(year, int) else None,
        page_count=positive_int(doc.get("number_of_pages_median")),
    )
    return SearchDoc(candidate=candidate, works_key=first_str(doc.get("key")))


def parse_search_results(data: dict[str, Any]) -> list[SearchDoc]:
    """Parse an Open Library Search API response.

    Each doc in the search results contains title, author_name, isbn, etc.
    """
    docs = data.get("docs") or []
    results: list[SearchDoc] = []
    for doc in docs:
        if not isinstance(doc, dict):
            continue
        parsed = parse_search_doc(doc)
        if parsed is not None:
            results.append(parsed)
    return results
