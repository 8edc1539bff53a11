# ABOUTME: Parsing functions for Google Books volume search responses.
# ABOUTME: Converts volumeInfo payloads into CandidateRecord instances with upgraded cover URLs.

from typing import Any

from shelfmerge.metadata.isbn import clean_isbn, preferred_isbn
from shelfmerge.metadata.text import first_str, positive_int, str_list
from shelfmerge.metadata.types import GOOGLE_BOOKS, CandidateRecord

# Largest first.
_IMAGE_SIZES = ("extraLarge", "large", "medium", "small", "thumbnail", "smallThumbnail")


def upgrade_cover_url(url: str) -> str:
    """Ask Google for the larger, uncurled, https version of a cover image."""
    upgraded = url.replace("http://", "https://", 1)
    upgraded = upgraded.replace("&edge=curl", "")
    return upgraded.replace("zoom=1", "zoom=0")


def parse_cover_url(image_links: Any) -> str | None:
    """Pick the largest available image link and upgrade it."""
    if not isinstance(image_links, dict):
        return None
    for size in _IMAGE_SIZES:
        url = first_str(image_links.get(size))
        if url:
            return upgrade_cover_url(url)
    return None


def parse_identifiers(entries: Any) -> tuple[str, ...]:
    """Extract ISBN_13/ISBN_10 values from ``industryIdentifiers``."""
    if not isinstance(entries, list):
        return ()
    isbns: list[str] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if entry.get("type") not in ("ISBN_13", "ISBN_10"):
            continue
        isbn = clean_isbn(first_str(entry.get("identifier")))
        if isbn:
            isbns.append(isbn)
    return tuple(isbns)


def parse_volume(item: dict[str, Any]) -> CandidateRecord | None:
    """Convert one ``items[]`` entry into a CandidateRecord."""
    info = item.get("volumeInfo")
    if not isinstance(info, dict):
        return None

    title = first_str(info.get("title"))
    if not title:
        return None
    subtitle = first_str(info.get("subtitle"))
    if subtitle:
        title = f"{title}: {subtitle}"

    isbns = parse_identifiers(info.get("industryIdentifiers"))
    categories = str_list(info.get("categories"))

    return CandidateRecord(
        title=title,
        author=", ".join(str_list(info.get("authors"))),
        source_name=GOOGLE_BOOKS,
        isbn=preferred_isbn(isbns),
        isbns=isbns,
        cover_url=parse_cover_url(info.get("imageLinks")),
        description=first_str(info.get("description")),
        genre_raw=", ".join(categories) or None,
        publisher=first_str(info.get("publisher")),
        published_date=first_str(info.get("publishedDate")),
        page_count=positive_int(info.get("pageCount")),
    )


def parse_volumes_response(data: dict[str, Any]) -> list[CandidateRecord]:
    """Parse a ``/volumes`` search response. Missing ``items`` means no hits."""
    items = data.get("items") or []
    candidates: list[CandidateRecord] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        candidate = parse_volume(item)
        if candidate is not None:
            candidates.append(candidate)
    return candidates
