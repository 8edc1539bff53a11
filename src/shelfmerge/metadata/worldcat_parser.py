# ABOUTME: Parsing functions for WorldCat SRU responses in Dublin Core schema.
# ABOUTME: Converts each SRU record into a CandidateRecord; malformed XML is a fetch error.

import re
import xml.etree.ElementTree as ET

from shelfmerge.metadata.http import MetadataFetchError
from shelfmerge.metadata.isbn import clean_isbn, preferred_isbn
from shelfmerge.metadata.text import positive_int, strip_html
from shelfmerge.metadata.types import WORLDCAT, CandidateRecord

DC_NS = "http://purl.org/dc/elements/1.1/"

_ISBN_IN_TEXT_RE = re.compile(r"\b(97[89][\d-]{10,14}|[\d-]{9,13}[\dXx])\b")
_PAGES_RE = re.compile(r"(\d+)\s*(?:p\b|pages?\b)", re.IGNORECASE)
_MAX_SUBJECTS = 3


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _dc_values(record: ET.Element, name: str) -> list[str]:
    values: list[str] = []
    for element in record.iter(f"{{{DC_NS}}}{name}"):
        text = "".join(element.itertext()).strip()
        if text:
            values.append(text)
    return values


def flip_name(name: str) -> str:
    """Turn catalog-style "Clear, James, 1986-" into "James Clear"."""
    parts = [p.strip() for p in name.split(",") if p.strip()]
    parts = [p for p in parts if not re.fullmatch(r"[\d\s\-\.]+", p)]
    if len(parts) >= 2:
        return f"{parts[1]} {parts[0]}"
    return parts[0] if parts else name.strip()


def parse_isbns(identifiers: list[str]) -> tuple[str, ...]:
    """Pull ISBN-looking values out of free-text dc:identifier entries."""
    isbns: list[str] = []
    for text in identifiers:
        for match in _ISBN_IN_TEXT_RE.findall(text):
            isbn = clean_isbn(match)
            if isbn and len(isbn) in (10, 13) and isbn not in isbns:
                isbns.append(isbn)
    return tuple(isbns)


def parse_page_count(formats: list[str]) -> int | None:
    for text in formats:
        match = _PAGES_RE.search(text)
        if match:
            return positive_int(match.group(1))
    return None


def parse_record(record: ET.Element) -> CandidateRecord | None:
    """Convert one SRU ``recordData`` element into a CandidateRecord."""
    titles = _dc_values(record, "title")
    if not titles:
        return None

    creators = _dc_values(record, "creator")
    subjects = [s.rstrip(".") for s in _dc_values(record, "subject")][:_MAX_SUBJECTS]
    descriptions = _dc_values(record, "description")
    publishers = _dc_values(record, "publisher")
    dates = _dc_values(record, "date")
    isbns = parse_isbns(_dc_values(record, "identifier"))

    return CandidateRecord(
        title=titles[0].rstrip(" /"),
        author=flip_name(creators[0]) if creators else "",
        source_name=WORLDCAT,
        isbn=preferred_isbn(isbns),
        isbns=isbns,
        description=strip_html(max(descriptions, key=len)) if descriptions else None,
        genre_raw=", ".join(subjects) or None,
        publisher=publishers[0].rstrip(" ,;:") if publishers else None,
        published_date=dates[0].strip("[]c. ") if dates else None,
        page_count=parse_page_count(_dc_values(record, "format")),
    )


def parse_sru_response(xml_text: str) -> list[CandidateRecord]:
    """Parse an SRU searchRetrieve response into candidates."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise MetadataFetchError(f"Malformed WorldCat XML: {exc}") from exc

    candidates: list[CandidateRecord] = []
    for element in root.iter():
        if _local_name(element.tag) != "recordData":
            continue
        candidate = parse_record(element)
        if candidate is not None:
            candidates.append(candidate)
    return candidates
