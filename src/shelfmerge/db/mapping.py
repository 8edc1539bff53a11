# ABOUTME: Converts between stored rows and the BookRecord/Collection dataclasses.
# ABOUTME: Handles JSON serialization for list fields and ISO formatting for dates.

import enum
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# Columns a caller may set through create_book.
BOOK_COLUMNS: tuple[str, ...] = (
    "title",
    "author",
    "isbn",
    "external_id",
    "external_source",
    "rating",
    "review",
    "reading_status",
    "total_pages",
    "date_added",
    "date_finished",
    "original_shelves",
    "genre",
    "cover_url",
    "description",
    "publisher",
    "published_date",
    "enrichment_sources",
    "verification_reason",
)

_JSON_COLUMNS = frozenset({"original_shelves", "enrichment_sources"})


@dataclass
class BookRecord:
    """A stored book: the imported fields, the enriched fields, and bookkeeping."""

    id: int
    user_id: str
    title: str
    author: str
    reading_status: str
    date_added: str
    isbn: str | None = None
    external_id: str | None = None
    external_source: str | None = None
    rating: int = 0
    review: str | None = None
    total_pages: int | None = None
    date_finished: str | None = None
    original_shelves: list[str] = field(default_factory=list)
    genre: str | None = None
    cover_url: str | None = None
    description: str | None = None
    publisher: str | None = None
    published_date: str | None = None
    enrichment_sources: list[str] = field(default_factory=list)
    verification_reason: str | None = None
    imported_at: str | None = None

    @property
    def needs_verification(self) -> bool:
        return self.verification_reason is not None


@dataclass
class Collection:
    """A named per-user shelf grouping books."""

    id: int
    user_id: str
    name: str
    description: str | None = None
    color: str | None = None
    icon: str | None = None
    created_at: str | None = None


def _to_column(name: str, value: Any) -> Any:
    if name in _JSON_COLUMNS:
        return json.dumps(list(value or []))
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value


def book_data_to_row(data: dict[str, Any]) -> dict[str, Any]:
    """Convert create_book input into a dict suitable for INSERT.

    Raises:
        ValueError: If ``data`` names a column that doesn't exist.
    """
    unknown = set(data) - set(BOOK_COLUMNS)
    if unknown:
        raise ValueError(f"Unknown book field(s): {', '.join(sorted(unknown))}")
    return {name: _to_column(name, value) for name, value in data.items()}


def _json_list(value: str | None) -> list[str]:
    return json.loads(value) if value else []


def row_to_record(row: Any) -> BookRecord:
    """Convert a full books row (dict-like) to a BookRecord."""
    return BookRecord(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        author=row["author"],
        reading_status=row["reading_status"],
        date_added=row["date_added"],
        isbn=row["isbn"],
        external_id=row["external_id"],
        external_source=row["external_source"],
        rating=row["rating"],
        review=row["review"],
        total_pages=row["total_pages"],
        date_finished=row["date_finished"],
        original_shelves=_json_list(row["original_shelves"]),
        genre=row["genre"],
        cover_url=row["cover_url"],
        description=row["description"],
        publisher=row["publisher"],
        published_date=row["published_date"],
        enrichment_sources=_json_list(row["enrichment_sources"]),
        verification_reason=row["verification_reason"],
        imported_at=row["imported_at"],
    )


def row_to_collection(row: Any) -> Collection:
    return Collection(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        description=row["description"],
        color=row["color"],
        icon=row["icon"],
        created_at=row["created_at"],
    )
