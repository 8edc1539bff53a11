# ABOUTME: Core metadata data structures for book enrichment.
# ABOUTME: CandidateRecord is the interchange format between source adapters, scoring, and fusion.

from dataclasses import dataclass

# Source names, in priority order. Ties in ranking and fusion fall back to this order.
HARDCOVER = "hardcover"
GOOGLE_BOOKS = "googlebooks"
WORLDCAT = "worldcat"
OPEN_LIBRARY = "openlibrary"

SOURCE_PRIORITY: tuple[str, ...] = (HARDCOVER, GOOGLE_BOOKS, WORLDCAT, OPEN_LIBRARY)


def source_rank(source_name: str) -> int:
    """Position of a source in the priority order (unknown sources sort last)."""
    try:
        return SOURCE_PRIORITY.index(source_name)
    except ValueError:
        return len(SOURCE_PRIORITY)


@dataclass
class CandidateRecord:
    """One external source's raw hit for a book being enriched.

    Adapters build these from source-specific payloads; nothing past the
    adapter ever sees the raw JSON. ``isbns`` holds every identifier the
    source reported so the matcher can look for an exact hit, while ``isbn``
    is the single preferred identifier (ISBN-13 when available).
    """

    title: str
    author: str
    source_name: str
    isbn: str | None = None
    isbns: tuple[str, ...] = ()
    cover_url: str | None = None
    description: str | None = None
    genre_raw: str | None = None
    publisher: str | None = None
    published_date: str | None = None
    page_count: int | None = None

    @property
    def identifiers(self) -> tuple[str, ...]:
        """All identifiers, including ``isbn`` when it is not already listed."""
        if self.isbn and self.isbn not in self.isbns:
            return (self.isbn, *self.isbns)
        return self.isbns

    @property
    def has_cover(self) -> bool:
        return bool(self.cover_url)

    @property
    def has_description(self) -> bool:
        return bool(self.description and self.description.strip())


@dataclass
class ScoredCandidate:
    """A CandidateRecord that passed acceptance, with its match score."""

    candidate: CandidateRecord
    score: float
    title_similarity: float = 0.0
    author_similarity: float = 0.0
    isbn_match: bool = False

    @property
    def source_name(self) -> str:
        return self.candidate.source_name

    def sort_key(self) -> tuple[float, int]:
        """Key for best-first ordering: highest score, then source priority."""
        return (-self.score, source_rank(self.candidate.source_name))


@dataclass
class EnrichedResult:
    """Fused output of all sources for one book."""

    cover_url: str | None = None
    genre: str | None = None
    description: str | None = None
    publisher: str | None = None
    published_date: str | None = None
    page_count: int | None = None
    sources: tuple[str, ...] = ()
    confidence: float | None = None

    @property
    def is_empty(self) -> bool:
        return not any(
            (
                self.cover_url,
                self.genre,
                self.description,
                self.publisher,
                self.published_date,
                self.page_count,
            )
        )
