# ABOUTME: Duplicate detection of incoming export records against the user's existing library.
# ABOUTME: Matches on external id, ISBN (either form), or case-insensitive title and author.

import logging
from collections.abc import Iterable

from shelfmerge.core.parser import ParsedBook
from shelfmerge.db.mapping import BookRecord
from shelfmerge.metadata.isbn import isbn_variants

logger = logging.getLogger(__name__)


def external_id_key(external_id: str | None) -> str | None:
    return f"gr:{external_id.strip()}" if external_id and external_id.strip() else None


def isbn_keys(isbn: str | None) -> list[str]:
    return [f"isbn:{variant}" for variant in isbn_variants(isbn)]


def title_author_key(title: str, author: str) -> str:
    return f"title-author:{title.strip().lower()}:{author.strip().lower()}"


class DuplicateDetector:
    """Lookup of keys for books the user already has.

    Built once before an import run and read-only afterwards, so records in
    the same export are not compared with each other.
    """

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self._keys = frozenset(keys)

    @classmethod
    def from_records(cls, existing: Iterable[BookRecord]) -> "DuplicateDetector":
        keys: list[str] = []
        for record in existing:
            gr_key = external_id_key(record.external_id)
            if gr_key:
                keys.append(gr_key)
            keys.extend(isbn_keys(record.isbn))
            keys.append(title_author_key(record.title, record.author))
        detector = cls(keys)
        logger.debug("Duplicate lookup built with %d key(s)", len(detector))
        return detector

    def __len__(self) -> int:
        return len(self._keys)

    def match(self, book: ParsedBook) -> str | None:
        """The first key under which the book is already known, or None."""
        candidates = [external_id_key(book.external_id), *isbn_keys(book.isbn)]
        candidates.append(title_author_key(book.title, book.author))
        for key in candidates:
            if key and key in self._keys:
                return key
        return None

    def is_duplicate(self, book: ParsedBook) -> bool:
        return self.match(book) is not None
