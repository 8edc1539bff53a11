# ABOUTME: Turns custom shelf names from an export into per-user collections.
# ABOUTME: Reuses existing collections by name and creates the missing ones with a palette colour.

import logging
import zlib
from collections.abc import Iterable
from dataclasses import dataclass, field

from shelfmerge.core.parser import EXCLUSIVE_SHELVES, ParsedBook
from shelfmerge.db.store import LibraryStore

logger = logging.getLogger(__name__)

COLLECTION_DESCRIPTION = "Imported from Goodreads"
COLLECTION_ICON = "📚"
COLLECTION_PALETTE: tuple[str, ...] = (
    "#8b6f47",
    "#c89b65",
    "#a0826d",
    "#6b5d4f",
    "#9d8b7a",
    "#7a6551",
    "#b89968",
    "#8d7456",
    "#a68b5b",
    "#715c3e",
)


def collection_color(name: str) -> str:
    """Palette colour for a collection name; the same name always gets the same colour."""
    index = zlib.crc32(name.lower().encode("utf-8")) % len(COLLECTION_PALETTE)
    return COLLECTION_PALETTE[index]


def unique_shelves(books: Iterable[ParsedBook]) -> list[str]:
    """Shelf names across all books, first spelling wins, exclusive shelves removed."""
    names: list[str] = []
    seen: set[str] = set()
    for book in books:
        for shelf in book.shelves:
            key = shelf.strip().lower()
            if not key or key in EXCLUSIVE_SHELVES or key in seen:
                continue
            seen.add(key)
            names.append(shelf.strip())
    return names


@dataclass
class CollectionMap:
    """Shelf name to collection id, matched case-insensitively."""

    ids: dict[str, int] = field(default_factory=dict)
    created: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._by_key = {name.lower(): cid for name, cid in self.ids.items()}

    def add(self, name: str, collection_id: int) -> None:
        self.ids[name] = collection_id
        self._by_key[name.lower()] = collection_id

    def get(self, shelf: str) -> int | None:
        return self._by_key.get(shelf.strip().lower())

    def ids_for(self, shelves: Iterable[str]) -> list[int]:
        found: list[int] = []
        for shelf in shelves:
            collection_id = self.get(shelf)
            if collection_id is not None and collection_id not in found:
                found.append(collection_id)
        return found


def materialize_collections(
    store: LibraryStore, user_id: str, books: Iterable[ParsedBook]
) -> CollectionMap:
    """Ensure a collection exists for every custom shelf in the export.

    Existing collections are reused; missing ones are created. Running it
    twice over the same export creates nothing the second time.
    """
    shelves = unique_shelves(books)
    mapping = CollectionMap()
    if not shelves:
        return mapping

    existing = {c.name.lower(): c for c in store.find_collections(user_id)}
    for shelf in shelves:
        collection = existing.get(shelf.lower())
        if collection is not None:
            mapping.add(collection.name, collection.id)
            continue

        collection = store.create_collection(
            user_id,
            {
                "name": shelf,
                "description": COLLECTION_DESCRIPTION,
                "color": collection_color(shelf),
                "icon": COLLECTION_ICON,
            },
        )
        mapping.add(collection.name, collection.id)
        mapping.created.append(collection.name)
        logger.info("Created collection %r", collection.name)

    return mapping
