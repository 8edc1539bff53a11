# ABOUTME: Public API for the shelfmerge library database layer.
# ABOUTME: Exports connection management, the store protocol, catalog operations, and data types.

from shelfmerge.db.catalog import CatalogError, LibraryCatalog
from shelfmerge.db.connection import DEFAULT_DB_PATH, open_library
from shelfmerge.db.mapping import BookRecord, Collection
from shelfmerge.db.store import LibraryStore

__all__ = [
    "DEFAULT_DB_PATH",
    "BookRecord",
    "CatalogError",
    "Collection",
    "LibraryCatalog",
    "LibraryStore",
    "open_library",
]
