# ABOUTME: LibraryStore protocol: the persistence contract the import pipeline depends on.
# ABOUTME: LibraryCatalog is the SQLite implementation; tests may substitute in-memory fakes.

from contextlib import AbstractContextManager
from typing import Any, Protocol, runtime_checkable

from shelfmerge.db.mapping import BookRecord, Collection


@runtime_checkable
class LibraryStore(Protocol):
    """Per-user book and collection storage with atomic multi-step writes."""

    def create_book(self, user_id: str, data: dict[str, Any]) -> BookRecord: ...

    def find_books(self, user_id: str, **filters: Any) -> list[BookRecord]: ...

    def create_collection(self, user_id: str, data: dict[str, Any]) -> Collection: ...

    def find_collections(
        self, user_id: str, names: list[str] | None = None
    ) -> list[Collection]: ...

    def link_book_to_collection(self, book_id: int, collection_id: int) -> None: ...

    def transaction(self) -> AbstractContextManager[None]: ...
