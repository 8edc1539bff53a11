# ABOUTME: CRUD operations for the shelfmerge library catalog.
# ABOUTME: Stores books and collections per user in SQLite and groups writes into transactions.

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from shelfmerge.db.mapping import (
    BookRecord,
    Collection,
    book_data_to_row,
    row_to_collection,
    row_to_record,
)

logger = logging.getLogger(__name__)

# find_books filters compared case-insensitively.
_NOCASE_FILTERS = frozenset({"title", "author"})
_EQUALITY_FILTERS = frozenset({"title", "author", "isbn", "external_id", "reading_status"})


class CatalogError(Exception):
    """Raised when a catalog write violates a constraint (unknown ids, duplicate names)."""


class LibraryCatalog:
    """Wraps a sqlite3 connection and provides typed CRUD for books and collections.

    Writes commit immediately unless they run inside ``transaction()``, in
    which case they commit or roll back together.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group writes so they commit together or not at all. Nested use joins the outer one."""
        self._depth += 1
        try:
            yield
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self._conn.rollback()
            raise
        else:
            self._depth -= 1
            if self._depth == 0:
                self._conn.commit()

    def _commit(self) -> None:
        if self._depth == 0:
            self._conn.commit()

    # --- Books ---

    def create_book(self, user_id: str, data: dict[str, Any]) -> BookRecord:
        """Store a book for a user.

        Args:
            user_id: Owner of the book.
            data: Column values (see mapping.BOOK_COLUMNS); lists and dates
                are serialized automatically.

        Returns:
            The stored BookRecord.

        Raises:
            CatalogError: If the row violates a constraint.
        """
        row = book_data_to_row(data)
        row["user_id"] = user_id
        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)

        try:
            cursor = self._conn.execute(
                f"INSERT INTO books ({columns}) VALUES ({placeholders})",
                list(row.values()),
            )
        except sqlite3.IntegrityError as exc:
            raise CatalogError(f"Could not store {data.get('title')!r}: {exc}") from exc
        self._commit()

        record = self.get_book(cursor.lastrowid)  # type: ignore[arg-type]
        assert record is not None
        return record

    def get_book(self, book_id: int) -> BookRecord | None:
        """Retrieve a book by its row ID."""
        cursor = self._conn.execute("SELECT * FROM books WHERE id = ?", (book_id,))
        row = cursor.fetchone()
        return row_to_record(row) if row else None

    def find_books(self, user_id: str, **filters: Any) -> list[BookRecord]:
        """Books belonging to a user, ordered by title.

        Filters: title/author (case-insensitive), isbn, external_id,
        reading_status (exact), needs_verification (bool), collection
        (collection name).

        Raises:
            ValueError: On an unknown filter.
        """
        clauses = ["b.user_id = ?"]
        params: list[Any] = [user_id]
        joins = ""

        for name, value in filters.items():
            if name in _EQUALITY_FILTERS:
                collate = " COLLATE NOCASE" if name in _NOCASE_FILTERS else ""
                clauses.append(f"b.{name} = ?{collate}")
                params.append(getattr(value, "value", value))
            elif name == "needs_verification":
                clauses.append(
                    "b.verification_reason IS NOT NULL"
                    if value
                    else "b.verification_reason IS NULL"
                )
            elif name == "collection":
                joins = (
                    " JOIN book_collections bc ON bc.book_id = b.id"
                    " JOIN collections c ON c.id = bc.collection_id"
                )
                clauses.append("c.name = ?")
                params.append(value)
            else:
                raise ValueError(f"Unknown book filter: {name}")

        cursor = self._conn.execute(
            f"SELECT b.* FROM books b{joins} WHERE {' AND '.join(clauses)} "
            "ORDER BY b.title COLLATE NOCASE, b.id",
            params,
        )
        return [row_to_record(row) for row in cursor.fetchall()]

    def update_book(self, book_id: int, data: dict[str, Any]) -> BookRecord:
        """Overwrite some columns of a stored book and return the updated record.

        Raises:
            ValueError: If ``data`` names an unknown column or the book doesn't exist.
            CatalogError: If the new values violate a constraint.
        """
        record = self.get_book(book_id)
        if record is None:
            raise ValueError(f"Book with id {book_id} not found")
        if not data:
            return record

        row = book_data_to_row(data)
        assignments = ", ".join(f"{name} = ?" for name in row)
        try:
            self._conn.execute(
                f"UPDATE books SET {assignments} WHERE id = ?",
                [*row.values(), book_id],
            )
        except sqlite3.IntegrityError as exc:
            raise CatalogError(f"Could not update book {book_id}: {exc}") from exc
        self._commit()

        updated = self.get_book(book_id)
        assert updated is not None
        return updated

    def count_books(self, user_id: str) -> int:
        cursor = self._conn.execute("SELECT COUNT(*) FROM books WHERE user_id = ?", (user_id,))
        return cursor.fetchone()[0]

    # --- Collections ---

    def create_collection(self, user_id: str, data: dict[str, Any]) -> Collection:
        """Create a named collection for a user.

        Raises:
            CatalogError: If the user already has a collection with that name.
        """
        try:
            cursor = self._conn.execute(
                "INSERT INTO collections (user_id, name, description, color, icon) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    user_id,
                    data["name"],
                    data.get("description"),
                    data.get("color"),
                    data.get("icon"),
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise CatalogError(f"Collection {data['name']!r} already exists") from exc
        self._commit()

        cursor = self._conn.execute("SELECT * FROM collections WHERE id = ?", (cursor.lastrowid,))
        return row_to_collection(cursor.fetchone())

    def find_collections(self, user_id: str, names: list[str] | None = None) -> list[Collection]:
        """A user's collections, optionally limited to the given names, ordered by name."""
        sql = "SELECT * FROM collections WHERE user_id = ?"
        params: list[Any] = [user_id]
        if names is not None:
            if not names:
                return []
            sql += f" AND name IN ({', '.join('?' for _ in names)})"
            params.extend(names)
        cursor = self._conn.execute(sql + " ORDER BY name", params)
        return [row_to_collection(row) for row in cursor.fetchall()]

    def link_book_to_collection(self, book_id: int, collection_id: int) -> None:
        """Add a book to a collection. Idempotent.

        Raises:
            CatalogError: If the book or collection doesn't exist.
        """
        try:
            self._conn.execute(
                "INSERT OR IGNORE INTO book_collections (book_id, collection_id) VALUES (?, ?)",
                (book_id, collection_id),
            )
        except sqlite3.IntegrityError as exc:
            raise CatalogError(
                f"Cannot link book {book_id} to collection {collection_id}: {exc}"
            ) from exc
        self._commit()

    def list_collections_with_counts(self, user_id: str) -> list[tuple[Collection, int]]:
        """A user's collections with their book counts, ordered by name."""
        cursor = self._conn.execute(
            "SELECT c.*, COUNT(bc.book_id) AS book_count "
            "FROM collections c "
            "LEFT JOIN book_collections bc ON c.id = bc.collection_id "
            "WHERE c.user_id = ? "
            "GROUP BY c.id "
            "ORDER BY c.name",
            (user_id,),
        )
        return [(row_to_collection(row), row["book_count"]) for row in cursor.fetchall()]

    def get_collections_for_book(self, book_id: int) -> list[str]:
        """Names of the collections a book belongs to, alphabetically sorted."""
        cursor = self._conn.execute(
            "SELECT c.name FROM collections c "
            "JOIN book_collections bc ON c.id = bc.collection_id "
            "WHERE bc.book_id = ? "
            "ORDER BY c.name",
            (book_id,),
        )
        return [row[0] for row in cursor.fetchall()]
