# ABOUTME: Unit tests for turning export shelves into collections.
# ABOUTME: Covers shelf de-duplication, palette colours, and idempotent materialization.

from datetime import datetime, timezone

from shelfmerge.core.collections import (
    COLLECTION_DESCRIPTION,
    COLLECTION_ICON,
    COLLECTION_PALETTE,
    CollectionMap,
    collection_color,
    materialize_collections,
    unique_shelves,
)
from shelfmerge.core.parser import ParsedBook, ReadingStatus
from tests.fakes import InMemoryStore


def shelved(*shelves: str) -> ParsedBook:
    return ParsedBook(
        title="Dune",
        author="Frank Herbert",
        reading_status=ReadingStatus.WANT_TO_READ,
        date_added=datetime(2024, 1, 15, tzinfo=timezone.utc),
        shelves=shelves,
    )


class TestCollectionColor:
    """Tests for collection_color()."""

    def test_colour_comes_from_palette(self) -> None:
        assert collection_color("favorites") in COLLECTION_PALETTE

    def test_same_name_same_colour(self) -> None:
        assert collection_color("Sci-Fi") == collection_color("sci-fi")


class TestUniqueShelves:
    """Tests for unique_shelves()."""

    def test_first_spelling_wins_and_order_is_kept(self) -> None:
        books = [shelved("favorites", "Sci-Fi"), shelved("sci-fi", "book-club")]
        assert unique_shelves(books) == ["favorites", "Sci-Fi", "book-club"]

    def test_exclusive_shelves_are_dropped(self) -> None:
        assert unique_shelves([shelved("read", "to-read", "classics")]) == ["classics"]


class TestCollectionMap:
    """Tests for CollectionMap."""

    def test_lookup_is_case_insensitive(self) -> None:
        mapping = CollectionMap({"Sci-Fi": 3})
        assert mapping.get("sci-fi") == 3
        assert mapping.get(" SCI-FI ") == 3
        assert mapping.get("horror") is None

    def test_ids_for_skips_unknown_and_repeats(self) -> None:
        mapping = CollectionMap()
        mapping.add("favorites", 1)
        mapping.add("Sci-Fi", 2)
        assert mapping.ids_for(["sci-fi", "unknown", "Favorites", "SCI-FI"]) == [2, 1]


class TestMaterializeCollections:
    """Tests for materialize_collections()."""

    def test_creates_one_collection_per_shelf(self) -> None:
        store = InMemoryStore()
        mapping = materialize_collections(store, "reader", [shelved("favorites", "Sci-Fi")])

        assert mapping.created == ["favorites", "Sci-Fi"]
        assert [c.name for c in store.collections] == ["favorites", "Sci-Fi"]
        first = store.collections[0]
        assert first.description == COLLECTION_DESCRIPTION
        assert first.icon == COLLECTION_ICON
        assert first.color == collection_color("favorites")

    def test_second_run_creates_nothing(self) -> None:
        store = InMemoryStore()
        books = [shelved("favorites", "Sci-Fi")]
        materialize_collections(store, "reader", books)

        again = materialize_collections(store, "reader", books)

        assert again.created == []
        assert len(store.collections) == 2
        assert again.get("sci-fi") == store.collections[1].id

    def test_existing_collection_matched_case_insensitively(self) -> None:
        store = InMemoryStore()
        store.create_collection("reader", {"name": "Favorites"})

        mapping = materialize_collections(store, "reader", [shelved("favorites")])

        assert mapping.created == []
        assert mapping.get("favorites") == 1

    def test_other_users_collections_are_not_reused(self) -> None:
        store = InMemoryStore()
        store.create_collection("someone-else", {"name": "favorites"})

        mapping = materialize_collections(store, "reader", [shelved("favorites")])

        assert mapping.created == ["favorites"]
        assert mapping.get("favorites") == 2

    def test_no_shelves_no_lookups(self) -> None:
        store = InMemoryStore()
        mapping = materialize_collections(store, "reader", [shelved()])
        assert mapping.ids == {}
        assert store.collections == []
