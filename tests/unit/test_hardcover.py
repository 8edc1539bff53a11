# ABOUTME: Unit tests for the Hardcover parser and adapter.
# ABOUTME: Uses canned GraphQL responses and a scripted HTTP client; no network access.

import pytest

from shelfmerge.metadata.hardcover import HARDCOVER_URL, HardcoverAdapter
from shelfmerge.metadata.hardcover_parser import parse_document, parse_search_response
from shelfmerge.metadata.http import MetadataFetchError, SourceUnavailableError
from shelfmerge.metadata.provider import SourceAdapter
from shelfmerge.metadata.types import HARDCOVER
from tests.fakes import FakeHttpClient
from tests.fixtures.hardcover_responses import (
    ATOMIC_HABITS_DOCUMENT,
    ERROR_RESPONSE,
    SEARCH_RESPONSE,
    SEARCH_RESPONSE_EMPTY,
    SEARCH_RESPONSE_STRING_RESULTS,
)


class TestParseSearchResponse:
    """Tests for parse_search_response() and parse_document()."""

    def test_parses_document_fields(self) -> None:
        candidates = parse_search_response(SEARCH_RESPONSE)
        assert len(candidates) == 1
        c = candidates[0]
        assert c.title == "Atomic Habits"
        assert c.author == "James Clear"
        assert c.source_name == HARDCOVER
        assert c.isbn == "9780735211292"
        assert c.isbns == ("9780735211292", "0735211299")
        assert c.cover_url == ATOMIC_HABITS_DOCUMENT["image"]["url"]
        assert c.genre_raw == "Self Help, Nonfiction, Psychology"
        assert c.published_date == "2018"
        assert c.page_count == 320
        assert c.has_description

    def test_string_encoded_results(self) -> None:
        candidates = parse_search_response(SEARCH_RESPONSE_STRING_RESULTS)
        assert [c.title for c in candidates] == ["Atomic Habits"]

    def test_empty_hits(self) -> None:
        assert parse_search_response(SEARCH_RESPONSE_EMPTY) == []

    def test_graphql_errors_without_data_raise(self) -> None:
        with pytest.raises(MetadataFetchError, match="GraphQL errors"):
            parse_search_response(ERROR_RESPONSE)

    def test_document_without_title_is_skipped(self) -> None:
        assert parse_document({"author_names": ["Nobody"]}) is None

    def test_plain_string_image(self) -> None:
        c = parse_document({"title": "Dune", "image": "https://example.com/dune.jpg"})
        assert c is not None
        assert c.cover_url == "https://example.com/dune.jpg"
        assert c.author == ""


class TestHardcoverAdapter:
    """Tests for HardcoverAdapter.fetch()."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(HardcoverAdapter(FakeHttpClient()), SourceAdapter)

    async def test_isbn_lookup_short_circuits(self) -> None:
        http = FakeHttpClient({HARDCOVER_URL: SEARCH_RESPONSE})
        adapter = HardcoverAdapter(http)

        candidates = await adapter.fetch("9780735211292", "Atomic Habits", "James Clear")

        assert [c.title for c in candidates] == ["Atomic Habits"]
        assert len(http.calls) == 1
        assert http.calls[0][2]["variables"]["query"] == "9780735211292"

    async def test_falls_through_formulations_when_nothing_matches(self) -> None:
        http = FakeHttpClient({HARDCOVER_URL: SEARCH_RESPONSE_EMPTY})
        adapter = HardcoverAdapter(http)

        candidates = await adapter.fetch("9780735211292", "Atomic Habits", "James Clear")

        assert candidates == []
        searched = [payload["variables"]["query"] for _, _, payload in http.calls]
        assert searched == [
            "9780735211292",
            "0735211299",
            "Atomic Habits James Clear",
            "Atomic Habits Clear",
            "Atomic Habits",
        ]

    async def test_token_is_sent_as_bearer(self) -> None:
        http = FakeHttpClient({HARDCOVER_URL: SEARCH_RESPONSE})
        adapter = HardcoverAdapter(http, token="secret")
        await adapter.fetch(None, "Atomic Habits", "James Clear")
        assert http.headers[0]["Authorization"] == "Bearer secret"

    async def test_no_token_sends_no_authorization(self) -> None:
        http = FakeHttpClient({HARDCOVER_URL: SEARCH_RESPONSE})
        await HardcoverAdapter(http).fetch(None, "Atomic Habits", "James Clear")
        assert "Authorization" not in http.headers[0]

    async def test_graphql_error_yields_no_candidates(self) -> None:
        http = FakeHttpClient({HARDCOVER_URL: ERROR_RESPONSE})
        candidates = await HardcoverAdapter(http).fetch(None, "Atomic Habits", "James Clear")
        assert candidates == []
        assert len(http.calls) == 1

    async def test_unavailable_source_yields_no_candidates(self) -> None:
        http = FakeHttpClient({HARDCOVER_URL: SourceUnavailableError("down")})
        candidates = await HardcoverAdapter(http).fetch(None, "Atomic Habits", "James Clear")
        assert candidates == []
