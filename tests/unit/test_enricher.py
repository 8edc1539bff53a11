# ABOUTME: Unit tests for the Enricher's source selection, caching, and fusion.
# ABOUTME: Uses canned adapters, plus a scripted HTTP client for the query fallback path.

from shelfmerge.metadata.context import EnrichmentContext
from shelfmerge.metadata.enricher import (
    Enricher,
    EnrichmentMode,
    EnrichmentSettings,
    build_adapters,
)
from shelfmerge.metadata.googlebooks import GOOGLE_BOOKS_URL, GoogleBooksAdapter
from shelfmerge.metadata.http import RetryingHttpClient
from shelfmerge.metadata.provider import SourceAdapter
from shelfmerge.metadata.types import (
    GOOGLE_BOOKS,
    HARDCOVER,
    OPEN_LIBRARY,
    WORLDCAT,
    CandidateRecord,
)
from tests.fakes import FakeAdapter, FakeHttpClient
from tests.fixtures.googlebooks_responses import STUDY_GUIDE_RESPONSE, VOLUMES_RESPONSE

DESCRIPTION = (
    "No matter your goals, Atomic Habits offers a proven framework for improving every day. "
    "James Clear reveals practical strategies that will teach you exactly how to form good "
    "habits, break bad ones, and master the tiny behaviors that lead to remarkable results."
)


def hit(source: str, title: str = "Atomic Habits", **fields: object) -> CandidateRecord:
    return CandidateRecord(
        title=title,
        author="James Clear",
        source_name=source,
        **fields,  # type: ignore[arg-type]
    )


def adapters(
    hardcover: list[CandidateRecord] | None = None,
    **others: list[CandidateRecord],
) -> dict[str, FakeAdapter]:
    return {
        HARDCOVER: FakeAdapter(HARDCOVER, hardcover),
        GOOGLE_BOOKS: FakeAdapter(GOOGLE_BOOKS, others.get("googlebooks")),
        WORLDCAT: FakeAdapter(WORLDCAT, others.get("worldcat")),
        OPEN_LIBRARY: FakeAdapter(OPEN_LIBRARY, others.get("openlibrary")),
    }


class TestBuildAdapters:
    """Tests for build_adapters() and EnrichmentSettings."""

    def test_one_adapter_per_source(self) -> None:
        built = build_adapters(EnrichmentSettings(), FakeHttpClient())
        assert [a.name for a in built] == [HARDCOVER, GOOGLE_BOOKS, WORLDCAT, OPEN_LIBRARY]
        assert all(isinstance(a, SourceAdapter) for a in built)

    async def test_settings_build_a_retrying_client(self) -> None:
        async with EnrichmentSettings(max_retries=1, retry_delay=0.0).http_client() as client:
            assert isinstance(client, RetryingHttpClient)


class TestEnricherSourceSelection:
    """Tests for which sources get queried."""

    async def test_complete_primary_is_cross_checked_only_with_google(self) -> None:
        fakes = adapters(
            hardcover=[hit(HARDCOVER, cover_url="https://hc/a.jpg", description=DESCRIPTION)],
            googlebooks=[hit(GOOGLE_BOOKS, publisher="Penguin")],
        )
        enricher = Enricher(fakes.values())

        result = await enricher.enrich("9780735211292", "Atomic Habits", "James Clear")

        assert len(fakes[GOOGLE_BOOKS].fetches) == 1
        assert fakes[WORLDCAT].fetches == []
        assert fakes[OPEN_LIBRARY].fetches == []
        assert result.sources == (HARDCOVER, GOOGLE_BOOKS)
        assert result.cover_url == "https://hc/a.jpg"
        assert result.publisher == "Penguin"

    async def test_incomplete_primary_queries_all_fallbacks(self) -> None:
        fakes = adapters(
            hardcover=[hit(HARDCOVER, cover_url="https://hc/a.jpg")],
            openlibrary=[hit(OPEN_LIBRARY, description=DESCRIPTION)],
        )
        result = await Enricher(fakes.values()).enrich(None, "Atomic Habits", "James Clear")

        for name in (GOOGLE_BOOKS, WORLDCAT, OPEN_LIBRARY):
            assert len(fakes[name].fetches) == 1
        assert result.description == DESCRIPTION
        assert result.sources == (HARDCOVER, OPEN_LIBRARY)

    async def test_missing_primary_queries_all_fallbacks(self) -> None:
        fakes = adapters(worldcat=[hit(WORLDCAT, publisher="Avery")])
        result = await Enricher(fakes.values()).enrich(None, "Atomic Habits", "James Clear")
        assert result.publisher == "Avery"
        assert result.sources == (WORLDCAT,)

    async def test_hardcover_only_mode(self) -> None:
        fakes = adapters(
            hardcover=[hit(HARDCOVER, cover_url="https://hc/a.jpg")],
            googlebooks=[hit(GOOGLE_BOOKS, description=DESCRIPTION)],
        )
        enricher = Enricher(fakes.values(), mode=EnrichmentMode.HARDCOVER_ONLY)

        result = await enricher.enrich(None, "Atomic Habits", "James Clear")

        assert enricher.mode is EnrichmentMode.HARDCOVER_ONLY
        assert fakes[GOOGLE_BOOKS].fetches == []
        assert result.sources == (HARDCOVER,)
        assert result.description is None

    async def test_failing_adapter_does_not_sink_the_lookup(self) -> None:
        fakes = adapters(openlibrary=[hit(OPEN_LIBRARY, publisher="Avery")])
        fakes[HARDCOVER] = FakeAdapter(HARDCOVER, error=RuntimeError("boom"))
        fakes[GOOGLE_BOOKS] = FakeAdapter(GOOGLE_BOOKS, error=RuntimeError("boom"))

        result = await Enricher(fakes.values()).enrich(None, "Atomic Habits", "James Clear")

        assert result.sources == (OPEN_LIBRARY,)

    async def test_rejected_candidates_leave_result_empty(self) -> None:
        fakes = adapters(
            hardcover=[hit(HARDCOVER, title="Atomic Habits: Summary and Analysis")],
            googlebooks=[CandidateRecord("The Power of Habit", "Charles Duhigg", GOOGLE_BOOKS)],
        )
        result = await Enricher(fakes.values()).enrich(None, "Atomic Habits", "James Clear")
        assert result.is_empty
        assert result.sources == ()

    async def test_source_filter_rejects_derivative_works(self) -> None:
        fakes = adapters(hardcover=[hit(HARDCOVER)])
        await Enricher(fakes.values()).enrich("9780735211292", "Atomic Habits", "James Clear")

        accept = fakes[HARDCOVER].filters[0]
        assert accept is not None
        assert accept(hit(HARDCOVER))
        assert not accept(hit(HARDCOVER, title="Study Guide: Atomic Habits"))
        assert not accept(CandidateRecord("The Power of Habit", "Charles Duhigg", HARDCOVER))

    async def test_study_guide_isbn_hit_falls_back_to_title_search(self) -> None:
        def answer(url: str, params: dict) -> dict:
            if params["q"].startswith("isbn:"):
                return STUDY_GUIDE_RESPONSE
            return VOLUMES_RESPONSE

        http = FakeHttpClient({GOOGLE_BOOKS_URL: answer})
        enricher = Enricher([GoogleBooksAdapter(http)])

        result = await enricher.enrich("9780735211292", "Atomic Habits", "James Clear")

        assert result.sources == (GOOGLE_BOOKS,)
        assert result.cover_url is not None
        assert any(call[2]["q"].startswith("intitle:") for call in http.calls)


class TestEnricherCache:
    """Tests for the run-scoped lookup cache."""

    async def test_repeated_lookup_hits_cache(self) -> None:
        fakes = adapters(hardcover=[hit(HARDCOVER, cover_url="https://hc/a.jpg")])
        context = EnrichmentContext()
        enricher = Enricher(fakes.values(), context=context)

        first = await enricher.enrich(None, "Atomic Habits", "James Clear")
        second = await enricher.enrich(None, "atomic habits ", "James Clear")

        assert first == second
        assert len(fakes[HARDCOVER].fetches) == 1
        assert context.cached_lookups == 4

    async def test_separate_contexts_do_not_share_cache(self) -> None:
        fakes = adapters(hardcover=[hit(HARDCOVER)])
        await Enricher(fakes.values()).enrich(None, "Atomic Habits", "James Clear")
        await Enricher(fakes.values()).enrich(None, "Atomic Habits", "James Clear")
        assert len(fakes[HARDCOVER].fetches) == 2
