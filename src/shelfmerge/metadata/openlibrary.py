# ABOUTME: Open Library (open catalog) source adapter.
# ABOUTME: Looks up editions by ISBN or searches by title/author, with works/author follow-ups.

import logging
from dataclasses import replace

from shelfmerge.metadata.http import MetadataFetchError, SourceRequestError
from shelfmerge.metadata.openlibrary_parser import (
    SearchDoc,
    parse_author_keys,
    parse_author_name,
    parse_edition_response,
    parse_search_results,
    parse_works_key,
    parse_works_response,
    parse_works_subjects,
)
from shelfmerge.metadata.provider import BaseSourceAdapter
from shelfmerge.metadata.queries import Query, QueryKind
from shelfmerge.metadata.types import OPEN_LIBRARY, CandidateRecord

logger = logging.getLogger(__name__)

_OL_BASE = "https://openlibrary.org"
_SEARCH_LIMIT = 10
_ENRICH_DESCRIPTION_LIMIT = 3


def render_params(query: Query) -> dict[str, str]:
    """Search API parameters for a non-identifier query."""
    params: dict[str, str] = {"limit": str(_SEARCH_LIMIT)}
    if query.kind is QueryKind.LOOSE:
        params["q"] = f"{query.title} {query.author or ''}".strip()
        return params
    params["title"] = query.title
    if query.author:
        params["author"] = query.author
    return params


class OpenLibraryAdapter(BaseSourceAdapter):
    """Source adapter backed by the Open Library API.

    ISBN lookups hit the edition endpoint for each ISBN variant and follow up
    with the works and author endpoints. Title/author lookups use the search
    API and fetch works descriptions for the top hits.
    """

    name = OPEN_LIBRARY

    async def _run_query(self, query: Query) -> list[CandidateRecord]:
        if query.kind is QueryKind.IDENTIFIER:
            return await self._lookup_isbns(query.isbns)
        return await self._search(query)

    async def _lookup_isbns(self, isbns: tuple[str, ...]) -> list[CandidateRecord]:
        for isbn in isbns:
            try:
                data = await self._http.get_json(f"{_OL_BASE}/isbn/{isbn}.json")
            except SourceRequestError:
                # 404 for this variant; the other form may still be catalogued.
                logger.debug("Open Library has no edition for ISBN %s", isbn)
                continue

            candidate = parse_edition_response(data)
            if candidate is None:
                continue
            candidate = await self._enrich_from_works(candidate, parse_works_key(data))
            candidate = await self._enrich_authors(candidate, parse_author_keys(data))
            return [candidate]
        return []

    async def _search(self, query: Query) -> list[CandidateRecord]:
        params = render_params(query)
        logger.debug("Open Library search: %s", params)
        data = await self._http.get_json(f"{_OL_BASE}/search.json", params=params)

        docs = parse_search_results(data)
        candidates: list[CandidateRecord] = []
        for index, doc in enumerate(docs):
            if index < _ENRICH_DESCRIPTION_LIMIT:
                candidates.append(await self._with_description(doc))
            else:
                candidates.append(doc.candidate)
        return candidates

    async def _with_description(self, doc: SearchDoc) -> CandidateRecord:
        if doc.candidate.description is not None or not doc.works_key:
            return doc.candidate
        return await self._enrich_from_works(doc.candidate, doc.works_key)

    async def _enrich_from_works(
        self, candidate: CandidateRecord, works_key: str | None
    ) -> CandidateRecord:
        """Fill description and subjects from the works endpoint if available."""
        if not works_key:
            return candidate
        try:
            works_data = await self._http.get_json(f"{_OL_BASE}{works_key}.json")
        except MetadataFetchError as exc:
            logger.debug("Works lookup failed for %s: %s", works_key, exc)
            return candidate

        return replace(
            candidate,
            description=candidate.description or parse_works_response(works_data),
            genre_raw=candidate.genre_raw or parse_works_subjects(works_data),
        )

    async def _enrich_authors(
        self, candidate: CandidateRecord, author_keys: list[str]
    ) -> CandidateRecord:
        """Resolve author keys into names via the authors endpoint."""
        authors: list[str] = []
        for author_key in author_keys:
            try:
                author_data = await self._http.get_json(f"{_OL_BASE}{author_key}.json")
            except MetadataFetchError:
                continue
            name = parse_author_name(author_data)
            if name:
                authors.append(name)

        if not authors:
            return candidate
        return replace(candidate, author=", ".join(authors))
