# ABOUTME: Google Books (general book search) source adapter.
# ABOUTME: Renders queries with isbn:/intitle:/inauthor: operators against the volumes endpoint.

import logging

from shelfmerge.metadata.googlebooks_parser import parse_volumes_response
from shelfmerge.metadata.http import HttpClient
from shelfmerge.metadata.provider import BaseSourceAdapter
from shelfmerge.metadata.queries import Query, QueryKind
from shelfmerge.metadata.types import GOOGLE_BOOKS, CandidateRecord

logger = logging.getLogger(__name__)

GOOGLE_BOOKS_URL = "https://www.googleapis.com/books/v1/volumes"
_MAX_RESULTS = 5


def _term(operator: str, value: str, quoted: bool) -> str:
    value = value.replace('"', "")
    return f'{operator}:"{value}"' if quoted else f"{operator}:{value}"


def render_query(query: Query) -> list[str]:
    """Render a Query into one or more ``q`` strings (one per ISBN variant)."""
    if query.kind is QueryKind.IDENTIFIER:
        return [f"isbn:{isbn}" for isbn in query.isbns]

    parts = [_term("intitle", query.title, query.exact)]
    if query.author:
        # A bare surname is matched loosely so middle names and initials don't get in the way.
        quoted_author = query.exact and query.kind is not QueryKind.SURNAME
        parts.append(_term("inauthor", query.author, quoted_author))
    return [" ".join(parts)]


class GoogleBooksAdapter(BaseSourceAdapter):
    """Source adapter backed by the Google Books volumes search API."""

    name = GOOGLE_BOOKS

    def __init__(self, http_client: HttpClient, api_key: str | None = None) -> None:
        super().__init__(http_client)
        self._api_key = api_key

    async def _run_query(self, query: Query) -> list[CandidateRecord]:
        for search in render_query(query):
            params = {
                "q": search,
                "maxResults": str(_MAX_RESULTS),
                "printType": "books",
            }
            if self._api_key:
                params["key"] = self._api_key

            logger.debug("Google Books search: %s", search)
            data = await self._http.get_json(GOOGLE_BOOKS_URL, params=params)
            candidates = parse_volumes_response(data)
            if candidates:
                return candidates
        return []
