# ABOUTME: Hardcover (community book graph) source adapter.
# ABOUTME: Searches the Hardcover GraphQL API by ISBN or title/author and returns raw candidates.

import logging

from shelfmerge.metadata.hardcover_parser import parse_search_response
from shelfmerge.metadata.http import HttpClient
from shelfmerge.metadata.provider import BaseSourceAdapter
from shelfmerge.metadata.queries import Query, QueryKind
from shelfmerge.metadata.types import HARDCOVER, CandidateRecord

logger = logging.getLogger(__name__)

HARDCOVER_URL = "https://api.hardcover.app/v1/graphql"
_PER_PAGE = 5

SEARCH_QUERY = """
query SearchBooks($query: String!, $perPage: Int!) {
  search(query: $query, query_type: "books", per_page: $perPage) {
    results
  }
}
"""


class HardcoverAdapter(BaseSourceAdapter):
    """Source adapter backed by the Hardcover GraphQL search endpoint.

    Hardcover search is free-text, so quoting makes no difference and the
    loose title+author formulation is skipped. An API token is optional but
    raises rate limits.
    """

    name = HARDCOVER

    def __init__(self, http_client: HttpClient, token: str | None = None) -> None:
        super().__init__(http_client)
        self._token = token

    async def _run_query(self, query: Query) -> list[CandidateRecord]:
        if query.kind is QueryKind.IDENTIFIER:
            for isbn in query.isbns:
                candidates = await self._search(isbn)
                if candidates:
                    return candidates
            return []

        if query.kind is QueryKind.LOOSE:
            return []

        text = f"{query.title} {query.author}" if query.author else query.title
        return await self._search(text)

    async def _search(self, text: str) -> list[CandidateRecord]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            token = self._token
            if not token.lower().startswith("bearer "):
                token = f"Bearer {token}"
            headers["Authorization"] = token

        payload = {
            "query": SEARCH_QUERY,
            "variables": {"query": text, "perPage": _PER_PAGE},
        }
        logger.debug("Hardcover search: %s", text)
        data = await self._http.post_json(HARDCOVER_URL, payload, headers=headers)
        return parse_search_response(data)
