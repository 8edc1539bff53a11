# ABOUTME: WorldCat (union catalog) source adapter.
# ABOUTME: Renders queries as SRU CQL expressions and parses the Dublin Core XML response.

import logging

from shelfmerge.metadata.provider import BaseSourceAdapter
from shelfmerge.metadata.queries import Query, QueryKind
from shelfmerge.metadata.types import WORLDCAT, CandidateRecord
from shelfmerge.metadata.worldcat_parser import parse_sru_response

logger = logging.getLogger(__name__)

WORLDCAT_SRU_URL = "http://www.worldcat.org/webservices/catalog/search/sru"
_MAX_RECORDS = 5
_RECORD_SCHEMA = "info:srw/schema/1/dc"


def _cql_value(value: str) -> str:
    return value.replace('"', "").replace(":", "").strip()


def render_query(query: Query) -> list[str]:
    """Render a Query into one or more CQL expressions."""
    if query.kind is QueryKind.IDENTIFIER:
        return [f'srw.isbn="{isbn}"' for isbn in query.isbns]

    relation = "=" if query.exact else " all "
    cql = f'srw.ti{relation}"{_cql_value(query.title)}"'
    if query.author:
        cql += f' and srw.au{relation}"{_cql_value(query.author)}"'
    return [cql]


class WorldCatAdapter(BaseSourceAdapter):
    """Source adapter backed by the WorldCat SRU catalog search."""

    name = WORLDCAT

    async def _run_query(self, query: Query) -> list[CandidateRecord]:
        for cql in render_query(query):
            params = {
                "query": cql,
                "maximumRecords": str(_MAX_RECORDS),
                "recordSchema": _RECORD_SCHEMA,
            }

            logger.debug("WorldCat search: %s", cql)
            xml_text = await self._http.get_text(WORLDCAT_SRU_URL, params=params)
            candidates = parse_sru_response(xml_text)
            if candidates:
                return candidates
        return []
