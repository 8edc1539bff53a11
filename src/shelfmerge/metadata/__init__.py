# ABOUTME: Metadata package: source adapters, matching, fusion, and genre normalization.
# ABOUTME: Exports the types and entry points used by the import pipeline and the CLI.

from shelfmerge.metadata.context import EnrichmentContext, MatchThresholds
from shelfmerge.metadata.enricher import Enricher, EnrichmentMode, EnrichmentSettings
from shelfmerge.metadata.genres import normalize_genre, normalize_genres, standard_genres
from shelfmerge.metadata.provider import SourceAdapter
from shelfmerge.metadata.types import CandidateRecord, EnrichedResult, ScoredCandidate

__all__ = [
    "CandidateRecord",
    "EnrichedResult",
    "Enricher",
    "EnrichmentContext",
    "EnrichmentMode",
    "EnrichmentSettings",
    "MatchThresholds",
    "ScoredCandidate",
    "SourceAdapter",
    "normalize_genre",
    "normalize_genres",
    "standard_genres",
]
