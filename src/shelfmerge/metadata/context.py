# ABOUTME: Run-scoped enrichment state: match thresholds, similarity memo, and lookup cache.
# ABOUTME: One EnrichmentContext lives for one import run and is dropped with it.

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from shelfmerge.metadata.types import CandidateRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchThresholds:
    """Similarity thresholds for accepting a candidate without an identifier match.

    A candidate is accepted when title similarity reaches ``title`` and
    author similarity reaches ``author``, or when the title is a
    near-exact match (``strict_title``) and the author clears the lower
    ``relaxed_author`` bar.
    """

    title: float = 0.7
    author: float = 0.5
    strict_title: float = 0.95
    relaxed_author: float = 0.3


LookupKey = tuple[str, str | None, str, str]

K = TypeVar("K")
V = TypeVar("V")

MAX_CACHED_LOOKUPS = 2_000
MAX_MEMOIZED_SIMILARITIES = 20_000


class BoundedCache(Generic[K, V]):
    """Least-recently-used mapping that drops its oldest entry once full."""

    def __init__(self, max_size: int) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._entries: OrderedDict[K, V] = OrderedDict()

    def get(self, key: K) -> V | None:
        value = self._entries.get(key)
        if value is not None:
            self._entries.move_to_end(key)
        return value

    def put(self, key: K, value: V) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        if len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class EnrichmentContext:
    """State shared by every lookup of one run.

    Holds the thresholds, a memo of normalized-text similarities, and the
    candidates each source already returned for a given lookup so repeated
    records in one export don't query the sources twice. Both caches are
    bounded, so a large export keeps only the most recently used entries.
    """

    thresholds: MatchThresholds = field(default_factory=MatchThresholds)
    max_lookups: int = MAX_CACHED_LOOKUPS
    max_similarities: int = MAX_MEMOIZED_SIMILARITIES
    _similarities: BoundedCache[tuple[str, str], float] = field(init=False, repr=False)
    _lookups: BoundedCache[LookupKey, list[CandidateRecord]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._similarities = BoundedCache(self.max_similarities)
        self._lookups = BoundedCache(self.max_lookups)

    def memoized_similarity(self, a: str, b: str) -> float | None:
        return self._similarities.get((a, b))

    def remember_similarity(self, a: str, b: str, value: float) -> None:
        self._similarities.put((a, b), value)

    @staticmethod
    def lookup_key(source: str, isbn: str | None, title: str, author: str) -> LookupKey:
        return (source, isbn, title.strip().lower(), author.strip().lower())

    def cached_lookup(self, key: LookupKey) -> list[CandidateRecord] | None:
        return self._lookups.get(key)

    def store_lookup(self, key: LookupKey, candidates: list[CandidateRecord]) -> None:
        logger.debug("Caching %d candidate(s) for %s", len(candidates), key)
        self._lookups.put(key, candidates)

    @property
    def cached_lookups(self) -> int:
        return len(self._lookups)

    @property
    def memoized_similarities(self) -> int:
        return len(self._similarities)
