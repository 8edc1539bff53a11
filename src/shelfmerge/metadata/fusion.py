# ABOUTME: Fusion engine combining the best candidate of each source into one EnrichedResult.
# ABOUTME: Picks covers and descriptions by quality score and other fields by consensus.

import logging
import re
import statistics
from collections.abc import Callable, Iterable

from shelfmerge.metadata.context import MatchThresholds
from shelfmerge.metadata.filters import is_non_english
from shelfmerge.metadata.genres import DEFAULT_MAX_GENRES, normalize_genre_list
from shelfmerge.metadata.text import normalize_text, strip_html
from shelfmerge.metadata.types import (
    GOOGLE_BOOKS,
    HARDCOVER,
    OPEN_LIBRARY,
    WORLDCAT,
    EnrichedResult,
    ScoredCandidate,
    source_rank,
)

logger = logging.getLogger(__name__)

# How much each source's covers and descriptions are trusted.
SOURCE_WEIGHTS: dict[str, int] = {
    HARDCOVER: 40,
    WORLDCAT: 30,
    OPEN_LIBRARY: 20,
    GOOGLE_BOOKS: 10,
}

HTTPS_BONUS = 10
LARGE_IMAGE_BONUS = 15
THUMBNAIL_PENALTY = -5
PLACEHOLDER_PENALTY = -200

_LARGE_HINT_RE = re.compile(r"zoom=0|-L\.jpg|extralarge|large|/original/|_SL\d{3,}", re.IGNORECASE)
_THUMBNAIL_HINT_RE = re.compile(r"thumbnail|-S\.jpg|zoom=5|/thumb", re.IGNORECASE)
_PLACEHOLDER_RE = re.compile(
    r"no[_\-]?cover|no[_\-]?image|placeholder|default[_\-]?cover|image[_\-]not[_\-]available",
    re.IGNORECASE,
)

MIN_DESCRIPTION_LENGTH = 50
IDEAL_DESCRIPTION_RANGE = (200, 1000)
IDEAL_LENGTH_SCORE = 30
NEAR_LENGTH_SCORE = 15
OTHER_LENGTH_SCORE = 5
NON_ENGLISH_DESCRIPTION_PENALTY = -100

PAGE_COUNT_TOLERANCE = 0.10
LOW_CONFIDENCE = 0.5

_YEAR_RE = re.compile(r"\b(\d{4})\b")
_CORPORATE_SUFFIX_RE = re.compile(r"\b(inc|incorporated|ltd|llc|co|corp|gmbh)\b")


def score_cover(url: str, source_name: str) -> int:
    """Quality score for a cover URL. Negative means the cover is unusable."""
    score = SOURCE_WEIGHTS.get(source_name, 0)
    if url.startswith("https://"):
        score += HTTPS_BONUS
    if _LARGE_HINT_RE.search(url):
        score += LARGE_IMAGE_BONUS
    if _THUMBNAIL_HINT_RE.search(url):
        score += THUMBNAIL_PENALTY
    if _PLACEHOLDER_RE.search(url):
        score += PLACEHOLDER_PENALTY
    return score


def _length_score(length: int) -> int:
    low, high = IDEAL_DESCRIPTION_RANGE
    if low <= length <= high:
        return IDEAL_LENGTH_SCORE
    if low // 2 <= length < low or high < length <= high * 2:
        return NEAR_LENGTH_SCORE
    return OTHER_LENGTH_SCORE


def score_description(text: str, source_name: str) -> int | None:
    """Quality score for an already HTML-stripped description; None when too short."""
    if len(text) < MIN_DESCRIPTION_LENGTH:
        return None
    score = SOURCE_WEIGHTS.get(source_name, 0) + _length_score(len(text))
    if is_non_english(text):
        score += NON_ENGLISH_DESCRIPTION_PENALTY
    return score


def _priority_order(best: Iterable[ScoredCandidate]) -> list[ScoredCandidate]:
    return sorted(best, key=lambda scored: source_rank(scored.source_name))


def pick_cover(best: list[ScoredCandidate]) -> str | None:
    """Highest-scoring non-negative cover; ties go to the higher-priority source."""
    chosen: str | None = None
    chosen_score = -1
    for scored in _priority_order(best):
        url = scored.candidate.cover_url
        if not url:
            continue
        score = score_cover(url, scored.source_name)
        if score >= 0 and score > chosen_score:
            chosen, chosen_score = url, score
    return chosen


def pick_description(best: list[ScoredCandidate]) -> str | None:
    """Highest-scoring plain-text description of usable length."""
    chosen: str | None = None
    chosen_score = -1
    for scored in _priority_order(best):
        text = strip_html(scored.candidate.description)
        if not text:
            continue
        score = score_description(text, scored.source_name)
        if score is not None and score >= 0 and score > chosen_score:
            chosen, chosen_score = text, score
    return chosen


def merge_genres(best: list[ScoredCandidate], max_genres: int = DEFAULT_MAX_GENRES) -> str | None:
    """Union of normalized genres across sources in priority order, capped."""
    genres: list[str] = []
    for scored in _priority_order(best):
        for genre in normalize_genre_list(scored.candidate.genre_raw, max_genres):
            if genre not in genres:
                genres.append(genre)
    genres = genres[:max_genres]
    return ", ".join(genres) if genres else None


def consensus(values: list[str], key: Callable[[str], str]) -> list[str]:
    """The largest group of values sharing a key; ties go to the group seen first."""
    groups: dict[str, list[str]] = {}
    for value in values:
        groups.setdefault(key(value), []).append(value)
    if not groups:
        return []
    # max() keeps the first of equal-sized groups, and dicts keep insertion order.
    return max(groups.values(), key=len)


def publisher_key(publisher: str) -> str:
    return _CORPORATE_SUFFIX_RE.sub("", normalize_text(publisher)).strip()


def date_key(date: str) -> str:
    match = _YEAR_RE.search(date)
    return match.group(1) if match else normalize_text(date)


def consensus_publisher(values: list[str]) -> str | None:
    group = consensus(values, publisher_key)
    return group[0] if group else None


def consensus_date(values: list[str]) -> str | None:
    """Most common publication year, returned in its most specific spelling."""
    group = consensus(values, date_key)
    if not group:
        return None
    return max(group, key=len)


def consensus_page_count(values: list[int]) -> int | None:
    """Median of the largest cluster of counts within 10% of each other.

    A cluster of one means the sources disagree; the first value present wins.
    """
    if not values:
        return None
    largest: list[int] = []
    for anchor in values:
        cluster = [v for v in values if abs(v - anchor) <= anchor * PAGE_COUNT_TOLERANCE]
        if len(cluster) > len(largest):
            largest = cluster
    if len(largest) >= 2:
        return round(statistics.median(largest))
    return values[0]


def fusion_confidence(best: list[ScoredCandidate], thresholds: MatchThresholds) -> float | None:
    """Fraction of contributing candidates that match on both title and author."""
    if not best:
        return None
    agreeing = sum(
        1
        for scored in best
        if scored.title_similarity >= thresholds.title
        and scored.author_similarity >= thresholds.author
    )
    return agreeing / len(best)


def fuse(
    best: list[ScoredCandidate],
    thresholds: MatchThresholds | None = None,
    *,
    label: str = "",
) -> EnrichedResult:
    """Fuse the best candidate of each contributing source into one result.

    Args:
        best: At most one ScoredCandidate per source.
        thresholds: Used only for the confidence figure.
        label: Book label for log messages.
    """
    if not best:
        return EnrichedResult()
    thresholds = thresholds or MatchThresholds()
    ordered = _priority_order(best)

    publishers = [s.candidate.publisher for s in ordered if s.candidate.publisher]
    dates = [s.candidate.published_date for s in ordered if s.candidate.published_date]
    pages = [s.candidate.page_count for s in ordered if s.candidate.page_count]

    confidence = fusion_confidence(ordered, thresholds)
    if confidence is not None and confidence < LOW_CONFIDENCE:
        logger.warning("Low confidence (%.2f) fusing metadata for %s", confidence, label or "book")

    return EnrichedResult(
        cover_url=pick_cover(ordered),
        genre=merge_genres(ordered),
        description=pick_description(ordered),
        publisher=consensus_publisher(publishers),
        published_date=consensus_date(dates),
        page_count=consensus_page_count(pages),
        sources=tuple(s.source_name for s in ordered),
        confidence=confidence,
    )
