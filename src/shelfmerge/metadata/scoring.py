# ABOUTME: Candidate matching and scoring against the book being enriched.
# ABOUTME: Decides whether a source hit is the same book and ranks accepted hits best-first.

import logging
from dataclasses import dataclass

from shelfmerge.metadata.context import EnrichmentContext
from shelfmerge.metadata.filters import is_non_english, is_summary_title
from shelfmerge.metadata.isbn import clean_isbn, isbn_variants
from shelfmerge.metadata.text import normalize_text
from shelfmerge.metadata.types import CandidateRecord, ScoredCandidate

logger = logging.getLogger(__name__)

# Score components
IDENTIFIER_MATCH_BONUS = 50.0
TITLE_WEIGHT = 30.0
AUTHOR_WEIGHT = 20.0
COVER_BONUS = 5.0
DESCRIPTION_BONUS = 5.0
SUMMARY_PENALTY = -50.0
NON_ENGLISH_PENALTY = -60.0

CONTAINMENT_SIMILARITY = 0.9


@dataclass(frozen=True)
class ExpectedBook:
    """What we know about the book being enriched."""

    title: str
    author: str
    isbn: str | None = None


def _token_similarity(a: str, b: str) -> float:
    words_a = set(a.split())
    words_b = set(b.split())
    smaller, larger = (words_a, words_b) if len(words_a) <= len(words_b) else (words_b, words_a)
    if not smaller:
        return 0.0
    found = sum(1 for word in smaller if any(word in other for other in larger))
    return found / len(smaller)


def similarity(a: str | None, b: str | None, context: EnrichmentContext | None = None) -> float:
    """Fuzzy similarity of two strings in [0, 1].

    Both sides are normalized (lowercase, punctuation stripped, whitespace
    collapsed). Identical strings score 1.0 and containment scores 0.9;
    otherwise the score is the fraction of the smaller word set whose
    words appear inside words of the other set.
    """
    norm_a = normalize_text(a)
    norm_b = normalize_text(b)
    if not norm_a or not norm_b:
        return 0.0

    if context is not None:
        memo = context.memoized_similarity(norm_a, norm_b)
        if memo is not None:
            return memo

    if norm_a == norm_b:
        value = 1.0
    elif norm_a in norm_b or norm_b in norm_a:
        value = CONTAINMENT_SIMILARITY
    else:
        value = _token_similarity(norm_a, norm_b)

    if context is not None:
        context.remember_similarity(norm_a, norm_b, value)
    return value


def identifier_match(expected_isbn: str | None, candidate: CandidateRecord) -> bool:
    """Whether any of the candidate's identifiers is the expected ISBN in either form."""
    wanted = set(isbn_variants(expected_isbn))
    if not wanted:
        return False
    for identifier in candidate.identifiers:
        cleaned = clean_isbn(identifier)
        if cleaned and cleaned in wanted:
            return True
    return False


def score_candidate(
    candidate: CandidateRecord,
    *,
    title_similarity: float,
    author_similarity: float,
    isbn_match: bool,
) -> float:
    """Additive match score. Not clamped: each component contributes exactly its weight."""
    score = TITLE_WEIGHT * title_similarity + AUTHOR_WEIGHT * author_similarity
    if isbn_match:
        score += IDENTIFIER_MATCH_BONUS
    if candidate.has_cover:
        score += COVER_BONUS
    if candidate.has_description:
        score += DESCRIPTION_BONUS
    if is_summary_title(candidate.title):
        score += SUMMARY_PENALTY
    if is_non_english(candidate.description):
        score += NON_ENGLISH_PENALTY
    return score


def evaluate_candidate(
    candidate: CandidateRecord,
    expected: ExpectedBook,
    context: EnrichmentContext,
) -> ScoredCandidate | None:
    """Score a candidate, or return None when it must be rejected.

    Summaries, study guides, and candidates with non-English descriptions
    are always rejected. Otherwise an exact identifier match is accepted
    regardless of similarity; without one the title and author
    similarities must clear the context's thresholds.
    """
    if is_summary_title(candidate.title):
        logger.debug(
            "Rejected %s candidate %r: summary or study guide",
            candidate.source_name,
            candidate.title,
        )
        return None
    if is_non_english(candidate.description):
        logger.debug(
            "Rejected %s candidate %r: non-English description",
            candidate.source_name,
            candidate.title,
        )
        return None

    title_sim = similarity(expected.title, candidate.title, context)
    author_sim = similarity(expected.author, candidate.author, context)
    isbn_match = identifier_match(expected.isbn, candidate)

    if not isbn_match:
        limits = context.thresholds
        author_ok = author_sim >= limits.author or (
            title_sim >= limits.strict_title and author_sim >= limits.relaxed_author
        )
        if title_sim < limits.title or not author_ok:
            return None

    score = score_candidate(
        candidate,
        title_similarity=title_sim,
        author_similarity=author_sim,
        isbn_match=isbn_match,
    )
    return ScoredCandidate(
        candidate=candidate,
        score=score,
        title_similarity=title_sim,
        author_similarity=author_sim,
        isbn_match=isbn_match,
    )


def rank_candidates(
    candidates: list[CandidateRecord],
    expected: ExpectedBook,
    context: EnrichmentContext,
) -> list[ScoredCandidate]:
    """Accepted candidates sorted best-first (score, then source priority)."""
    scored = [
        result
        for result in (evaluate_candidate(c, expected, context) for c in candidates)
        if result is not None
    ]
    scored.sort(key=ScoredCandidate.sort_key)
    return scored
