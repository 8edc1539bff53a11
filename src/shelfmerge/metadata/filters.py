# ABOUTME: Rejection lexicons for candidates that are not the book itself.
# ABOUTME: Detects summary/study-guide titles and non-English descriptions.

import re

# Titles of derivative works: summaries, study guides, and their German equivalents.
SUMMARY_MARKERS: tuple[str, ...] = (
    "summary",
    "summaries",
    "sparknotes",
    "cliffsnotes",
    "cliff notes",
    "study guide",
    "analysis of",
    "book analysis",
    "reader's guide",
    "readers guide",
    "workbook for",
    "quicklet",
    "instaread",
    "lektürehilfe",
    "interpretation und analyse",
    "interpretationshilfe",
    "zusammenfassung",
    "königs erläuterungen",
    "erläuterungen",
    "inhaltsangabe",
)

# Connector words that are common in other European languages and rare in English prose.
NON_ENGLISH_MARKERS: tuple[str, ...] = (
    # German
    "und",
    "der",
    "das",
    "nicht",
    "ist",
    "sich",
    "auch",
    "eine",
    "wird",
    "für",
    "über",
    # French
    "les",
    "une",
    "avec",
    "dans",
    "est",
    "sont",
    "mais",
    "cette",
    "c'est",
    "il y a",
    # Spanish / Portuguese
    "los",
    "las",
    "por",
    "para",
    "pero",
    "esta",
    "não",
    "uma",
    # Italian
    "della",
    "sono",
    "gli",
    "questo",
    "anche",
)

NON_ENGLISH_THRESHOLD = 3


def _marker_pattern(markers: tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(marker) for marker in markers)
    return re.compile(rf"(?<!\w)(?:{alternatives})(?!\w)", re.IGNORECASE)


_SUMMARY_RE = _marker_pattern(SUMMARY_MARKERS)
_NON_ENGLISH_RE = _marker_pattern(NON_ENGLISH_MARKERS)


def is_summary_title(title: str | None) -> bool:
    """Whether a title names a summary, study guide, or analysis of another book."""
    if not title:
        return False
    return _SUMMARY_RE.search(title) is not None


def non_english_hits(text: str | None) -> int:
    """Number of distinct non-English connector words found in the text."""
    if not text:
        return 0
    return len({match.group(0).lower() for match in _NON_ENGLISH_RE.finditer(text)})


def is_non_english(text: str | None) -> bool:
    """Whether a description reads as non-English prose."""
    return non_english_hits(text) >= NON_ENGLISH_THRESHOLD
