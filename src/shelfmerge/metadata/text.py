# ABOUTME: Small text and value coercion helpers shared by source parsers, scoring, and fusion.
# ABOUTME: Normalizes strings for comparison and cleans loosely-typed API values.

import html
import re
from typing import Any

_PUNCT_RE = re.compile(r"[^\w\s]")
_SPACE_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]+>")
_BREAK_RE = re.compile(r"<\s*(br|/p|p)\s*/?\s*>", re.IGNORECASE)


def normalize_text(text: str | None) -> str:
    """Lowercase, replace punctuation with spaces, and collapse whitespace."""
    if not text:
        return ""
    lowered = _PUNCT_RE.sub(" ", text.lower())
    return _SPACE_RE.sub(" ", lowered).strip()


def strip_html(text: str | None) -> str | None:
    """Remove markup and entities from a description, keeping paragraph breaks as spaces."""
    if not text:
        return None
    spaced = _BREAK_RE.sub(" ", text)
    plain = html.unescape(_TAG_RE.sub("", spaced))
    plain = _SPACE_RE.sub(" ", plain).strip()
    return plain or None


def positive_int(value: Any) -> int | None:
    """Coerce a page count or similar to a positive int, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return None
    return number if number > 0 else None


def first_str(values: Any) -> str | None:
    """First non-blank string from a list (or the value itself if it is a string)."""
    if isinstance(values, str):
        return values.strip() or None
    if isinstance(values, list):
        for value in values:
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def str_list(values: Any) -> list[str]:
    """Keep only the non-blank strings of a JSON list."""
    if not isinstance(values, list):
        return []
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]
