# ABOUTME: Genre normalizer mapping free-form source categories onto a fixed taxonomy.
# ABOUTME: Handles hierarchical strings ("Fiction / Fantasy / Epic"), aliases, and noise.

import re

FICTION = "Fiction"
FANTASY = "Fantasy"
SCIENCE_FICTION = "Science Fiction"
MYSTERY = "Mystery & Thriller"
ROMANCE = "Romance"
HISTORICAL_FICTION = "Historical Fiction"
HORROR = "Horror"
LITERARY_FICTION = "Literary Fiction"
ADVENTURE = "Adventure"
YOUNG_ADULT = "Young Adult"
CHILDRENS = "Children's"
BIOGRAPHY = "Biography & Memoir"
HISTORY = "History"
SELF_HELP = "Self-Help & Personal Development"
BUSINESS = "Business & Economics"
SCIENCE = "Science & Nature"
PHILOSOPHY = "Philosophy & Religion"
PSYCHOLOGY = "Psychology"
POLITICS = "Politics & Social Sciences"
TRUE_CRIME = "True Crime"
TRAVEL = "Travel"
COOKING = "Cooking & Food"
ART = "Art & Photography"
POETRY = "Poetry"
GRAPHIC_NOVEL = "Graphic Novel & Comics"

STANDARD_GENRES: tuple[str, ...] = (
    FICTION,
    FANTASY,
    SCIENCE_FICTION,
    MYSTERY,
    ROMANCE,
    HISTORICAL_FICTION,
    HORROR,
    LITERARY_FICTION,
    ADVENTURE,
    YOUNG_ADULT,
    CHILDRENS,
    BIOGRAPHY,
    HISTORY,
    SELF_HELP,
    BUSINESS,
    SCIENCE,
    PHILOSOPHY,
    PSYCHOLOGY,
    POLITICS,
    TRUE_CRIME,
    TRAVEL,
    COOKING,
    ART,
    POETRY,
    GRAPHIC_NOVEL,
)

# Aliases as they appear after cleaning (lowercase, "and" -> "&", no quotes).
_ALIASES: dict[str, str] = {
    "fiction": FICTION,
    "general fiction": FICTION,
    "fiction / general": FICTION,
    "fiction, general": FICTION,
    "literary fiction": LITERARY_FICTION,
    "fantasy": FANTASY,
    "epic fantasy": FANTASY,
    "fantasy fiction": FANTASY,
    "fiction / fantasy": FANTASY,
    "fiction, fantasy": FANTASY,
    "fiction, fantasy, epic": FANTASY,
    "high fantasy": FANTASY,
    "urban fantasy": FANTASY,
    "science fiction": SCIENCE_FICTION,
    "sci-fi": SCIENCE_FICTION,
    "scifi": SCIENCE_FICTION,
    "fiction / science fiction": SCIENCE_FICTION,
    "fiction, science fiction": SCIENCE_FICTION,
    "dystopian": SCIENCE_FICTION,
    "cyberpunk": SCIENCE_FICTION,
    "space opera": SCIENCE_FICTION,
    "mystery": MYSTERY,
    "thriller": MYSTERY,
    "suspense": MYSTERY,
    "detective": MYSTERY,
    "crime": MYSTERY,
    "fiction / mystery": MYSTERY,
    "fiction / thriller": MYSTERY,
    "police procedural": MYSTERY,
    "romance": ROMANCE,
    "love stories": ROMANCE,
    "fiction / romance": ROMANCE,
    "contemporary romance": ROMANCE,
    "historical romance": ROMANCE,
    "historical fiction": HISTORICAL_FICTION,
    "fiction, historical": HISTORICAL_FICTION,
    "fiction, historical, general": HISTORICAL_FICTION,
    "fiction / historical": HISTORICAL_FICTION,
    "horror": HORROR,
    "gothic": HORROR,
    "fiction / horror": HORROR,
    "adventure": ADVENTURE,
    "action & adventure": ADVENTURE,
    "fiction / action & adventure": ADVENTURE,
    "young adult": YOUNG_ADULT,
    "ya": YOUNG_ADULT,
    "teen": YOUNG_ADULT,
    "young adult fiction": YOUNG_ADULT,
    "juvenile fiction": YOUNG_ADULT,
    "children": CHILDRENS,
    "childrens": CHILDRENS,
    "juvenile": CHILDRENS,
    "picture books": CHILDRENS,
    "juvenile works": CHILDRENS,
    "biography": BIOGRAPHY,
    "autobiography": BIOGRAPHY,
    "memoir": BIOGRAPHY,
    "biography & autobiography": BIOGRAPHY,
    "biography / autobiography": BIOGRAPHY,
    "history": HISTORY,
    "historical": HISTORY,
    "world history": HISTORY,
    "ancient history": HISTORY,
    "self-help": SELF_HELP,
    "self help": SELF_HELP,
    "personal development": SELF_HELP,
    "self-improvement": SELF_HELP,
    "motivational": SELF_HELP,
    "business": BUSINESS,
    "economics": BUSINESS,
    "business & economics": BUSINESS,
    "entrepreneurship": BUSINESS,
    "management": BUSINESS,
    "science": SCIENCE,
    "nature": SCIENCE,
    "science & nature": SCIENCE,
    "biology": SCIENCE,
    "physics": SCIENCE,
    "astronomy": SCIENCE,
    "philosophy": PHILOSOPHY,
    "religion": PHILOSOPHY,
    "spirituality": PHILOSOPHY,
    "theology": PHILOSOPHY,
    "cabala": PHILOSOPHY,
    "kabbalah": PHILOSOPHY,
    "psychology": PSYCHOLOGY,
    "mental health": PSYCHOLOGY,
    "cognitive science": PSYCHOLOGY,
    "politics": POLITICS,
    "political science": POLITICS,
    "social science": POLITICS,
    "social sciences": POLITICS,
    "sociology": POLITICS,
    "true crime": TRUE_CRIME,
    "murder": TRUE_CRIME,
    "travel": TRAVEL,
    "travel writing": TRAVEL,
    "cooking": COOKING,
    "food": COOKING,
    "recipes": COOKING,
    "cookbooks": COOKING,
    "art": ART,
    "photography": ART,
    "design": ART,
    "poetry": POETRY,
    "poems": POETRY,
    "graphic novel": GRAPHIC_NOVEL,
    "comics": GRAPHIC_NOVEL,
    "manga": GRAPHIC_NOVEL,
    "comic books": GRAPHIC_NOVEL,
}

# Overly specific or non-genre subjects (places, decades, country codes).
_IGNORE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"middle earth", re.IGNORECASE),
    re.compile(r"imaginary place", re.IGNORECASE),
    re.compile(r"translations into", re.IGNORECASE),
    re.compile(r"\d{4}s$", re.IGNORECASE),
    re.compile(r"^[A-Z]{2}$", re.IGNORECASE),
    re.compile(r"^legends$", re.IGNORECASE),
    re.compile(r"\bnon-?fiction$", re.IGNORECASE),
)

_SPACE_RE = re.compile(r"\s+")
_QUOTE_RE = re.compile(r"['\"]")
_AND_RE = re.compile(r"\band\b")
_SEGMENT_RE = re.compile(r"[/,]")
_NEGATING_PREFIXES = ("non", "non-", "non ")

_MIN_CONTAINMENT_KEY = 3
_MAX_FALLBACK_LENGTH = 30
_MAX_FALLBACK_SEGMENTS = 2

DEFAULT_MAX_GENRES = 3


def clean_genre(raw: str) -> str:
    """Lowercase, collapse whitespace, drop quotes, and spell "and" as "&"."""
    cleaned = _SPACE_RE.sub(" ", raw.lower().strip())
    cleaned = _QUOTE_RE.sub("", cleaned)
    return _AND_RE.sub("&", cleaned)


def _build_lookup() -> dict[str, str]:
    lookup = dict(_ALIASES)
    # Canonical names map to themselves, so normalizing is idempotent.
    for genre in STANDARD_GENRES:
        lookup.setdefault(clean_genre(genre), genre)
    return lookup


_LOOKUP = _build_lookup()


def _title_case(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in text.split(" "))


def _is_ignored(segment: str) -> bool:
    return any(pattern.search(segment) for pattern in _IGNORE_PATTERNS)


def _contains_key(text: str, key: str) -> bool:
    """Whether `key` occurs in `text` other than as the tail of a "non" word."""
    start = text.find(key)
    while start != -1:
        if not text[:start].endswith(_NEGATING_PREFIXES):
            return True
        start = text.find(key, start + 1)
    return False


def normalize_genre(raw: str | None) -> str | None:
    """Map one raw category string onto the canonical taxonomy.

    Tries, in order: exact lookup, hierarchical segments from most to least
    specific, containment of a known key, then a title-cased fallback for
    short plain strings. Segments on the ignore list take no part in the
    last two steps; returns None for blank input or when nothing is left.
    """
    if not raw or not raw.strip():
        return None

    cleaned = clean_genre(raw)
    if cleaned in _LOOKUP:
        return _LOOKUP[cleaned]

    parts = [part.strip() for part in _SEGMENT_RE.split(cleaned)]
    for part in reversed(parts):
        if part in _LOOKUP:
            return _LOOKUP[part]

    kept = [part for part in parts if part and not _is_ignored(part)]
    if not kept:
        return None

    # Longest contained key wins so "science fiction" beats "fiction".
    contained = [
        key
        for key in _LOOKUP
        if len(key) > _MIN_CONTAINMENT_KEY and any(_contains_key(part, key) for part in kept)
    ]
    if contained:
        return _LOOKUP[max(contained, key=len)]

    if (
        len(cleaned) < _MAX_FALLBACK_LENGTH
        and "(" not in cleaned
        and len(parts) <= _MAX_FALLBACK_SEGMENTS
    ):
        return _title_case(kept[-1])

    return None


def normalize_genre_list(raw: str | None, max_genres: int = DEFAULT_MAX_GENRES) -> list[str]:
    """Normalize a comma-separated category string into unique canonical genres."""
    if not raw or not raw.strip():
        return []
    genres: list[str] = []
    for segment in raw.split(","):
        genre = normalize_genre(segment.strip())
        if genre and genre not in genres:
            genres.append(genre)
    return genres[:max_genres]


def normalize_genres(raw: str | None, max_genres: int = DEFAULT_MAX_GENRES) -> str | None:
    """Normalize a comma-separated category string; returns a comma-joined string or None."""
    genres = normalize_genre_list(raw, max_genres)
    return ", ".join(genres) if genres else None


def standard_genres() -> list[str]:
    """All canonical genre names."""
    return list(STANDARD_GENRES)
