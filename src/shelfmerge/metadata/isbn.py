# ABOUTME: ISBN cleaning, validation, and ISBN-10 <-> ISBN-13 conversion.
# ABOUTME: Adapters query every variant of a known identifier, so conversion lives here.

import re

_ISBN_STRIP_RE = re.compile(r"[\s\-='\"]")
_NON_DIGIT_RE = re.compile(r"\D")


def clean_isbn(isbn: str | None) -> str | None:
    """Strip separators, spaces, and stray quoting from an ISBN.

    Returns None for empty input. The trailing ISBN-10 check character is
    uppercased so "x" and "X" compare equal.
    """
    if not isbn:
        return None
    cleaned = _ISBN_STRIP_RE.sub("", isbn).upper()
    return cleaned or None


def isbn13_checksum(first12: str) -> str:
    """Check digit for the first 12 digits of an ISBN-13."""
    total = sum(int(d) * (1 if i % 2 == 0 else 3) for i, d in enumerate(first12[:12]))
    return str((10 - (total % 10)) % 10)


def isbn10_checksum(first9: str) -> str:
    """Check character for the first 9 digits of an ISBN-10 ("X" stands for 10)."""
    total = sum(int(d) * (10 - i) for i, d in enumerate(first9[:9]))
    check = (11 - (total % 11)) % 11
    return "X" if check == 10 else str(check)


def is_valid_isbn10(isbn: str) -> bool:
    if len(isbn) != 10 or not isbn[:9].isdigit():
        return False
    return isbn10_checksum(isbn[:9]) == isbn[9].upper()


def is_valid_isbn13(isbn: str) -> bool:
    if len(isbn) != 13 or not isbn.isdigit():
        return False
    return isbn13_checksum(isbn[:12]) == isbn[12]


def isbn10_to_isbn13(isbn10: str) -> str | None:
    """Convert an ISBN-10 to its 978-prefixed ISBN-13 form."""
    cleaned = clean_isbn(isbn10)
    if not cleaned or len(cleaned) != 10 or not cleaned[:9].isdigit():
        return None
    first12 = "978" + cleaned[:9]
    return first12 + isbn13_checksum(first12)


def isbn13_to_isbn10(isbn13: str) -> str | None:
    """Convert a 978-prefixed ISBN-13 to ISBN-10.

    979-prefixed ISBNs have no ISBN-10 form and return None.
    """
    cleaned = clean_isbn(isbn13)
    if not cleaned or len(cleaned) != 13 or not cleaned.isdigit():
        return None
    if not cleaned.startswith("978"):
        return None
    first9 = cleaned[3:12]
    return first9 + isbn10_checksum(first9)


def isbn_variants(isbn: str | None) -> list[str]:
    """Return the cleaned ISBN followed by its converted counterpart, if any.

    >>> isbn_variants("978-0-13-468599-1")
    ['9780134685991', '0134685997']
    """
    cleaned = clean_isbn(isbn)
    if not cleaned:
        return []

    variants = [cleaned]
    digits = _NON_DIGIT_RE.sub("", cleaned)
    converted: str | None = None
    if len(cleaned) == 10:
        converted = isbn10_to_isbn13(cleaned)
    elif len(digits) == 13:
        converted = isbn13_to_isbn10(digits)

    if converted and converted not in variants:
        variants.append(converted)
    return variants


def same_isbn(a: str | None, b: str | None) -> bool:
    """Whether two identifiers denote the same ISBN, across the 10/13 forms."""
    clean_a = clean_isbn(a)
    clean_b = clean_isbn(b)
    if not clean_a or not clean_b:
        return False
    return clean_b in isbn_variants(clean_a)


def preferred_isbn(isbns: list[str] | tuple[str, ...]) -> str | None:
    """Pick the ISBN-13 from a list of identifiers, else the ISBN-10, else the first."""
    cleaned = [c for c in (clean_isbn(i) for i in isbns) if c]
    for candidate in cleaned:
        if len(candidate) == 13:
            return candidate
    for candidate in cleaned:
        if len(candidate) == 10:
            return candidate
    return cleaned[0] if cleaned else None
