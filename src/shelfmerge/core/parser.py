# ABOUTME: Parser for reading-library spreadsheet exports (Goodreads CSV layout).
# ABOUTME: Validates rows, cleans spreadsheet quirks, and produces immutable ParsedBook records.

import csv
import enum
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from shelfmerge.metadata.isbn import clean_isbn

logger = logging.getLogger(__name__)

# Column headers, normalized (lowercase, single spaces).
COL_BOOK_ID = "book id"
COL_TITLE = "title"
COL_AUTHOR = "author"
COL_ISBN = "isbn"
COL_ISBN13 = "isbn13"
COL_RATING = "my rating"
COL_PUBLISHER = "publisher"
COL_PAGES = "number of pages"
COL_YEAR = "year published"
COL_DATE_READ = "date read"
COL_DATE_ADDED = "date added"
COL_SHELVES = "bookshelves"
COL_EXCLUSIVE_SHELF = "exclusive shelf"
COL_REVIEW = "my review"

REQUIRED_COLUMNS = (COL_TITLE, COL_AUTHOR)

# Headers only a Goodreads export has.
GOODREADS_SIGNATURE = (
    "book id",
    "my rating",
    "exclusive shelf",
    "bookshelves",
    "date read",
    "author l-f",
)
MIN_SIGNATURE_MATCHES = 3

MAX_RATING = 5

_DATE_FORMATS = ("%Y/%m/%d", "%Y-%m-%d", "%m/%d/%Y", "%Y")
_SPACE_RE = re.compile(r"\s+")


class ExportFormatError(Exception):
    """Raised when the input is not a readable export at all (no header, wrong columns)."""


class ReadingStatus(enum.Enum):
    WANT_TO_READ = "Want to Read"
    CURRENTLY_READING = "Currently Reading"
    FINISHED = "Finished"


EXCLUSIVE_SHELVES: dict[str, ReadingStatus] = {
    "read": ReadingStatus.FINISHED,
    "currently-reading": ReadingStatus.CURRENTLY_READING,
    "to-read": ReadingStatus.WANT_TO_READ,
}


@dataclass(frozen=True)
class ParsedBook:
    """One validated record from the export. Immutable once parsed.

    ``row`` is the 1-based data row the record came from, used in error reports.
    """

    title: str
    author: str
    reading_status: ReadingStatus
    date_added: datetime
    external_id: str | None = None
    isbn: str | None = None
    rating: int = 0
    review: str | None = None
    total_pages: int | None = None
    date_finished: datetime | None = None
    shelves: tuple[str, ...] = ()
    genre: str | None = None
    publisher: str | None = None
    year_published: int | None = None
    row: int = 0

    @property
    def label(self) -> str:
        """Human-readable "Title by Author" used in progress and error messages."""
        return f"{self.title} by {self.author}"


@dataclass
class ParseResult:
    """Books that passed validation plus per-row errors (skipped) and warnings (kept)."""

    books: list[ParsedBook] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class FormatDetection:
    format: str
    confidence: float
    headers: list[str] = field(default_factory=list)

    @property
    def is_goodreads(self) -> bool:
        return self.format == "goodreads"


def normalize_header(header: str | None) -> str:
    return _SPACE_RE.sub(" ", (header or "").strip().lower())


def clean_cell(value: str | None) -> str:
    """Trim a cell and strip the spreadsheet text wrapper ``="..."``."""
    if not value:
        return ""
    trimmed = value.strip()
    if trimmed.startswith('="') and trimmed.endswith('"'):
        return trimmed[2:-1].strip()
    return trimmed


def parse_date(value: str | None) -> datetime | None:
    """Parse the date spellings exports use; None for blank or unparsable values."""
    text = clean_cell(value)
    if not text:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparsable date %r", text)
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def parse_rating(value: str | None) -> int:
    text = clean_cell(value)
    try:
        rating = int(float(text))
    except (ValueError, OverflowError):
        return 0
    return max(0, min(MAX_RATING, rating))


def parse_positive_int(value: str | None) -> int | None:
    text = clean_cell(value)
    try:
        number = int(float(text))
    except (ValueError, OverflowError):
        return None
    return number if number > 0 else None


def parse_shelves(value: str | None) -> tuple[str, ...]:
    """Custom shelf names in order, without duplicates or the exclusive shelves."""
    shelves: list[str] = []
    seen: set[str] = set()
    for name in clean_cell(value).split(","):
        name = name.strip()
        key = name.lower()
        if not name or key in EXCLUSIVE_SHELVES or key in seen:
            continue
        seen.add(key)
        shelves.append(name)
    return tuple(shelves)


def reading_status(value: str | None) -> ReadingStatus:
    return EXCLUSIVE_SHELVES.get(clean_cell(value).lower(), ReadingStatus.WANT_TO_READ)


def _split_header_line(text: str) -> list[str]:
    first_line = text.lstrip("\ufeff").split("\n", 1)[0]
    try:
        return [normalize_header(h) for h in next(csv.reader([first_line]), [])]
    except csv.Error:
        return []


def detect_export_format(text: str) -> FormatDetection:
    """Recognise a Goodreads export by its signature headers."""
    headers = _split_header_line(text)
    if not headers:
        return FormatDetection(format="generic", confidence=0.0, headers=[])

    matches = sum(1 for sig in GOODREADS_SIGNATURE if any(sig in h for h in headers))
    ratio = matches / len(GOODREADS_SIGNATURE)
    if matches >= MIN_SIGNATURE_MATCHES:
        return FormatDetection(format="goodreads", confidence=ratio, headers=headers)
    return FormatDetection(format="generic", confidence=1 - ratio, headers=headers)


def decode_export(data: bytes) -> str:
    """Decode raw export bytes as UTF-8, dropping a leading byte order mark."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ExportFormatError(
            f"Export is not UTF-8 text (invalid byte at position {exc.start})"
        ) from exc


def _missing_fields_error(row_number: int, missing: list[str]) -> str:
    plural = "s" if len(missing) > 1 else ""
    return f"Row {row_number}: Missing required field{plural}: {', '.join(missing)} - Skipped"


def _parse_row(row: dict[str, str], row_number: int, now: datetime) -> ParsedBook:
    status = reading_status(row.get(COL_EXCLUSIVE_SHELF))
    isbn = clean_isbn(clean_cell(row.get(COL_ISBN13))) or clean_isbn(clean_cell(row.get(COL_ISBN)))

    return ParsedBook(
        title=clean_cell(row.get(COL_TITLE)),
        author=clean_cell(row.get(COL_AUTHOR)),
        reading_status=status,
        date_added=parse_date(row.get(COL_DATE_ADDED)) or now,
        external_id=clean_cell(row.get(COL_BOOK_ID)) or None,
        isbn=isbn,
        rating=parse_rating(row.get(COL_RATING)),
        review=clean_cell(row.get(COL_REVIEW)) or None,
        total_pages=parse_positive_int(row.get(COL_PAGES)),
        date_finished=(
            parse_date(row.get(COL_DATE_READ)) if status is ReadingStatus.FINISHED else None
        ),
        shelves=parse_shelves(row.get(COL_SHELVES)),
        publisher=clean_cell(row.get(COL_PUBLISHER)) or None,
        year_published=parse_positive_int(row.get(COL_YEAR)),
        row=row_number,
    )


def parse_export(text: str) -> ParseResult:
    """Parse an export's CSV text into validated books.

    Rows without a title or author are skipped with an error; rows without
    any ISBN are kept with a warning. Column order and unknown columns don't
    matter.

    Raises:
        ExportFormatError: If there is no header row, the title/author
            columns are missing, or the CSV itself is malformed.
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    if not reader.fieldnames:
        raise ExportFormatError("Export appears to be missing a header row")

    header_map = {normalize_header(h): h for h in reader.fieldnames}
    missing = [col for col in REQUIRED_COLUMNS if col not in header_map]
    if missing:
        raise ExportFormatError(f"Export is missing required column(s): {', '.join(missing)}")

    result = ParseResult()
    now = datetime.now(timezone.utc)

    try:
        for row_number, raw_row in enumerate(reader, start=1):
            row = {
                normalize_header(key): value
                for key, value in raw_row.items()
                if key is not None and isinstance(value, str)
            }
            if not any(v.strip() for v in row.values()):
                continue

            missing_fields = [col for col in REQUIRED_COLUMNS if not clean_cell(row.get(col))]
            if missing_fields:
                result.errors.append(_missing_fields_error(row_number, missing_fields))
                continue

            book = _parse_row(row, row_number, now)
            if book.isbn is None:
                result.warnings.append(
                    f'Row {row_number}: "{book.title}" by {book.author} - '
                    "No ISBN found (data enrichment may be limited)"
                )
            result.books.append(book)
    except csv.Error as exc:
        raise ExportFormatError(f"Malformed CSV near line {reader.line_num}: {exc}") from exc

    logger.info(
        "Parsed %d book(s), %d error(s), %d warning(s)",
        len(result.books),
        len(result.errors),
        len(result.warnings),
    )
    return result
