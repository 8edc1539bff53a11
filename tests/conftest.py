# ABOUTME: Shared pytest fixtures for shelfmerge tests.
# ABOUTME: Builds Goodreads-style CSV exports and opens throwaway library databases.

import csv
import io
from collections.abc import Iterator
from pathlib import Path

import pytest

from shelfmerge.db.catalog import LibraryCatalog
from shelfmerge.db.connection import open_library

GOODREADS_HEADERS = [
    "Book Id",
    "Title",
    "Author",
    "Author l-f",
    "Additional Authors",
    "ISBN",
    "ISBN13",
    "My Rating",
    "Average Rating",
    "Publisher",
    "Binding",
    "Number of Pages",
    "Year Published",
    "Original Publication Year",
    "Date Read",
    "Date Added",
    "Bookshelves",
    "Bookshelves with positions",
    "Exclusive Shelf",
    "My Review",
    "Spoiler",
    "Private Notes",
    "Read Count",
    "Owned Copies",
]


def goodreads_row(**values: str) -> dict[str, str]:
    """A full export row with sensible defaults; keyword names use underscores for spaces."""
    row = {header: "" for header in GOODREADS_HEADERS}
    row.update(
        {
            "Book Id": "1",
            "Title": "Untitled",
            "Author": "Anonymous",
            "My Rating": "0",
            "Date Added": "2024/01/15",
            "Exclusive Shelf": "to-read",
            "Read Count": "0",
            "Owned Copies": "0",
        }
    )
    for key, value in values.items():
        row[key.replace("_", " ")] = value
    return row


def build_export(rows: list[dict[str, str]]) -> str:
    """Render rows as Goodreads CSV text."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=GOODREADS_HEADERS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


@pytest.fixture
def sample_export() -> str:
    """A small export: a finished book, a current read, and a to-read without ISBN."""
    return build_export(
        [
            goodreads_row(
                Book_Id="40121378",
                Title="Atomic Habits",
                Author="James Clear",
                ISBN='="0735211299"',
                ISBN13='="9780735211292"',
                My_Rating="5",
                Publisher="Avery",
                Number_of_Pages="320",
                Year_Published="2018",
                Date_Read="2024/02/01",
                Date_Added="2024/01/15",
                Bookshelves="self-improvement, favorites, read",
                Exclusive_Shelf="read",
                My_Review="Changed how I plan my day.",
            ),
            goodreads_row(
                Book_Id="18007564",
                Title="The Martian",
                Author="Andy Weir",
                ISBN='="0553418025"',
                ISBN13='="9780553418026"',
                Bookshelves="sci-fi, currently-reading",
                Exclusive_Shelf="currently-reading",
            ),
            goodreads_row(
                Book_Id="11",
                Title="The Hitchhiker's Guide to the Galaxy (Hitchhiker's Guide, #1)",
                Author="Douglas Adams",
                ISBN='=""',
                ISBN13='=""',
                Bookshelves="Sci-Fi, favorites",
                Exclusive_Shelf="to-read",
            ),
        ]
    )


@pytest.fixture
def export_file(tmp_path: Path, sample_export: str) -> Path:
    """The sample export written to disk with a UTF-8 byte order mark, as Goodreads does."""
    path = tmp_path / "goodreads_library_export.csv"
    path.write_text(sample_export, encoding="utf-8-sig")
    return path


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "library.db"


@pytest.fixture
def catalog(db_path: Path) -> Iterator[LibraryCatalog]:
    """A LibraryCatalog over a fresh on-disk database."""
    conn = open_library(db_path)
    yield LibraryCatalog(conn)
    conn.close()
