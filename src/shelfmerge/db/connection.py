# ABOUTME: Opens the shelfmerge SQLite library, creating and upgrading its schema as needed.
# ABOUTME: Every connection gets WAL journaling, enforced foreign keys, and Row access.

import logging
import sqlite3
from pathlib import Path

from shelfmerge.db.schema import MIGRATIONS, SCHEMA_V1

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".shelfmerge" / "library.db"

_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA foreign_keys=ON",
    "PRAGMA busy_timeout=5000",
)


def _installed_version(conn: sqlite3.Connection) -> int:
    """Highest recorded schema version, or 0 for an empty database."""
    has_table = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'schema_version'"
    ).fetchone()
    if has_table is None:
        return 0
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] or 0


def _upgrade(conn: sqlite3.Connection, db_path: Path) -> None:
    version = _installed_version(conn)
    if version == 0:
        logger.debug("Creating library schema in %s", db_path)
        conn.executescript(SCHEMA_V1)
        version = 1

    # Each migration script records its own version row.
    for target, script in MIGRATIONS:
        if target <= version:
            continue
        logger.info("Upgrading library schema to version %d", target)
        conn.executescript(script)


def open_library(path: Path | None = None) -> sqlite3.Connection:
    """Connect to the library database at `path` (default ~/.shelfmerge/library.db).

    Missing parent directories and the file itself are created on demand.
    """
    db_path = path or DEFAULT_DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    for pragma in _PRAGMAS:
        conn.execute(pragma)

    _upgrade(conn, db_path)
    return conn
