# ABOUTME: SQL DDL statements for the shelfmerge library database schema.
# ABOUTME: Defines the books, collections, and book_collections tables plus schema versioning.

SCHEMA_V1 = """
-- Imported books, one row per book per user
CREATE TABLE books (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id             TEXT NOT NULL,
    title               TEXT NOT NULL,
    author              TEXT NOT NULL,
    isbn                TEXT,
    external_id         TEXT,
    external_source     TEXT,
    rating              INTEGER NOT NULL DEFAULT 0,
    review              TEXT,
    reading_status      TEXT NOT NULL,
    total_pages         INTEGER,
    date_added          TEXT NOT NULL,
    date_finished       TEXT,
    original_shelves    TEXT,
    genre               TEXT,
    cover_url           TEXT,
    description         TEXT,
    publisher           TEXT,
    published_date      TEXT,
    enrichment_sources  TEXT,
    verification_reason TEXT,
    imported_at         TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE INDEX idx_books_user ON books(user_id);
CREATE INDEX idx_books_isbn ON books(user_id, isbn) WHERE isbn IS NOT NULL;
CREATE INDEX idx_books_external_id ON books(user_id, external_id) WHERE external_id IS NOT NULL;

-- Named shelves; a name is unique per user
CREATE TABLE collections (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id     TEXT NOT NULL,
    name        TEXT NOT NULL,
    description TEXT,
    color       TEXT,
    icon        TEXT,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now')),
    UNIQUE (user_id, name)
);

-- Book/collection membership; the composite key makes links idempotent
CREATE TABLE book_collections (
    book_id       INTEGER NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    collection_id INTEGER NOT NULL REFERENCES collections(id) ON DELETE CASCADE,
    PRIMARY KEY (book_id, collection_id)
);

-- Schema versioning for future migrations
CREATE TABLE schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

INSERT INTO schema_version (version) VALUES (1);
"""

# (version, DDL) pairs applied in order to databases below that version.
MIGRATIONS: list[tuple[int, str]] = []
