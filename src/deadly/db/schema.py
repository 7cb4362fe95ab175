# ABOUTME: SQL DDL statements for the archive database schema.
# ABOUTME: Defines show/recording tables, the FTS5 search index, and library migrations.

SCHEMA_V1 = """
-- One row per recorded performance
CREATE TABLE shows (
    show_id          TEXT PRIMARY KEY,
    date             TEXT NOT NULL,
    year             INTEGER NOT NULL,
    month            INTEGER NOT NULL,
    year_month       TEXT NOT NULL,
    band             TEXT NOT NULL,
    url              TEXT,
    venue_name       TEXT NOT NULL,
    city             TEXT,
    state            TEXT,
    country          TEXT NOT NULL,
    location_raw     TEXT,
    setlist_status   TEXT,
    setlist_raw      TEXT,
    song_list        TEXT,
    lineup_status    TEXT,
    lineup_raw       TEXT,
    member_list      TEXT,
    show_sequence    INTEGER NOT NULL DEFAULT 1,
    recordings_raw   TEXT,
    recording_count  INTEGER NOT NULL DEFAULT 0,
    best_recording_id TEXT,
    average_rating   REAL,
    total_reviews    INTEGER NOT NULL DEFAULT 0,
    created_at       INTEGER NOT NULL,
    updated_at       INTEGER NOT NULL
);

CREATE INDEX idx_shows_date ON shows(date);
CREATE INDEX idx_shows_year ON shows(year);
CREATE INDEX idx_shows_venue ON shows(venue_name);

-- One or more taped sources per show
CREATE TABLE recordings (
    identifier           TEXT PRIMARY KEY,
    show_id              TEXT NOT NULL REFERENCES shows(show_id) ON DELETE CASCADE,
    source_type          TEXT,
    taper                TEXT,
    source               TEXT,
    lineage              TEXT,
    rating               REAL NOT NULL DEFAULT 0,
    raw_rating           REAL NOT NULL DEFAULT 0,
    review_count         INTEGER NOT NULL DEFAULT 0,
    confidence           REAL NOT NULL DEFAULT 0,
    high_ratings         INTEGER NOT NULL DEFAULT 0,
    low_ratings          INTEGER NOT NULL DEFAULT 0,
    collection_timestamp INTEGER NOT NULL
);

CREATE INDEX idx_recordings_show_id ON recordings(show_id);

-- Searchable text, one row per imported show
CREATE TABLE show_search (
    id          INTEGER PRIMARY KEY,
    show_id     TEXT NOT NULL UNIQUE REFERENCES shows(show_id) ON DELETE CASCADE,
    search_text TEXT NOT NULL
);

-- FTS5 virtual table over show_search
CREATE VIRTUAL TABLE show_search_fts USING fts5(
    search_text,
    content='show_search',
    content_rowid='id',
    tokenize='unicode61'
);

-- Triggers to keep FTS in sync with the show_search table
CREATE TRIGGER show_search_ai AFTER INSERT ON show_search BEGIN
    INSERT INTO show_search_fts(rowid, search_text)
    VALUES (new.id, new.search_text);
END;

CREATE TRIGGER show_search_ad AFTER DELETE ON show_search BEGIN
    INSERT INTO show_search_fts(show_search_fts, rowid, search_text)
    VALUES ('delete', old.id, old.search_text);
END;

CREATE TRIGGER show_search_au AFTER UPDATE ON show_search BEGIN
    INSERT INTO show_search_fts(show_search_fts, rowid, search_text)
    VALUES ('delete', old.id, old.search_text);
    INSERT INTO show_search_fts(rowid, search_text)
    VALUES (new.id, new.search_text);
END;

-- Schema versioning for future migrations
CREATE TABLE schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

INSERT INTO schema_version (version) VALUES (1);
"""

# V2: user library, stored normalized (library_shows) and denormalized (shows columns)
MIGRATION_V2 = """
ALTER TABLE shows ADD COLUMN is_in_library INTEGER NOT NULL DEFAULT 0;
ALTER TABLE shows ADD COLUMN library_added_at INTEGER;
ALTER TABLE shows ADD COLUMN is_pinned INTEGER NOT NULL DEFAULT 0;

CREATE TABLE library_shows (
    show_id   TEXT PRIMARY KEY REFERENCES shows(show_id) ON DELETE CASCADE,
    added_at  INTEGER NOT NULL,
    is_pinned INTEGER NOT NULL DEFAULT 0,
    notes     TEXT
);

CREATE INDEX idx_library_shows_order ON library_shows(is_pinned DESC, added_at DESC);
CREATE INDEX idx_shows_in_library ON shows(is_in_library) WHERE is_in_library = 1;

INSERT INTO schema_version (version) VALUES (2);
"""

# V3: play history feeding the home screen's recent shows
MIGRATION_V3 = """
CREATE TABLE recent_shows (
    show_id          TEXT PRIMARY KEY REFERENCES shows(show_id) ON DELETE CASCADE,
    last_played_at   INTEGER NOT NULL,
    first_played_at  INTEGER NOT NULL,
    total_play_count INTEGER NOT NULL DEFAULT 1
);

CREATE INDEX idx_recent_shows_last_played ON recent_shows(last_played_at DESC);

INSERT INTO schema_version (version) VALUES (3);
"""

MIGRATIONS: list[tuple[int, str]] = [
    (2, MIGRATION_V2),
    (3, MIGRATION_V3),
]

LATEST_VERSION = MIGRATIONS[-1][0]
