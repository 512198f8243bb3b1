"""Schema migrations for the library database.

Migrations only ever move forward. Each one is a ``(version, sql)`` pair;
the ``schema_version`` table records which versions a file has seen, so a
library written by an older release is brought up to date the next time it
is opened.
"""

from __future__ import annotations

import sqlite3

_BOOTSTRAP_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

# V1: items are stored whole as their camelCase JSON record; created_at is
# copied into a column so listings can sort without parsing JSON.
# meta holds collections, tags and settings as JSON values.
_V1_SQL = """
CREATE TABLE IF NOT EXISTS library_items (
    id          TEXT PRIMARY KEY,
    created_at  TEXT NOT NULL DEFAULT '',
    data        TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_library_items_created ON library_items (created_at);

CREATE TABLE IF NOT EXISTS meta (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL
);
"""

# V2: chain membership column. NULL means the item is its own root.
# Existing rows are backfilled from the stored JSON.
_V2_SQL = """
ALTER TABLE library_items ADD COLUMN root_id TEXT;

UPDATE library_items
   SET root_id = NULLIF(json_extract(data, '$.rootId'), '');

CREATE INDEX IF NOT EXISTS idx_library_items_root ON library_items (root_id);
"""

MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
    (2, _V2_SQL),
]


def applied_versions(conn: sqlite3.Connection) -> set[int]:
    return {row[0] for row in conn.execute("SELECT version FROM schema_version")}


def run_migrations(conn: sqlite3.Connection) -> list[int]:
    """Apply every migration newer than the file's highest recorded version.

    Returns the versions applied by this call (empty when already current).
    """
    conn.execute(_BOOTSTRAP_SQL)
    conn.commit()

    current = max(applied_versions(conn), default=0)
    pending = sorted(
        (version, sql) for version, sql in MIGRATIONS if version > current
    )

    applied: list[int] = []
    for version, sql in pending:
        # executescript() commits any open transaction before it runs.
        conn.executescript(sql)
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
        conn.commit()
        applied.append(version)
    return applied
