"""Schema entry points used by the CLI and tests."""

from __future__ import annotations

import sqlite3

from promptchronicle.db.migrations import MIGRATIONS, applied_versions, run_migrations

CURRENT_VERSION = max(version for version, _ in MIGRATIONS)


def initialize(conn: sqlite3.Connection) -> list[int]:
    """Bring *conn* up to CURRENT_VERSION. Safe to call on every open."""
    return run_migrations(conn)


def schema_version(conn: sqlite3.Connection) -> int:
    """Highest applied migration (0 for a file that was never initialized)."""
    has_table = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'schema_version'"
    ).fetchone()
    if has_table is None:
        return 0
    return max(applied_versions(conn), default=0)
