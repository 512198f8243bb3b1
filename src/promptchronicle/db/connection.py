"""SQLite connection layer for the prompt library store."""

from __future__ import annotations

import os
import sqlite3
from pathlib import Path

# Milliseconds a writer waits on a locked database before failing.
BUSY_TIMEOUT_MS = 5000


class Database:
    """One library file on disk.

    The file holds every saved prompt, so it is created owner-only (0600).
    Used as a context manager the connection commits on a clean exit,
    rolls back on an exception, and is closed either way.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    @property
    def exists(self) -> bool:
        return self.db_path.is_file()

    def connect(self) -> sqlite3.Connection:
        """Open (creating if needed) the library file and return a configured connection.

        Rows come back as ``sqlite3.Row``; the journal is WAL so readers do not
        block the single writer.
        """
        created = not self.exists
        if created:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")

        if created:
            os.chmod(self.db_path, 0o600)
        return conn

    def __enter__(self) -> sqlite3.Connection:
        self._conn = self.connect()
        return self._conn

    def __exit__(self, exc_type: type[BaseException] | None, *args: object) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            if exc_type is None:
                conn.commit()
            else:
                conn.rollback()
        finally:
            conn.close()
