"""Repository pattern for the prompt library store.

Single interface for: library items, and the JSON key/value ``meta`` table
that holds collections, tags and settings. Items are validated through
``LibraryItem.from_dict`` on the way out, so malformed rows surface as
``InvalidRecordError`` instead of leaking half-shaped records.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Any

from promptchronicle.db.models import BundlePayload, Collection, LibraryItem, Tag
from promptchronicle.db.schema import schema_version

# Meta keys, shared with the browser app's storage layout.
COLLECTIONS_KEY = "prompt-chronicle-collections"
TAGS_KEY = "prompt-chronicle-tags"
SETTINGS_KEY = "prompt-refinery-settings"


class Repository:
    """Data access layer for library items, collections, tags and settings.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use. The repository holds no state of its own;
    concurrent writers must be serialized by the caller.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see promptchronicle.db.schema.initialize).
        """
        self._conn = conn

    # ------------------------------------------------------------------
    # Library items
    # ------------------------------------------------------------------

    def get_all_items(self) -> list[LibraryItem]:
        """Return every item, newest first."""
        rows = self._conn.execute(
            "SELECT data FROM library_items ORDER BY created_at DESC, id"
        ).fetchall()
        return [_row_to_item(r) for r in rows]

    def get_item(self, item_id: str) -> LibraryItem | None:
        """Return an item by id, or None if not found."""
        row = self._conn.execute(
            "SELECT data FROM library_items WHERE id = ?", (item_id,)
        ).fetchone()
        return _row_to_item(row) if row else None

    def get_chain_items(self, root_id: str) -> list[LibraryItem]:
        """Return the chain root *root_id* and every item whose ``root_id`` names it."""
        rows = self._conn.execute(
            "SELECT data FROM library_items WHERE id = ? OR root_id = ? ORDER BY created_at, id",
            (root_id, root_id),
        ).fetchall()
        return [_row_to_item(r) for r in rows]

    def put_item(self, item: LibraryItem) -> None:
        """Insert or replace a single item."""
        self._upsert(item)
        self._conn.commit()

    def put_items(self, items: list[LibraryItem]) -> None:
        """Insert or replace several items in one transaction (e.g. after chain repair)."""
        if not items:
            return
        with self._conn:
            for item in items:
                self._upsert(item)

    def delete_item(self, item_id: str) -> None:
        """Delete an item by id. Chain repair is the caller's job."""
        self._conn.execute("DELETE FROM library_items WHERE id = ?", (item_id,))
        self._conn.commit()

    def remove_item(self, item_id: str, relinked: list[LibraryItem]) -> None:
        """Delete *item_id* and write its repaired chain members in one transaction.

        If any write fails nothing changes, so no item is left pointing at a
        deleted parent.
        """
        with self._conn:
            self._conn.execute("DELETE FROM library_items WHERE id = ?", (item_id,))
            for item in relinked:
                self._upsert(item)

    def replace_all(self, items: list[LibraryItem]) -> None:
        """Replace the whole library with *items* atomically."""
        with self._conn:
            self._conn.execute("DELETE FROM library_items")
            for item in items:
                self._upsert(item)

    def count_items(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM library_items").fetchone()
        return row[0] if row else 0

    def schema_version(self) -> int:
        return schema_version(self._conn)

    def _upsert(self, item: LibraryItem) -> None:
        self._conn.execute(
            """
            INSERT INTO library_items (id, created_at, root_id, data) VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                created_at = excluded.created_at,
                root_id    = excluded.root_id,
                data       = excluded.data
            """,
            (
                item.id,
                item.created_at,
                item.root_id or None,
                json.dumps(item.to_dict(), ensure_ascii=False),
            ),
        )

    # ------------------------------------------------------------------
    # Meta key/value store
    # ------------------------------------------------------------------

    def get_meta(self, key: str, default: Any = None) -> Any:
        """Return the JSON-decoded value stored under *key*, or *default*."""
        row = self._conn.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
        return json.loads(row["value"]) if row else default

    def set_meta(self, key: str, value: Any) -> None:
        """Store *value* as JSON under *key*. ``None`` deletes the key."""
        self._write_meta(key, value)
        self._conn.commit()

    def delete_meta(self, key: str) -> None:
        self._conn.execute("DELETE FROM meta WHERE key = ?", (key,))
        self._conn.commit()

    def _write_meta(self, key: str, value: Any) -> None:
        if value is None:
            self._conn.execute("DELETE FROM meta WHERE key = ?", (key,))
            return
        self._conn.execute(
            "INSERT INTO meta (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, json.dumps(value, ensure_ascii=False)),
        )

    # ------------------------------------------------------------------
    # Collections, tags, settings
    # ------------------------------------------------------------------

    def get_collections(self) -> list[Collection]:
        return [Collection.from_dict(c) for c in self.get_meta(COLLECTIONS_KEY, [])]

    def save_collections(self, collections: list[Collection]) -> None:
        self.set_meta(COLLECTIONS_KEY, [c.to_dict() for c in collections])

    def get_tags(self) -> list[Tag]:
        return [Tag.from_dict(t) for t in self.get_meta(TAGS_KEY, [])]

    def save_tags(self, tags: list[Tag]) -> None:
        self.set_meta(TAGS_KEY, [t.to_dict() for t in tags])

    def get_settings(self) -> dict[str, Any]:
        settings = self.get_meta(SETTINGS_KEY, {})
        return settings if isinstance(settings, dict) else {}

    def save_settings(self, settings: dict[str, Any]) -> None:
        self.set_meta(SETTINGS_KEY, settings)

    # ------------------------------------------------------------------
    # Whole workspace
    # ------------------------------------------------------------------

    def load_workspace(self) -> BundlePayload:
        """Return items, collections and tags as one payload."""
        return BundlePayload(
            items=self.get_all_items(),
            collections=self.get_collections(),
            tags=self.get_tags(),
        )

    def save_workspace(self, payload: BundlePayload) -> None:
        """Replace items, collections and tags with *payload* in one transaction."""
        with self._conn:
            self._conn.execute("DELETE FROM library_items")
            for item in payload.items:
                self._upsert(item)
            self._write_meta(COLLECTIONS_KEY, [c.to_dict() for c in payload.collections])
            self._write_meta(TAGS_KEY, [t.to_dict() for t in payload.tags])

    def save_organization(
        self,
        items: list[LibraryItem],
        *,
        collections: list[Collection] | None = None,
        tags: list[Tag] | None = None,
    ) -> None:
        """Write changed collections and/or tags together with the items they touched."""
        with self._conn:
            if collections is not None:
                self._write_meta(COLLECTIONS_KEY, [c.to_dict() for c in collections])
            if tags is not None:
                self._write_meta(TAGS_KEY, [t.to_dict() for t in tags])
            for item in items:
                self._upsert(item)

    def clear_all(self) -> None:
        """Remove every item, collection and tag (settings are kept)."""
        with self._conn:
            self._conn.execute("DELETE FROM library_items")
            self._conn.execute(
                "DELETE FROM meta WHERE key IN (?, ?)", (COLLECTIONS_KEY, TAGS_KEY)
            )


# ------------------------------------------------------------------
# Row mappers
# ------------------------------------------------------------------


def _row_to_item(row: sqlite3.Row) -> LibraryItem:
    return LibraryItem.from_dict(json.loads(row["data"]))
