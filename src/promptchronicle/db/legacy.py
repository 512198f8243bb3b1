"""One-time import of the browser app's legacy key/value storage.

The old app kept everything in localStorage as JSON strings. A dump of that
storage (a JSON object keyed by storage key) or a bare JSON list of items can
be loaded here. Each part is migrated only when the target is still empty,
so running the migration twice changes nothing.
"""

from __future__ import annotations

import json
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from promptchronicle.db.models import Collection, InvalidRecordError, LibraryItem, Tag
from promptchronicle.db.repository import (
    COLLECTIONS_KEY,
    SETTINGS_KEY,
    TAGS_KEY,
    Repository,
)

LEGACY_LIBRARY_KEY = "prompt-library-v3"


class LegacyFormatError(ValueError):
    """Raised when the legacy dump is not JSON or has an unexpected shape."""


@dataclass
class LegacyMigrationReport:
    items_migrated: int = 0
    items_skipped: int = 0
    settings_migrated: bool = False
    collections_migrated: int = 0
    tags_migrated: int = 0

    @property
    def changed(self) -> bool:
        return bool(
            self.items_migrated
            or self.settings_migrated
            or self.collections_migrated
            or self.tags_migrated
        )


def _unwrap(value: Any) -> Any:
    """localStorage values are JSON strings; decode them if so."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def load_legacy_dump(path: Path) -> dict[str, Any]:
    """Read a legacy dump and normalise it to ``{storage_key: value}``."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise LegacyFormatError(f"Legacy dump '{path}' is not valid JSON: {exc}") from exc

    if isinstance(raw, list):
        return {LEGACY_LIBRARY_KEY: raw}
    if isinstance(raw, dict):
        return {k: _unwrap(v) for k, v in raw.items()}
    raise LegacyFormatError(
        f"Legacy dump '{path}' must be a list of items or an object of storage keys"
    )


def migrate_legacy(repo: Repository, dump: dict[str, Any]) -> LegacyMigrationReport:
    """Copy legacy records into *repo* where the target is still empty.

    Records that fail validation are skipped with a UserWarning.
    """
    report = LegacyMigrationReport()

    raw_items = dump.get(LEGACY_LIBRARY_KEY)
    if isinstance(raw_items, list) and raw_items and repo.count_items() == 0:
        items: list[LibraryItem] = []
        for index, raw in enumerate(raw_items):
            try:
                items.append(LibraryItem.from_dict(raw))
            except InvalidRecordError as exc:
                report.items_skipped += 1
                warnings.warn(
                    f"Skipping legacy item #{index}: {exc}", UserWarning, stacklevel=2
                )
        repo.put_items(items)
        report.items_migrated = len(items)

    settings = dump.get(SETTINGS_KEY)
    if settings is not None and repo.get_meta(SETTINGS_KEY) is None:
        # Unparseable settings strings are kept verbatim.
        repo.set_meta(SETTINGS_KEY, settings)
        report.settings_migrated = True

    raw_collections = dump.get(COLLECTIONS_KEY)
    if isinstance(raw_collections, list) and repo.get_meta(COLLECTIONS_KEY) is None:
        collections = _valid_records(raw_collections, Collection.from_dict, "collection")
        repo.save_collections(collections)
        report.collections_migrated = len(collections)

    raw_tags = dump.get(TAGS_KEY)
    if isinstance(raw_tags, list) and repo.get_meta(TAGS_KEY) is None:
        tags = _valid_records(raw_tags, Tag.from_dict, "tag")
        repo.save_tags(tags)
        report.tags_migrated = len(tags)

    return report


def _valid_records(raw: list[Any], parse: Any, kind: str) -> list[Any]:
    out = []
    for index, record in enumerate(raw):
        try:
            out.append(parse(record))
        except InvalidRecordError as exc:
            warnings.warn(f"Skipping legacy {kind} #{index}: {exc}", UserWarning, stacklevel=3)
    return out
