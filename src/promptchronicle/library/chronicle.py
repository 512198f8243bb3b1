"""Per-item audit trail: an append-only, hash-linked list of snapshots.

commit() freezes the item's live fields into a new entry whose hash covers
the snapshot and the previous entry's hash. rollback() copies a past
snapshot back onto the live fields and records nothing. Entries are never
edited or removed, so the trail also holds states the item is no longer in.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from promptchronicle.db.models import ChronicleEntry, ChronicleSnapshot, LibraryItem
from promptchronicle.library.hashing import chronicle_hash
from promptchronicle.library.versions import iso_timestamp

# camelCase overlay key -> LibraryItem attribute
STAGEABLE_FIELDS: dict[str, str] = {
    "originalPrompt": "original_prompt",
    "refactoredPrompt": "refactored_prompt",
    "tags": "tags",
    "category": "category",
}


@dataclass(frozen=True)
class ChronicleFault:
    """A problem found by verify_chronicle() at entry *index*."""

    index: int
    reason: str


def snapshot_of(item: LibraryItem) -> ChronicleSnapshot:
    return ChronicleSnapshot(
        original_prompt=item.original_prompt,
        refactored_prompt=item.refactored_prompt,
        tags=tuple(item.tags),
        category=item.category or "",
    )


def commit(item: LibraryItem, note: str | None = None, now: float | None = None) -> LibraryItem:
    """Return *item* with one new chronicle entry appended and staged changes cleared.

    The snapshot is taken from the live fields; ``staged_changes`` is discarded,
    not applied (see apply_staged_changes()).
    """
    snapshot = snapshot_of(item)
    parent_hash = item.chronicle[-1].hash if item.chronicle else None
    entry = ChronicleEntry(
        hash=chronicle_hash(snapshot, parent_hash),
        timestamp=iso_timestamp(now),
        snapshot=snapshot,
        note=note or None,
        parent_hash=parent_hash,
    )
    return replace(item, chronicle=[*item.chronicle, entry], staged_changes=None)


def rollback(item: LibraryItem, entry: ChronicleEntry) -> LibraryItem:
    """Overwrite the four audited fields of *item* from *entry*.

    The chronicle is left untouched. Whether *entry* belongs to *item* is the
    caller's business.
    """
    snap = entry.snapshot
    return replace(
        item,
        original_prompt=snap.original_prompt,
        refactored_prompt=snap.refactored_prompt,
        tags=list(snap.tags),
        category=snap.category,
        chronicle=list(item.chronicle),
    )


def find_entry(item: LibraryItem, hash_prefix: str) -> ChronicleEntry | None:
    """Return the unique entry whose hash starts with *hash_prefix*, else None."""
    if not hash_prefix:
        return None
    matches = [e for e in item.chronicle if e.hash.startswith(hash_prefix)]
    return matches[0] if len(matches) == 1 else None


def verify_chronicle(entries: list[ChronicleEntry]) -> list[ChronicleFault]:
    """Recompute every hash and check every link. Empty result means intact."""
    faults: list[ChronicleFault] = []
    previous: str | None = None
    for index, entry in enumerate(entries):
        if (entry.parent_hash or None) != previous:
            faults.append(ChronicleFault(index, "broken link"))
        if chronicle_hash(entry.snapshot, entry.parent_hash) != entry.hash:
            faults.append(ChronicleFault(index, "hash mismatch"))
        previous = entry.hash
    return faults


# ---------------------------------------------------------------------------
# Staged changes
# ---------------------------------------------------------------------------


def stage_changes(item: LibraryItem, changes: dict[str, Any]) -> LibraryItem:
    """Merge *changes* (camelCase keys) into the item's uncommitted overlay.

    Raises:
        ValueError: If a key is not one of the audited fields.
    """
    unknown = sorted(set(changes) - set(STAGEABLE_FIELDS))
    if unknown:
        raise ValueError(
            f"Cannot stage {', '.join(unknown)}; "
            f"stageable fields are: {', '.join(STAGEABLE_FIELDS)}"
        )
    overlay = dict(item.staged_changes or {})
    for key, value in changes.items():
        overlay[key] = list(value) if key == "tags" else value
    return replace(item, staged_changes=overlay)


def apply_staged_changes(item: LibraryItem) -> LibraryItem:
    """Write the overlay onto the live fields and clear it."""
    if not item.staged_changes:
        return replace(item, staged_changes=None)
    updates: dict[str, Any] = {}
    for key, value in item.staged_changes.items():
        attr = STAGEABLE_FIELDS.get(key)
        if attr is None:
            continue
        updates[attr] = list(value) if attr == "tags" else str(value)
    return replace(item, staged_changes=None, **updates)
