"""Version chains: items derived from one another through successive edits.

A chain is the flat set of items sharing one ``root_id`` plus the root itself,
ordered by ``created_at``. Parent edges (``parent_id``) are kept for display
but chain membership is keyed on ``root_id`` only; repair after deletion
relinks direct children and re-roots, it does not re-derive ``root_id`` from
parent pointers.

All functions are pure: inputs are never mutated.
"""

from __future__ import annotations

import re
import time
from dataclasses import replace
from datetime import datetime, timezone

from promptchronicle.db.models import LibraryItem

INITIAL_VERSION = "1.0"
_FALLBACK_VERSION = "1.1"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)
_PART_RE = re.compile(r"\d+", re.ASCII)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def created_key(item: LibraryItem) -> datetime:
    """Sort key: ``created_at`` as an aware datetime; unparseable sorts first."""
    return parse_timestamp(item.created_at)


def parse_timestamp(ts: str) -> datetime:
    if not ts:
        return _EPOCH
    try:
        dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def iso_timestamp(now: float | None = None) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix (like ``Date.toISOString``)."""
    ts = now if now is not None else time.time()
    stamp = datetime.fromtimestamp(ts, timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def new_item_id(title: str, now: float | None = None) -> str:
    """``<epoch-millis>-<first 20 title chars with whitespace turned into ->``."""
    millis = int((now if now is not None else time.time()) * 1000)
    slug = re.sub(r"\s", "-", title[:20])
    return f"{millis}-{slug}"


# ---------------------------------------------------------------------------
# Version numbers
# ---------------------------------------------------------------------------


def next_version_number(parent_version: str) -> str:
    """Return ``"major.(minor+1)"`` for a ``"major.minor"`` string.

    Anything malformed (empty, not two parts, a part that is not a plain
    non-negative integer) gives ``"1.1"``.

    >>> next_version_number("1.0")
    '1.1'
    >>> next_version_number("2.3")
    '2.4'
    >>> next_version_number("abc")
    '1.1'
    """
    if not parent_version or not isinstance(parent_version, str):
        return _FALLBACK_VERSION

    parts = parent_version.split(".")
    if len(parts) != 2:
        return _FALLBACK_VERSION

    major_str, minor_str = (p.strip() for p in parts)
    if not _PART_RE.fullmatch(major_str) or not _PART_RE.fullmatch(minor_str):
        return _FALLBACK_VERSION

    return f"{int(major_str)}.{int(minor_str) + 1}"


# ---------------------------------------------------------------------------
# Chain queries
# ---------------------------------------------------------------------------


def get_version_chain(item_id: str, library: list[LibraryItem]) -> list[LibraryItem]:
    """Return every item in the same chain as *item_id*, oldest first.

    Unknown ids give an empty list.
    """
    target = next((i for i in library if i.id == item_id), None)
    if target is None:
        return []

    chain_root_id = target.chain_root_id
    chain = [i for i in library if i.id == chain_root_id or i.root_id == chain_root_id]
    chain.sort(key=created_key)
    return chain


def has_versions(item: LibraryItem, library: list[LibraryItem]) -> bool:
    """True when *item* is part of a chain with at least one other member."""
    if item.root_id and item.root_id != item.id:
        return True
    return any(other.root_id == item.id and other.id != item.id for other in library)


# ---------------------------------------------------------------------------
# Chain construction
# ---------------------------------------------------------------------------


def derive_version(parent: LibraryItem, item: LibraryItem) -> LibraryItem:
    """Link *item* into *parent*'s chain as its next version."""
    return replace(
        item,
        parent_id=parent.id,
        root_id=parent.root_id or parent.id,
        version_number=next_version_number(parent.version_number or INITIAL_VERSION),
    )


def duplicate_item(item: LibraryItem, now: float | None = None) -> LibraryItem:
    """Copy *item* into a brand-new chain of its own."""
    ts = now if now is not None else time.time()
    return replace(
        item,
        id=f"{new_item_id(item.title, ts)}-copy",
        title=f"Copy of {item.title}",
        created_at=iso_timestamp(ts),
        version_number=INITIAL_VERSION,
        parent_id=None,
        root_id=None,
        tags=list(item.tags),
        tag_ids=list(item.tag_ids),
        chronicle=list(item.chronicle),
    )


# ---------------------------------------------------------------------------
# Repair
# ---------------------------------------------------------------------------


def repair_chain_after_deletion(
    deleted: LibraryItem, library: list[LibraryItem]
) -> list[LibraryItem]:
    """Return *library* without *deleted*, with its chain relinked.

    1. Direct children of the deleted item are re-parented to its parent.
    2. If it was the chain root and had children, the earliest child becomes
       the new root (no parent, no root_id) and every other member pointing
       at the old root is moved to the new one.
    3. If it was the root with no children, leftover members that still
       point at the old root become roots of their own.

    Retained items are shallow copies; the input list is never mutated.
    """
    deleted_id = deleted.id
    chain_root_id = deleted.chain_root_id
    is_root = not deleted.parent_id or deleted.id == chain_root_id

    result = [replace(item) for item in library if item.id != deleted_id]

    children = [item for item in result if item.parent_id == deleted_id]
    for child in children:
        child.parent_id = deleted.parent_id

    if is_root and children:
        new_root = min(children, key=created_key)
        new_root.parent_id = None
        new_root.root_id = None
        for item in result:
            if item.root_id == chain_root_id and item.id != new_root.id:
                item.root_id = new_root.id
    elif is_root:
        for item in result:
            if item.root_id == chain_root_id:
                item.root_id = None
                item.parent_id = None

    return result
