"""Collections, tags and workspace merge.

Items point at collections and tags by id only. Deleting either side clears
the reference on every item so nothing dangles. Functions return new lists.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, replace
from typing import Any

from promptchronicle.db.models import BundlePayload, Collection, LibraryItem, Tag
from promptchronicle.library.versions import iso_timestamp

DEFAULT_COLLECTION_COLOR = "#6366f1"
DEFAULT_COLLECTION_ICON = "📁"


def _slug(name: str) -> str:
    return re.sub(r"\s+", "-", name.lower())[:20]


def _millis(now: float | None) -> int:
    return int((now if now is not None else time.time()) * 1000)


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


def create_collection(
    collections: list[Collection],
    name: str,
    parent_id: str | None = None,
    color: str | None = None,
    icon: str | None = None,
    now: float | None = None,
) -> tuple[list[Collection], Collection]:
    """Append a new collection; returns (updated list, new collection)."""
    collection = Collection(
        id=f"col-{_millis(now)}-{_slug(name)}",
        name=name,
        parent_id=parent_id,
        color=color or DEFAULT_COLLECTION_COLOR,
        icon=icon or DEFAULT_COLLECTION_ICON,
        created_at=iso_timestamp(now),
    )
    return [*collections, collection], collection


def update_collection(
    collections: list[Collection], collection_id: str, **changes: Any
) -> list[Collection]:
    return [replace(c, **changes) if c.id == collection_id else c for c in collections]


def delete_collection(
    collections: list[Collection], items: list[LibraryItem], collection_id: str
) -> tuple[list[Collection], list[LibraryItem]]:
    """Remove a collection, lifting its children one level and un-filing its items."""
    deleted = next((c for c in collections if c.id == collection_id), None)
    new_parent = deleted.parent_id if deleted else None

    remaining = [
        replace(c, parent_id=new_parent) if c.parent_id == collection_id else c
        for c in collections
        if c.id != collection_id
    ]
    updated_items = [
        replace(i, collection_id=None) if i.collection_id == collection_id else i
        for i in items
    ]
    return remaining, updated_items


def collection_children(
    collections: list[Collection], parent_id: str | None
) -> list[Collection]:
    return [c for c in collections if c.parent_id == parent_id]


def collection_item_count(items: list[LibraryItem], collection_id: str) -> int:
    return sum(1 for i in items if i.collection_id == collection_id)


def assign_collection(
    items: list[LibraryItem], item_id: str, collection_id: str | None
) -> list[LibraryItem]:
    return [replace(i, collection_id=collection_id) if i.id == item_id else i for i in items]


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


def create_tag(
    tags: list[Tag], name: str, color: str, now: float | None = None
) -> tuple[list[Tag], Tag]:
    tag = Tag(id=f"tag-{_millis(now)}-{_slug(name)}", name=name, color=color)
    return [*tags, tag], tag


def update_tag(tags: list[Tag], tag_id: str, **changes: Any) -> list[Tag]:
    return [replace(t, **changes) if t.id == tag_id else t for t in tags]


def delete_tag(
    tags: list[Tag], items: list[LibraryItem], tag_id: str
) -> tuple[list[Tag], list[LibraryItem]]:
    """Remove a tag and strip it from every item's ``tag_ids``."""
    remaining = [t for t in tags if t.id != tag_id]
    updated_items = [
        replace(i, tag_ids=[t for t in i.tag_ids if t != tag_id]) if tag_id in i.tag_ids else i
        for i in items
    ]
    return remaining, updated_items


def toggle_item_tag(items: list[LibraryItem], item_id: str, tag_id: str) -> list[LibraryItem]:
    """Add *tag_id* to the item if absent, remove it if present."""
    out: list[LibraryItem] = []
    for item in items:
        if item.id == item_id:
            if tag_id in item.tag_ids:
                tag_ids = [t for t in item.tag_ids if t != tag_id]
            else:
                tag_ids = [*item.tag_ids, tag_id]
            item = replace(item, tag_ids=tag_ids)
        out.append(item)
    return out


# ---------------------------------------------------------------------------
# Import merge
# ---------------------------------------------------------------------------


@dataclass
class MergeReport:
    items_added: int = 0
    items_skipped: int = 0
    collections_added: int = 0
    tags_added: int = 0

    def summary(self) -> str:
        text = f"Imported {self.items_added} items"
        if self.items_skipped:
            text += f" ({self.items_skipped} duplicates skipped)"
        return f"{text}. {self.collections_added} collections, {self.tags_added} tags added."


def merge_workspace(
    current: BundlePayload, incoming: BundlePayload
) -> tuple[BundlePayload, MergeReport]:
    """Add incoming records whose ids are new; existing ids win."""
    item_ids = {i.id for i in current.items}
    new_items = [i for i in incoming.items if i.id not in item_ids]

    collection_ids = {c.id for c in current.collections}
    new_collections = [c for c in incoming.collections if c.id not in collection_ids]

    tag_ids = {t.id for t in current.tags}
    new_tags = [t for t in incoming.tags if t.id not in tag_ids]

    merged = BundlePayload(
        items=[*current.items, *new_items],
        collections=[*current.collections, *new_collections],
        tags=[*current.tags, *new_tags],
    )
    report = MergeReport(
        items_added=len(new_items),
        items_skipped=len(incoming.items) - len(new_items),
        collections_added=len(new_collections),
        tags_added=len(new_tags),
    )
    return merged, report
