"""Domain models for the prompt library.

Every record round-trips through the camelCase JSON shape used by the browser
app and by .prb bundles: ``to_dict()`` emits it, ``from_dict()`` validates it at
the storage / import boundary. Unset optional fields are omitted on output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class InvalidRecordError(ValueError):
    """Raised when a stored or imported record does not have the expected shape."""


# ---------------------------------------------------------------------------
# Field readers
# ---------------------------------------------------------------------------


def _require_object(data: Any, kind: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise InvalidRecordError(
            f"{kind} record must be a JSON object, got {type(data).__name__}"
        )
    return data


def _require_id(data: dict[str, Any], kind: str) -> str:
    record_id = data.get("id")
    if not isinstance(record_id, str) or not record_id:
        raise InvalidRecordError(f"{kind} record is missing a string 'id'")
    return record_id


def _str(data: dict[str, Any], key: str, kind: str, default: str = "") -> str:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidRecordError(f"{kind}.{key} must be a string, got {type(value).__name__}")
    return value


def _opt_str(data: dict[str, Any], key: str, kind: str) -> str | None:
    """Absent or null gives None; an empty string is kept as written."""
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidRecordError(f"{kind}.{key} must be a string, got {type(value).__name__}")
    return value


def _str_list(data: dict[str, Any], key: str, kind: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise InvalidRecordError(f"{kind}.{key} must be a list, got {type(value).__name__}")
    return [str(v) for v in value]


def _put_optional(out: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        out[key] = value


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class ProcessedWith:
    """Provider / model / mode that produced an item."""

    provider: str = ""
    model: str = ""
    mode: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"provider": self.provider, "model": self.model, "mode": self.mode}

    @classmethod
    def from_dict(cls, data: Any) -> ProcessedWith:
        if data is None:
            return cls()
        data = _require_object(data, "processedWith")
        return cls(
            provider=_str(data, "provider", "processedWith"),
            model=_str(data, "model", "processedWith"),
            mode=_str(data, "mode", "processedWith"),
        )


@dataclass(frozen=True)
class ChronicleSnapshot:
    """Frozen copy of the four audited fields of an item."""

    original_prompt: str
    refactored_prompt: str
    tags: tuple[str, ...] = ()
    category: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", tuple(self.tags))

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalPrompt": self.original_prompt,
            "refactoredPrompt": self.refactored_prompt,
            "tags": list(self.tags),
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ChronicleSnapshot:
        data = _require_object(data, "snapshot")
        return cls(
            original_prompt=_str(data, "originalPrompt", "snapshot"),
            refactored_prompt=_str(data, "refactoredPrompt", "snapshot"),
            tags=tuple(_str_list(data, "tags", "snapshot")),
            category=_str(data, "category", "snapshot"),
        )


@dataclass(frozen=True)
class ChronicleEntry:
    """One immutable record of an item's audit trail."""

    hash: str
    timestamp: str
    snapshot: ChronicleSnapshot
    note: str | None = None
    parent_hash: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"hash": self.hash, "timestamp": self.timestamp}
        _put_optional(out, "note", self.note)
        _put_optional(out, "parentHash", self.parent_hash)
        out["snapshot"] = self.snapshot.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Any) -> ChronicleEntry:
        data = _require_object(data, "chronicle entry")
        entry_hash = data.get("hash")
        if not isinstance(entry_hash, str) or not entry_hash:
            raise InvalidRecordError("chronicle entry is missing a string 'hash'")
        return cls(
            hash=entry_hash,
            timestamp=_str(data, "timestamp", "chronicle entry"),
            snapshot=ChronicleSnapshot.from_dict(data.get("snapshot")),
            note=_opt_str(data, "note", "chronicle entry"),
            parent_hash=_opt_str(data, "parentHash", "chronicle entry"),
        )


@dataclass
class LibraryItem:
    """A saved prompt: the central record of the library.

    Attributes:
        id: Stable identifier, never changed after creation.
        parent_id: Item this one was derived from (version chain edge).
        root_id: Chain head. ``None`` (or equal to ``id``) means this item is a root.
        version_number: ``"major.minor"`` within the chain.
        chronicle: Append-only audit trail (see ``library.chronicle``).
        staged_changes: Uncommitted overlay keyed by camelCase field name.
        collection_id: Weak reference to a ``Collection``.
        tag_ids: Weak references to ``Tag`` records.
    """

    id: str
    title: str = ""
    original_prompt: str = ""
    refactored_prompt: str = ""
    category: str = ""
    complexity: str = ""
    tags: list[str] = field(default_factory=list)
    created_at: str = ""
    processed_with: ProcessedWith = field(default_factory=ProcessedWith)
    is_generated: bool = False
    version: str = "1.0"
    parent_id: str | None = None
    root_id: str | None = None
    version_number: str | None = None
    chronicle: list[ChronicleEntry] = field(default_factory=list)
    staged_changes: dict[str, Any] | None = None
    collection_id: str | None = None
    tag_ids: list[str] = field(default_factory=list)

    @property
    def chain_root_id(self) -> str:
        """Id of the chain this item belongs to."""
        return self.root_id or self.id

    @property
    def is_root(self) -> bool:
        return not self.root_id or self.root_id == self.id

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "originalPrompt": self.original_prompt,
            "refactoredPrompt": self.refactored_prompt,
            "category": self.category,
            "complexity": self.complexity,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "version": self.version,
            "processedWith": self.processed_with.to_dict(),
            "isGenerated": self.is_generated,
        }
        _put_optional(out, "parentId", self.parent_id)
        _put_optional(out, "rootId", self.root_id)
        _put_optional(out, "versionNumber", self.version_number)
        out["chronicle"] = [e.to_dict() for e in self.chronicle]
        if self.staged_changes is not None:
            out["stagedChanges"] = dict(self.staged_changes)
        _put_optional(out, "collectionId", self.collection_id)
        out["tagIds"] = list(self.tag_ids)
        return out

    @classmethod
    def from_dict(cls, data: Any) -> LibraryItem:
        data = _require_object(data, "item")
        item_id = _require_id(data, "item")

        raw_chronicle = data.get("chronicle")
        if raw_chronicle is None:
            raw_chronicle = []
        if not isinstance(raw_chronicle, list):
            raise InvalidRecordError(f"item {item_id!r}: chronicle must be a list")

        staged = data.get("stagedChanges")
        if staged is not None and not isinstance(staged, dict):
            raise InvalidRecordError(f"item {item_id!r}: stagedChanges must be an object")

        return cls(
            id=item_id,
            title=_str(data, "title", "item"),
            original_prompt=_str(data, "originalPrompt", "item"),
            refactored_prompt=_str(data, "refactoredPrompt", "item"),
            category=_str(data, "category", "item"),
            complexity=_str(data, "complexity", "item"),
            tags=_str_list(data, "tags", "item"),
            created_at=_str(data, "createdAt", "item"),
            processed_with=ProcessedWith.from_dict(data.get("processedWith")),
            is_generated=bool(data.get("isGenerated", False)),
            version=_str(data, "version", "item", default="1.0"),
            parent_id=_opt_str(data, "parentId", "item"),
            root_id=_opt_str(data, "rootId", "item"),
            version_number=_opt_str(data, "versionNumber", "item"),
            chronicle=[ChronicleEntry.from_dict(e) for e in raw_chronicle],
            staged_changes=dict(staged) if staged is not None else None,
            collection_id=_opt_str(data, "collectionId", "item"),
            tag_ids=_str_list(data, "tagIds", "item"),
        )


@dataclass
class Collection:
    """A user-defined folder. Nested via ``parent_id``."""

    id: str
    name: str
    created_at: str = ""
    parent_id: str | None = None
    color: str | None = None
    icon: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "name": self.name}
        _put_optional(out, "parentId", self.parent_id)
        _put_optional(out, "color", self.color)
        _put_optional(out, "icon", self.icon)
        out["createdAt"] = self.created_at
        return out

    @classmethod
    def from_dict(cls, data: Any) -> Collection:
        data = _require_object(data, "collection")
        return cls(
            id=_require_id(data, "collection"),
            name=_str(data, "name", "collection"),
            created_at=_str(data, "createdAt", "collection"),
            parent_id=_opt_str(data, "parentId", "collection"),
            color=_opt_str(data, "color", "collection"),
            icon=_opt_str(data, "icon", "collection"),
        )


@dataclass
class Tag:
    """A reusable structured tag with a display colour."""

    id: str
    name: str
    color: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, data: Any) -> Tag:
        data = _require_object(data, "tag")
        return cls(
            id=_require_id(data, "tag"),
            name=_str(data, "name", "tag"),
            color=_str(data, "color", "tag"),
        )


@dataclass
class BundlePayload:
    """The whole workspace: everything that goes into (and comes out of) a bundle."""

    items: list[LibraryItem] = field(default_factory=list)
    collections: list[Collection] = field(default_factory=list)
    tags: list[Tag] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [i.to_dict() for i in self.items],
            "collections": [c.to_dict() for c in self.collections],
            "tags": [t.to_dict() for t in self.tags],
        }

    @classmethod
    def from_dict(cls, data: Any) -> BundlePayload:
        data = _require_object(data, "workspace")
        parts: dict[str, list[Any]] = {}
        for key in ("items", "collections", "tags"):
            value = data.get(key) or []
            if not isinstance(value, list):
                raise InvalidRecordError(f"workspace.{key} must be a list")
            parts[key] = value
        return cls(
            items=[LibraryItem.from_dict(i) for i in parts["items"]],
            collections=[Collection.from_dict(c) for c in parts["collections"]],
            tags=[Tag.from_dict(t) for t in parts["tags"]],
        )
