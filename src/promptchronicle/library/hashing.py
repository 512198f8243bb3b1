"""Content digests for the chronicle hash chain.

The hashed bytes are compact JSON in a fixed key order, the same text the
browser app produces with ``JSON.stringify``, so a trail written by either
side verifies on the other.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from promptchronicle.db.models import ChronicleSnapshot


def digest(content: str) -> str:
    """Return the SHA-256 hex digest (64 chars) of *content* encoded as UTF-8."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def canonical_json(obj: Any) -> str:
    """Serialize *obj* without whitespace, keeping key insertion order."""
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def chronicle_hash_input(snapshot: ChronicleSnapshot, parent_hash: str | None) -> str:
    """Return the exact text hashed for one chronicle entry.

    Key order: originalPrompt, refactoredPrompt, tags, category, parentHash.
    A first entry has no parent; the empty string stands in for it.
    """
    fields = snapshot.to_dict()
    fields["parentHash"] = parent_hash or ""
    return canonical_json(fields)


def chronicle_hash(snapshot: ChronicleSnapshot, parent_hash: str | None) -> str:
    return digest(chronicle_hash_input(snapshot, parent_hash))
