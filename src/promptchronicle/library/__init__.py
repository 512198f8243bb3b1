"""Prompt library core: version chains, diff, chronicle audit trail, bundle codec."""

from promptchronicle.library.bundle import (
    BundleError,
    ImportResult,
    create_bundle,
    parse_bundle,
)
from promptchronicle.library.chronicle import commit, rollback, verify_chronicle
from promptchronicle.library.diff import DiffSegment, diff_lines
from promptchronicle.library.hashing import digest
from promptchronicle.library.versions import (
    get_version_chain,
    next_version_number,
    repair_chain_after_deletion,
)

__all__ = [
    "BundleError",
    "DiffSegment",
    "ImportResult",
    "commit",
    "create_bundle",
    "diff_lines",
    "digest",
    "get_version_chain",
    "next_version_number",
    "parse_bundle",
    "repair_chain_after_deletion",
    "rollback",
    "verify_chronicle",
]
