"""Line-level diff between two prompt texts (LCS based).

Lines keep their trailing ``\\n`` so that concatenating segment texts
reproduces either input exactly:

    old == "".join(s.text for s in segments if s.type != "added")
    new == "".join(s.text for s in segments if s.type != "removed")

Cost is O(m·n) in line counts, fine for human-sized prompts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

SegmentType = Literal["added", "removed", "unchanged"]

ADDED: SegmentType = "added"
REMOVED: SegmentType = "removed"
UNCHANGED: SegmentType = "unchanged"


@dataclass(frozen=True)
class DiffSegment:
    """A run of consecutive lines sharing one edit type."""

    type: SegmentType
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "text": self.text}


def split_lines(text: str) -> list[str]:
    """Split *text* into lines, keeping each line's ``\\n``.

    >>> split_lines("a\\nb\\n")
    ['a\\n', 'b\\n']
    >>> split_lines("a\\nb")
    ['a\\n', 'b']
    >>> split_lines("")
    []
    """
    if not text:
        return []
    lines = text.split("\n")
    out = [line + "\n" for line in lines[:-1]]
    if lines[-1]:
        out.append(lines[-1])
    return out


def diff_lines(old_text: str, new_text: str) -> list[DiffSegment]:
    """Return the edit script turning *old_text* into *new_text*.

    Backtracking prefers ``unchanged`` on a match, then ``added`` when
    ``dp[i][j-1] >= dp[i-1][j]``, so on ties insertions come after removals
    once the list is reversed.

    >>> [(s.type, s.text) for s in diff_lines("a\\nb\\nc\\n", "a\\nc\\nd\\n")]
    [('unchanged', 'a\\n'), ('removed', 'b\\n'), ('unchanged', 'c\\n'), ('added', 'd\\n')]
    """
    if old_text == new_text:
        return [DiffSegment(UNCHANGED, old_text)] if old_text else []

    old_lines = split_lines(old_text)
    new_lines = split_lines(new_text)
    m, n = len(old_lines), len(new_lines)

    # dp[i][j] = LCS length of old_lines[:i] and new_lines[:j]
    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(1, m + 1):
        row, prev = dp[i], dp[i - 1]
        old_line = old_lines[i - 1]
        for j in range(1, n + 1):
            if old_line == new_lines[j - 1]:
                row[j] = prev[j - 1] + 1
            else:
                row[j] = max(prev[j], row[j - 1])

    ops: list[tuple[SegmentType, str]] = []
    i, j = m, n
    while i > 0 or j > 0:
        if i > 0 and j > 0 and old_lines[i - 1] == new_lines[j - 1]:
            ops.append((UNCHANGED, old_lines[i - 1]))
            i -= 1
            j -= 1
        elif j > 0 and (i == 0 or dp[i][j - 1] >= dp[i - 1][j]):
            ops.append((ADDED, new_lines[j - 1]))
            j -= 1
        else:
            ops.append((REMOVED, old_lines[i - 1]))
            i -= 1
    ops.reverse()

    segments: list[DiffSegment] = []
    for op_type, line in ops:
        if segments and segments[-1].type == op_type:
            segments[-1] = DiffSegment(op_type, segments[-1].text + line)
        else:
            segments.append(DiffSegment(op_type, line))
    return segments


def reconstruct(segments: list[DiffSegment], side: Literal["old", "new"]) -> str:
    """Rebuild the old or new text from a diff."""
    skip = ADDED if side == "old" else REMOVED
    return "".join(s.text for s in segments if s.type != skip)
