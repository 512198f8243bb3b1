"""Tests for the LCS line diff."""

from __future__ import annotations

import pytest

from promptchronicle.library.diff import (
    ADDED,
    REMOVED,
    UNCHANGED,
    DiffSegment,
    diff_lines,
    reconstruct,
    split_lines,
)


def _pairs(segments):
    return [(s.type, s.text) for s in segments]


# ---------------------------------------------------------------------------
# split_lines
# ---------------------------------------------------------------------------


def test_split_lines_keeps_terminators():
    assert split_lines("a\nb\n") == ["a\n", "b\n"]


def test_split_lines_last_line_without_newline():
    assert split_lines("a\nb") == ["a\n", "b"]


def test_split_lines_empty():
    assert split_lines("") == []


def test_split_lines_blank_lines():
    assert split_lines("\n\n") == ["\n", "\n"]


# ---------------------------------------------------------------------------
# diff_lines
# ---------------------------------------------------------------------------


def test_identical_texts_single_unchanged_segment():
    assert _pairs(diff_lines("x\ny", "x\ny")) == [(UNCHANGED, "x\ny")]


def test_both_empty_gives_no_segments():
    assert diff_lines("", "") == []


def test_old_empty_everything_added():
    assert _pairs(diff_lines("", "a\nb")) == [(ADDED, "a\nb")]


def test_new_empty_everything_removed():
    assert _pairs(diff_lines("a\nb\n", "")) == [(REMOVED, "a\nb\n")]


def test_change_in_the_middle():
    segments = diff_lines("a\nb\nc\n", "a\nc\nd\n")
    assert _pairs(segments) == [
        (UNCHANGED, "a\n"),
        (REMOVED, "b\n"),
        (UNCHANGED, "c\n"),
        (ADDED, "d\n"),
    ]


def test_missing_trailing_newline_makes_lines_differ():
    # "c" and "c\n" are different lines.
    segments = diff_lines("a\nb\nc", "a\nc\nd")
    assert _pairs(segments) == [
        (UNCHANGED, "a\n"),
        (REMOVED, "b\nc"),
        (ADDED, "c\nd"),
    ]


def test_replacement_puts_removal_before_addition():
    assert _pairs(diff_lines("old\n", "new\n")) == [(REMOVED, "old\n"), (ADDED, "new\n")]


def test_adjacent_segments_never_share_a_type():
    segments = diff_lines("1\n2\n3\n4\n5\n", "1\nx\ny\n4\n6\n7\n")
    for a, b in zip(segments, segments[1:]):
        assert a.type != b.type


@pytest.mark.parametrize(
    "old, new",
    [
        ("a\nb\nc", "a\nc\nd"),
        ("", "only new\n"),
        ("line 1\nline 2\n", "line 0\nline 1\nline 2\nline 3"),
        ("same\nsame\nsame\n", "same\n"),
        ("You are a helpful assistant.\nBe brief.\n", "You are an expert.\nBe brief.\nCite sources.\n"),
    ],
)
def test_reconstructs_both_sides(old, new):
    segments = diff_lines(old, new)
    assert reconstruct(segments, "old") == old
    assert reconstruct(segments, "new") == new


def test_segment_to_dict():
    assert DiffSegment(ADDED, "x\n").to_dict() == {"type": "added", "text": "x\n"}
