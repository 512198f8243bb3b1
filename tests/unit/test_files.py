"""Tests for bundle file output helpers."""

from __future__ import annotations

import stat
from datetime import date
from unittest.mock import patch

import pytest

from promptchronicle.files import (
    check_overwrite,
    default_bundle_name,
    resolve_export_path,
    validate_output_path,
    write_output,
)


# ------------------------------------------------------------------
# validate_output_path
# ------------------------------------------------------------------


def test_validate_output_path_simple_name(tmp_path):
    resolved = validate_output_path("backup.prb", allowed_base=tmp_path)
    assert resolved == tmp_path.resolve() / "backup.prb"


def test_validate_output_path_subdir(tmp_path):
    resolved = validate_output_path("exports/backup.prb", allowed_base=tmp_path)
    assert resolved == tmp_path.resolve() / "exports" / "backup.prb"


def test_validate_output_path_traversal_blocked(tmp_path):
    with pytest.raises(ValueError, match="Path traversal"):
        validate_output_path("../../etc/passwd", allowed_base=tmp_path)


def test_validate_output_path_absolute_accepted(tmp_path):
    target = str(tmp_path / "elsewhere" / "backup.prb")
    resolved = validate_output_path(target, allowed_base=tmp_path / "base")
    assert resolved == (tmp_path / "elsewhere" / "backup.prb").resolve()


def test_validate_output_path_defaults_to_cwd():
    resolved = validate_output_path("backup.prb")
    assert resolved.name == "backup.prb"
    assert resolved.is_absolute()


# ------------------------------------------------------------------
# default_bundle_name
# ------------------------------------------------------------------


def test_default_bundle_name_fills_date():
    name = default_bundle_name("prompt-chronicle-{date}.prb", date(2024, 3, 1))
    assert name == "prompt-chronicle-2024-03-01.prb"


def test_default_bundle_name_without_placeholder():
    assert default_bundle_name("library.prb", date(2024, 3, 1)) == "library.prb"


# ------------------------------------------------------------------
# resolve_export_path
# ------------------------------------------------------------------


def test_resolve_export_path_from_config(tmp_path):
    path = resolve_export_path(
        None, "exports", "lib-{date}.prb", today=date(2024, 3, 1), allowed_base=tmp_path
    )
    assert path == tmp_path.resolve() / "exports" / "lib-2024-03-01.prb"


def test_resolve_export_path_explicit_output_wins(tmp_path):
    path = resolve_export_path("mine.prb", "exports", "lib.prb", allowed_base=tmp_path)
    assert path == tmp_path.resolve() / "mine.prb"


def test_resolve_export_path_appends_suffix(tmp_path):
    path = resolve_export_path("backup", ".", "lib.prb", allowed_base=tmp_path)
    assert path.name == "backup.prb"


def test_resolve_export_path_rejects_traversal(tmp_path):
    with pytest.raises(ValueError):
        resolve_export_path(None, "../..", "lib.prb", allowed_base=tmp_path)


# ------------------------------------------------------------------
# check_overwrite
# ------------------------------------------------------------------


def test_check_overwrite_file_not_exists(tmp_path):
    assert check_overwrite(tmp_path / "new.prb", yes=False) is True


def test_check_overwrite_yes_flag_skips_prompt(tmp_path):
    path = tmp_path / "exists.prb"
    path.write_text("old")
    assert check_overwrite(path, yes=True) is True


def test_check_overwrite_user_declines(tmp_path):
    path = tmp_path / "exists.prb"
    path.write_text("old")
    with patch("promptchronicle.files.typer.confirm", return_value=False):
        assert check_overwrite(path, yes=False) is False


# ------------------------------------------------------------------
# write_output
# ------------------------------------------------------------------


def test_write_output_creates_file_and_parents(tmp_path):
    path = tmp_path / "a" / "b" / "backup.prb"
    write_output(path, '{"version": "1.0"}')
    assert path.read_text(encoding="utf-8") == '{"version": "1.0"}'


def test_write_output_is_owner_only(tmp_path):
    path = tmp_path / "backup.prb"
    write_output(path, "x")
    assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_write_output_overwrites_and_leaves_no_temp(tmp_path):
    path = tmp_path / "backup.prb"
    path.write_text("old")
    write_output(path, "new")
    assert path.read_text() == "new"
    assert [p.name for p in tmp_path.iterdir() if p.name.endswith(".tmp")] == []


def test_write_output_cleans_up_on_failure(tmp_path):
    path = tmp_path / "backup.prb"
    with patch("promptchronicle.files.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(OSError, match="disk full"):
            write_output(path, "x")
    assert not path.exists()
    assert [p.name for p in tmp_path.iterdir() if p.name.endswith(".tmp")] == []
