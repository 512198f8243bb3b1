"""Tests for the prompt-chronicle config loader."""

from __future__ import annotations

import stat
import warnings
from pathlib import Path

import pytest
import yaml

from promptchronicle.config import (
    ENV_DB,
    ENV_PASSWORD,
    ChronicleConfig,
    ConfigError,
    bundle_password_from_env,
    ensure_global_config,
    load_config,
    project_config_template,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.dump(data), encoding="utf-8")


def _missing(tmp_path: Path) -> Path:
    return tmp_path / "nonexistent" / "config.yaml"


# ---------------------------------------------------------------------------
# Defaults, no config files present
# ---------------------------------------------------------------------------


def test_load_config_defaults_no_files(tmp_path: Path) -> None:
    """No config files → all hardcoded defaults."""
    cfg = load_config(project_dir=tmp_path, global_config_path=_missing(tmp_path))

    assert cfg == ChronicleConfig()
    assert cfg.library.db == ".chronicle.db"
    assert cfg.export.compress is True
    assert cfg.export.directory == "."
    assert cfg.export.filename == "prompt-chronicle-{date}.prb"


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


def test_global_overrides_defaults(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"export": {"compress": False}})

    cfg = load_config(project_dir=tmp_path, global_config_path=global_cfg)
    assert cfg.export.compress is False
    assert cfg.export.directory == "."


def test_global_empty_file(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    global_cfg.write_text("", encoding="utf-8")
    assert load_config(project_dir=tmp_path, global_config_path=global_cfg) == ChronicleConfig()


def test_project_overrides_global(tmp_path: Path) -> None:
    global_cfg = tmp_path / "global.yaml"
    _write_yaml(global_cfg, {"export": {"compress": False, "directory": "backups"}})
    _write_yaml(tmp_path / "chronicle.yaml", {"export": {"compress": True}})

    cfg = load_config(project_dir=tmp_path, global_config_path=global_cfg)
    assert cfg.export.compress is True
    assert cfg.export.directory == "backups"


def test_project_library_db(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "chronicle.yaml", {"library": {"db": "prompts.db"}})
    cfg = load_config(project_dir=tmp_path, global_config_path=_missing(tmp_path))
    assert cfg.library.db == "prompts.db"


def test_top_level_must_be_mapping(tmp_path: Path) -> None:
    (tmp_path / "chronicle.yaml").write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(project_dir=tmp_path, global_config_path=_missing(tmp_path))


# ---------------------------------------------------------------------------
# Secrets
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "bad_key",
    ["password", "bundle_password", "passphrase", "secret", "token", "api_key", "credentials"],
)
def test_global_config_rejects_secret_fields(tmp_path: Path, bad_key: str) -> None:
    global_cfg = tmp_path / "config.yaml"
    global_cfg.write_text(f"{bad_key}: hunter2\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="forbidden key"):
        load_config(project_dir=tmp_path, global_config_path=global_cfg)


def test_project_config_rejects_nested_password(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "chronicle.yaml", {"export": {"password": "hunter2"}})
    with pytest.raises(ConfigError, match="export.password"):
        load_config(project_dir=tmp_path, global_config_path=_missing(tmp_path))


# ---------------------------------------------------------------------------
# Export filename
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("bad", ["../escape.prb", "sub/dir.prb", "..", ""])
def test_export_filename_must_be_plain(tmp_path: Path, bad: str) -> None:
    _write_yaml(tmp_path / "chronicle.yaml", {"export": {"filename": bad}})
    with pytest.raises(ConfigError, match="plain file name"):
        load_config(project_dir=tmp_path, global_config_path=_missing(tmp_path))


# ---------------------------------------------------------------------------
# Unknown key warnings
# ---------------------------------------------------------------------------


def test_unknown_top_level_key_warns(tmp_path: Path) -> None:
    """Unknown top-level key in config emits UserWarning (not error)."""
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"unknown_section": {"foo": "bar"}})

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        cfg = load_config(project_dir=tmp_path, global_config_path=global_cfg)

    assert any("unknown_section" in str(w.message) for w in caught)
    assert cfg.library.db == ".chronicle.db"


# ---------------------------------------------------------------------------
# Environment variables
# ---------------------------------------------------------------------------


def test_env_db_overrides_files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write_yaml(tmp_path / "chronicle.yaml", {"library": {"db": "from-file.db"}})
    monkeypatch.setenv(ENV_DB, "/data/from-env.db")

    cfg = load_config(project_dir=tmp_path, global_config_path=_missing(tmp_path))
    assert cfg.library.db == "/data/from-env.db"


def test_bundle_password_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    assert bundle_password_from_env() is None
    monkeypatch.setenv(ENV_PASSWORD, "")
    assert bundle_password_from_env() is None
    monkeypatch.setenv(ENV_PASSWORD, "s3cret")
    assert bundle_password_from_env() == "s3cret"


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


def test_project_template_loads_cleanly(tmp_path: Path) -> None:
    (tmp_path / "chronicle.yaml").write_text(project_config_template("lib.db"), encoding="utf-8")
    cfg = load_config(project_dir=tmp_path, global_config_path=_missing(tmp_path))
    assert cfg.library.db == "lib.db"
    assert cfg.export == ChronicleConfig().export


def test_ensure_global_config_creates_file(tmp_path: Path) -> None:
    target = tmp_path / ".prompt-chronicle" / "config.yaml"
    result = ensure_global_config(global_config_path=target)

    assert result == target
    parsed = yaml.safe_load(target.read_text(encoding="utf-8"))
    assert parsed == {"export": {"compress": True}}
    assert stat.S_IMODE(target.stat().st_mode) == 0o600


def test_ensure_global_config_idempotent(tmp_path: Path) -> None:
    target = tmp_path / ".prompt-chronicle" / "config.yaml"
    ensure_global_config(global_config_path=target)
    target.write_text("# custom\nexport:\n  compress: false\n", encoding="utf-8")

    ensure_global_config(global_config_path=target)

    assert "# custom" in target.read_text(encoding="utf-8")
