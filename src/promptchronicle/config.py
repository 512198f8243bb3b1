"""Prompt Chronicle configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (PROMPT_CHRONICLE_DB)
  3. Per-project chronicle.yaml  (in the working directory)
  4. Global ~/.prompt-chronicle/config.yaml  (defaults only, no passwords)
  5. Hardcoded defaults

Bundle passwords never live in config files: use the --password prompt or
PROMPT_CHRONICLE_PASSWORD. All YAML reads use yaml.safe_load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".prompt-chronicle"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "chronicle.yaml"

ENV_DB = "PROMPT_CHRONICLE_DB"
ENV_PASSWORD = "PROMPT_CHRONICLE_PASSWORD"

# Key names that suggest a secret; forbidden in any config file.
# Matches: password, passwd, passphrase, secret, _token, api_key, credential(s).
_SECRET_KEY_RE: re.Pattern[str] = re.compile(
    r"passw(?:ord|d)"            # password, passwd
    r"|passphrase"
    r"|_secret$|^secret$"        # client_secret, secret
    r"|_token$|^token$"          # access_token, token
    r"|api[_\-]?(?:key|secret)"  # api_key, api-key, apikey
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(["library", "export"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class LibraryCfg:
    """Library store configuration (chronicle.yaml: library:)."""

    db: str = ".chronicle.db"


@dataclass
class ExportCfg:
    """Bundle export defaults (chronicle.yaml: export:).

    Attributes:
        compress: Deflate bundles by default (``--no-compress`` overrides).
        directory: Directory exports are written to when --output is not given.
        filename: Filename template; ``{date}`` becomes YYYY-MM-DD.
    """

    compress: bool = True
    directory: str = "."
    filename: str = "prompt-chronicle-{date}.prb"


@dataclass
class ChronicleConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    library: LibraryCfg = field(default_factory=LibraryCfg)
    export: ExportCfg = field(default_factory=ExportCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_secrets(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any secret-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _SECRET_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  Bundle passwords must not be stored in config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {ENV_PASSWORD}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' (ignored).",
                UserWarning,
                stacklevel=4,
            )


def _validate_filename(template: str) -> None:
    """Raise ConfigError if the export filename template escapes its directory."""
    if "/" in template or "\\" in template or template in ("", ".", ".."):
        raise ConfigError(
            f"export.filename must be a plain file name, got '{template}'\n"
            "  Use export.directory to choose where bundles are written.\n"
            "  Example: export.filename: prompt-chronicle-{date}.prb"
        )


def _read_yaml(path: Path) -> dict[str, Any]:
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config '{path}' must be a YAML mapping at the top level.")
    return raw


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> ChronicleConfig:
    """Build a *ChronicleConfig* from a merged raw YAML dict."""
    cfg = ChronicleConfig()

    if "library" in data:
        lib = data["library"] or {}
        cfg.library = LibraryCfg(db=str(lib.get("db", cfg.library.db)))

    if "export" in data:
        ex = data["export"] or {}
        cfg.export = ExportCfg(
            compress=bool(ex.get("compress", cfg.export.compress)),
            directory=str(ex.get("directory", cfg.export.directory)),
            filename=str(ex.get("filename", cfg.export.filename)),
        )

    return cfg


def _apply_env_overrides(cfg: ChronicleConfig) -> ChronicleConfig:
    """Apply PROMPT_CHRONICLE_* environment variable overrides."""
    if db := os.environ.get(ENV_DB):
        cfg.library.db = db
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> ChronicleConfig:
    """Load and return a merged *ChronicleConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *chronicle.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *ChronicleConfig* with env var overrides applied.

    Raises:
        ConfigError: If any config file contains password-like keys, is not a
            mapping, or has an export filename containing a path.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _check_no_secrets(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _check_no_secrets(raw_project, project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)
    _validate_filename(cfg.export.filename)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    return cfg


def bundle_password_from_env() -> str | None:
    """Return PROMPT_CHRONICLE_PASSWORD if set and non-empty."""
    return os.environ.get(ENV_PASSWORD) or None


def project_config_template(db_name: str = ".chronicle.db") -> str:
    """Return the chronicle.yaml written by ``prompt-chronicle init``."""
    return (
        "# Prompt Chronicle project configuration.\n"
        f"# Never store bundle passwords here. Use {ENV_PASSWORD}.\n"
        "\n"
        "library:\n"
        f"  db: {db_name}\n"
        "\n"
        "export:\n"
        "  compress: true\n"
        "  directory: .\n"
        "  filename: prompt-chronicle-{date}.prb\n"
    )


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.prompt-chronicle/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).

    Args:
        global_config_path: Override path (for testing).

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Prompt Chronicle global configuration (defaults only).\n"
            "# NEVER store bundle passwords here. Use the environment:\n"
            f"#   export {ENV_PASSWORD}=...\n"
            "\n"
            "export:\n"
            "  compress: true\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
