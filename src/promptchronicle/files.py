"""Where bundles are written, and how.

An export path is either given with ``--output`` or built from the
``export.directory`` / ``export.filename`` config. Relative paths may not
climb out of the working directory. Bundles carry the whole library, so
they are written owner-only and atomically: a crash leaves either the old
file or the new one, never half of each.
"""

from __future__ import annotations

import os
import tempfile
from datetime import date
from pathlib import Path

import typer

from promptchronicle.library.bundle import BUNDLE_SUFFIX


# ------------------------------------------------------------------
# Export path
# ------------------------------------------------------------------


def default_bundle_name(template: str, today: date | None = None) -> str:
    """Fill ``{date}`` in *template* with an ISO date (today by default)."""
    return template.replace("{date}", (today or date.today()).isoformat())


def validate_output_path(output: str, allowed_base: Path | None = None) -> Path:
    """Resolve *output* to an absolute path.

    Absolute paths are taken as given. Relative ones are resolved against
    *allowed_base* (the working directory by default) and must stay inside it.

    Raises:
        ValueError: A relative path resolves outside *allowed_base*.
    """
    path = Path(output)
    if path.is_absolute():
        return path.resolve()

    base = (allowed_base or Path.cwd()).resolve()
    resolved = (base / path).resolve()
    if not resolved.is_relative_to(base):
        raise ValueError(
            f"Output path '{output}' resolves outside '{base}'. "
            "Path traversal is not permitted."
        )
    return resolved


def resolve_export_path(
    output: str | None,
    directory: str,
    filename: str,
    *,
    today: date | None = None,
    allowed_base: Path | None = None,
) -> Path:
    """Return the validated path an export should be written to.

    Without *output* the name comes from *directory* and the *filename*
    template. A name without the bundle suffix gets ``.prb`` appended.

    Raises:
        ValueError: From validate_output_path().
    """
    raw = output or str(Path(directory) / default_bundle_name(filename, today))
    if not raw.endswith(BUNDLE_SUFFIX):
        raw += BUNDLE_SUFFIX
    return validate_output_path(raw, allowed_base)


# ------------------------------------------------------------------
# Writing
# ------------------------------------------------------------------


def check_overwrite(path: Path, yes: bool) -> bool:
    """True when writing may go ahead. Asks before replacing an existing file."""
    if yes or not path.exists():
        return True
    return typer.confirm(f"  {path.name} already exists. Overwrite?", default=False)


def write_output(path: Path, content: str) -> None:
    """Atomically replace *path* with *content*, mode 0600, creating parents."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
