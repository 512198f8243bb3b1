"""prompt-chronicle migrate: one-time import of the browser app's storage dump."""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from promptchronicle.cli.errors import err_file_not_found, err_invalid_bundle
from promptchronicle.cli.session import DbOption, open_repo
from promptchronicle.db.legacy import LegacyFormatError, load_legacy_dump, migrate_legacy

console = Console()


def migrate_cmd(
    legacy_json: Annotated[
        Path,
        typer.Argument(help="JSON dump of the legacy storage, or a bare list of items."),
    ],
    db: DbOption = None,
) -> None:
    """Import a legacy library dump into an empty library."""
    if not legacy_json.exists():
        console.print(err_file_not_found(str(legacy_json)))
        raise typer.Exit(1)

    try:
        dump = load_legacy_dump(legacy_json)
    except LegacyFormatError as exc:
        console.print(err_invalid_bundle(str(legacy_json), str(exc)))
        raise typer.Exit(1)

    with open_repo(db) as repo, warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", UserWarning)
        report = migrate_legacy(repo, dump)

    for w in caught:
        console.print(f"[yellow]⚠[/]  {w.message}")

    if not report.changed:
        console.print("[dim]Nothing to migrate; the library already has data.[/]")
        raise typer.Exit(0)

    console.print(
        f"[green]✓[/] Migrated {report.items_migrated} item(s), "
        f"{report.collections_migrated} collection(s), {report.tags_migrated} tag(s)"
        + (", settings" if report.settings_migrated else "")
    )
    if report.items_skipped:
        console.print(f"  Skipped {report.items_skipped} invalid item(s).")
