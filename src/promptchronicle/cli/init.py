"""prompt-chronicle init: create an empty library in a directory.

Creates:
  .chronicle.db                    empty library with schema
  chronicle.yaml                   project config (library: + export: sections)
  ~/.prompt-chronicle/config.yaml  global defaults (created once, mode 0o600)

An existing .gitignore gets the database and exported bundles appended.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from promptchronicle.config import ensure_global_config, project_config_template
from promptchronicle.db.connection import Database
from promptchronicle.db.schema import initialize

console = Console()

_DEFAULT_DB_NAME = ".chronicle.db"
_CONFIG_NAME = "chronicle.yaml"


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = Path("."),
    global_config: Annotated[
        Path | None,
        typer.Option("--global-config", hidden=True, help="Override global config path (for testing)."),
    ] = None,
) -> None:
    """Initialize a new prompt library."""
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)
    db_path = project_dir / _DEFAULT_DB_NAME

    if db_path.exists():
        console.print(f"[yellow]⚠[/]  {db_path} already exists.")
        if not typer.confirm("Re-initialize? Existing data is preserved.", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

    console.print(f"\n[bold]Creating library in {project_dir} …[/]\n")

    _create_database(db_path)
    _create_config(project_dir)
    _update_gitignore(project_dir)

    cfg_path = ensure_global_config(global_config)
    console.print(f"  [green]✓[/] {cfg_path} (global config)")

    console.print("\n[bold green]✓ Library initialized.[/]")
    console.print("\nNext steps:")
    console.print("  1. prompt-chronicle add --title <t> --refactored <file>   (save a prompt)")
    console.print("  2. prompt-chronicle commit <id> --note <text>            (snapshot it)")
    console.print("  3. prompt-chronicle export --encrypt                     (back up)")


def _create_database(db_path: Path) -> None:
    with Database(db_path) as conn:
        initialize(conn)
    console.print(f"  [green]✓[/] {db_path.name}")


def _create_config(project_dir: Path) -> None:
    path = project_dir / _CONFIG_NAME
    if path.exists():
        console.print(f"  [dim]–[/] {_CONFIG_NAME} (kept)")
        return
    path.write_text(project_config_template(_DEFAULT_DB_NAME), encoding="utf-8")
    console.print(f"  [green]✓[/] {_CONFIG_NAME}")


def _update_gitignore(project_dir: Path) -> None:
    """Append library entries to .gitignore if it already exists."""
    gitignore = project_dir / ".gitignore"
    entries = [_DEFAULT_DB_NAME, "*.prb"]

    if gitignore.exists():
        existing = gitignore.read_text(encoding="utf-8")
        to_add = [e for e in entries if e not in existing]
        if to_add:
            with gitignore.open("a", encoding="utf-8") as f:
                f.write("\n# prompt-chronicle\n")
                for entry in to_add:
                    f.write(f"{entry}\n")
            console.print("  [green]✓[/] .gitignore (updated)")
