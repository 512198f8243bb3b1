"""prompt-chronicle status: library overview.

Shows the database location and schema version, item, chain and chronicle
counts, and collections/tags. Works (with a hint) when no database exists.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from promptchronicle.cli.session import DbOption, open_repo, resolve_db_path
from promptchronicle.db.models import BundlePayload
from promptchronicle.db.schema import CURRENT_VERSION
from promptchronicle.library.chronicle import verify_chronicle

console = Console()


def status_cmd(db: DbOption = None) -> None:
    """Show library status: items, version chains, chronicle health."""
    db_path = resolve_db_path(db)

    if not db_path.exists():
        console.print(
            Panel(
                f"[yellow]No database found at {db_path}.[/]\n"
                "  Run:  prompt-chronicle init",
                title="[bold]Library[/]",
                expand=False,
            )
        )
        raise typer.Exit(0)

    with open_repo(db_path) as repo:
        workspace = repo.load_workspace()
        staged = sum(1 for i in workspace.items if i.staged_changes)
        version = repo.schema_version()

    _show_database_panel(db_path, version)
    _show_library_panel(workspace, staged)


# ---------------------------------------------------------------------------
# Panel renderers
# ---------------------------------------------------------------------------


def _show_database_panel(db_path: Path, version: int) -> None:
    size_kb = db_path.stat().st_size / 1024
    lines = [
        f"Database:  {db_path} ({size_kb:.1f} KB)",
        f"Schema:    v{version}"
        + ("" if version == CURRENT_VERSION else f" [yellow](this release: v{CURRENT_VERSION})[/]"),
    ]
    console.print(Panel("\n".join(lines), title="[bold]Store[/]", expand=False))


def _show_library_panel(workspace: BundlePayload, staged: int) -> None:
    items = workspace.items
    chains = {i.chain_root_id for i in items}
    versioned = {i.chain_root_id for i in items if not i.is_root}
    entries = sum(len(i.chronicle) for i in items)
    broken = [i.id for i in items if verify_chronicle(i.chronicle)]

    lines = [
        f"Items: [bold]{len(items)}[/]  |  "
        f"Chains: [bold]{len(chains)}[/] ([bold]{len(versioned)}[/] with versions)",
        f"Chronicle entries: [bold]{entries}[/]",
        f"Collections: [bold]{len(workspace.collections)}[/]  |  "
        f"Tags: [bold]{len(workspace.tags)}[/]",
    ]
    if staged:
        lines.append(f"[yellow]Uncommitted changes on {staged} item(s)[/]")
    if broken:
        lines.append(f"[red]✗ Chronicle problems on: {', '.join(broken)}[/]")
    else:
        lines.append("[green]✓[/] All chronicles verify")

    console.print(Panel("\n".join(lines), title="[bold]Library[/]", expand=False))
