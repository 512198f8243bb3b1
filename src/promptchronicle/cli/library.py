"""Library item commands: add, list, show, remove, duplicate.

Usage:
  prompt-chronicle add --title "Summarize" --refactored prompt.md --tag writing
  prompt-chronicle add --title "Summarize v2" --refactored v2.md --parent <id>
  prompt-chronicle list --versions-only
  prompt-chronicle remove <id> --yes
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from promptchronicle.cli.errors import err_collection_not_found, err_tag_not_found
from promptchronicle.cli.session import DbOption, open_repo, read_text_arg, require_item
from promptchronicle.db.models import LibraryItem, ProcessedWith
from promptchronicle.library.versions import (
    INITIAL_VERSION,
    derive_version,
    duplicate_item,
    has_versions,
    iso_timestamp,
    new_item_id,
    repair_chain_after_deletion,
)

console = Console()


def add_cmd(
    title: Annotated[str, typer.Option("--title", "-t", help="Item title.")],
    refactored: Annotated[
        Path,
        typer.Option("--refactored", "-r", help="File with the refined prompt ('-' for stdin)."),
    ],
    original: Annotated[
        Path | None,
        typer.Option("--original", "-o", help="File with the original prompt."),
    ] = None,
    category: Annotated[str, typer.Option("--category", help="Free-form category.")] = "",
    complexity: Annotated[str, typer.Option("--complexity", help="Free-form complexity label.")] = "",
    tag: Annotated[
        list[str] | None,
        typer.Option("--tag", help="Free-form tag. Can be repeated."),
    ] = None,
    provider: Annotated[str, typer.Option("--provider", help="Provider that produced it.")] = "",
    model: Annotated[str, typer.Option("--model", help="Model that produced it.")] = "",
    mode: Annotated[str, typer.Option("--mode", help="Processing mode.")] = "",
    generated: Annotated[
        bool,
        typer.Option("--generated", help="Mark as generated from scratch rather than refined."),
    ] = False,
    parent: Annotated[
        str | None,
        typer.Option("--parent", help="Save as the next version of this item id."),
    ] = None,
    db: DbOption = None,
) -> None:
    """Save a prompt to the library."""
    refactored_text = read_text_arg(refactored)
    original_text = read_text_arg(original) if original is not None else ""

    with open_repo(db) as repo:
        item = LibraryItem(
            id=new_item_id(title),
            title=title,
            original_prompt=original_text,
            refactored_prompt=refactored_text,
            category=category,
            complexity=complexity,
            tags=list(tag or []),
            created_at=iso_timestamp(),
            processed_with=ProcessedWith(provider=provider, model=model, mode=mode),
            is_generated=generated,
            version_number=INITIAL_VERSION,
        )
        if parent is not None:
            item = derive_version(require_item(repo, parent), item)

        repo.put_item(item)

    console.print(f"[green]✓[/] Saved [bold]{item.id}[/]  (v{item.version_number})")


def list_cmd(
    collection: Annotated[
        str | None,
        typer.Option("--collection", "-c", help="Only items filed in this collection id."),
    ] = None,
    tag: Annotated[
        str | None,
        typer.Option("--tag", help="Only items carrying this tag id."),
    ] = None,
    versions_only: Annotated[
        bool,
        typer.Option("--versions-only", help="Only items that belong to a version chain."),
    ] = False,
    db: DbOption = None,
) -> None:
    """List library items, newest first."""
    with open_repo(db) as repo:
        library = repo.get_all_items()
        items = library

        if collection is not None:
            if not any(c.id == collection for c in repo.get_collections()):
                console.print(err_collection_not_found(collection))
                raise typer.Exit(1)
            items = [i for i in items if i.collection_id == collection]
        if tag is not None:
            if not any(t.id == tag for t in repo.get_tags()):
                console.print(err_tag_not_found(tag))
                raise typer.Exit(1)
            items = [i for i in items if tag in i.tag_ids]

    if versions_only:
        items = [i for i in items if has_versions(i, library)]

    if not items:
        console.print("[yellow]No items found.[/]")
        raise typer.Exit(0)

    table = Table(title="Library", show_header=True, header_style="bold")
    table.add_column("ID", style="bold", no_wrap=True)
    table.add_column("Title")
    table.add_column("Version")
    table.add_column("Category")
    table.add_column("Tags")
    table.add_column("Created")

    for item in items:
        table.add_row(
            item.id,
            escape(item.title),
            item.version_number or INITIAL_VERSION,
            escape(item.category),
            escape(", ".join(item.tags)),
            item.created_at[:10],
        )

    console.print(table)
    console.print(f"\n  {len(items)} item(s)")


def show_cmd(
    item_id: Annotated[str, typer.Argument(help="Item id.")],
    db: DbOption = None,
) -> None:
    """Show one item in full."""
    with open_repo(db) as repo:
        item = require_item(repo, item_id)

    pw = item.processed_with
    meta = [
        f"[bold]Title:[/]      {escape(item.title)}",
        f"[bold]Version:[/]    {item.version_number or INITIAL_VERSION}",
        f"[bold]Created:[/]    {item.created_at}",
        f"[bold]Category:[/]   {escape(item.category) or '-'}",
        f"[bold]Complexity:[/] {item.complexity or '-'}",
        f"[bold]Tags:[/]       {escape(', '.join(item.tags)) or '-'}",
        f"[bold]Processed:[/]  {pw.provider or '-'} / {pw.model or '-'} / {pw.mode or '-'}",
    ]
    if item.parent_id:
        meta.append(f"[bold]Parent:[/]     {item.parent_id}")
    if item.root_id:
        meta.append(f"[bold]Root:[/]       {item.root_id}")
    meta.append(f"[bold]Chronicle:[/]  {len(item.chronicle)} entr{'y' if len(item.chronicle) == 1 else 'ies'}")
    if item.staged_changes:
        meta.append(f"[yellow]Uncommitted:[/] {', '.join(item.staged_changes)}")

    console.print(Panel("\n".join(meta), title=f"[bold]{item.id}[/]", expand=False))
    if item.original_prompt:
        console.print(Panel(Text(item.original_prompt), title="Original", expand=False))
    console.print(Panel(Text(item.refactored_prompt), title="Refactored", expand=False))


def remove_cmd(
    item_id: Annotated[str, typer.Argument(help="Item id to delete.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt.")] = False,
    db: DbOption = None,
) -> None:
    """Delete an item and relink its version chain."""
    with open_repo(db) as repo:
        item = require_item(repo, item_id)

        console.print(f"\nRemove item: [bold]{item.id}[/]  ({escape(item.title)})")
        if not yes:
            if not typer.confirm("Confirm removal?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        library = repo.get_all_items()
        repaired = repair_chain_after_deletion(item, library)
        before = {i.id: i for i in library}
        changed = [i for i in repaired if before.get(i.id) != i]

        repo.remove_item(item.id, changed)

    console.print(f"[green]✓[/] Removed {item.id}")
    if changed:
        console.print(f"  Relinked {len(changed)} version(s) in the chain.")


def duplicate_cmd(
    item_id: Annotated[str, typer.Argument(help="Item id to copy.")],
    db: DbOption = None,
) -> None:
    """Copy an item into a new, independent chain."""
    with open_repo(db) as repo:
        copy = duplicate_item(require_item(repo, item_id))
        repo.put_item(copy)

    console.print(f"[green]✓[/] Duplicated as [bold]{copy.id}[/]")
