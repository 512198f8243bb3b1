"""Chronicle commands: edit, commit, history, rollback, verify.

An edit either lands on the live fields straight away or, with --stage,
goes into the item's uncommitted overlay. commit snapshots the live fields
into the hash-linked chronicle; rollback restores a snapshot without
recording anything.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from promptchronicle.cli.errors import (
    err_entry_not_found,
    err_nothing_to_edit,
    warn_chronicle_faults,
)
from promptchronicle.cli.session import DbOption, open_repo, read_text_arg, require_item
from promptchronicle.library.chronicle import (
    STAGEABLE_FIELDS,
    apply_staged_changes,
    commit,
    find_entry,
    rollback,
    stage_changes,
    verify_chronicle,
)

console = Console()


def edit_cmd(
    item_id: Annotated[str, typer.Argument(help="Item id.")],
    refactored: Annotated[
        Path | None,
        typer.Option("--refactored", "-r", help="File with the new refined prompt ('-' for stdin)."),
    ] = None,
    original: Annotated[
        Path | None,
        typer.Option("--original", "-o", help="File with the new original prompt."),
    ] = None,
    category: Annotated[str | None, typer.Option("--category", help="New category.")] = None,
    tag: Annotated[
        list[str] | None,
        typer.Option("--tag", help="Replace the tags. Can be repeated."),
    ] = None,
    stage: Annotated[
        bool,
        typer.Option("--stage", help="Keep the change as uncommitted instead of applying it."),
    ] = False,
    db: DbOption = None,
) -> None:
    """Change an item's prompts, category or tags."""
    changes: dict[str, Any] = {}
    if refactored is not None:
        changes["refactoredPrompt"] = read_text_arg(refactored)
    if original is not None:
        changes["originalPrompt"] = read_text_arg(original)
    if category is not None:
        changes["category"] = category
    if tag is not None:
        changes["tags"] = list(tag)

    if not changes:
        console.print(err_nothing_to_edit())
        raise typer.Exit(1)

    with open_repo(db) as repo:
        item = require_item(repo, item_id)
        if stage:
            item = stage_changes(item, changes)
        else:
            item = replace(item, **{STAGEABLE_FIELDS[k]: v for k, v in changes.items()})
        repo.put_item(item)

    fields = ", ".join(changes)
    if stage:
        console.print(f"[green]✓[/] Staged {fields} on {item.id}")
        console.print(f"  Run:  prompt-chronicle commit {item.id} --apply-staged")
    else:
        console.print(f"[green]✓[/] Updated {fields} on {item.id}")


def commit_cmd(
    item_id: Annotated[str, typer.Argument(help="Item id.")],
    note: Annotated[str | None, typer.Option("--note", "-m", help="Commit note.")] = None,
    apply_staged: Annotated[
        bool,
        typer.Option("--apply-staged", help="Apply uncommitted changes before the snapshot."),
    ] = False,
    db: DbOption = None,
) -> None:
    """Snapshot the item into its chronicle."""
    with open_repo(db) as repo:
        item = require_item(repo, item_id)
        if apply_staged:
            item = apply_staged_changes(item)
        elif item.staged_changes:
            console.print(
                "[yellow]⚠[/]  Discarding uncommitted changes "
                f"({', '.join(item.staged_changes)}); use --apply-staged to keep them."
            )
        item = commit(item, note)
        repo.put_item(item)

    entry = item.chronicle[-1]
    console.print(
        f"[green]✓[/] Committed [bold]{entry.hash[:12]}[/] "
        f"({len(item.chronicle)} entr{'y' if len(item.chronicle) == 1 else 'ies'})"
    )


def history_cmd(
    item_id: Annotated[str, typer.Argument(help="Item id.")],
    db: DbOption = None,
) -> None:
    """Show an item's chronicle, oldest first."""
    with open_repo(db) as repo:
        item = require_item(repo, item_id)

    if not item.chronicle:
        console.print(f"[yellow]No chronicle entries for {item.id}.[/]")
        console.print(f"  Run:  prompt-chronicle commit {item.id}")
        raise typer.Exit(0)

    table = Table(title=f"Chronicle of {item.id}", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Hash", style="bold", no_wrap=True)
    table.add_column("Timestamp")
    table.add_column("Note")
    table.add_column("Parent", no_wrap=True)

    for index, entry in enumerate(item.chronicle):
        table.add_row(
            str(index),
            entry.hash[:12],
            entry.timestamp,
            escape(entry.note or ""),
            entry.parent_hash[:12] if entry.parent_hash else "[dim]-[/]",
        )

    console.print(table)


def rollback_cmd(
    item_id: Annotated[str, typer.Argument(help="Item id.")],
    hash_prefix: Annotated[str, typer.Argument(help="Hash (or unique prefix) of the entry.")],
    db: DbOption = None,
) -> None:
    """Restore the item's prompts, tags and category from a chronicle entry."""
    with open_repo(db) as repo:
        item = require_item(repo, item_id)
        entry = find_entry(item, hash_prefix)
        if entry is None:
            console.print(err_entry_not_found(item_id, hash_prefix))
            raise typer.Exit(1)
        repo.put_item(rollback(item, entry))

    console.print(f"[green]✓[/] Rolled {item.id} back to {entry.hash[:12]}")
    console.print("  The chronicle is unchanged; commit to record the restored state.")


def verify_cmd(
    item_id: Annotated[str, typer.Argument(help="Item id.")],
    db: DbOption = None,
) -> None:
    """Recompute the chronicle's hashes and links."""
    with open_repo(db) as repo:
        item = require_item(repo, item_id)

    faults = verify_chronicle(item.chronicle)
    if faults:
        console.print(warn_chronicle_faults(len(faults)))
        for fault in faults:
            console.print(f"  entry #{fault.index}: {fault.reason}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/] Chronicle intact ({len(item.chronicle)} entries)")
