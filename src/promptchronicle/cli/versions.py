"""Version chain commands: versions, diff."""

from __future__ import annotations

from enum import Enum
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from promptchronicle.cli.session import DbOption, open_repo, require_item
from promptchronicle.library.diff import ADDED, REMOVED, diff_lines
from promptchronicle.library.versions import INITIAL_VERSION, get_version_chain

console = Console()


class DiffField(str, Enum):
    refactored = "refactored"
    original = "original"


def versions_cmd(
    item_id: Annotated[str, typer.Argument(help="Any item id in the chain.")],
    db: DbOption = None,
) -> None:
    """Show the version chain an item belongs to, oldest first."""
    with open_repo(db) as repo:
        item = require_item(repo, item_id)
        chain = get_version_chain(item_id, repo.get_chain_items(item.chain_root_id))

    table = Table(title="Version chain", show_header=True, header_style="bold")
    table.add_column("Version")
    table.add_column("ID", no_wrap=True)
    table.add_column("Title")
    table.add_column("Parent")
    table.add_column("Created")

    for member in chain:
        marker = "[bold cyan]→[/] " if member.id == item_id else ""
        table.add_row(
            f"{marker}{member.version_number or INITIAL_VERSION}",
            member.id,
            escape(member.title),
            member.parent_id or "[dim]root[/]",
            member.created_at,
        )

    console.print(table)
    console.print(f"\n  {len(chain)} version(s)")


def diff_cmd(
    old_id: Annotated[str, typer.Argument(help="Item id of the older text.")],
    new_id: Annotated[str, typer.Argument(help="Item id of the newer text.")],
    field: Annotated[
        DiffField,
        typer.Option("--field", help="Which prompt to compare."),
    ] = DiffField.refactored,
    db: DbOption = None,
) -> None:
    """Line diff between two items' prompts."""
    with open_repo(db) as repo:
        old = require_item(repo, old_id)
        new = require_item(repo, new_id)

    attr = "refactored_prompt" if field is DiffField.refactored else "original_prompt"
    segments = diff_lines(getattr(old, attr), getattr(new, attr))

    added = removed = 0
    out = Text()
    for seg in segments:
        lines = seg.text.splitlines(keepends=True) or [seg.text]
        if seg.type == ADDED:
            prefix, style = "+ ", "green"
            added += len(lines)
        elif seg.type == REMOVED:
            prefix, style = "- ", "red"
            removed += len(lines)
        else:
            prefix, style = "  ", "dim"
        for line in lines:
            text = line if line.endswith("\n") else line + "\n"
            out.append(prefix + text, style=style)

    console.print(out, end="")
    console.print(f"\n  [green]+{added}[/]  [red]-{removed}[/]")
