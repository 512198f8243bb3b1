"""Collection and tag commands.

Commands:
  prompt-chronicle collections list|add|rename|remove|assign
  prompt-chronicle tags list|add|rename|remove|toggle

Items reference collections and tags by id; removing either clears the
reference on every item.
"""

from __future__ import annotations

import re
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from promptchronicle.cli.errors import err_collection_not_found, err_tag_not_found
from promptchronicle.cli.session import DbOption, open_repo, require_item
from promptchronicle.db.models import Collection, LibraryItem, Tag
from promptchronicle.library.organize import (
    assign_collection,
    collection_children,
    collection_item_count,
    create_collection,
    create_tag,
    delete_collection,
    delete_tag,
    toggle_item_tag,
    update_collection,
    update_tag,
)

console = Console()

_HEX_COLOR = re.compile(r"#[0-9a-fA-F]{6}")

collections_app = typer.Typer(
    name="collections",
    help="Manage collections (list, add, rename, remove, assign).",
    add_completion=False,
)

tags_app = typer.Typer(
    name="tags",
    help="Manage structured tags (list, add, rename, remove, toggle).",
    add_completion=False,
)


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


@collections_app.command("list")
def collections_list_cmd(db: DbOption = None) -> None:
    """Show collections as a tree with item counts."""
    with open_repo(db) as repo:
        collections = repo.get_collections()
        items = repo.get_all_items()

    if not collections:
        console.print("[yellow]No collections yet.[/]")
        console.print("  Run:  prompt-chronicle collections add <name>")
        raise typer.Exit(0)

    tree = Tree("[bold]Collections[/]")
    known = {c.id for c in collections}
    # Orphans (parent id no longer present) are shown at the top level.
    top = [c for c in collections if not c.parent_id or c.parent_id not in known]
    for collection in top:
        _add_branch(tree, collection, collections, items)
    console.print(tree)

    unfiled = sum(1 for i in items if not i.collection_id)
    console.print(f"\n  {unfiled} unfiled item(s)")


def _add_branch(
    node: Tree, collection: Collection, collections: list[Collection], items: list[LibraryItem]
) -> None:
    count = collection_item_count(items, collection.id)
    branch = node.add(
        f"{collection.icon or ''} {escape(collection.name)} "
        f"[dim]({count}) {collection.id}[/]"
    )
    for child in collection_children(collections, collection.id):
        _add_branch(branch, child, collections, items)


@collections_app.command("add")
def collections_add_cmd(
    name: Annotated[str, typer.Argument(help="Collection name.")],
    parent: Annotated[
        str | None,
        typer.Option("--parent", help="Nest under this collection id."),
    ] = None,
    color: Annotated[str | None, typer.Option("--color", help="Display colour (hex).")] = None,
    icon: Annotated[str | None, typer.Option("--icon", help="Display icon.")] = None,
    db: DbOption = None,
) -> None:
    """Create a collection."""
    with open_repo(db) as repo:
        collections = repo.get_collections()
        if parent is not None and not any(c.id == parent for c in collections):
            console.print(err_collection_not_found(parent))
            raise typer.Exit(1)
        collections, created = create_collection(collections, name, parent, color, icon)
        repo.save_collections(collections)

    console.print(f"[green]✓[/] Created collection [bold]{created.id}[/]")


@collections_app.command("rename")
def collections_rename_cmd(
    collection_id: Annotated[str, typer.Argument(help="Collection id.")],
    name: Annotated[str, typer.Argument(help="New name.")],
    db: DbOption = None,
) -> None:
    """Rename a collection."""
    with open_repo(db) as repo:
        collections = repo.get_collections()
        _require_collection(collections, collection_id)
        repo.save_collections(update_collection(collections, collection_id, name=name))

    console.print(f"[green]✓[/] Renamed {collection_id}")


@collections_app.command("remove")
def collections_remove_cmd(
    collection_id: Annotated[str, typer.Argument(help="Collection id.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt.")] = False,
    db: DbOption = None,
) -> None:
    """Delete a collection. Its items become unfiled; sub-collections move up."""
    with open_repo(db) as repo:
        collections = repo.get_collections()
        _require_collection(collections, collection_id)
        items = repo.get_all_items()

        count = collection_item_count(items, collection_id)
        if not yes and not typer.confirm(
            f"Remove {collection_id} ({count} item(s) will be unfiled)?", default=False
        ):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

        touched = {i.id for i in items if i.collection_id == collection_id}
        collections, updated = delete_collection(collections, items, collection_id)
        repo.save_organization(
            [i for i in updated if i.id in touched], collections=collections
        )

    console.print(f"[green]✓[/] Removed collection {collection_id}")


@collections_app.command("assign")
def collections_assign_cmd(
    item_id: Annotated[str, typer.Argument(help="Item id.")],
    collection_id: Annotated[
        str | None,
        typer.Argument(help="Collection id. Omit to unfile the item."),
    ] = None,
    db: DbOption = None,
) -> None:
    """File an item into a collection."""
    with open_repo(db) as repo:
        item = require_item(repo, item_id)
        if collection_id is not None:
            _require_collection(repo.get_collections(), collection_id)
        (updated,) = assign_collection([item], item_id, collection_id)
        repo.put_item(updated)

    where = collection_id or "no collection"
    console.print(f"[green]✓[/] {item_id} → {where}")


def _require_collection(collections: list[Collection], collection_id: str) -> None:
    if not any(c.id == collection_id for c in collections):
        console.print(err_collection_not_found(collection_id))
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


@tags_app.command("list")
def tags_list_cmd(db: DbOption = None) -> None:
    """List structured tags with usage counts."""
    with open_repo(db) as repo:
        tags = repo.get_tags()
        items = repo.get_all_items()

    if not tags:
        console.print("[yellow]No tags yet.[/]")
        console.print("  Run:  prompt-chronicle tags add <name>")
        raise typer.Exit(0)

    table = Table(title="Tags", show_header=True, header_style="bold")
    table.add_column("ID", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Color")
    table.add_column("Items", justify="right")

    for tag in tags:
        used = sum(1 for i in items if tag.id in i.tag_ids)
        swatch = f"[{tag.color}]■[/] {tag.color}" if _HEX_COLOR.fullmatch(tag.color) else escape(tag.color)
        table.add_row(tag.id, escape(tag.name), swatch, str(used))

    console.print(table)


@tags_app.command("add")
def tags_add_cmd(
    name: Annotated[str, typer.Argument(help="Tag name.")],
    color: Annotated[str, typer.Option("--color", help="Display colour (hex).")] = "#64748b",
    db: DbOption = None,
) -> None:
    """Create a tag."""
    with open_repo(db) as repo:
        tags, created = create_tag(repo.get_tags(), name, color)
        repo.save_tags(tags)

    console.print(f"[green]✓[/] Created tag [bold]{created.id}[/]")


@tags_app.command("rename")
def tags_rename_cmd(
    tag_id: Annotated[str, typer.Argument(help="Tag id.")],
    name: Annotated[str, typer.Argument(help="New name.")],
    db: DbOption = None,
) -> None:
    """Rename a tag."""
    with open_repo(db) as repo:
        tags = repo.get_tags()
        _require_tag(tags, tag_id)
        repo.save_tags(update_tag(tags, tag_id, name=name))

    console.print(f"[green]✓[/] Renamed {tag_id}")


@tags_app.command("remove")
def tags_remove_cmd(
    tag_id: Annotated[str, typer.Argument(help="Tag id.")],
    db: DbOption = None,
) -> None:
    """Delete a tag and strip it from every item."""
    with open_repo(db) as repo:
        tags = repo.get_tags()
        _require_tag(tags, tag_id)
        items = repo.get_all_items()
        tags, updated = delete_tag(tags, items, tag_id)
        touched = {i.id for i in items if tag_id in i.tag_ids}
        repo.save_organization([i for i in updated if i.id in touched], tags=tags)

    console.print(f"[green]✓[/] Removed tag {tag_id} from {len(touched)} item(s)")


@tags_app.command("toggle")
def tags_toggle_cmd(
    item_id: Annotated[str, typer.Argument(help="Item id.")],
    tag_id: Annotated[str, typer.Argument(help="Tag id.")],
    db: DbOption = None,
) -> None:
    """Add the tag to the item, or remove it if already there."""
    with open_repo(db) as repo:
        item = require_item(repo, item_id)
        _require_tag(repo.get_tags(), tag_id)
        (updated,) = toggle_item_tag([item], item_id, tag_id)
        repo.put_item(updated)

    state = "added to" if tag_id in updated.tag_ids else "removed from"
    console.print(f"[green]✓[/] {tag_id} {state} {item_id}")


def _require_tag(tags: list[Tag], tag_id: str) -> None:
    if not any(t.id == tag_id for t in tags):
        console.print(err_tag_not_found(tag_id))
        raise typer.Exit(1)
