"""Shared plumbing for commands that open the library database."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from promptchronicle.cli.errors import (
    err_config,
    err_file_not_found,
    err_invalid_store,
    err_item_not_found,
    err_no_db,
)
from promptchronicle.config import ChronicleConfig, ConfigError, load_config
from promptchronicle.db.connection import Database
from promptchronicle.db.models import InvalidRecordError, LibraryItem
from promptchronicle.db.repository import Repository
from promptchronicle.db.schema import initialize

console = Console()

DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to the library database (default: library.db from config)."),
]


def load_config_or_exit() -> ChronicleConfig:
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def resolve_db_path(db: Path | None) -> Path:
    """``--db`` wins; otherwise ``library.db`` from the merged config."""
    if db is not None:
        return db
    return Path(load_config_or_exit().library.db)


@contextmanager
def open_repo(db: Path | None) -> Iterator[Repository]:
    """Open the library at *db* (or the configured path) and yield a Repository.

    Exits 1 with a hint when the database file does not exist or holds a
    record that fails validation. The connection is always closed.
    """
    db_path = resolve_db_path(db)
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)

    conn = Database(db_path).connect()
    try:
        initialize(conn)
        yield Repository(conn)
    except InvalidRecordError as exc:
        console.print(err_invalid_store(str(exc)))
        raise typer.Exit(1)
    finally:
        conn.close()


def read_text_arg(path: Path) -> str:
    """Read a prompt file given on the command line; ``-`` reads stdin."""
    if str(path) == "-":
        return typer.get_text_stream("stdin").read()
    if not path.exists():
        console.print(err_file_not_found(str(path)))
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8")


def require_item(repo: Repository, item_id: str) -> LibraryItem:
    """Return the item or exit 1 with a hint."""
    item = repo.get_item(item_id)
    if item is None:
        console.print(err_item_not_found(item_id))
        raise typer.Exit(1)
    return item
