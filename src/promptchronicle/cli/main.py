"""prompt-chronicle CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from promptchronicle.cli.bundle import export_cmd, import_cmd
from promptchronicle.cli.history import (
    commit_cmd,
    edit_cmd,
    history_cmd,
    rollback_cmd,
    verify_cmd,
)
from promptchronicle.cli.init import init_cmd
from promptchronicle.cli.library import (
    add_cmd,
    duplicate_cmd,
    list_cmd,
    remove_cmd,
    show_cmd,
)
from promptchronicle.cli.migrate import migrate_cmd
from promptchronicle.cli.organize import collections_app, tags_app
from promptchronicle.cli.status import status_cmd
from promptchronicle.cli.versions import diff_cmd, versions_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("prompt-chronicle")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"prompt-chronicle {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="prompt-chronicle",
    help=(
        "Prompt Chronicle: a versioned, auditable prompt library.\n\n"
        "  prompt-chronicle add      Save a prompt (optionally as a new version).\n"
        "  prompt-chronicle commit   Snapshot an item into its hash-linked chronicle.\n"
        "  prompt-chronicle export   Back up the library to an encrypted .prb bundle."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Prompt Chronicle: a versioned, auditable prompt library."""


app.command("init")(init_cmd)
app.command("status")(status_cmd)

app.command("add")(add_cmd)
app.command("list")(list_cmd)
app.command("show")(show_cmd)
app.command("remove")(remove_cmd)
app.command("duplicate")(duplicate_cmd)

app.command("versions")(versions_cmd)
app.command("diff")(diff_cmd)

app.command("edit")(edit_cmd)
app.command("commit")(commit_cmd)
app.command("history")(history_cmd)
app.command("rollback")(rollback_cmd)
app.command("verify")(verify_cmd)

app.command("export")(export_cmd)
app.command("import")(import_cmd)
app.command("migrate")(migrate_cmd)

app.add_typer(collections_app, name="collections")
app.add_typer(tags_app, name="tags")


@app.command("version")
def version_cmd() -> None:
    """Show the installed prompt-chronicle version."""
    typer.echo(f"prompt-chronicle {_installed_version()}")


if __name__ == "__main__":
    app()
