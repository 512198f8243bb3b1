"""Rich error messages for the prompt-chronicle CLI.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from promptchronicle.cli.errors import err_no_db
    console.print(err_no_db(".chronicle.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from promptchronicle.config import ENV_PASSWORD


def err_no_db(db_path: str = ".chronicle.db") -> str:
    """No library database at *db_path*."""
    return (
        f"[red]Error:[/] No library database found at '{db_path}'.\n"
        "  Run:  prompt-chronicle init"
    )


def err_item_not_found(item_id: str) -> str:
    return (
        f"[red]Error:[/] No library item with id '{item_id}'.\n"
        "  Run:  prompt-chronicle list  to see all item ids."
    )


def err_entry_not_found(item_id: str, hash_prefix: str) -> str:
    """Hash prefix matched no chronicle entry, or more than one."""
    return (
        f"[red]Error:[/] No unique chronicle entry matching '{hash_prefix}' on '{item_id}'.\n"
        f"  Run:  prompt-chronicle history {item_id}  and use a longer hash prefix."
    )


def err_collection_not_found(collection_id: str) -> str:
    return (
        f"[red]Error:[/] No collection with id '{collection_id}'.\n"
        "  Run:  prompt-chronicle collections list"
    )


def err_tag_not_found(tag_id: str) -> str:
    return (
        f"[red]Error:[/] No tag with id '{tag_id}'.\n"
        "  Run:  prompt-chronicle tags list"
    )


def err_password_required(path: str) -> str:
    return (
        f"[red]Error:[/] '{path}' is encrypted and no password was given.\n"
        f"  Re-run with --password, or set {ENV_PASSWORD}."
    )


def err_decryption_failed(path: str) -> str:
    return (
        f"[red]Error:[/] Could not decrypt '{path}'. Wrong password?\n"
        "  If the password is right, the bundle was modified after export."
    )


def err_corrupt_bundle(path: str, detail: str) -> str:
    return (
        f"[red]Error:[/] Bundle '{path}' is corrupt: {detail}\n"
        "  Re-export it from the source workspace."
    )


def err_invalid_bundle(path: str, detail: str) -> str:
    return (
        f"[red]Error:[/] '{path}' is not a valid .prb bundle.\n"
        f"  {detail}"
    )


def err_invalid_store(detail: str) -> str:
    """A stored record failed validation."""
    return (
        f"[red]Error:[/] The library database contains an invalid record: {detail}\n"
        "  Export what you can, then re-import into a fresh database."
    )


def err_config(detail: str) -> str:
    return f"[red]Error:[/] Invalid configuration.\n  {detail}"


def err_output_path_unsafe(path: str) -> str:
    """--output path fails security validation."""
    return (
        f"[red]Error:[/] Output path is not allowed: '{path}'\n"
        "  Use a path within the current working directory."
    )


def err_file_not_found(path: str) -> str:
    return f"[red]Error:[/] File not found: '{path}'"


def err_nothing_to_edit() -> str:
    return (
        "[red]Error:[/] Nothing to change.\n"
        "  Pass at least one of --refactored, --original, --category, --tag."
    )


def warn_chronicle_faults(count: int) -> str:
    return (
        f"[red]✗[/] Chronicle verification failed: {count} problem(s).\n"
        "  The audit trail was modified outside prompt-chronicle."
    )
