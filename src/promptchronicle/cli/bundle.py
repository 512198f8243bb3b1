"""Bundle commands: export the workspace to a .prb file, import one back.

Usage:
  prompt-chronicle export                          → ./prompt-chronicle-<date>.prb
  prompt-chronicle export --encrypt -o backup.prb  (prompts for a password)
  prompt-chronicle import backup.prb               (prompts if encrypted)

The password comes from --password, then PROMPT_CHRONICLE_PASSWORD, then an
interactive prompt. It is never read from config files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from promptchronicle.cli.errors import (
    err_corrupt_bundle,
    err_decryption_failed,
    err_file_not_found,
    err_invalid_bundle,
    err_output_path_unsafe,
    err_password_required,
)
from promptchronicle.cli.session import DbOption, load_config_or_exit, open_repo
from promptchronicle.config import bundle_password_from_env
from promptchronicle.files import check_overwrite, resolve_export_path, write_output
from promptchronicle.library.bundle import (
    BundleFormatError,
    CorruptBundleError,
    DecryptionError,
    ImportResult,
    PasswordRequiredError,
    PayloadParseError,
    create_bundle,
    parse_bundle,
)
from promptchronicle.library.organize import merge_workspace

console = Console()


def export_cmd(
    output: Annotated[
        str | None,
        typer.Option("--output", "-o", help="Bundle path (default: export.directory/export.filename)."),
    ] = None,
    compress: Annotated[
        bool | None,
        typer.Option("--compress/--no-compress", help="Deflate the payload (default: export.compress)."),
    ] = None,
    encrypt: Annotated[
        bool,
        typer.Option("--encrypt", help="Encrypt with AES-GCM under a password."),
    ] = False,
    password: Annotated[
        str | None,
        typer.Option("--password", help="Bundle password (prefer the env var or prompt)."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Overwrite an existing file without asking."),
    ] = False,
    db: DbOption = None,
) -> None:
    """Export items, collections and tags to a .prb bundle."""
    cfg = load_config_or_exit()
    if compress is None:
        compress = cfg.export.compress

    try:
        out_path = resolve_export_path(output, cfg.export.directory, cfg.export.filename)
    except ValueError:
        console.print(err_output_path_unsafe(output or cfg.export.directory))
        raise typer.Exit(1)

    if not check_overwrite(out_path, yes):
        console.print("[dim]Cancelled.[/]")
        raise typer.Exit(0)

    if encrypt:
        password = password or bundle_password_from_env()
        if not password:
            password = typer.prompt(
                "Bundle password", hide_input=True, confirmation_prompt=True
            )

    with open_repo(db) as repo:
        payload = repo.load_workspace()

    text = create_bundle(payload, compress=compress, encrypt=encrypt, password=password)
    write_output(out_path, text)

    flags = [f for f, on in (("compressed", compress), ("encrypted", encrypt)) if on]
    console.print(
        f"[green]✓[/] Exported {len(payload.items)} item(s), "
        f"{len(payload.collections)} collection(s), {len(payload.tags)} tag(s)"
    )
    console.print(f"  → {out_path}" + (f"  ({', '.join(flags)})" if flags else ""))


def import_cmd(
    bundle_file: Annotated[Path, typer.Argument(help="The .prb file to import.")],
    password: Annotated[
        str | None,
        typer.Option("--password", help="Bundle password (prefer the env var or prompt)."),
    ] = None,
    db: DbOption = None,
) -> None:
    """Merge a .prb bundle into the library. Existing ids are kept."""
    if not bundle_file.exists():
        console.print(err_file_not_found(str(bundle_file)))
        raise typer.Exit(1)

    text = bundle_file.read_text(encoding="utf-8")
    result = _parse_or_exit(text, password or bundle_password_from_env(), bundle_file)

    with open_repo(db) as repo:
        merged, report = merge_workspace(repo.load_workspace(), result.payload)
        repo.save_workspace(merged)

    console.print(f"[green]✓[/] {report.summary()}")
    console.print(
        f"  Bundle v{result.envelope.version}, created {result.envelope.created or 'unknown'}"
    )


def _parse_or_exit(text: str, password: str | None, path: Path) -> ImportResult:
    """Parse *text*, prompting once for a password if the bundle needs one."""
    try:
        try:
            return parse_bundle(text, password)
        except PasswordRequiredError:
            prompted = typer.prompt("Bundle password", hide_input=True, default="", show_default=False)
            if not prompted:
                console.print(err_password_required(str(path)))
                raise typer.Exit(1)
            return parse_bundle(text, prompted)
    except DecryptionError:
        console.print(err_decryption_failed(str(path)))
        raise typer.Exit(1)
    except CorruptBundleError as exc:
        console.print(err_corrupt_bundle(str(path), str(exc)))
        raise typer.Exit(1)
    except (BundleFormatError, PayloadParseError) as exc:
        console.print(err_invalid_bundle(str(path), str(exc)))
        raise typer.Exit(1)
