"""vfs ls: list a backed-up directory."""

from __future__ import annotations

from typing import Optional

import typer

from vaultfs.cli import _exitcodes as ec
from vaultfs.cli._output import fail, print_error, print_table
from vaultfs.cli._storage import open_backup, open_index
from vaultfs.errors import VaultfsError


def ls_cmd(
    category: str = typer.Argument(..., help="Category to list"),
    path: str = typer.Argument("", help="Directory path (default: category root)"),
    version: Optional[str] = typer.Option(
        None, "--version", "-V", help="Version to list (default: latest of the directory)"
    ),
) -> None:
    """List the entries of a directory."""
    from vaultfs.cli import state

    try:
        filesystem = open_index()
    except Exception as e:
        print_error(f"Cannot open index: {e}")
        raise typer.Exit(ec.STORAGE_ERROR)

    try:
        entries = open_backup(filesystem, category).list_dir(path, version)
        rows = [[e.name, e.kind.value, e.path] for e in entries]
        print_table(["name", "kind", "path"], rows, json_mode=state.json_output)
    except VaultfsError as e:
        fail(e)
    finally:
        filesystem.close()
