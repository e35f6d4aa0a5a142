"""vfs versions: show the versions of a file or directory."""

from __future__ import annotations

import typer

from vaultfs.cli import _exitcodes as ec
from vaultfs.cli._output import fail, print_error, print_object
from vaultfs.cli._storage import open_backup, open_index
from vaultfs.errors import VaultfsError


def versions_cmd(
    category: str = typer.Argument(..., help="Category to inspect"),
    path: str = typer.Argument("", help="File or directory path (default: category root)"),
    is_file: bool = typer.Option(False, "--file", help="Treat PATH as a file"),
) -> None:
    """List the versions at which PATH was recorded."""
    from vaultfs.cli import state

    try:
        filesystem = open_index()
    except Exception as e:
        print_error(f"Cannot open index: {e}")
        raise typer.Exit(ec.STORAGE_ERROR)

    try:
        found = open_backup(filesystem, category).versions(path, is_file=is_file)
        print_object(list(found), json_mode=state.json_output)
    except VaultfsError as e:
        fail(e)
    finally:
        filesystem.close()
