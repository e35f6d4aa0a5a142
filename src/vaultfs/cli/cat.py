"""vfs cat: print or restore the content of a backed-up file."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

import typer

from vaultfs.cli import _exitcodes as ec
from vaultfs.cli._output import fail, print_error
from vaultfs.cli._storage import open_backup, open_index
from vaultfs.errors import VaultfsError


def cat_cmd(
    category: str = typer.Argument(..., help="Category holding the file"),
    path: str = typer.Argument(..., help="File path within the category"),
    version: Optional[str] = typer.Option(
        None, "--version", "-V", help="Version to read (default: latest of the file)"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write to this local file instead of stdout"
    ),
) -> None:
    """Write the content of a backed-up file to stdout or --output."""
    try:
        filesystem = open_index()
    except Exception as e:
        print_error(f"Cannot open index: {e}")
        raise typer.Exit(ec.STORAGE_ERROR)

    try:
        data = open_backup(filesystem, category).read_file(path, version)
        with data:
            if output is not None:
                with output.open("wb") as out:
                    shutil.copyfileobj(data, out)
            else:
                typer.echo(data.read(), nl=False)
    except VaultfsError as e:
        fail(e)
    finally:
        filesystem.close()
