"""vfs backup: upload a file or directory tree as one new version."""

from __future__ import annotations

import os
from contextlib import ExitStack
from pathlib import Path

import typer

from vaultfs.cli import _exitcodes as ec
from vaultfs.cli._output import fail, print_error, print_object
from vaultfs.cli._storage import open_backup, open_index
from vaultfs.errors import VaultfsError
from vaultfs.types import join_path


def _walk(source: Path) -> list[tuple[str, Path]]:
    """Return (relative posix path, local path) pairs for every file under source."""
    if source.is_file():
        return [(source.name, source)]
    found: list[tuple[str, Path]] = []
    for dirpath, dirnames, filenames in os.walk(source):
        dirnames.sort()
        for filename in sorted(filenames):
            local = Path(dirpath) / filename
            found.append((local.relative_to(source).as_posix(), local))
    return found


def backup_cmd(
    category: str = typer.Argument(..., help="Category to back up into (e.g. DRIVE)"),
    source: Path = typer.Argument(..., exists=True, help="Local file or directory"),
    dest: str = typer.Option("", "--dest", help="Destination directory within the category"),
) -> None:
    """Back up SOURCE into CATEGORY as a single new version."""
    from vaultfs.cli import state

    files = _walk(source)
    if not files:
        print_error(f"Nothing to back up under {source}")
        raise typer.Exit(ec.USAGE_ERROR)

    try:
        filesystem = open_index()
    except Exception as e:
        print_error(f"Cannot open index: {e}")
        raise typer.Exit(ec.STORAGE_ERROR)

    try:
        backup = open_backup(filesystem, category)
        with ExitStack() as stack:
            tx = backup.begin()
            for rel_path, local in files:
                tx.put(join_path(dest, rel_path), stack.enter_context(local.open("rb")))
            version = tx.commit()
        print_object(
            {"category": backup.category, "version": version, "files": len(files)},
            json_mode=state.json_output,
        )
    except VaultfsError as e:
        fail(e)
    finally:
        filesystem.close()
