"""vfs info: show index backend and bucket heads."""

from __future__ import annotations

import typer

from vaultfs.cli import _exitcodes as ec
from vaultfs.cli._output import print_error, print_object, print_table
from vaultfs.cli._storage import open_index


def info_cmd() -> None:
    """Show the index backend and the latest version of every category."""
    from vaultfs.cli import state

    try:
        filesystem = open_index()
    except Exception as e:
        print_error(f"Cannot open index: {e}")
        raise typer.Exit(ec.STORAGE_ERROR)

    try:
        info = filesystem.storage_info()
        heads = [
            [name, filesystem.bucket(name).latest_version() or "-"]
            for name in filesystem.bucket_names()
        ]
        if state.json_output:
            print_object(
                {**info, "blob_uri": state.blob_uri, "buckets": dict(heads)}, json_mode=True
            )
            return
        print(f"index: {info['backend']} ({state.index_uri})")
        print(f"blobs: {state.blob_uri}")
        print_table(["category", "latest_version"], heads)
    finally:
        filesystem.close()
