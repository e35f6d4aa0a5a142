"""vaultfs CLI: back up, browse and restore versioned categories."""

from __future__ import annotations

import logging

import typer

from vaultfs.cli import backup_cmd, cat, info, ls, versions

app = typer.Typer(
    name="vfs",
    help="vaultfs CLI: versioned backups over a content-addressed blob store.",
    no_args_is_help=True,
)


class _State:
    """Global CLI state shared across subcommands."""

    index_uri: str = "sqlite:///vaultfs.db"
    blob_uri: str = "file://./vaultfs-blobs"
    json_output: bool = False


state = _State()


def _version_callback(value: bool) -> None:
    if value:
        try:
            from importlib.metadata import version

            v = version("vaultfs")
        except Exception:
            v = "unknown"
        print(f"vfs {v}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    index: str = typer.Option(
        "sqlite:///vaultfs.db",
        "--index",
        envvar="VAULTFS_INDEX_URI",
        help="Metadata index URI (sqlite:///path or memory://)",
    ),
    blobs: str = typer.Option(
        "file://./vaultfs-blobs",
        "--blobs",
        envvar="VAULTFS_BLOB_URI",
        help="Blob store URI (file:///dir, s3://bucket/prefix or memory://)",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output when supported"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False, "--version", help="Show version", is_eager=True, callback=_version_callback
    ),
) -> None:
    """Global options for all vfs commands."""
    from vaultfs.storage import parse_blob_target, parse_index_target

    try:
        parse_index_target(index)
    except Exception as e:
        raise typer.BadParameter(str(e), param_hint="--index")
    try:
        parse_blob_target(blobs)
    except Exception as e:
        raise typer.BadParameter(str(e), param_hint="--blobs")

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )

    state.index_uri = index
    state.blob_uri = blobs
    state.json_output = json_output
    if ctx.invoked_subcommand is None and not version:
        print(ctx.get_help())
        raise typer.Exit()


app.command(name="backup")(backup_cmd.backup_cmd)
app.command(name="ls")(ls.ls_cmd)
app.command(name="cat")(cat.cat_cmd)
app.command(name="versions")(versions.versions_cmd)
app.command(name="info")(info.info_cmd)


def main() -> None:
    """Entry point for the vfs CLI."""
    app()
