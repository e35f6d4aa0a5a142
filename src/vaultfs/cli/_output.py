"""Rendering of listings, version histories and errors for the CLI."""

from __future__ import annotations

import json
import sys
from typing import Any, NoReturn

import typer

from vaultfs.cli import _exitcodes as ec


def _dump(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def print_table(headers: list[str], rows: list[list[Any]], *, json_mode: bool = False) -> None:
    """Rows as space-aligned columns, or a JSON array keyed by header."""
    if json_mode:
        _dump([dict(zip(headers, row)) for row in rows])
        return
    if not rows:
        return

    cells = [headers] + [[str(v) for v in row] for row in rows]
    widths = [max(len(col) for col in column) for column in zip(*cells)]
    for i, line in enumerate(cells):
        print("  ".join(c.ljust(w) for c, w in zip(line, widths)).rstrip())
        if i == 0:
            print("  ".join("-" * w for w in widths))


def print_object(data: dict[str, Any] | list[Any], *, json_mode: bool = False) -> None:
    """A mapping as ``key: value`` lines, a list one item per line, or either as JSON."""
    if json_mode:
        _dump(data)
    elif isinstance(data, dict):
        for key, value in data.items():
            print(f"{key}: {value}")
    else:
        for item in data:
            print(item)


def print_error(msg: str) -> None:
    print(f"Error: {msg}", file=sys.stderr)


def fail(error: Exception) -> NoReturn:
    """Report ``error`` on stderr and exit with the code for its kind."""
    print_error(str(error))
    raise typer.Exit(ec.exit_code_for(error))
