"""Shared fixtures for CLI tests."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from vaultfs.cli import app


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def store_args(tmp_path, monkeypatch):
    """Global options pointing the CLI at a temp index and blob directory."""
    monkeypatch.setenv("VAULTFS_VERSION_RESOLUTION_MS", "1")
    return [
        "--index",
        f"sqlite:///{tmp_path / 'index.db'}",
        "--blobs",
        f"file://{tmp_path / 'blobs'}",
    ]


@pytest.fixture
def invoke(runner, store_args):
    """Invoke the CLI with the temp stores injected before the subcommand."""

    def _invoke(args: list[str], *, global_args: list[str] | None = None):
        return runner.invoke(app, store_args + (global_args or []) + args, catch_exceptions=False)

    return _invoke


@pytest.fixture
def source_tree(tmp_path):
    """A small local directory to back up."""
    root = tmp_path / "src"
    (root / "docs").mkdir(parents=True)
    (root / "docs" / "report.txt").write_bytes(b"quarterly numbers")
    (root / "docs" / "notes.txt").write_bytes(b"remember the milk")
    (root / "readme.md").write_bytes(b"# hello")
    return root
