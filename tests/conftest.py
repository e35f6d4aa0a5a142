"""Shared test fixtures for vaultfs tests."""

from __future__ import annotations

import pytest

from vaultfs import MemoryFilesystemService, SqliteFilesystemService, VaultfsConfig


@pytest.fixture
def config():
    """Millisecond versions so back-to-back commits do not wait on the clock."""
    return VaultfsConfig(version_resolution_ms=1, version_retry_interval_ms=1)


@pytest.fixture
def tmp_db(tmp_path):
    """Create a temporary SQLite database path."""
    return str(tmp_path / "index.db")


@pytest.fixture(params=["memory", "sqlite"])
def service(request, config, tmp_db):
    """Every filesystem backend; all must behave like the in-memory one."""
    if request.param == "memory":
        svc = MemoryFilesystemService(config)
    else:
        svc = SqliteFilesystemService(tmp_db, config)
    yield svc
    svc.close()


@pytest.fixture
def bucket(service):
    return service.bucket("testbucket1")


@pytest.fixture
def memory_bucket(config):
    return MemoryFilesystemService(config).bucket("testbucket1")
