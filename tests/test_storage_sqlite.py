"""SQLite index specifics: persistence and commit atomicity."""

from __future__ import annotations

import sqlite3

import pytest

from vaultfs import BlobRef
from vaultfs.errors import StorageBackendError
from vaultfs.storage_sqlite import SqliteFilesystemService

REF = BlobRef("store", "name")


def test_history_survives_reopen(tmp_db, config):
    svc = SqliteFilesystemService(tmp_db, config)
    tx = svc.bucket("DRIVE").new_put_transaction()
    tx.dir("a").file("f", REF)
    version = tx.commit()
    svc.close()

    reopened = SqliteFilesystemService(tmp_db, config)
    try:
        bucket = reopened.bucket("DRIVE")
        assert bucket.latest_version() == version
        assert bucket.select().dir("a").file("f").latest().blob_ref().blob_ref == REF
        assert bucket.select().list() == ["a"]
        assert reopened.bucket_names() == ["DRIVE"]
    finally:
        reopened.close()


def test_versions_keep_increasing_across_reopen(tmp_db, config):
    first = SqliteFilesystemService(tmp_db, config)
    v1 = first.bucket("b").new_put_transaction().commit()
    first.close()

    second = SqliteFilesystemService(tmp_db, config)
    try:
        v2 = second.bucket("b").new_put_transaction().commit()
        assert v2 > v1
    finally:
        second.close()


def test_failed_commit_leaves_no_rows(tmp_db, config):
    svc = SqliteFilesystemService(tmp_db, config)
    try:
        bucket = svc.bucket("b")
        v1 = bucket.new_put_transaction().commit()

        tx = bucket.new_put_transaction()
        tx.dir("a").file("f", BlobRef("store", None))  # type: ignore[arg-type]
        with pytest.raises(StorageBackendError):
            tx.commit()

        assert not tx.committed
        assert bucket.latest_version() == v1
        assert bucket.dir_versions("a") is None
    finally:
        svc.close()


def test_storage_info(tmp_db, config):
    svc = SqliteFilesystemService(tmp_db, config)
    try:
        version = svc.bucket("DRIVE").new_put_transaction().commit()
        svc.bucket("FLICKR")
        info = svc.storage_info()
        assert info["backend"] == "sqlite"
        assert info["buckets"] == {"DRIVE": version, "FLICKR": None}
    finally:
        svc.close()


def test_schema(tmp_db, config):
    SqliteFilesystemService(tmp_db, config).close()
    conn = sqlite3.connect(tmp_db)
    try:
        tables = {
            r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
    finally:
        conn.close()
    assert {"buckets", "dir_history", "file_history"} <= tables
