"""SQLite-backed metadata index for bucket histories."""

from __future__ import annotations

import logging
import sqlite3
import threading
from typing import Any, Collection

from vaultfs.config import VaultfsConfig
from vaultfs.errors import StorageBackendError
from vaultfs.filesystem import Bucket
from vaultfs.types import SEPARATOR, BlobRef, EntryKind, StoredBlobRef, Version, child_name
from vaultfs.versioning import VersionGenerator

logger = logging.getLogger(__name__)


def _prefix_range(path: str) -> tuple[str, str]:
    """Key range holding every path strictly below ``path``.

    '0' is the character after the separator, so ``[path/, path0)`` covers
    all descendants.
    """
    return path + SEPARATOR, path + chr(ord(SEPARATOR) + 1)


class SqliteBucket(Bucket):
    """Bucket whose histories live in the service's SQLite tables."""

    def __init__(self, name: str, service: SqliteFilesystemService) -> None:
        super().__init__(name)
        self._service = service

    def _query(self, sql: str, params: tuple[Any, ...]) -> list[tuple[Any, ...]]:
        return self._service._query(sql, (self.name, *params))

    def latest_version(self) -> Version | None:
        rows = self._query("SELECT latest_version FROM buckets WHERE name = ?", ())
        if not rows or rows[0][0] is None:
            return None
        return Version(rows[0][0])

    def dir_versions(self, path: str) -> list[Version] | None:
        rows = self._query(
            "SELECT version FROM dir_history WHERE bucket = ? AND path = ? ORDER BY id",
            (path,),
        )
        return [Version(r[0]) for r in rows] or None

    def file_entries(self, path: str) -> list[StoredBlobRef] | None:
        rows = self._query(
            "SELECT blob_store, blob_name, version FROM file_history "
            "WHERE bucket = ? AND path = ? ORDER BY id",
            (path,),
        )
        return [StoredBlobRef(r[0], r[1], Version(r[2])) for r in rows] or None

    def latest_dir_version(self, path: str) -> Version | None:
        rows = self._query(
            "SELECT version FROM dir_history WHERE bucket = ? AND path = ? "
            "ORDER BY id DESC LIMIT 1",
            (path,),
        )
        return Version(rows[0][0]) if rows else None

    def latest_file_entry(self, path: str) -> StoredBlobRef | None:
        rows = self._query(
            "SELECT blob_store, blob_name, version FROM file_history "
            "WHERE bucket = ? AND path = ? ORDER BY id DESC LIMIT 1",
            (path,),
        )
        if not rows:
            return None
        return StoredBlobRef(rows[0][0], rows[0][1], Version(rows[0][2]))

    def children(self, path: str, versions: Collection[Version]) -> dict[str, set[EntryKind]]:
        wanted = set(versions)
        if path:
            lo, hi = _prefix_range(path)
            where, params = "bucket = ? AND path >= ? AND path < ?", (lo, hi)
        else:
            where, params = "bucket = ? AND path != ''", ()

        result: dict[str, set[EntryKind]] = {}
        for table, kind in (("dir_history", EntryKind.DIR), ("file_history", EntryKind.FILE)):
            rows = self._query(f"SELECT path, version FROM {table} WHERE {where}", params)
            for child_path, version in rows:
                name = child_name(child_path, path)
                if name is not None and version in wanted:
                    result.setdefault(name, set()).add(kind)
        return result

    def _apply_commit(self, dirs: set[str], files: dict[str, BlobRef]) -> Version:
        return self._service._commit(self.name, dirs, files)


class SqliteFilesystemService:
    """Filesystem service persisting bucket histories to one SQLite database.

    Each commit is a single immediate transaction: the latest-version read,
    history inserts and latest-version update become visible together.
    """

    def __init__(
        self,
        db_path: str,
        config: VaultfsConfig | None = None,
        *,
        versions: VersionGenerator | None = None,
    ) -> None:
        self.db_path = db_path
        self._config = config or VaultfsConfig()
        self._versions = versions or VersionGenerator.from_config(self._config)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._lock = threading.RLock()
        self._buckets: dict[str, SqliteBucket] = {}
        self._create_tables()

    def _create_tables(self) -> None:
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS buckets (
                name TEXT PRIMARY KEY,
                latest_version TEXT
            );

            CREATE TABLE IF NOT EXISTS dir_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                bucket TEXT NOT NULL,
                path TEXT NOT NULL,
                version TEXT NOT NULL,
                UNIQUE (bucket, path, version)
            );

            CREATE INDEX IF NOT EXISTS idx_dir_history_lookup
                ON dir_history(bucket, path, id);

            CREATE TABLE IF NOT EXISTS file_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                bucket TEXT NOT NULL,
                path TEXT NOT NULL,
                version TEXT NOT NULL,
                blob_store TEXT NOT NULL,
                blob_name TEXT NOT NULL,
                UNIQUE (bucket, path, version)
            );

            CREATE INDEX IF NOT EXISTS idx_file_history_lookup
                ON file_history(bucket, path, id);
        """)
        self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> SqliteFilesystemService:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # --- Buckets ---

    def bucket(self, name: str) -> SqliteBucket:
        with self._lock:
            bucket = self._buckets.get(name)
            if bucket is None:
                self._conn.execute("INSERT OR IGNORE INTO buckets (name) VALUES (?)", (name,))
                self._conn.commit()
                bucket = SqliteBucket(name, self)
                self._buckets[name] = bucket
            return bucket

    def bucket_names(self) -> list[str]:
        return [r[0] for r in self._query("SELECT name FROM buckets ORDER BY name", ())]

    def storage_info(self) -> dict[str, Any]:
        rows = self._query("SELECT name, latest_version FROM buckets ORDER BY name", ())
        return {
            "backend": "sqlite",
            "db_path": self.db_path,
            "buckets": {name: latest for name, latest in rows},
        }

    # --- Internal ---

    def _query(self, sql: str, params: tuple[Any, ...]) -> list[tuple[Any, ...]]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StorageBackendError("query", str(e)) from e

    def _commit(self, bucket: str, dirs: set[str], files: dict[str, BlobRef]) -> Version:
        rows = self._query("SELECT latest_version FROM buckets WHERE name = ?", (bucket,))
        latest = Version(rows[0][0]) if rows and rows[0][0] is not None else None
        while True:
            # Wait for the clock with no lock held; claim the version under the lock.
            version = self._versions.next_after(latest)
            latest = self._insert_if_newer(bucket, version, dirs, files)
            if latest is None:
                break
        logger.debug(
            "sqlite commit %s: bucket=%r dirs=%d files=%d", version, bucket, len(dirs), len(files)
        )
        return version

    def _insert_if_newer(
        self, bucket: str, version: Version, dirs: set[str], files: dict[str, BlobRef]
    ) -> Version | None:
        """Record the commit at ``version`` unless another commit claimed a later one.

        Returns None once recorded, otherwise the bucket's current latest version.
        """
        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
                try:
                    row = self._conn.execute(
                        "SELECT latest_version FROM buckets WHERE name = ?", (bucket,)
                    ).fetchone()
                    latest = Version(row[0]) if row and row[0] is not None else None
                    if latest is not None and version <= latest:
                        self._conn.rollback()
                        return latest
                    self._conn.executemany(
                        "INSERT INTO dir_history (bucket, path, version) VALUES (?, ?, ?)",
                        [(bucket, path, version) for path in sorted(dirs)],
                    )
                    self._conn.executemany(
                        "INSERT INTO file_history "
                        "(bucket, path, version, blob_store, blob_name) VALUES (?, ?, ?, ?, ?)",
                        [
                            (bucket, path, version, ref.store, ref.name)
                            for path, ref in sorted(files.items())
                        ],
                    )
                    self._conn.execute(
                        "INSERT INTO buckets (name, latest_version) VALUES (?, ?) "
                        "ON CONFLICT(name) DO UPDATE SET latest_version = excluded.latest_version",
                        (bucket, version),
                    )
                    self._conn.commit()
                except Exception:
                    self._conn.rollback()
                    raise
            except sqlite3.Error as e:
                raise StorageBackendError("commit", str(e)) from e
        return None
