"""In-memory filesystem backend.

This is the reference behavior every other backend must reproduce.
"""

from __future__ import annotations

import threading
from typing import Any, Collection

from vaultfs.config import VaultfsConfig
from vaultfs.filesystem import Bucket
from vaultfs.types import BlobRef, EntryKind, StoredBlobRef, Version, child_name
from vaultfs.versioning import VersionGenerator


class MemoryBucket(Bucket):
    """Bucket holding its directory and file histories in two dicts keyed by path."""

    def __init__(self, name: str, versions: VersionGenerator) -> None:
        super().__init__(name)
        self._versions = versions
        self._dirs: dict[str, list[Version]] = {}
        self._files: dict[str, list[StoredBlobRef]] = {}
        self._latest: Version | None = None
        # Commits and reads share the lock so a commit is never seen half-applied.
        self._lock = threading.RLock()

    def latest_version(self) -> Version | None:
        with self._lock:
            return self._latest

    def dir_versions(self, path: str) -> list[Version] | None:
        with self._lock:
            history = self._dirs.get(path)
            return None if history is None else list(history)

    def file_entries(self, path: str) -> list[StoredBlobRef] | None:
        with self._lock:
            history = self._files.get(path)
            return None if history is None else list(history)

    def children(self, path: str, versions: Collection[Version]) -> dict[str, set[EntryKind]]:
        wanted = set(versions)
        result: dict[str, set[EntryKind]] = {}
        with self._lock:
            for child_path, dir_history in self._dirs.items():
                name = child_name(child_path, path)
                if name is not None and wanted.intersection(dir_history):
                    result.setdefault(name, set()).add(EntryKind.DIR)
            for child_path, file_history in self._files.items():
                name = child_name(child_path, path)
                if name is not None and any(e.version in wanted for e in file_history):
                    result.setdefault(name, set()).add(EntryKind.FILE)
        return result

    def _apply_commit(self, dirs: set[str], files: dict[str, BlobRef]) -> Version:
        latest = self.latest_version()
        while True:
            # Wait for the clock with no lock held; claim the version under the lock.
            version = self._versions.next_after(latest)
            with self._lock:
                if self._latest is None or version > self._latest:
                    for path in dirs:
                        self._dirs.setdefault(path, []).append(version)
                    for path, ref in files.items():
                        self._files.setdefault(path, []).append(StoredBlobRef.of(ref, version))
                    self._latest = version
                    return version
                latest = self._latest

    def __str__(self) -> str:
        lines = [f"latest version: {self._latest}"]
        for path in sorted(set(self._dirs) | set(self._files)):
            file_versions = ",".join(str(e) for e in self._files.get(path, []))
            dir_versions = ",".join("@" + v for v in self._dirs.get(path, []))
            lines.append(f"{path!r} file versions: {file_versions} dir versions: {dir_versions}")
        return "\n".join(lines)


class MemoryFilesystemService:
    """Process-lifetime registry of in-memory buckets."""

    def __init__(
        self, config: VaultfsConfig | None = None, *, versions: VersionGenerator | None = None
    ) -> None:
        self._config = config or VaultfsConfig()
        self._versions = versions
        self._buckets: dict[str, MemoryBucket] = {}
        self._lock = threading.Lock()

    def bucket(self, name: str) -> MemoryBucket:
        with self._lock:
            bucket = self._buckets.get(name)
            if bucket is None:
                versions = self._versions or VersionGenerator.from_config(self._config)
                bucket = MemoryBucket(name, versions)
                self._buckets[name] = bucket
            return bucket

    def bucket_names(self) -> list[str]:
        with self._lock:
            return sorted(self._buckets)

    def close(self) -> None:
        pass

    def storage_info(self) -> dict[str, Any]:
        return {"backend": "memory"}

    def __str__(self) -> str:
        with self._lock:
            return "buckets:\n" + "\n".join(
                f"{name!r}:\n{bucket}" for name, bucket in sorted(self._buckets.items())
            )
