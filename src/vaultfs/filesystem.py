"""Bucket and put-transaction contracts shared by all filesystem backends."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Collection, Protocol, runtime_checkable

from vaultfs.errors import InvalidPathError, TransactionCommittedError
from vaultfs.types import BlobRef, EntryKind, StoredBlobRef, Version, join_path, path_prefixes

if TYPE_CHECKING:
    from vaultfs.selector import Selector

logger = logging.getLogger(__name__)


class Bucket(ABC):
    """A named, independently versioned namespace of directories and files.

    Each path carries two histories: the versions at which it existed as a
    directory, and the blob refs recorded for it as a file. A path's kind is
    therefore decided per version, not fixed.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    def new_put_transaction(self) -> PutTransaction:
        return PutTransaction(self)

    def select(self) -> Selector:
        from vaultfs.selector import Selector

        return Selector(self)

    # --- Store contract ---

    @abstractmethod
    def latest_version(self) -> Version | None:
        """Version of the most recent commit, or None for an empty bucket."""

    @abstractmethod
    def dir_versions(self, path: str) -> list[Version] | None:
        """Directory history of ``path`` in commit order, None if never declared."""

    @abstractmethod
    def file_entries(self, path: str) -> list[StoredBlobRef] | None:
        """File history of ``path`` in commit order, None if never written."""

    def latest_dir_version(self, path: str) -> Version | None:
        history = self.dir_versions(path)
        return history[-1] if history else None

    def latest_file_entry(self, path: str) -> StoredBlobRef | None:
        history = self.file_entries(path)
        return history[-1] if history else None

    @abstractmethod
    def children(self, path: str, versions: Collection[Version]) -> dict[str, set[EntryKind]]:
        """Direct children of ``path`` with an entry at any of ``versions``.

        Maps each child name to the kinds it has at those versions.
        """

    @abstractmethod
    def _apply_commit(self, dirs: set[str], files: dict[str, BlobRef]) -> Version:
        """Stamp all pending entries with one fresh version, atomically."""


@runtime_checkable
class FilesystemService(Protocol):
    """Registry of buckets, created lazily by name."""

    def bucket(self, name: str) -> Bucket: ...

    def bucket_names(self) -> list[str]: ...

    def close(self) -> None: ...

    def storage_info(self) -> dict[str, Any]: ...


@dataclass
class _PendingCommit:
    dirs: set[str] = field(default_factory=set)
    files: dict[str, BlobRef] = field(default_factory=dict)
    committed: bool = False
    # Held for the whole commit so concurrent commit() calls apply it once.
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


class PutTransaction:
    """Accumulates directory and file declarations for a single commit.

    ``dir()`` returns a nested scope; every scope of one transaction shares the
    same pending state, so committing any of them commits all of them.
    """

    def __init__(
        self, bucket: Bucket, *, _pending: _PendingCommit | None = None, _scope: str = ""
    ) -> None:
        self._bucket = bucket
        self._pending = _pending if _pending is not None else _PendingCommit()
        self._scope = _scope

    @property
    def scope(self) -> str:
        return self._scope

    @property
    def committed(self) -> bool:
        return self._pending.committed

    @property
    def pending_dirs(self) -> frozenset[str]:
        return frozenset(self._pending.dirs)

    @property
    def pending_files(self) -> dict[str, BlobRef]:
        return dict(self._pending.files)

    def dir(self, path: str) -> PutTransaction:
        full_path = join_path(self._scope, path)
        # Declaring a directory implies all of its ancestors, root included.
        self._pending.dirs.update(path_prefixes(full_path))
        return PutTransaction(self._bucket, _pending=self._pending, _scope=full_path)

    def file(self, name: str, blob_ref: BlobRef) -> None:
        full_path = join_path(self._scope, name)
        if full_path == self._scope:
            raise InvalidPathError(f"file name must be non-empty (got {name!r})")
        self._pending.files[full_path] = blob_ref

    def commit(self) -> Version:
        with self._pending.lock:
            if self._pending.committed:
                raise TransactionCommittedError()
            version = self._bucket._apply_commit(
                set(self._pending.dirs), dict(self._pending.files)
            )
            self._pending.committed = True
        logger.info(
            "committed %d dirs, %d files to bucket %r at version %s",
            len(self._pending.dirs),
            len(self._pending.files),
            self._bucket.name,
            version,
        )
        return version

    def __repr__(self) -> str:
        return (
            f"PutTransaction(bucket={self._bucket.name!r}, scope={self._scope!r}, "
            f"dirs={len(self._pending.dirs)}, files={len(self._pending.files)})"
        )
