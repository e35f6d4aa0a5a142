"""Backups: upload file contents to a blob store and record them as one version.

Blob uploads and the metadata commit are not atomic together. A failed
commit can leave uploaded blobs that no version references.
"""

from __future__ import annotations

import logging
from typing import BinaryIO

from vaultfs.blob import BlobService
from vaultfs.config import VaultfsConfig
from vaultfs.errors import (
    BlobExistsError,
    BlobNotFoundError,
    DuplicateObjectError,
    InvalidPathError,
    StorageBackendError,
    TransactionCommittedError,
)
from vaultfs.filesystem import Bucket, FilesystemService
from vaultfs.hashing import content_name
from vaultfs.selector import Selector
from vaultfs.types import SEPARATOR, BlobRef, Category, DirEntry, Version, join_path

logger = logging.getLogger(__name__)


def _category_name(category: Category | str) -> str:
    return category.value if isinstance(category, Category) else str(category)


class Backup:
    """Versioned backup of one category, e.g. DRIVE or FLICKR."""

    def __init__(
        self,
        filesystem: FilesystemService,
        blobs: BlobService,
        category: Category | str,
        *,
        config: VaultfsConfig | None = None,
    ) -> None:
        self.category = _category_name(category)
        self.blobs = blobs
        self.bucket: Bucket = filesystem.bucket(self.category)
        self._config = config or VaultfsConfig()

    def begin(self) -> BackupTransaction:
        return BackupTransaction(self)

    def _file_selector(self, path: str, version: Version | str | None) -> Selector:
        full_path = join_path(path)
        if not full_path:
            raise InvalidPathError("file path must be non-empty")
        parent, _, name = full_path.rpartition(SEPARATOR)
        sel = self.bucket.select()
        if parent:
            sel = sel.dir(parent)
        sel = sel.file(name)
        return sel.version(version) if version is not None else sel.latest()

    def read_file(self, path: str, version: Version | str | None = None) -> BinaryIO:
        """Open the content of ``path`` at ``version`` (default: its latest version)."""
        ref = self._file_selector(path, version).blob_ref()
        if ref.store != self.blobs.store:
            raise StorageBackendError(
                "read_file", f"blob {ref} is not held by store {self.blobs.store!r}"
            )
        data = self.blobs.get(ref.name)
        if data is None:
            raise BlobNotFoundError(ref.name)
        return data

    def list_dir(self, path: str = "", version: Version | str | None = None) -> list[DirEntry]:
        """Children of ``path`` at ``version`` (default: the directory's latest version)."""
        sel = self.bucket.select()
        full_path = join_path(path)
        if full_path:
            sel = sel.dir(full_path)
        sel = sel.version(version) if version is not None else sel.latest()
        return sel.entries()

    def versions(self, path: str = "", *, is_file: bool = False) -> list[Version]:
        if is_file:
            full_path = join_path(path)
            parent, _, name = full_path.rpartition(SEPARATOR)
            sel = self.bucket.select()
            if parent:
                sel = sel.dir(parent)
            return sel.file(name).versions()
        sel = self.bucket.select()
        if join_path(path):
            sel = sel.dir(path)
        return sel.versions()


class BackupTransaction:
    """Collects file streams and commits them as one new version."""

    def __init__(self, backup: Backup) -> None:
        self._backup = backup
        # path -> (stream, offset the content starts at)
        self._objects: dict[str, tuple[BinaryIO, int]] = {}
        self._committed = False

    def put(self, path: str, data: BinaryIO) -> None:
        full_path = join_path(path)
        if not full_path:
            raise InvalidPathError("object path must be non-empty")
        if full_path in self._objects:
            raise DuplicateObjectError(full_path)
        self._objects[full_path] = (data, data.tell())

    def __len__(self) -> int:
        return len(self._objects)

    def _upload(self, data: BinaryIO, start: int) -> BlobRef:
        blobs = self._backup.blobs
        # Content always starts at the offset recorded by put(), even on a retried commit.
        data.seek(start)
        name = content_name(data, self._backup._config.hash_chunk_size)
        data.seek(start)
        try:
            blobs.put(name, data)
        except BlobExistsError:
            logger.debug("blob %s already stored, reusing", name)
        return BlobRef(blobs.store, name)

    def commit(self) -> Version:
        if self._committed:
            raise TransactionCommittedError()
        tx = self._backup.bucket.new_put_transaction()
        for path, (data, start) in sorted(self._objects.items()):
            ref = self._upload(data, start)
            parent, _, name = path.rpartition(SEPARATOR)
            tx.dir(parent).file(name, ref)
        version = tx.commit()
        self._committed = True
        logger.info(
            "backed up %d objects to %s at version %s",
            len(self._objects),
            self._backup.category,
            version,
        )
        return version
