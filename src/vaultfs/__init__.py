"""vaultfs: versioned filesystem over a content-addressed blob store."""

__version__ = "0.1.0"

from vaultfs.backup import Backup, BackupTransaction
from vaultfs.blob import BlobService, LocalBlobService, MemoryBlobService, S3BlobService
from vaultfs.config import VaultfsConfig
from vaultfs.errors import (
    AmbiguousSelectionError,
    BlobExistsError,
    BlobNotFoundError,
    DuplicateObjectError,
    InvalidPathError,
    NotFoundError,
    SelectorError,
    StorageBackendError,
    TransactionCommittedError,
    VaultfsError,
)
from vaultfs.filesystem import Bucket, FilesystemService, PutTransaction
from vaultfs.hashing import content_name
from vaultfs.memory import MemoryFilesystemService
from vaultfs.selector import Selector
from vaultfs.storage import open_blob_service, open_filesystem
from vaultfs.storage_sqlite import SqliteFilesystemService
from vaultfs.types import BlobRef, Category, DirEntry, EntryKind, StoredBlobRef, Version

__all__ = [
    "__version__",
    "Version",
    "BlobRef",
    "StoredBlobRef",
    "Category",
    "EntryKind",
    "DirEntry",
    "content_name",
    "Bucket",
    "FilesystemService",
    "PutTransaction",
    "Selector",
    "MemoryFilesystemService",
    "SqliteFilesystemService",
    "BlobService",
    "MemoryBlobService",
    "LocalBlobService",
    "S3BlobService",
    "Backup",
    "BackupTransaction",
    "open_filesystem",
    "open_blob_service",
    "VaultfsConfig",
    "VaultfsError",
    "SelectorError",
    "AmbiguousSelectionError",
    "NotFoundError",
    "InvalidPathError",
    "TransactionCommittedError",
    "BlobExistsError",
    "BlobNotFoundError",
    "DuplicateObjectError",
    "StorageBackendError",
]
