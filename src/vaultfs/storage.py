"""Storage binding: resolve index and blob URIs to backends."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse

from vaultfs.blob import BlobService, LocalBlobService, MemoryBlobService, S3BlobService
from vaultfs.config import VaultfsConfig
from vaultfs.errors import StorageBackendError
from vaultfs.filesystem import FilesystemService


@dataclass(frozen=True)
class IndexTarget:
    """Resolved metadata index target."""

    backend: str
    uri: str
    db_path: str | None = None


@dataclass(frozen=True)
class BlobTarget:
    """Resolved blob store target."""

    backend: str
    uri: str
    root: str | None = None
    bucket: str | None = None
    prefix: str | None = None


def _sqlite_path(uri: str) -> str:
    parsed = urlparse(uri)
    path = parsed.path
    if parsed.netloc:
        path = f"{parsed.netloc}{path}"
    elif path.startswith("//"):
        # sqlite:////abs/path -> /abs/path
        path = path[1:]
    if path == "/:memory:":
        path = ":memory:"
    return path


def parse_index_target(storage_uri: str) -> IndexTarget:
    """Resolve ``memory://`` or ``sqlite:///path`` to an index target."""
    parsed = urlparse(storage_uri)
    if parsed.scheme == "memory":
        return IndexTarget(backend="memory", uri=storage_uri)
    if parsed.scheme == "sqlite":
        db_path = _sqlite_path(storage_uri)
        if not db_path:
            raise StorageBackendError("parse_index_uri", f"Invalid sqlite URI: {storage_uri}")
        return IndexTarget(backend="sqlite", uri=storage_uri, db_path=db_path)
    raise StorageBackendError(
        "parse_index_uri",
        f"Unsupported index URI scheme '{parsed.scheme}' for '{storage_uri}'",
    )


def parse_blob_target(storage_uri: str) -> BlobTarget:
    """Resolve ``memory://``, ``file:///dir`` or ``s3://bucket/prefix`` to a blob target."""
    parsed = urlparse(storage_uri)
    if parsed.scheme == "memory":
        return BlobTarget(backend="memory", uri=storage_uri)
    if parsed.scheme == "file":
        root = f"{parsed.netloc}{parsed.path}"
        if not root:
            raise StorageBackendError("parse_blob_uri", f"Invalid file URI: {storage_uri}")
        return BlobTarget(backend="file", uri=storage_uri, root=root)
    if parsed.scheme == "s3":
        if not parsed.netloc:
            raise StorageBackendError("parse_blob_uri", f"Invalid s3 URI: {storage_uri}")
        return BlobTarget(
            backend="s3",
            uri=storage_uri,
            bucket=parsed.netloc,
            prefix=parsed.path.strip("/"),
        )
    raise StorageBackendError(
        "parse_blob_uri",
        f"Unsupported blob URI scheme '{parsed.scheme}' for '{storage_uri}'",
    )


def open_filesystem(storage_uri: str, *, config: VaultfsConfig | None = None) -> FilesystemService:
    """Open a filesystem service for an index URI."""
    target = parse_index_target(storage_uri)
    if target.backend == "memory":
        from vaultfs.memory import MemoryFilesystemService

        return MemoryFilesystemService(config)
    if target.backend == "sqlite":
        from vaultfs.storage_sqlite import SqliteFilesystemService

        assert target.db_path is not None
        return SqliteFilesystemService(target.db_path, config)
    raise StorageBackendError("open_filesystem", f"Unsupported backend '{target.backend}'")


def open_blob_service(storage_uri: str, *, config: VaultfsConfig | None = None) -> BlobService:
    """Open a blob service for a blob URI."""
    target = parse_blob_target(storage_uri)
    if target.backend == "memory":
        return MemoryBlobService()
    if target.backend == "file":
        assert target.root is not None
        return LocalBlobService(target.root)
    if target.backend == "s3":
        assert target.bucket is not None
        return S3BlobService(bucket=target.bucket, prefix=target.prefix or "", config=config)
    raise StorageBackendError("open_blob_service", f"Unsupported backend '{target.backend}'")


__all__ = [
    "IndexTarget",
    "BlobTarget",
    "parse_index_target",
    "parse_blob_target",
    "open_filesystem",
    "open_blob_service",
]
