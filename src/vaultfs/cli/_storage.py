"""CLI helpers for backend construction from global options and environment."""

from __future__ import annotations

import os

from vaultfs.backup import Backup
from vaultfs.blob import BlobService
from vaultfs.config import VaultfsConfig
from vaultfs.filesystem import FilesystemService
from vaultfs.storage import open_blob_service, open_filesystem


def config_from_env() -> VaultfsConfig:
    """Build config from VAULTFS_* environment variables."""
    config = VaultfsConfig(
        s3_region=os.getenv("VAULTFS_S3_REGION"),
        s3_endpoint_url=os.getenv("VAULTFS_S3_ENDPOINT_URL"),
    )
    resolution = os.getenv("VAULTFS_VERSION_RESOLUTION_MS")
    if resolution:
        config.version_resolution_ms = int(resolution)
    return config


def open_index() -> FilesystemService:
    from vaultfs.cli import state

    return open_filesystem(state.index_uri, config=config_from_env())


def open_blobs() -> BlobService:
    from vaultfs.cli import state

    return open_blob_service(state.blob_uri, config=config_from_env())


def open_backup(filesystem: FilesystemService, category: str) -> Backup:
    return Backup(filesystem, open_blobs(), category, config=config_from_env())
