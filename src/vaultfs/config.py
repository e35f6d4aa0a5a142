"""Configuration for vaultfs services."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class VaultfsConfig:
    """Configuration shared by the filesystem, blob and backup layers."""

    version_resolution_ms: int = 1
    version_retry_interval_ms: int = 1
    hash_chunk_size: int = 1 << 16
    default_store: str = "vaultfs"
    s3_region: str | None = None
    s3_endpoint_url: str | None = None
    s3_request_timeout_s: float = 10.0
    s3_max_attempts: int = 5
