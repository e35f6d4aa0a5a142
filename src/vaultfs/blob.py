"""Content-addressed blob stores: in-memory, local directory and S3."""

from __future__ import annotations

import io
import logging
import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Any, BinaryIO, Protocol, runtime_checkable

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError, ParamValidationError

from vaultfs.config import VaultfsConfig
from vaultfs.errors import BlobExistsError, StorageBackendError

logger = logging.getLogger(__name__)


@runtime_checkable
class BlobService(Protocol):
    """Write-once blob store keyed by name.

    ``put`` must fail with BlobExistsError when the name is taken; with
    content-derived names that makes uploads deduplicating.
    """

    store: str

    def put(self, name: str, data: BinaryIO) -> None: ...

    def get(self, name: str) -> BinaryIO | None: ...


class MemoryBlobService:
    def __init__(self, store: str = "memory") -> None:
        self.store = store
        self._blobs: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, name: str, data: BinaryIO) -> None:
        body = data.read()
        with self._lock:
            if name in self._blobs:
                raise BlobExistsError(name)
            self._blobs[name] = body

    def get(self, name: str) -> BinaryIO | None:
        with self._lock:
            body = self._blobs.get(name)
        return None if body is None else io.BytesIO(body)

    def __len__(self) -> int:
        return len(self._blobs)


class LocalBlobService:
    """Blobs as files under ``root``, sharded by the first two name characters."""

    def __init__(self, root: str | Path, store: str | None = None) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.store = store or f"file:{self.root}"

    def _blob_path(self, name: str) -> Path:
        if not name or "/" in name or name.startswith("."):
            raise StorageBackendError("blob_path", f"invalid blob name {name!r}")
        return self.root / name[:2] / name

    def put(self, name: str, data: BinaryIO) -> None:
        path = self._blob_path(name)
        if path.exists():
            raise BlobExistsError(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as out:
                shutil.copyfileobj(data, out)
                out.flush()
                os.fsync(out.fileno())
            # link() refuses to replace an existing file, so concurrent writers
            # of the same name cannot clobber each other.
            os.link(tmp_name, path)
        except FileExistsError as e:
            raise BlobExistsError(name) from e
        finally:
            os.unlink(tmp_name)

    def get(self, name: str) -> BinaryIO | None:
        path = self._blob_path(name)
        try:
            return path.open("rb")
        except FileNotFoundError:
            return None


class S3BlobService:
    """Blobs as S3 objects under ``prefix`` using conditional create."""

    def __init__(
        self,
        *,
        bucket: str,
        prefix: str = "",
        config: VaultfsConfig | None = None,
        client: Any = None,
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.store = f"s3:{bucket}/{self.prefix}" if self.prefix else f"s3:{bucket}"
        config = config or VaultfsConfig()
        if client is None:
            session = boto3.Session(region_name=config.s3_region)
            client = session.client(
                "s3",
                region_name=config.s3_region,
                endpoint_url=config.s3_endpoint_url,
                config=BotoConfig(
                    connect_timeout=config.s3_request_timeout_s,
                    read_timeout=config.s3_request_timeout_s,
                    retries={"max_attempts": config.s3_max_attempts, "mode": "standard"},
                ),
            )
        self._s3 = client

    def _k(self, name: str) -> str:
        return f"{self.prefix}/{name}" if self.prefix else name

    def _error_code(self, err: Exception) -> str:
        if isinstance(err, ClientError):
            return str(err.response.get("Error", {}).get("Code", ""))
        return ""

    def put(self, name: str, data: BinaryIO) -> None:
        key = self._k(name)
        try:
            self._s3.put_object(Bucket=self.bucket, Key=key, Body=data, IfNoneMatch="*")
        except ParamValidationError as e:
            raise StorageBackendError(
                "put_blob", "S3 endpoint does not support conditional write preconditions"
            ) from e
        except ClientError as e:
            if self._error_code(e) in {"PreconditionFailed", "412", "ConditionalRequestConflict"}:
                raise BlobExistsError(name) from e
            raise StorageBackendError("put_blob", f"s3://{self.bucket}/{key}: {e}") from e
        logger.debug("uploaded blob s3://%s/%s", self.bucket, key)

    def get(self, name: str) -> BinaryIO | None:
        key = self._k(name)
        try:
            resp = self._s3.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if self._error_code(e) in {"NoSuchKey", "404", "NotFound"}:
                return None
            raise StorageBackendError("get_blob", f"s3://{self.bucket}/{key}: {e}") from e
        return io.BytesIO(resp["Body"].read())
