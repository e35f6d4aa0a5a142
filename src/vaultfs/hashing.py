"""Content-addressed naming of blobs."""

from __future__ import annotations

import hashlib
from typing import BinaryIO

DEFAULT_CHUNK_SIZE = 1 << 16


def content_name(stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """Compute the SHA-256 hex digest of everything left in ``stream``.

    The stream is consumed; callers that upload the same data afterwards must
    seek back to the start.
    """
    digest = hashlib.sha256()
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        digest.update(chunk)
    return digest.hexdigest()
