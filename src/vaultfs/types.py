"""Value types shared by the filesystem, blob and backup layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NewType

Version = NewType("Version", str)

SEPARATOR = "/"


@dataclass(frozen=True)
class BlobRef:
    """Location of a blob in a content-addressed store."""

    store: str  # store name/type, e.g. "s3:backup-objects"
    name: str  # blob name within the store

    def __str__(self) -> str:
        return f"{self.store}:{self.name}"


@dataclass(frozen=True)
class StoredBlobRef:
    """A BlobRef as recorded for a path at a specific version."""

    store: str
    name: str
    version: Version

    @property
    def blob_ref(self) -> BlobRef:
        return BlobRef(self.store, self.name)

    @classmethod
    def of(cls, ref: BlobRef, version: Version) -> StoredBlobRef:
        return cls(ref.store, ref.name, version)

    def __str__(self) -> str:
        return f"{self.blob_ref}@{self.version}"


class Category(str, Enum):
    """Top-level partition of backed-up content."""

    DRIVE = "DRIVE"
    FLICKR = "FLICKR"


class EntryKind(str, Enum):
    FILE = "file"
    DIR = "dir"


@dataclass(frozen=True)
class DirEntry:
    """One child of a listed directory."""

    path: str
    kind: EntryKind

    @property
    def name(self) -> str:
        return self.path.rsplit(SEPARATOR, 1)[-1]


def split_path(path: str) -> list[str]:
    """Split a path into its non-empty segments, ignoring '.' segments."""
    return [seg for seg in path.split(SEPARATOR) if seg and seg != "."]


def join_path(*parts: str) -> str:
    """Join path fragments, normalizing separators. The bucket root is ''."""
    segments: list[str] = []
    for part in parts:
        segments.extend(split_path(part))
    return SEPARATOR.join(segments)


def path_prefixes(path: str) -> list[str]:
    """Return every prefix of ``path`` from the root '' up to the path itself."""
    segments = split_path(path)
    return [SEPARATOR.join(segments[:i]) for i in range(len(segments) + 1)]


def child_name(path: str, parent: str) -> str | None:
    """Return the segment of ``path`` directly below ``parent``, if it is a direct child."""
    if parent:
        prefix = parent + SEPARATOR
        if not path.startswith(prefix):
            return None
        tail = path[len(prefix) :]
    else:
        tail = path
    if not tail or SEPARATOR in tail:
        return None
    return tail
