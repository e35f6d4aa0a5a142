"""Selector DSL: constraint grammar, version resolution and query operations.

A selector is an immutable chain of constraints. ``dir()``/``file()`` extend
the location, ``version()``/``latest()`` pin the version to read::

    bucket.select().dir("photos").file("a.jpg").latest().blob_ref()
    bucket.select().latest().dir("photos").list()

``latest()`` is scoped by what precedes it: after a location it means the
latest version of that path, at the start it means the bucket's latest commit.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from vaultfs.errors import AmbiguousSelectionError, NotFoundError, SelectorError
from vaultfs.types import DirEntry, EntryKind, StoredBlobRef, Version, join_path

if TYPE_CHECKING:
    from vaultfs.filesystem import Bucket


class ConstraintType(Enum):
    VERSION = "version"
    LATEST = "latest"
    DIR = "dir"
    FILE = "file"

    @property
    def is_version(self) -> bool:
        return self in (ConstraintType.VERSION, ConstraintType.LATEST)

    @property
    def is_location(self) -> bool:
        return self in (ConstraintType.DIR, ConstraintType.FILE)


@dataclass(frozen=True)
class Constraint:
    type: ConstraintType
    location: str = ""  # dir/file constraints
    version: Version | None = None  # version constraint

    def __str__(self) -> str:
        if self.type is ConstraintType.VERSION:
            return f"Version({self.version!r})"
        if self.type is ConstraintType.LATEST:
            return "Latest()"
        return f"{self.type.value.capitalize()}({self.location!r})"


def validate(
    constraints: tuple[Constraint, ...],
    *,
    require_file: bool = False,
    forbid_file: bool = False,
) -> None:
    """Check a constraint chain against the grammar rules and the operation's needs."""
    version_count = sum(1 for c in constraints if c.type.is_version)
    if version_count > 1:
        raise SelectorError("only one version constraint may be specified")

    file_seen = False
    for c in constraints:
        if c.type is ConstraintType.FILE:
            if file_seen:
                raise SelectorError("File() must not be specified more than once")
            file_seen = True
        elif c.type is ConstraintType.DIR and file_seen:
            raise SelectorError("Dir() may not follow File(); File() must be the last location")

    for c in constraints:
        if c.type.is_location and not c.location:
            raise SelectorError(f"{c.type.value} path/name parameter must be non-empty")

    if require_file and not file_seen:
        raise SelectorError("no File() selector specified for file operation")
    if forbid_file and file_seen:
        raise SelectorError("File() selector incorrectly specified for directory operation")


@dataclass(frozen=True)
class Resolution:
    """The path, kind and version a validated constraint chain denotes."""

    path: str
    is_file: bool
    version: Version | None  # None means unconstrained


def resolve(constraints: tuple[Constraint, ...], bucket: Bucket) -> Resolution:
    """Resolve a validated chain to its effective path, kind and concrete version."""
    path = join_path(*(c.location for c in constraints if c.type.is_location))
    is_file = any(c.type is ConstraintType.FILE for c in constraints)

    version: Version | None = None
    scope = ""
    scope_is_file = False
    location_seen = False
    for c in constraints:
        if c.type is ConstraintType.VERSION:
            version = c.version
            break
        if c.type is ConstraintType.LATEST:
            if not location_seen:
                version = bucket.latest_version()
                if version is None:
                    raise NotFoundError(f"bucket {bucket.name!r} has no versions")
            elif scope_is_file:
                entry = bucket.latest_file_entry(scope)
                if entry is None:
                    raise NotFoundError(f"file not found: {scope!r}", path=scope)
                version = entry.version
            else:
                version = bucket.latest_dir_version(scope)
                if version is None:
                    raise NotFoundError(f"directory not found: {scope!r}", path=scope)
            break
        location_seen = True
        scope = join_path(scope, c.location)
        scope_is_file = c.type is ConstraintType.FILE

    return Resolution(path=path, is_file=is_file, version=version)


class Selector:
    """Immutable query builder over one bucket.

    Every chaining call returns a new selector, so a partially built query can
    be branched safely.
    """

    __slots__ = ("_bucket", "_constraints")

    def __init__(self, bucket: Bucket, constraints: tuple[Constraint, ...] = ()) -> None:
        self._bucket = bucket
        self._constraints = constraints

    @property
    def constraints(self) -> tuple[Constraint, ...]:
        return self._constraints

    def _extend(self, constraint: Constraint) -> Selector:
        return Selector(self._bucket, self._constraints + (constraint,))

    # --- Chaining ---

    def version(self, version: Version | str) -> Selector:
        return self._extend(Constraint(ConstraintType.VERSION, version=Version(version)))

    def latest(self) -> Selector:
        return self._extend(Constraint(ConstraintType.LATEST))

    def dir(self, path: str) -> Selector:
        return self._extend(Constraint(ConstraintType.DIR, location=path))

    def file(self, name: str) -> Selector:
        return self._extend(Constraint(ConstraintType.FILE, location=name))

    # --- Terminal operations ---

    def resolve(self) -> Resolution:
        validate(self._constraints)
        return resolve(self._constraints, self._bucket)

    def list(self) -> list[str]:
        """Names of the direct children of the selected directory.

        Without a version constraint, children present at any version of the
        directory are included.
        """
        return sorted(self._list_children())

    def entries(self) -> list[DirEntry]:
        """Like list(), but one DirEntry per child and kind."""
        children = self._list_children()
        path = resolve(self._constraints, self._bucket).path
        return [
            DirEntry(join_path(path, name), kind)
            for name in sorted(children)
            for kind in sorted(children[name], key=lambda k: k.value)
        ]

    def _list_children(self) -> dict[str, set[EntryKind]]:
        validate(self._constraints, forbid_file=True)
        res = resolve(self._constraints, self._bucket)
        history = self._bucket.dir_versions(res.path)
        if history is None:
            raise NotFoundError(f"directory not found: {res.path!r}", path=res.path)
        if res.version is None:
            return self._bucket.children(res.path, history)
        if res.version not in history:
            raise NotFoundError(
                f"directory {res.path!r} has no version {res.version!r}",
                path=res.path,
                version=res.version,
            )
        return self._bucket.children(res.path, [res.version])

    def blob_ref(self) -> StoredBlobRef:
        """The blob recorded for the selected file at the selected version."""
        validate(self._constraints, require_file=True)
        res = resolve(self._constraints, self._bucket)
        entries = self._bucket.file_entries(res.path)
        if res.version is None:
            if entries is not None and len(entries) > 1:
                raise AmbiguousSelectionError(res.path, len(entries))
            raise SelectorError("version must be specified for BlobRef()")
        if entries is None:
            raise NotFoundError(f"file not found: {res.path!r}", path=res.path)
        for entry in entries:
            if entry.version == res.version:
                return entry
        raise NotFoundError(
            f"file {res.path!r} has no version {res.version!r}",
            path=res.path,
            version=res.version,
        )

    def versions(self) -> list[Version]:
        """Versions at which the selected file or directory has an entry."""
        validate(self._constraints)
        res = resolve(self._constraints, self._bucket)
        history: list[Version] | None
        if res.is_file:
            entries = self._bucket.file_entries(res.path)
            history = None if entries is None else [e.version for e in entries]
        else:
            history = self._bucket.dir_versions(res.path)
        kind = "file" if res.is_file else "directory"
        if history is None:
            raise NotFoundError(f"{kind} not found: {res.path!r}", path=res.path)
        if res.version is None:
            return list(history)
        if res.version not in history:
            raise NotFoundError(
                f"{kind} {res.path!r} has no version {res.version!r}",
                path=res.path,
                version=res.version,
            )
        return [res.version]

    def __repr__(self) -> str:
        chain = ".".join(str(c) for c in self._constraints)
        return f"Selector({self._bucket.name!r}){'.' + chain if chain else ''}"
