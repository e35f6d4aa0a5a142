"""Structured error types for vaultfs."""

from __future__ import annotations


class VaultfsError(Exception):
    """Base error for all vaultfs errors."""


class SelectorError(VaultfsError, ValueError):
    """Raised when a selector chain is malformed or unusable for an operation."""


class AmbiguousSelectionError(SelectorError):
    """Raised when a single-result operation would have to pick among versions."""

    def __init__(self, path: str, count: int) -> None:
        self.path = path
        self.count = count
        super().__init__(
            f"version must be specified: {path!r} has {count} versions. "
            "Add Version() or Latest() to the selector."
        )


class NotFoundError(VaultfsError, LookupError):
    """Raised when a path or version is absent from a bucket's history."""

    def __init__(self, message: str, *, path: str | None = None, version: str | None = None):
        self.path = path
        self.version = version
        super().__init__(message)


class InvalidPathError(VaultfsError, ValueError):
    """Raised when a transaction is given an empty path or name."""


class TransactionCommittedError(VaultfsError):
    """Raised when commit() is called on an already committed transaction."""

    def __init__(self) -> None:
        super().__init__("transaction already committed")


class BlobExistsError(VaultfsError):
    """Raised when a blob with the same name is already stored."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"{name} already exists in blob service")


class BlobNotFoundError(VaultfsError, LookupError):
    """Raised when a referenced blob is missing from its store."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"blob {name!r} not found")


class DuplicateObjectError(VaultfsError):
    """Raised when a backup transaction receives the same path twice."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"object {path!r} already exists")


class StorageBackendError(VaultfsError):
    """Raised when backend storage operations fail."""

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage backend error during {operation}: {detail}")
