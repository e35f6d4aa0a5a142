"""Process exit codes for the vfs CLI."""

from vaultfs.errors import InvalidPathError, NotFoundError, SelectorError, StorageBackendError

SUCCESS = 0
GENERAL_ERROR = 1
USAGE_ERROR = 2
NOT_FOUND = 3
STORAGE_ERROR = 4


def exit_code_for(error: Exception) -> int:
    if isinstance(error, NotFoundError):
        return NOT_FOUND
    if isinstance(error, (SelectorError, InvalidPathError)):
        return USAGE_ERROR
    if isinstance(error, StorageBackendError):
        return STORAGE_ERROR
    return GENERAL_ERROR
