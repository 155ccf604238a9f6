"""repofs library modules.

This package contains the storage backends, the credential store and the
path-level helpers built on top of them.
"""

from repofs.lib.errors import (
    CredentialNotFoundError,
    InvalidArgumentError,
    StatusCode,
    StorageError,
    UnsupportedOperationError,
)
from repofs.lib.env import expand_env_vars, load_env_file
from repofs.lib.storage import FileSystemType, LocalizedDirectory, get_storage

__all__ = [
    "CredentialNotFoundError",
    "FileSystemType",
    "InvalidArgumentError",
    "LocalizedDirectory",
    "StatusCode",
    "StorageError",
    "UnsupportedOperationError",
    "expand_env_vars",
    "get_storage",
    "load_env_file",
]
