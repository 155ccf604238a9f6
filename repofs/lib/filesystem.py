"""Path-level filesystem helpers.

Each function resolves a backend for its path, performs one operation and
releases the backend again. Use ``get_storage`` directly to run several
operations against one client.

Example:
    >>> from repofs.lib import filesystem
    >>> filesystem.get_directory_subdirs("gs://my-bucket/models")
    {'resnet', 'bert'}
    >>> config = filesystem.read_json_file("gs://my-bucket/models/resnet/config.json")
"""

from __future__ import annotations

import json
import logging
from typing import Any, Set

from repofs.lib.errors import StorageError
from repofs.lib.storage import (
    FileSystemType,
    LocalizedDirectory,
    StorageResult,
    get_storage,
    get_storage_for_type,
)

logger = logging.getLogger(__name__)

__all__ = [
    "delete_directory",
    "file_exists",
    "file_modification_time",
    "get_directory_contents",
    "get_directory_files",
    "get_directory_subdirs",
    "is_directory",
    "localize_directory",
    "make_directory",
    "make_temporary_directory",
    "read_json_file",
    "read_text_file",
    "write_binary_file",
    "write_text_file",
]


def file_exists(path: str) -> bool:
    """Return True if a file or directory exists at ``path``."""
    with get_storage(path) as storage:
        return storage.exists(path)


def is_directory(path: str) -> bool:
    with get_storage(path) as storage:
        return storage.is_directory(path)


def file_modification_time(path: str) -> int:
    """Modification time of ``path`` in nanoseconds since the epoch."""
    with get_storage(path) as storage:
        return storage.modification_time(path)


def get_directory_contents(path: str) -> Set[str]:
    """Names of all immediate children of the directory at ``path``."""
    with get_storage(path) as storage:
        return storage.list_directory(path)


def get_directory_subdirs(path: str) -> Set[str]:
    """Names of the immediate subdirectories of ``path``."""
    with get_storage(path) as storage:
        return storage.list_subdirectories(path)


def get_directory_files(path: str, skip_hidden_files: bool = False) -> Set[str]:
    """Names of the files directly inside ``path``.

    Args:
        path: Directory to list
        skip_hidden_files: Leave out names starting with '.'
    """
    with get_storage(path) as storage:
        files = storage.list_files(path)
    if skip_hidden_files:
        files = {name for name in files if not name.startswith(".")}
    return files


def read_text_file(path: str, encoding: str = "utf-8") -> str:
    with get_storage(path) as storage:
        return storage.read_text_file(path, encoding=encoding)


def read_json_file(path: str) -> Any:
    """Read and parse a JSON document.

    Raises:
        StorageError: If the file cannot be read or does not hold valid JSON.
    """
    content = read_text_file(path)
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        raise StorageError(
            f"failed to read JSON file {path}",
            path=path,
            details={"line": exc.lineno, "column": exc.colno},
            cause=exc,
        ) from exc


def localize_directory(path: str) -> LocalizedDirectory:
    """Make the directory at ``path`` available on local disk.

    The returned object owns any temporary copy; close it (or use it as a
    context manager) to delete the copy.
    """
    with get_storage(path) as storage:
        return storage.localize_directory(path)


def write_text_file(path: str, contents: str) -> StorageResult:
    with get_storage(path) as storage:
        return storage.write_text_file(path, contents)


def write_binary_file(path: str, contents: bytes) -> StorageResult:
    with get_storage(path) as storage:
        return storage.write_binary_file(path, contents)


def make_directory(path: str, recursive: bool = False) -> None:
    """Create a directory; with ``recursive`` also create its missing parents."""
    with get_storage(path) as storage:
        storage.create_directory(path, recursive=recursive)


def make_temporary_directory(kind: FileSystemType = FileSystemType.LOCAL) -> str:
    """Create a new empty directory on the given backend and return its path."""
    with get_storage_for_type(kind) as storage:
        return storage.create_temporary_directory()


def delete_directory(path: str) -> None:
    """Delete the directory at ``path`` and everything below it."""
    with get_storage(path) as storage:
        storage.delete_directory_recursive(path)
    logger.debug("Deleted %s", path)
