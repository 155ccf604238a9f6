"""Abstract base class for storage backends.

Defines the capability interface that every backend implements. Operations a
backend does not offer raise ``UnsupportedOperationError``; the defaults here
decline all mutating operations so that read-only backends only need to
implement the abstract methods.
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import IO, TYPE_CHECKING, Any, Dict, Optional, Set

from repofs.lib._path_utils import join_path
from repofs.lib.errors import StorageError, UnsupportedOperationError
from repofs.lib.uri import FileSystemType, file_system_type_string

if TYPE_CHECKING:
    from repofs.lib.storage.localize import LocalizedDirectory

logger = logging.getLogger(__name__)

__all__ = ["StorageBackend", "StorageResult"]


@dataclass
class StorageResult:
    """Result of a write operation."""

    success: bool
    path: str
    bytes_written: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "path": self.path,
            "bytes_written": self.bytes_written,
            "metadata": self.metadata,
        }


class StorageBackend(ABC):
    """Abstract base class for storage backends.

    All paths passed to a backend are complete: a local path for the local
    backend, a full ``scheme://`` URI for the cloud backends. A backend
    instance may hold a provider client; release it with ``close()`` or use
    the backend as a context manager.
    """

    def __init__(self, **options: Any) -> None:
        self.options = options
        self._closed = False

    @property
    @abstractmethod
    def kind(self) -> FileSystemType:
        """Backend kind served by this instance."""

    @property
    def scheme(self) -> str:
        """URI scheme for this backend (e.g. 'local', 's3')."""
        return self.kind.value

    # Primitive reads

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Return True if a file or directory exists at ``path``."""

    @abstractmethod
    def is_directory(self, path: str) -> bool:
        """Return True if ``path`` is a directory (or pseudo-directory)."""

    @abstractmethod
    def modification_time(self, path: str) -> int:
        """Modification time in nanoseconds since the epoch.

        Object-store directories report 0.
        """

    @abstractmethod
    def list_directory(self, path: str) -> Set[str]:
        """Names of the immediate children of ``path``, files and directories."""

    @abstractmethod
    def stream_file(self, path: str, fileobj: IO[bytes]) -> int:
        """Write the full content of ``path`` into ``fileobj``.

        Returns:
            Number of bytes written
        """

    # Derived reads (can be overridden for efficiency)

    def list_subdirectories(self, path: str) -> Set[str]:
        """Names of the immediate children of ``path`` that are directories.

        Costs one listing call plus one ``is_directory`` probe per child.
        """
        return {
            name
            for name in self.list_directory(path)
            if self.is_directory(join_path(path, name))
        }

    def list_files(self, path: str) -> Set[str]:
        """Names of the immediate children of ``path`` that are files."""
        return {
            name
            for name in self.list_directory(path)
            if not self.is_directory(join_path(path, name))
        }

    def read_binary_file(self, path: str) -> bytes:
        """Read file contents as bytes."""
        buffer = io.BytesIO()
        self.stream_file(path, buffer)
        return buffer.getvalue()

    def read_text_file(self, path: str, encoding: str = "utf-8") -> str:
        """Read file contents as text."""
        data = self.read_binary_file(path)
        try:
            return data.decode(encoding)
        except UnicodeDecodeError as exc:
            raise StorageError(
                f"failed to decode text file {path}", path=path, cause=exc
            ) from exc

    # Mutations, declined unless a backend overrides them

    def write_text_file(
        self, path: str, contents: str, encoding: str = "utf-8"
    ) -> StorageResult:
        """Write text to a file, replacing any existing content."""
        raise self._unsupported("Write text file", path)

    def write_binary_file(self, path: str, contents: bytes) -> StorageResult:
        """Write bytes to a file, replacing any existing content."""
        raise self._unsupported("Write binary file", path)

    def create_directory(self, path: str, recursive: bool = False) -> None:
        """Create a directory; with ``recursive`` also create missing parents."""
        raise self._unsupported("Make directory", path)

    def create_temporary_directory(self) -> str:
        """Create a new, uniquely named, empty directory and return its path."""
        raise self._unsupported("Make temporary directory")

    def delete_directory_recursive(self, path: str) -> None:
        """Delete a directory and everything below it."""
        raise self._unsupported("Delete directory", path)

    # Composite operations

    def localize_directory(self, path: str) -> "LocalizedDirectory":
        """Make the directory at ``path`` available on local disk.

        See ``repofs.lib.storage.localize.localize_directory``.
        """
        from repofs.lib.storage.localize import localize_directory

        return localize_directory(self, path)

    def effective_path(self, path: str) -> str:
        """Canonical form of ``path`` used when walking a directory tree."""
        return path

    # Lifecycle

    def check_client(self, path: str) -> None:
        """Verify the backend can serve ``path``; raise StorageError if not."""

    def close(self) -> None:
        """Release provider resources. Safe to call more than once."""
        self._closed = True

    def __enter__(self) -> "StorageBackend":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def _unsupported(
        self, operation: str, path: Optional[str] = None
    ) -> UnsupportedOperationError:
        name = file_system_type_string(self.kind)
        message = f"{operation} operation not yet implemented for {name}"
        if path:
            message += f": {path}"
        return UnsupportedOperationError(message, path=path)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.name})"
