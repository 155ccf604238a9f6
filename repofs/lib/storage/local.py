"""Local filesystem storage backend."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import IO, TYPE_CHECKING, Set

from repofs.lib.errors import StorageError
from repofs.lib.storage.base import StorageBackend, StorageResult
from repofs.lib.uri import FileSystemType

if TYPE_CHECKING:
    from repofs.lib.storage.localize import LocalizedDirectory

logger = logging.getLogger(__name__)

__all__ = ["LocalStorage"]

# Mode for directories created by make-directory and by localization
DIRECTORY_MODE = 0o700

_CHUNK_SIZE = 1024 * 1024


class LocalStorage(StorageBackend):
    """Local filesystem storage backend.

    Paths are used as given; relative paths resolve against the working
    directory of the process.

    Example:
        >>> storage = LocalStorage()
        >>> storage.is_directory("/opt/models")
        True
        >>> sorted(storage.list_directory("/opt/models"))
        ['resnet', 'bert']
    """

    @property
    def kind(self) -> FileSystemType:
        return FileSystemType.LOCAL

    def exists(self, path: str) -> bool:
        """Check if a path exists."""
        return os.path.exists(path)

    def is_directory(self, path: str) -> bool:
        try:
            return Path(path).is_dir()
        except OSError as exc:
            raise StorageError(
                f"failed to stat file {path}", path=path, cause=exc
            ) from exc

    def modification_time(self, path: str) -> int:
        try:
            return os.stat(path).st_mtime_ns
        except OSError as exc:
            raise StorageError(
                f"failed to stat file {path}", path=path, cause=exc
            ) from exc

    def list_directory(self, path: str) -> Set[str]:
        try:
            return set(os.listdir(path))
        except OSError as exc:
            raise StorageError(
                f"failed to open directory {path}", path=path, cause=exc
            ) from exc

    def stream_file(self, path: str, fileobj: IO[bytes]) -> int:
        try:
            src = open(path, "rb")
        except OSError as exc:
            raise StorageError(
                f"failed to open text file for read {path}", path=path, cause=exc
            ) from exc

        total = 0
        with src:
            while True:
                try:
                    chunk = src.read(_CHUNK_SIZE)
                except OSError as exc:
                    raise StorageError(
                        f"failed to read file {path}", path=path, cause=exc
                    ) from exc
                if not chunk:
                    break
                try:
                    fileobj.write(chunk)
                except OSError as exc:
                    raise StorageError(
                        f"failed to write contents of {path}: {exc.strerror}",
                        path=path,
                        cause=exc,
                    ) from exc
                total += len(chunk)
        return total

    def read_text_file(self, path: str, encoding: str = "utf-8") -> str:
        """Read file contents as text."""
        try:
            return Path(path).read_text(encoding=encoding)
        except OSError as exc:
            raise StorageError(
                f"failed to open text file for read {path}: {exc.strerror}",
                path=path,
                cause=exc,
            ) from exc
        except UnicodeDecodeError as exc:
            raise StorageError(
                f"failed to decode text file {path}", path=path, cause=exc
            ) from exc

    def write_text_file(
        self, path: str, contents: str, encoding: str = "utf-8"
    ) -> StorageResult:
        return self.write_binary_file(path, contents.encode(encoding))

    def write_binary_file(self, path: str, contents: bytes) -> StorageResult:
        """Write bytes to a file, truncating any existing content."""
        try:
            Path(path).write_bytes(contents)
        except OSError as exc:
            raise StorageError(
                f"failed to open file for write {path}: {exc.strerror}",
                path=path,
                cause=exc,
            ) from exc
        logger.debug("Wrote %d bytes to %s", len(contents), path)
        return StorageResult(success=True, path=path, bytes_written=len(contents))

    def create_directory(self, path: str, recursive: bool = False) -> None:
        """Create a directory with mode 0700.

        Args:
            path: Directory to create; it must not exist yet
            recursive: Also create missing parent directories
        """
        try:
            if recursive:
                parent = os.path.dirname(path.rstrip("/"))
                if parent and not os.path.isdir(parent):
                    os.makedirs(parent, mode=DIRECTORY_MODE)
            os.mkdir(path, DIRECTORY_MODE)
        except OSError as exc:
            raise StorageError(
                f"Failed to create directory {path}: {exc.strerror}",
                path=path,
                cause=exc,
            ) from exc

    def create_temporary_directory(self) -> str:
        try:
            return tempfile.mkdtemp(prefix="repofs_")
        except OSError as exc:
            raise StorageError(
                f"Failed to create local temp folder: {exc.strerror}", cause=exc
            ) from exc

    def delete_directory_recursive(self, path: str) -> None:
        """Delete a directory tree."""
        try:
            shutil.rmtree(path)
        except OSError as exc:
            raise StorageError(
                f"Failed to delete directory {path}: {exc.strerror}",
                path=path,
                cause=exc,
            ) from exc
        logger.debug("Deleted directory %s", path)

    def localize_directory(self, path: str) -> "LocalizedDirectory":
        """Local directories are used in place; nothing is copied."""
        from repofs.lib.storage.localize import LocalizedDirectory

        if not (self.exists(path) and self.is_directory(path)):
            raise StorageError(f"directory does not exist at {path}", path=path)
        return LocalizedDirectory(path)
