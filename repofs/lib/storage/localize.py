"""Directory localization.

Copies a directory tree from any backend onto local disk so callers can use
ordinary file APIs on it. Local sources are used in place.

Example:
    >>> with get_storage("s3://models/resnet") as storage:
    ...     with storage.localize_directory("s3://models/resnet") as localized:
    ...         load_model(localized.path)
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, List, Optional

from repofs.lib._path_utils import join_path
from repofs.lib.errors import StorageError
from repofs.lib.storage.base import StorageBackend
from repofs.lib.storage.local import LocalStorage
from repofs.lib.uri import FileSystemType

logger = logging.getLogger(__name__)

__all__ = ["LocalizedDirectory", "localize_directory"]


def _remove_tree(local_path: str) -> None:
    try:
        LocalStorage().delete_directory_recursive(local_path)
    except StorageError as exc:
        logger.error("Failed to clean up localized directory %s: %s", local_path, exc)


class LocalizedDirectory:
    """A directory available on local disk.

    When the source was remote, ``local_path`` is a temporary copy owned by
    this object and deleted on ``close()`` (or when the object is garbage
    collected, whichever comes first). When the source was local,
    ``local_path`` is None and ``close()`` leaves the source untouched.
    """

    def __init__(self, original_path: str, local_path: Optional[str] = None):
        self.original_path = original_path
        self.local_path = local_path
        self._finalizer: Optional[weakref.finalize] = None
        if local_path:
            self._finalizer = weakref.finalize(self, _remove_tree, local_path)

    @property
    def path(self) -> str:
        """Local path to read the directory from."""
        return self.local_path or self.original_path

    @property
    def is_temporary(self) -> bool:
        return self.local_path is not None

    @property
    def closed(self) -> bool:
        return self._finalizer is None or not self._finalizer.alive

    def close(self) -> None:
        """Delete the temporary copy, if any. Runs the deletion at most once."""
        if self._finalizer is not None:
            self._finalizer()

    def detach(self) -> str:
        """Give up ownership of the copy; it is no longer deleted on close."""
        if self._finalizer is not None:
            self._finalizer.detach()
        return self.path

    def __enter__(self) -> "LocalizedDirectory":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def __fspath__(self) -> str:
        return self.path

    def __repr__(self) -> str:
        return (
            f"LocalizedDirectory(original_path={self.original_path!r}, "
            f"local_path={self.local_path!r})"
        )


def localize_directory(backend: StorageBackend, path: str) -> LocalizedDirectory:
    """Mirror the directory at ``path`` into a new local temporary directory.

    Args:
        backend: Backend serving ``path``
        path: Directory to localize

    Returns:
        LocalizedDirectory owning the local copy

    Raises:
        StorageError: If ``path`` is not an existing directory, or if any
            step of the copy fails. In the latter case the partial copy is
            left on disk and its location is in ``details["local_path"]``.
    """
    if not (backend.exists(path) and backend.is_directory(path)):
        raise StorageError(f"directory does not exist at {path}", path=path)

    if backend.kind is FileSystemType.LOCAL:
        return LocalizedDirectory(path)

    source = backend.effective_path(path)
    local_fs = LocalStorage()
    tmp_folder = local_fs.create_temporary_directory()
    logger.debug("Localizing %s into %s", path, tmp_folder)

    try:
        file_count = _copy_tree(backend, source, tmp_folder, local_fs)
    except StorageError as exc:
        logger.error("Failed to localize %s: %s", path, exc.message)
        raise StorageError(
            f"Failed to localize {path}: {exc.message}",
            path=path,
            details={"local_path": tmp_folder},
            cause=exc,
        ) from exc

    logger.info("Localized %s into %s (%d files)", path, tmp_folder, file_count)
    return LocalizedDirectory(path, tmp_folder)


def _copy_tree(
    backend: StorageBackend,
    source: str,
    tmp_folder: str,
    local_fs: LocalStorage,
) -> int:
    """Breadth-first copy of ``source`` into ``tmp_folder``; returns file count."""
    file_count = 0
    pending: List[str] = [
        join_path(source, name) for name in sorted(backend.list_directory(source))
    ]

    while pending:
        current, pending = pending, []
        for remote_path in current:
            local_path = join_path(tmp_folder, remote_path[len(source):])

            if backend.is_directory(remote_path):
                local_fs.create_directory(local_path)
                pending.extend(
                    join_path(remote_path, name)
                    for name in sorted(backend.list_directory(remote_path))
                )
                continue

            try:
                with open(local_path, "wb") as fh:
                    backend.stream_file(remote_path, fh)
            except OSError as exc:
                raise StorageError(
                    f"Failed to open local file {local_path}: {exc.strerror}",
                    path=local_path,
                    cause=exc,
                ) from exc
            file_count += 1

    return file_count
