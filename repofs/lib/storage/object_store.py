"""Pseudo-directory semantics shared by the object-store backends.

Object stores have no directories, only keys. A directory is inferred from
'/'-delimited key prefixes: ``models/resnet/`` is a directory if any key
starts with it. Subclasses supply a handful of SDK primitives and inherit
every filesystem operation built on top of them.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import IO, Iterable, Iterator, Optional, Set, Tuple, Type

from repofs.lib._path_utils import append_slash
from repofs.lib.errors import StorageError
from repofs.lib.storage.base import StorageBackend

logger = logging.getLogger(__name__)

__all__ = ["ObjectStorage", "datetime_to_ns"]


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def datetime_to_ns(value: datetime) -> int:
    """Convert an aware datetime to integer nanoseconds since the epoch."""
    return (value - _EPOCH) // timedelta(microseconds=1) * 1000


class ObjectStorage(StorageBackend):
    """Base class for bucket/key storage backends.

    Subclasses implement:
        _parse_path: split a URI into (bucket, object key)
        _container_exists: bucket/container metadata lookup
        _object_mtime_ns: object metadata lookup
        _list_keys: prefix listing
        _read_object: streaming GET

    SDK exceptions listed in ``sdk_errors`` are translated to StorageError
    by ``_sdk_call``.
    """

    sdk_errors: Tuple[Type[BaseException], ...] = ()

    # SDK primitives

    @abstractmethod
    def _parse_path(self, path: str) -> Tuple[str, str]:
        """Split ``path`` into (bucket, object key)."""

    @abstractmethod
    def _container_exists(self, bucket: str) -> bool:
        """Return True if the bucket or container exists."""

    @abstractmethod
    def _object_mtime_ns(self, bucket: str, key: str) -> Optional[int]:
        """Modification time of an object, or None if there is no such object."""

    @abstractmethod
    def _list_keys(
        self, bucket: str, prefix: str, max_results: Optional[int] = None
    ) -> Iterable[str]:
        """Keys in ``bucket`` that start with ``prefix``."""

    @abstractmethod
    def _read_object(self, bucket: str, key: str, fileobj: IO[bytes]) -> int:
        """Stream an object into ``fileobj``; return the byte count."""

    @contextmanager
    def _sdk_call(self, operation: str, path: str) -> Iterator[None]:
        try:
            yield
        except self.sdk_errors as exc:
            raise StorageError(
                f"Failed to {operation} {path}: {exc}",
                path=path,
                cause=exc,
            ) from exc

    # Filesystem operations

    def exists(self, path: str) -> bool:
        bucket, key = self._parse_path(path)
        if key:
            with self._sdk_call("get metadata for", path):
                if self._object_mtime_ns(bucket, key) is not None:
                    return True
        return self.is_directory(path)

    def is_directory(self, path: str) -> bool:
        """True if the path is a bucket root or a non-empty key prefix.

        Raises:
            StorageError: If the bucket does not exist.
        """
        bucket, key = self._parse_path(path)
        with self._sdk_call("get metadata for", path):
            if not self._container_exists(bucket):
                raise StorageError(
                    f"Could not get MetaData for bucket with name {bucket}",
                    path=path,
                    details={"bucket": bucket},
                )

            # Root of the bucket
            if not key:
                return True

            prefix = append_slash(key)
            for _ in self._list_keys(bucket, prefix, max_results=1):
                return True
        return False

    def modification_time(self, path: str) -> int:
        """Object modification time in ns; pseudo-directories report 0."""
        bucket, key = self._parse_path(path)
        if not key or self.is_directory(path):
            return 0
        with self._sdk_call("get metadata for", path):
            mtime = self._object_mtime_ns(bucket, key)
        if mtime is None:
            raise StorageError(f"Failed to get metadata for {path}", path=path)
        return mtime

    def list_directory(self, path: str) -> Set[str]:
        bucket, key = self._parse_path(path)
        prefix = append_slash(key)

        names: Set[str] = set()
        with self._sdk_call("list contents of", path):
            for name in self._list_keys(bucket, prefix):
                # Marker object for the directory itself
                if name == prefix:
                    continue
                child = name[len(prefix):].split("/", 1)[0]
                if child:
                    names.add(child)
        logger.debug("Listed %d entries under %s", len(names), path)
        return names

    def stream_file(self, path: str, fileobj: IO[bytes]) -> int:
        bucket, key = self._parse_path(path)
        with self._sdk_call("download", path):
            return self._read_object(bucket, key, fileobj)

    def read_binary_file(self, path: str) -> bytes:
        bucket, key = self._parse_path(path)
        with self._sdk_call("get metadata for", path):
            found = bool(key) and self._object_mtime_ns(bucket, key) is not None
        if not found:
            raise StorageError(f"File does not exist at {path}", path=path)
        return super().read_binary_file(path)
