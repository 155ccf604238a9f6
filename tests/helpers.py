"""Shared test helpers."""

from __future__ import annotations

import threading
from collections import Counter
from typing import IO, Dict, Iterable, Optional, Set, Tuple

from repofs.lib.errors import InvalidArgumentError
from repofs.lib.storage.object_store import ObjectStorage
from repofs.lib.uri import FileSystemType


class FakeSdkError(Exception):
    """Stands in for a provider SDK exception."""


class MemoryObjectStorage(ObjectStorage):
    """Object store over an in-memory {bucket: {key: bytes}} mapping.

    Paths use the gs:// scheme. Keys listed in ``failing_keys`` raise
    FakeSdkError when read, to exercise error translation.
    """

    sdk_errors = (FakeSdkError,)

    def __init__(
        self,
        buckets: Optional[Dict[str, Dict[str, bytes]]] = None,
        **options,
    ) -> None:
        super().__init__(**options)
        self.buckets: Dict[str, Dict[str, bytes]] = buckets if buckets is not None else {}
        self.mtimes: Dict[Tuple[str, str], int] = {}
        self.failing_keys: Set[str] = set()
        self.calls: Counter = Counter()
        self._lock = threading.Lock()

    @property
    def kind(self) -> FileSystemType:
        return FileSystemType.GCS

    def put(self, bucket: str, key: str, data: bytes, mtime_ns: int = 1) -> None:
        self.buckets.setdefault(bucket, {})[key] = data
        self.mtimes[(bucket, key)] = mtime_ns

    def _count(self, name: str) -> None:
        with self._lock:
            self.calls[name] += 1

    def _parse_path(self, path: str) -> Tuple[str, str]:
        body = path[len("gs://"):] if path.startswith("gs://") else path
        bucket, _, key = body.partition("/")
        if not bucket:
            raise InvalidArgumentError(f"No bucket name found in path: {path}")
        return bucket, key

    def _container_exists(self, bucket: str) -> bool:
        self._count("container_exists")
        return bucket in self.buckets

    def _object_mtime_ns(self, bucket: str, key: str) -> Optional[int]:
        self._count("object_mtime")
        if key not in self.buckets.get(bucket, {}):
            return None
        return self.mtimes.get((bucket, key), 1)

    def _list_keys(
        self, bucket: str, prefix: str, max_results: Optional[int] = None
    ) -> Iterable[str]:
        self._count("list_keys")
        keys = sorted(k for k in self.buckets.get(bucket, {}) if k.startswith(prefix))
        if max_results is not None:
            keys = keys[:max_results]
        return keys

    def _read_object(self, bucket: str, key: str, fileobj: IO[bytes]) -> int:
        self._count("read_object")
        if key in self.failing_keys:
            raise FakeSdkError(f"read of {key} failed")
        data = self.buckets[bucket][key]
        fileobj.write(data)
        return len(data)
