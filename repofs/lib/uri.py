"""Storage URI classification.

Maps a path to the backend that serves it by looking at its scheme prefix.
Classification is pure string inspection; no I/O happens here.
"""

from __future__ import annotations

from enum import Enum
from typing import Tuple

from repofs.lib.errors import InvalidArgumentError

__all__ = [
    "FileSystemType",
    "SCHEME_PREFIXES",
    "classify",
    "file_system_type_string",
    "parse_uri",
]


class FileSystemType(Enum):
    """Backend kinds, one per supported storage provider."""

    LOCAL = "local"
    GCS = "gs"
    S3 = "s3"
    AS = "as"


# Checked in this order; anything else is a local path.
SCHEME_PREFIXES: Tuple[Tuple[str, FileSystemType], ...] = (
    ("gs://", FileSystemType.GCS),
    ("s3://", FileSystemType.S3),
    ("as://", FileSystemType.AS),
)

_TYPE_STRINGS = {
    FileSystemType.LOCAL: "LOCAL",
    FileSystemType.GCS: "GCS",
    FileSystemType.S3: "S3",
    FileSystemType.AS: "AS",
}


def classify(path: str) -> FileSystemType:
    """Return the backend kind for a path.

    Raises:
        InvalidArgumentError: If ``path`` is empty.

    Examples:
        >>> classify("gs://bucket/models")
        <FileSystemType.GCS: 'gs'>
        >>> classify("/opt/models")
        <FileSystemType.LOCAL: 'local'>
    """
    if not path:
        raise InvalidArgumentError("Can not infer filesystem type from empty path")

    for prefix, kind in SCHEME_PREFIXES:
        if path.startswith(prefix):
            return kind
    return FileSystemType.LOCAL


def parse_uri(path: str) -> Tuple[FileSystemType, str]:
    """Split a path into its backend kind and the path with the scheme removed.

    Examples:
        >>> parse_uri("s3://my-bucket/models/")
        (<FileSystemType.S3: 's3'>, 'my-bucket/models/')
        >>> parse_uri("./models")
        (<FileSystemType.LOCAL: 'local'>, './models')
    """
    kind = classify(path)
    if kind is FileSystemType.LOCAL:
        return kind, path
    return kind, path[len(kind.value) + 3:]


def file_system_type_string(kind: FileSystemType) -> str:
    """Human-readable name of a backend kind."""
    return _TYPE_STRINGS.get(kind, "UNKNOWN")
