"""Internal helpers for manipulating '/'-separated paths and URIs.

These work on plain strings so the same helpers apply to local paths and to
cloud URIs such as ``s3://bucket/key``.
"""

from __future__ import annotations

__all__ = [
    "append_slash",
    "base_name",
    "dir_name",
    "is_absolute_path",
    "join_path",
]


def is_absolute_path(path: str) -> bool:
    """Return True if ``path`` starts at the filesystem root."""
    return bool(path) and path[0] == "/"


def join_path(*segments: str) -> str:
    """Join path segments with exactly one '/' between each pair.

    An absolute segment is appended to the path built so far rather than
    replacing it, so ``join_path("/tmp/x", "/a/b")`` is ``"/tmp/x/a/b"``.

    Example:
        >>> join_path("s3://bucket/models", "resnet", "config.pbtxt")
        's3://bucket/models/resnet/config.pbtxt'
    """
    joined = ""
    for seg in segments:
        if not joined:
            joined = seg
        elif is_absolute_path(seg):
            if joined.endswith("/"):
                joined += seg[1:]
            else:
                joined += seg
        else:
            if not joined.endswith("/"):
                joined += "/"
            joined += seg
    return joined


def base_name(path: str) -> str:
    """Return the last component of ``path``, ignoring trailing slashes."""
    if not path:
        return path

    last = len(path) - 1
    while last > 0 and path[last] == "/":
        last -= 1

    if path[last] == "/":
        return ""

    idx = path.rfind("/", 0, last + 1)
    return path[idx + 1:last + 1]


def dir_name(path: str) -> str:
    """Return everything before the last component of ``path``."""
    if not path:
        return path

    last = len(path) - 1
    while last > 0 and path[last] == "/":
        last -= 1

    if path[last] == "/":
        return "/"

    idx = path.rfind("/", 0, last + 1)
    if idx == -1:
        return "."
    if idx == 0:
        return "/"
    return path[:idx]


def append_slash(name: str) -> str:
    """Append a trailing '/' unless ``name`` is empty or already has one."""
    if not name or name.endswith("/"):
        return name
    return name + "/"
