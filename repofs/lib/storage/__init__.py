"""Storage backend abstraction for repofs.

Provides one interface over the local filesystem, Google Cloud Storage,
AWS S3 (and S3-compatible endpoints) and Azure Blob Storage.

Usage:
    from repofs.lib.storage import get_storage

    # Local filesystem
    storage = get_storage("./models/")

    # Google Cloud Storage
    storage = get_storage("gs://my-bucket/models/")

    # AWS S3, or MinIO with the endpoint in the URI
    storage = get_storage("s3://my-bucket/models/")
    storage = get_storage("s3://http://localhost:9000/my-bucket/models/")

    # Azure Blob Storage
    storage = get_storage("as://account.blob.core.windows.net/container/models/")

The cloud backend modules are imported on first use, so only the SDKs of the
backends actually used need to be installed.
"""

from repofs.lib.storage.base import StorageBackend, StorageResult
from repofs.lib.storage.factory import get_backend_class, get_storage, get_storage_for_type
from repofs.lib.storage.local import LocalStorage
from repofs.lib.storage.localize import LocalizedDirectory, localize_directory
from repofs.lib.storage.object_store import ObjectStorage
from repofs.lib.uri import FileSystemType, classify, file_system_type_string, parse_uri

__all__ = [
    "FileSystemType",
    "LocalStorage",
    "LocalizedDirectory",
    "ObjectStorage",
    "StorageBackend",
    "StorageResult",
    "classify",
    "file_system_type_string",
    "get_backend_class",
    "get_storage",
    "get_storage_for_type",
    "localize_directory",
    "parse_uri",
]
