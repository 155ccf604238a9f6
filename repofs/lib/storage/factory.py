"""Backend resolution.

Turns a path into a ready-to-use storage backend: picks the backend from the
path's scheme, finds the credential that applies to it and validates the
resulting client.

Credential lookups use the process-wide cache. A lookup or validation that
fails against a cached table triggers one reload of the credential file and
one more attempt; a failure right after a fresh load is reported as is.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Dict, Tuple, Type

from repofs.lib.credentials import LoadStatus, get_credential_store
from repofs.lib.errors import StorageError, UnsupportedOperationError
from repofs.lib.storage.base import StorageBackend
from repofs.lib.storage.local import LocalStorage
from repofs.lib.uri import FileSystemType, file_system_type_string, parse_uri

logger = logging.getLogger(__name__)

__all__ = ["get_storage", "get_storage_for_type", "get_backend_class"]

# kind -> (module, class, distribution that provides the SDK)
_BACKENDS: Dict[FileSystemType, Tuple[str, str, str]] = {
    FileSystemType.GCS: ("repofs.lib.storage.gcs", "GCSStorage", "google-cloud-storage"),
    FileSystemType.S3: ("repofs.lib.storage.s3", "S3Storage", "boto3"),
    FileSystemType.AS: ("repofs.lib.storage.azure", "AzureBlobStorage", "azure-storage-blob"),
}

_MAX_ATTEMPTS = 2


def get_backend_class(kind: FileSystemType) -> Type[StorageBackend]:
    """Import and return the backend class for a cloud backend kind.

    Raises:
        UnsupportedOperationError: If the provider SDK is not installed.
    """
    module_name, class_name, package = _BACKENDS[kind]
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise UnsupportedOperationError(
            f"{file_system_type_string(kind)} filesystem not supported. "
            f"To enable, install {package}",
            cause=exc,
            suggestion=f"pip install {package}",
        ) from exc
    return getattr(module, class_name)


def get_storage(path: str, **options: Any) -> StorageBackend:
    """Get a storage backend for a path.

    Args:
        path: Local path or gs://, s3://, as:// URI
        **options: Backend options (e.g. endpoint_url, region)

    Returns:
        A validated backend; close it (or use it as a context manager) when
        done.

    Raises:
        InvalidArgumentError: If the path is empty or malformed
        CredentialNotFoundError: If no credential file entry matches
        UnsupportedOperationError: If the provider SDK is not installed
        StorageError: If the client cannot be created or validated

    Example:
        >>> with get_storage("s3://my-bucket/models") as storage:
        ...     storage.list_directory("s3://my-bucket/models")
        {'resnet'}
    """
    kind, stripped = parse_uri(path)
    if kind is FileSystemType.LOCAL:
        return LocalStorage(**options)
    return _resolve(kind, path, stripped, options)


def get_storage_for_type(kind: FileSystemType, **options: Any) -> StorageBackend:
    """Get a storage backend for a kind, without a specific path.

    With a credential file the default (empty-named) entry is used. Without
    one only LOCAL and GCS can be resolved; S3 and Azure need a path to pick
    their client configuration.
    """
    if kind is FileSystemType.LOCAL:
        return LocalStorage(**options)
    return _resolve(kind, "", "", options)


def _resolve(
    kind: FileSystemType,
    path: str,
    stripped: str,
    options: Dict[str, Any],
) -> StorageBackend:
    backend_class = get_backend_class(kind)
    store = get_credential_store()
    status = store.load()

    if status is LoadStatus.NOT_CONFIGURED:
        if not path and kind is not FileSystemType.GCS:
            raise UnsupportedOperationError(
                f"Can not create {file_system_type_string(kind)} filesystem "
                "from environment credentials without a path"
            )
        logger.debug("Using environment credentials for %s", path or kind.value)
        return _construct(backend_class, path, stripped, None, options)

    attempt = 1
    while True:
        try:
            credential = store.match(kind, stripped)
            return _construct(backend_class, path, stripped, credential, options)
        except StorageError as exc:
            if status is LoadStatus.LOADED or attempt >= _MAX_ATTEMPTS:
                raise
            logger.info(
                "Cached credentials failed for %s (%s); reloading credential file",
                path or kind.value,
                exc.message,
            )
            status = store.load(flush=True)
            attempt += 1


def _construct(
    backend_class: Type[StorageBackend],
    path: str,
    stripped: str,
    credential: Any,
    options: Dict[str, Any],
) -> StorageBackend:
    backend = backend_class(path, credential, **options)  # type: ignore[call-arg]
    if not stripped:
        return backend
    try:
        backend.check_client(path)
    except StorageError:
        backend.close()
        raise
    return backend
