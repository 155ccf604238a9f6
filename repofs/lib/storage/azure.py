"""Azure Blob Storage backend."""

from __future__ import annotations

import logging
import re
from typing import IO, Any, Iterable, Optional, Tuple

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient

from repofs.lib.credentials import AzureCredential
from repofs.lib.errors import InvalidArgumentError, StorageError
from repofs.lib.storage.base import StorageResult
from repofs.lib.storage.object_store import ObjectStorage, datetime_to_ns
from repofs.lib.storage_config import AZURE_ENV, get_config_value
from repofs.lib.uri import FileSystemType

logger = logging.getLogger(__name__)

__all__ = ["AzureBlobStorage", "parse_azure_path"]

# as://<account>.blob.core.windows.net/<container>[/<blob path>][?query]
AZURE_PATH_PATTERN = re.compile(r"as://([^/]+)/([^/?]+)(?:/([^?]*))?(\?.*)?")

AZURE_HOST_SUFFIX = ".blob.core.windows.net"


def parse_azure_path(path: str) -> Tuple[str, str, str]:
    """Split an Azure URI into (host, container, blob path).

    Raises:
        InvalidArgumentError: If ``path`` is not an as:// blob URI.
    """
    match = AZURE_PATH_PATTERN.fullmatch(path)
    if not match:
        raise InvalidArgumentError(f"Invalid azure storage path: {path}", path=path)
    host, container, blob_path, _ = match.groups()
    return host, container, blob_path or ""


def account_from_host(host: str) -> str:
    """Storage account name for a blob host ('acct.blob.core.windows.net' -> 'acct')."""
    pos = host.rfind(AZURE_HOST_SUFFIX)
    return host[:pos] if pos != -1 else host


class AzureBlobStorage(ObjectStorage):
    """Azure Blob Storage backend using azure-storage-blob.

    Text writes are supported; binary writes and directory operations are
    not.

    Example:
        >>> storage = AzureBlobStorage("as://acct.blob.core.windows.net/models")
        >>> storage.list_directory("as://acct.blob.core.windows.net/models/resnet")
        {'1', 'config.pbtxt'}

    Environment Variables:
        AZURE_STORAGE_ACCOUNT: Account name (overrides the one in the URI)
        AZURE_STORAGE_KEY: Shared key; anonymous access when unset

    Options:
        account_str: Account name
        account_key: Shared key
        account_url: Full account URL (e.g. an Azurite emulator endpoint)
    """

    sdk_errors = (AzureError,)

    def __init__(
        self,
        path: str = "",
        credential: Optional[AzureCredential] = None,
        **options: Any,
    ) -> None:
        super().__init__(**options)
        if credential is not None:
            account_str, account_key = credential.account_str, credential.account_key
        else:
            account_str = get_config_value(options, "account_str", AZURE_ENV["account_str"])
            account_key = get_config_value(options, "account_key", AZURE_ENV["account_key"])

        account_name = account_str
        if not account_name and path:
            match = AZURE_PATH_PATTERN.fullmatch(path)
            if match:
                account_name = account_from_host(match.group(1))

        self.account_name = account_name
        self._client: Optional[BlobServiceClient] = None
        if account_name:
            account_url = options.get("account_url") or f"https://{account_name}{AZURE_HOST_SUFFIX}"
            logger.debug(
                "Creating Azure client for %s (%s)",
                account_url,
                "shared key" if account_key else "anonymous",
            )
            self._client = BlobServiceClient(
                account_url=account_url, credential=account_key or None
            )

    @property
    def kind(self) -> FileSystemType:
        return FileSystemType.AS

    @property
    def client(self) -> BlobServiceClient:
        if self._client is None:
            raise StorageError(
                "Unable to create Azure filesystem client. Check account credentials."
            )
        return self._client

    def check_client(self, path: str) -> None:
        if self._client is None:
            raise StorageError(
                "Unable to create Azure filesystem client. Check account credentials.",
                path=path,
                suggestion="Set AZURE_STORAGE_ACCOUNT or use an "
                "as://<account>.blob.core.windows.net/<container> path.",
            )

    def _parse_path(self, path: str) -> Tuple[str, str]:
        _, container, blob_path = parse_azure_path(path)
        return container, blob_path

    def _container_exists(self, bucket: str) -> bool:
        return self.client.get_container_client(bucket).exists()

    def _object_mtime_ns(self, bucket: str, key: str) -> Optional[int]:
        blob = self.client.get_blob_client(bucket, key)
        try:
            properties = blob.get_blob_properties()
        except ResourceNotFoundError:
            return None
        return datetime_to_ns(properties.last_modified)

    def _list_keys(
        self, bucket: str, prefix: str, max_results: Optional[int] = None
    ) -> Iterable[str]:
        container = self.client.get_container_client(bucket)
        blobs = container.list_blobs(
            name_starts_with=prefix or None, results_per_page=max_results
        )
        for count, blob in enumerate(blobs, start=1):
            yield blob.name
            if max_results is not None and count >= max_results:
                return

    def _read_object(self, bucket: str, key: str, fileobj: IO[bytes]) -> int:
        downloader = self.client.get_blob_client(bucket, key).download_blob()
        return downloader.readinto(fileobj)

    def write_text_file(
        self, path: str, contents: str, encoding: str = "utf-8"
    ) -> StorageResult:
        """Upload ``contents`` as a block blob, replacing any existing blob."""
        container, blob_path = self._parse_path(path)
        data = contents.encode(encoding)
        with self._sdk_call("upload", path):
            self.client.get_blob_client(container, blob_path).upload_blob(
                data, overwrite=True
            )
        logger.debug("Uploaded %d bytes to %s", len(data), path)
        return StorageResult(success=True, path=path, bytes_written=len(data))

    def close(self) -> None:
        if not self._closed and self._client is not None:
            self._client.close()
        super().close()
