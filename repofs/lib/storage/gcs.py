"""Google Cloud Storage backend."""

from __future__ import annotations

import logging
from typing import IO, Any, Iterable, Optional, Tuple

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import DefaultCredentialsError, GoogleAuthError
from google.cloud import storage

from repofs.lib.credentials import GCSCredential
from repofs.lib.errors import InvalidArgumentError, StorageError
from repofs.lib.storage.object_store import ObjectStorage, datetime_to_ns
from repofs.lib.storage_config import GCS_CREDENTIALS_ENV, get_optional_config_value
from repofs.lib.uri import FileSystemType

logger = logging.getLogger(__name__)

__all__ = ["GCSStorage"]


class GCSStorage(ObjectStorage):
    """Google Cloud Storage backend using google-cloud-storage.

    Example:
        >>> storage = GCSStorage("gs://my-bucket/models")
        >>> storage.list_directory("gs://my-bucket/models")
        {'resnet', 'bert'}

    Environment Variables:
        GOOGLE_APPLICATION_CREDENTIALS: Service account key file, used when
            no credential file entry applies

    Options:
        project: GCP project for the client (default: inferred)
        anon: If True, use an anonymous client (public buckets only)
    """

    sdk_errors = (GoogleAPIError, GoogleAuthError)

    def __init__(
        self,
        path: str = "",
        credential: Optional[GCSCredential] = None,
        **options: Any,
    ) -> None:
        super().__init__(**options)
        self._client = self._create_client(credential)

    def _create_client(self, credential: Optional[GCSCredential]) -> storage.Client:
        project = get_optional_config_value(self.options, "project", "GOOGLE_CLOUD_PROJECT")
        try:
            if self.options.get("anon"):
                return storage.Client.create_anonymous_client()
            if credential is not None and credential.key_file:
                logger.debug("Creating GCS client from key file %s", credential.key_file)
                return storage.Client.from_service_account_json(
                    credential.key_file, project=project
                )
            logger.debug("Creating GCS client from default credentials")
            return storage.Client(project=project)
        except (DefaultCredentialsError, GoogleAPIError, OSError, ValueError) as exc:
            raise StorageError(
                "Unable to create GCS client. Check account credentials.",
                cause=exc,
                suggestion=(
                    f"Set {GCS_CREDENTIALS_ENV} or add a 'gs' entry to the "
                    "credential file."
                ),
            ) from exc

    @property
    def kind(self) -> FileSystemType:
        return FileSystemType.GCS

    @property
    def client(self) -> storage.Client:
        return self._client

    def _parse_path(self, path: str) -> Tuple[str, str]:
        """Split gs://bucket/object into its parts."""
        body = path[len("gs://"):] if path.startswith("gs://") else path
        bucket, _, key = body.partition("/")
        if not bucket:
            raise InvalidArgumentError(f"No bucket name found in path: {path}", path=path)
        return bucket, key

    def _container_exists(self, bucket: str) -> bool:
        return self._client.lookup_bucket(bucket) is not None

    def _object_mtime_ns(self, bucket: str, key: str) -> Optional[int]:
        blob = self._client.bucket(bucket).get_blob(key)
        if blob is None:
            return None
        return datetime_to_ns(blob.updated) if blob.updated else 0

    def _list_keys(
        self, bucket: str, prefix: str, max_results: Optional[int] = None
    ) -> Iterable[str]:
        for blob in self._client.list_blobs(
            bucket, prefix=prefix or None, max_results=max_results
        ):
            yield blob.name

    def _read_object(self, bucket: str, key: str, fileobj: IO[bytes]) -> int:
        start = fileobj.tell()
        self._client.bucket(bucket).blob(key).download_to_file(fileobj)
        return fileobj.tell() - start

    def close(self) -> None:
        if not self._closed:
            self._client.close()
        super().close()
