"""AWS S3 (and S3-compatible) storage backend."""

from __future__ import annotations

import logging
import re
import threading
from typing import IO, Any, Dict, Iterable, Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from repofs.lib.credentials import S3Credential
from repofs.lib.errors import InvalidArgumentError, StorageError
from repofs.lib.storage.object_store import ObjectStorage, datetime_to_ns
from repofs.lib.storage.sdk import RefCountedSdk
from repofs.lib.storage_config import S3_ENV, get_config_value, get_optional_config_value
from repofs.lib.uri import FileSystemType

logger = logging.getLogger(__name__)

__all__ = ["S3Storage", "clean_s3_path", "parse_s3_path"]

# s3://[http://|https://]host:port/bucket[/object]
S3_ENDPOINT_PATTERN = re.compile(
    r"s3://(http://|https://|)([0-9a-zA-Z\-.]+):([0-9]+)/"
    r"([0-9a-z.\-]+)(((/[0-9a-zA-Z.\-_]+)*)?)"
)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}

# One boto3 session shared by every live S3Storage; loading the service
# models is the expensive part of creating a client.
_SDK: RefCountedSdk[boto3.session.Session] = RefCountedSdk("s3", boto3.session.Session)

# boto3 sessions are not thread-safe; clients created from them are.
_client_lock = threading.Lock()


def clean_s3_path(path: str) -> str:
    """Strip leading/trailing slashes and collapse repeated ones.

    The ``s3://`` and ``http(s)://`` prefixes are kept.

    Raises:
        InvalidArgumentError: If nothing but slashes remains.

    Example:
        >>> clean_s3_path("s3:///bucket//models/")
        's3://bucket/models'
    """
    prefix = ""
    body = path
    start = body.find("s3://")
    if start != -1:
        body = body[start + len("s3://"):]
        prefix = "s3://"

    for protocol in ("https://", "http://"):
        idx = body.find(protocol)
        if idx != -1:
            body = body[idx + len(protocol):]
            prefix += protocol
            break

    trimmed = body.strip("/")
    if not trimmed:
        raise InvalidArgumentError(f"Invalid bucket name: '{body}'", path=path)
    return prefix + re.sub(r"/{2,}", "/", trimmed)


def parse_s3_path(path: str) -> Tuple[str, str, Optional[str]]:
    """Split an S3 URI into (bucket, object key, endpoint url or None)."""
    clean = clean_s3_path(path)
    match = S3_ENDPOINT_PATTERN.fullmatch(clean)
    if match:
        protocol, host, port, bucket, key = match.group(1, 2, 3, 4, 5)
        endpoint = f"{protocol or 'http://'}{host}:{port}"
        return bucket, key[1:] if key.startswith("/") else key, endpoint

    body = clean[len("s3://"):] if clean.startswith("s3://") else clean
    bucket, _, key = body.partition("/")
    if not bucket:
        raise InvalidArgumentError(f"No bucket name found in path: {path}", path=path)
    return bucket, key, None


def _is_not_found(exc: ClientError) -> bool:
    code = str(exc.response.get("Error", {}).get("Code", ""))
    return code in _NOT_FOUND_CODES


class S3Storage(ObjectStorage):
    """S3 storage backend using boto3.

    Supports AWS S3, MinIO and any S3-compatible object storage. An endpoint
    embedded in the URI (``s3://http://localhost:9000/bucket/key``) takes
    precedence over the ``endpoint_url`` option.

    Example:
        >>> storage = S3Storage("s3://my-bucket/models")
        >>> storage.is_directory("s3://my-bucket/models/resnet")
        True

    Environment Variables:
        AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY: Static credentials
        AWS_SESSION_TOKEN: Session token for temporary credentials
        AWS_DEFAULT_REGION: AWS region
        AWS_PROFILE: Named profile, used when no static keys are set
        AWS_ENDPOINT_URL: Custom S3 endpoint

    Options:
        secret_key, key_id, session_token, region, profile, endpoint_url:
            Override the matching environment variable
    """

    sdk_errors = (BotoCoreError, ClientError)

    def __init__(
        self,
        path: str = "",
        credential: Optional[S3Credential] = None,
        **options: Any,
    ) -> None:
        super().__init__(**options)
        endpoint_url = parse_s3_path(path)[2] if path else None
        if endpoint_url is None:
            endpoint_url = get_optional_config_value(
                self.options, "endpoint_url", S3_ENV["endpoint_url"]
            )

        self._session = _SDK.acquire()
        try:
            self._client = self._create_client(credential, endpoint_url)
        except BaseException:
            _SDK.release()
            raise
        logger.debug("Created S3 client with endpoint: %s", endpoint_url or "default")

    def _client_kwargs(self, credential: Optional[S3Credential]) -> Dict[str, Any]:
        if credential is not None:
            values = {
                "secret_key": credential.secret_key,
                "key_id": credential.key_id,
                "region": credential.region,
                "session_token": credential.session_token,
            }
        else:
            values = {
                name: get_config_value(self.options, name, S3_ENV[name])
                for name in ("secret_key", "key_id", "region", "session_token")
            }

        kwargs: Dict[str, Any] = {}
        if values["secret_key"] and values["key_id"]:
            kwargs["aws_access_key_id"] = values["key_id"]
            kwargs["aws_secret_access_key"] = values["secret_key"]
            if values["session_token"]:
                kwargs["aws_session_token"] = values["session_token"]
        region = values["region"] or get_config_value(
            self.options, "region", S3_ENV["region"]
        )
        if region:
            kwargs["region_name"] = region
        return kwargs

    def _create_client(
        self, credential: Optional[S3Credential], endpoint_url: Optional[str]
    ) -> Any:
        kwargs = self._client_kwargs(credential)
        config = Config(s3={"addressing_style": "path"})
        profile = None
        if "aws_access_key_id" not in kwargs:
            profile = get_optional_config_value(self.options, "profile", S3_ENV["profile"])

        try:
            if profile:
                logger.debug("Using AWS profile %s", profile)
                session = boto3.session.Session(profile_name=profile)
                return session.client(
                    "s3", endpoint_url=endpoint_url, config=config, **kwargs
                )
            with _client_lock:
                return self._session.client(
                    "s3", endpoint_url=endpoint_url, config=config, **kwargs
                )
        except (BotoCoreError, ClientError, ValueError) as exc:
            raise StorageError(
                "Unable to create S3 filesystem client. Check account credentials.",
                cause=exc,
            ) from exc

    @property
    def kind(self) -> FileSystemType:
        return FileSystemType.S3

    @property
    def client(self) -> Any:
        return self._client

    def _parse_path(self, path: str) -> Tuple[str, str]:
        bucket, key, _ = parse_s3_path(path)
        return bucket, key

    def effective_path(self, path: str) -> str:
        """Drop an embedded endpoint: s3://host:port/bucket/key -> s3://bucket/key."""
        match = S3_ENDPOINT_PATTERN.fullmatch(clean_s3_path(path))
        if match:
            return f"s3://{match.group(4)}{match.group(5)}"
        return path

    def _container_exists(self, bucket: str) -> bool:
        try:
            self._client.head_bucket(Bucket=bucket)
        except ClientError as exc:
            if _is_not_found(exc):
                return False
            raise
        return True

    def _object_mtime_ns(self, bucket: str, key: str) -> Optional[int]:
        try:
            response = self._client.head_object(Bucket=bucket, Key=key)
        except ClientError as exc:
            if _is_not_found(exc):
                return None
            raise
        return datetime_to_ns(response["LastModified"])

    def _list_keys(
        self, bucket: str, prefix: str, max_results: Optional[int] = None
    ) -> Iterable[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        pagination: Dict[str, Any] = {}
        if max_results is not None:
            pagination["MaxItems"] = max_results
        for page in paginator.paginate(
            Bucket=bucket, Prefix=prefix, PaginationConfig=pagination
        ):
            for obj in page.get("Contents", []):
                yield obj["Key"]

    def _read_object(self, bucket: str, key: str, fileobj: IO[bytes]) -> int:
        response = self._client.get_object(Bucket=bucket, Key=key)
        total = 0
        for chunk in response["Body"].iter_chunks():
            fileobj.write(chunk)
            total += len(chunk)
        return total

    def check_client(self, path: str) -> None:
        """Probe the bucket named by ``path``."""
        try:
            self.is_directory(path)
        except StorageError as exc:
            raise StorageError(
                "Unable to create S3 filesystem client. Check account credentials.",
                path=path,
                cause=exc,
            ) from exc

    def close(self) -> None:
        if not self._closed:
            self._client.close()
            _SDK.release()
        super().close()
