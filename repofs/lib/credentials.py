"""Prefix-matched cloud credentials loaded from a JSON file.

The credential file is named by the ``REPOFS_CLOUD_CREDENTIAL_PATH``
environment variable and holds one table per backend kind::

    {
        "gs": {"": "/keys/default.json", "bucket-a/models": "/keys/a.json"},
        "s3": {"": {"secret_key": "...", "key_id": "...",
                    "region": "us-east-1", "session_token": ""}},
        "as": {"": {"account_str": "acct", "account_key": "..."}}
    }

Entry names are prefixes of the scheme-stripped path; the longest matching
name wins and the empty name acts as the default. The parsed tables live in a
process-wide cache that is refreshed only on request.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Generic, List, TypeVar, Union

from repofs.lib.env import expand_json_values
from repofs.lib.errors import CredentialNotFoundError, StorageError
from repofs.lib.storage_config import CREDENTIAL_PATH_ENV
from repofs.lib.uri import FileSystemType

logger = logging.getLogger(__name__)

__all__ = [
    "AzureCredential",
    "CredentialEntry",
    "CredentialStore",
    "GCSCredential",
    "LoadStatus",
    "S3Credential",
    "get_credential_store",
    "match_credential",
    "sort_credentials",
]


@dataclass(frozen=True)
class GCSCredential:
    """Path of a service-account key file."""

    key_file: str


@dataclass(frozen=True)
class S3Credential:
    """Static AWS credentials for one prefix."""

    secret_key: str = ""
    key_id: str = ""
    region: str = ""
    session_token: str = ""


@dataclass(frozen=True)
class AzureCredential:
    """Shared-key credentials for an Azure storage account."""

    account_str: str = ""
    account_key: str = ""


Credential = Union[GCSCredential, S3Credential, AzureCredential]
C = TypeVar("C", GCSCredential, S3Credential, AzureCredential)


@dataclass(frozen=True)
class CredentialEntry(Generic[C]):
    """A (path prefix, credential) pair."""

    prefix: str
    credential: C


class LoadStatus(Enum):
    """Outcome of ``CredentialStore.load``."""

    LOADED = "loaded"
    ALREADY_CACHED = "already_cached"
    NOT_CONFIGURED = "not_configured"


def sort_credentials(entries: List[CredentialEntry[C]]) -> List[CredentialEntry[C]]:
    """Order entries by descending prefix length (stable for equal lengths)."""
    return sorted(entries, key=lambda entry: len(entry.prefix), reverse=True)


def match_credential(
    table: List[CredentialEntry[C]],
    path: str,
    scheme: str = "",
) -> C:
    """Return the credential with the longest prefix of ``path``.

    ``table`` must already be sorted by ``sort_credentials``.

    Raises:
        CredentialNotFoundError: If no entry's name is a prefix of ``path``.
    """
    for entry in table:
        if path.startswith(entry.prefix):
            logger.debug(
                "Using credential '%s' for path %s%s", entry.prefix, scheme, path
            )
            return entry.credential
    raise CredentialNotFoundError(
        f"Cannot match credential for path {scheme}{path}",
        path=f"{scheme}{path}",
    )


def _str_field(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key, "")
    return value if isinstance(value, str) else str(value)


def _parse_gcs(name: str, payload: Any) -> GCSCredential:
    if not isinstance(payload, str):
        raise StorageError(
            f"GCS credential '{name}' must be a key file path",
            details={"value_type": type(payload).__name__},
        )
    return GCSCredential(key_file=payload)


def _parse_s3(name: str, payload: Any) -> S3Credential:
    if not isinstance(payload, dict):
        raise StorageError(
            f"S3 credential '{name}' must be an object",
            details={"value_type": type(payload).__name__},
        )
    return S3Credential(
        secret_key=_str_field(payload, "secret_key"),
        key_id=_str_field(payload, "key_id"),
        region=_str_field(payload, "region"),
        session_token=_str_field(payload, "session_token"),
    )


def _parse_azure(name: str, payload: Any) -> AzureCredential:
    if not isinstance(payload, dict):
        raise StorageError(
            f"Azure credential '{name}' must be an object",
            details={"value_type": type(payload).__name__},
        )
    return AzureCredential(
        account_str=_str_field(payload, "account_str"),
        account_key=_str_field(payload, "account_key"),
    )


_PARSERS = {
    FileSystemType.GCS: _parse_gcs,
    FileSystemType.S3: _parse_s3,
    FileSystemType.AS: _parse_azure,
}


class CredentialStore:
    """Process-wide cache of credential tables.

    Every read and write of the cache happens under a single lock, so a
    refresh replaces all tables at once as seen by other threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cached = False
        self._tables: Dict[FileSystemType, List[CredentialEntry[Any]]] = {
            kind: [] for kind in _PARSERS
        }

    @property
    def is_cached(self) -> bool:
        with self._lock:
            return self._cached

    def load(self, flush: bool = False) -> LoadStatus:
        """Load the credential file into the cache.

        Args:
            flush: Re-read the file even if the cache is populated.

        Returns:
            LOADED after parsing the file, ALREADY_CACHED when the cache was
            populated and ``flush`` is False, NOT_CONFIGURED when
            REPOFS_CLOUD_CREDENTIAL_PATH is unset.

        Raises:
            StorageError: If the file cannot be read or is not valid JSON.
        """
        with self._lock:
            if self._cached and not flush:
                return LoadStatus.ALREADY_CACHED

            file_path = os.environ.get(CREDENTIAL_PATH_ENV)
            if not file_path:
                logger.debug("%s environment variable is not set", CREDENTIAL_PATH_ENV)
                return LoadStatus.NOT_CONFIGURED

            logger.debug("Reading cloud credential from %s", file_path)
            self._tables = self._parse_file(file_path)
            self._cached = True
            return LoadStatus.LOADED

    def match(self, kind: FileSystemType, path: str) -> Credential:
        """Find the credential for a scheme-stripped path.

        Raises:
            CredentialNotFoundError: If nothing matches.
        """
        with self._lock:
            table = self._tables.get(kind, [])
            return match_credential(table, path, scheme=f"{kind.value}://")

    def table(self, kind: FileSystemType) -> List[CredentialEntry[Any]]:
        """Snapshot of one backend's table, longest prefix first."""
        with self._lock:
            return list(self._tables.get(kind, []))

    def clear(self) -> None:
        """Forget everything; the next ``load`` reads the file again."""
        with self._lock:
            self._cached = False
            self._tables = {kind: [] for kind in _PARSERS}

    @staticmethod
    def _parse_file(
        file_path: Union[str, Path],
    ) -> Dict[FileSystemType, List[CredentialEntry[Any]]]:
        try:
            content = Path(file_path).read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(
                f"failed to open text file for read {file_path}: {exc.strerror}",
                path=str(file_path),
                cause=exc,
            ) from exc

        try:
            document = json.loads(content)
        except json.JSONDecodeError as exc:
            raise StorageError(
                f"failed to parse credential file {file_path}",
                path=str(file_path),
                details={"line": exc.lineno, "column": exc.colno},
                cause=exc,
            ) from exc

        if not isinstance(document, dict):
            raise StorageError(
                f"credential file {file_path} must contain a JSON object",
                path=str(file_path),
            )

        document = expand_json_values(document)
        tables: Dict[FileSystemType, List[CredentialEntry[Any]]] = {}
        for kind, parse in _PARSERS.items():
            section = document.get(kind.value) or {}
            if not isinstance(section, dict):
                raise StorageError(
                    f"credential section '{kind.value}' must be an object",
                    path=str(file_path),
                )
            entries = [
                CredentialEntry(prefix=name, credential=parse(name, payload))
                for name, payload in section.items()
            ]
            tables[kind] = sort_credentials(entries)
            logger.debug("Loaded %d %s credential(s)", len(entries), kind.value)
        return tables


_store = CredentialStore()


def get_credential_store() -> CredentialStore:
    """Return the process-wide credential store."""
    return _store
