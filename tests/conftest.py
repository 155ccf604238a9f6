"""Pytest configuration and fixtures."""

import pytest

from repofs.lib.credentials import get_credential_store
from tests.helpers import MemoryObjectStorage

# Provider variables that would otherwise leak from the developer's shell
_CLOUD_ENV_VARS = (
    "REPOFS_CLOUD_CREDENTIAL_PATH",
    "GOOGLE_APPLICATION_CREDENTIALS",
    "GOOGLE_CLOUD_PROJECT",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SESSION_TOKEN",
    "AWS_DEFAULT_REGION",
    "AWS_PROFILE",
    "AWS_ENDPOINT_URL",
    "AZURE_STORAGE_ACCOUNT",
    "AZURE_STORAGE_KEY",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Start every test with no cloud configuration and an empty credential cache."""
    for name in _CLOUD_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    store = get_credential_store()
    store.clear()
    yield
    store.clear()


@pytest.fixture
def aws_credentials(monkeypatch):
    """Static AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def memory_store():
    """In-memory object store holding bucket 'models' with a small tree.

    models/
        repo/config.txt
        repo/a
        repo/b
        repo/c/d
    """
    store = MemoryObjectStorage()
    store.put("models", "repo/config.txt", b"name: resnet\n", mtime_ns=1_700_000_000_000_000_000)
    store.put("models", "repo/a", b"alpha")
    store.put("models", "repo/b", b"bravo")
    store.put("models", "repo/c/d", b"delta")
    return store


@pytest.fixture
def credential_file(tmp_path, monkeypatch):
    """Write a credential document and point REPOFS_CLOUD_CREDENTIAL_PATH at it."""
    import json

    path = tmp_path / "credentials.json"

    def write(document):
        path.write_text(json.dumps(document), encoding="utf-8")
        monkeypatch.setenv("REPOFS_CLOUD_CREDENTIAL_PATH", str(path))
        return path

    return write
