"""Tests for repofs/lib/filesystem.py - path-level helpers."""

import os

import pytest

from repofs.lib import filesystem
from repofs.lib.errors import InvalidArgumentError, StorageError, UnsupportedOperationError
from repofs.lib.storage import FileSystemType


@pytest.fixture
def repo(tmp_path):
    (tmp_path / "resnet" / "1").mkdir(parents=True)
    (tmp_path / "resnet" / "config.json").write_text('{"name": "resnet", "max_batch_size": 8}')
    (tmp_path / "resnet" / ".DS_Store").write_text("")
    return tmp_path


@pytest.fixture
def remote(monkeypatch, memory_store):
    """Route every facade call to the in-memory object store."""
    monkeypatch.setattr(filesystem, "get_storage", lambda path: memory_store)
    return memory_store


class TestLocalPaths:
    def test_file_exists(self, repo):
        assert filesystem.file_exists(str(repo / "resnet" / "config.json")) is True
        assert filesystem.file_exists(str(repo / "missing")) is False

    def test_is_directory(self, repo):
        assert filesystem.is_directory(str(repo / "resnet")) is True

    def test_file_modification_time(self, repo):
        path = repo / "resnet" / "config.json"
        assert filesystem.file_modification_time(str(path)) == os.stat(path).st_mtime_ns

    def test_directory_listings(self, repo):
        path = str(repo / "resnet")
        assert filesystem.get_directory_contents(path) == {"1", "config.json", ".DS_Store"}
        assert filesystem.get_directory_subdirs(path) == {"1"}
        assert filesystem.get_directory_files(path) == {"config.json", ".DS_Store"}

    def test_skip_hidden_files(self, repo):
        files = filesystem.get_directory_files(str(repo / "resnet"), skip_hidden_files=True)
        assert files == {"config.json"}

    def test_read_json_file(self, repo):
        config = filesystem.read_json_file(str(repo / "resnet" / "config.json"))
        assert config == {"name": "resnet", "max_batch_size": 8}

    def test_read_invalid_json(self, repo):
        path = repo / "bad.json"
        path.write_text("{not json")
        with pytest.raises(StorageError, match="failed to read JSON file"):
            filesystem.read_json_file(str(path))

    def test_read_json_not_utf8(self, repo):
        path = repo / "latin1.json"
        path.write_bytes(b'{"name": "\xe9"}')
        with pytest.raises(StorageError, match="failed to decode text file"):
            filesystem.read_json_file(str(path))

    def test_write_and_read_text(self, tmp_path):
        path = str(tmp_path / "labels.txt")
        result = filesystem.write_text_file(path, "cat\n")
        assert result.bytes_written == 4
        assert filesystem.read_text_file(path) == "cat\n"

    def test_write_binary(self, tmp_path):
        path = tmp_path / "weights.bin"
        filesystem.write_binary_file(str(path), b"\x00\xff")
        assert path.read_bytes() == b"\x00\xff"

    def test_make_and_delete_directory(self, tmp_path):
        path = tmp_path / "a" / "b"
        filesystem.make_directory(str(path), recursive=True)
        assert path.is_dir()
        filesystem.delete_directory(str(tmp_path / "a"))
        assert not (tmp_path / "a").exists()

    def test_make_temporary_directory(self):
        path = filesystem.make_temporary_directory()
        try:
            assert os.path.isdir(path)
        finally:
            filesystem.delete_directory(path)

    def test_make_temporary_directory_gcs_declined(self, monkeypatch):
        from repofs.lib.storage import factory
        from tests.helpers import MemoryObjectStorage

        monkeypatch.setattr(
            factory, "get_backend_class", lambda kind: lambda path, credential: MemoryObjectStorage()
        )
        with pytest.raises(UnsupportedOperationError):
            filesystem.make_temporary_directory(FileSystemType.GCS)

    def test_localize_local_directory(self, repo):
        with filesystem.localize_directory(str(repo / "resnet")) as localized:
            assert localized.path == str(repo / "resnet")
        assert (repo / "resnet" / "config.json").exists()

    def test_empty_path(self):
        with pytest.raises(InvalidArgumentError):
            filesystem.file_exists("")


class TestRemotePaths:
    def test_listing(self, remote):
        assert filesystem.get_directory_subdirs("gs://models/repo") == {"c"}
        assert filesystem.get_directory_files("gs://models/repo") == {"config.txt", "a", "b"}

    def test_read_text_file(self, remote):
        assert filesystem.read_text_file("gs://models/repo/config.txt") == "name: resnet\n"

    def test_localize(self, remote):
        localized = filesystem.localize_directory("gs://models/repo")
        try:
            with open(os.path.join(localized.path, "c", "d"), "rb") as fh:
                assert fh.read() == b"delta"
        finally:
            localized.close()

    def test_write_declined(self, remote):
        with pytest.raises(UnsupportedOperationError):
            filesystem.write_text_file("gs://models/repo/new.txt", "x")

    def test_delete_declined(self, remote):
        with pytest.raises(UnsupportedOperationError):
            filesystem.delete_directory("gs://models/repo")
