"""Tests for repofs/lib/storage/s3.py using moto's in-process S3."""

import os
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

from repofs.lib.credentials import S3Credential
from repofs.lib.errors import InvalidArgumentError, StorageError, UnsupportedOperationError
from repofs.lib.storage import get_storage
from repofs.lib.storage import s3 as s3_module
from repofs.lib.storage.s3 import S3Storage, clean_s3_path, parse_s3_path

BUCKET = "models"


@pytest.fixture
def s3_bucket(aws_credentials):
    """Moto S3 with bucket 'models' holding repo/{config.pbtxt, a, b, c/d}."""
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=BUCKET)
        client.put_object(Bucket=BUCKET, Key="repo/config.pbtxt", Body=b"name: resnet")
        client.put_object(Bucket=BUCKET, Key="repo/a", Body=b"alpha")
        client.put_object(Bucket=BUCKET, Key="repo/b", Body=b"bravo")
        client.put_object(Bucket=BUCKET, Key="repo/c/d", Body=b"delta")
        yield client


class TestCleanPath:
    def test_collapses_slashes(self):
        assert clean_s3_path("s3:///bucket//models/") == "s3://bucket/models"

    def test_keeps_protocol(self):
        assert clean_s3_path("s3://http://localhost:9000//bucket/") == "s3://http://localhost:9000/bucket"

    def test_only_slashes(self):
        with pytest.raises(InvalidArgumentError, match="Invalid bucket name"):
            clean_s3_path("s3:///")

    def test_bare_scheme(self):
        with pytest.raises(InvalidArgumentError):
            clean_s3_path("s3://")


class TestParsePath:
    def test_bucket_and_key(self):
        assert parse_s3_path("s3://bucket/a/b") == ("bucket", "a/b", None)

    def test_bucket_only(self):
        assert parse_s3_path("s3://bucket/") == ("bucket", "", None)

    def test_https_endpoint(self):
        assert parse_s3_path("s3://https://minio.local:9000/bucket/a/b") == (
            "bucket",
            "a/b",
            "https://minio.local:9000",
        )

    def test_endpoint_defaults_to_http(self):
        assert parse_s3_path("s3://localhost:9000/bucket") == (
            "bucket",
            "",
            "http://localhost:9000",
        )


class TestS3StorageClient:
    def test_endpoint_from_path(self, aws_credentials):
        with S3Storage("s3://http://localhost:9000/bucket/key") as storage:
            assert storage.client.meta.endpoint_url == "http://localhost:9000"

    def test_endpoint_from_option(self, aws_credentials):
        with S3Storage("s3://bucket/key", endpoint_url="http://minio:9000") as storage:
            assert storage.client.meta.endpoint_url == "http://minio:9000"

    def test_region_from_credential(self):
        credential = S3Credential(secret_key="s", key_id="k", region="eu-west-1")
        with S3Storage("s3://bucket/key", credential) as storage:
            assert storage.client.meta.region_name == "eu-west-1"

    def test_effective_path(self, aws_credentials):
        with S3Storage("s3://bucket") as storage:
            assert storage.effective_path("s3://http://localhost:9000/bucket/a/b") == "s3://bucket/a/b"
            assert storage.effective_path("s3://bucket/a/b") == "s3://bucket/a/b"

    def test_shared_sdk_reference_counted(self, aws_credentials):
        before = s3_module._SDK.ref_count
        first = S3Storage("s3://bucket")
        second = S3Storage("s3://bucket")
        assert s3_module._SDK.ref_count == before + 2

        first.close()
        first.close()
        assert s3_module._SDK.ref_count == before + 1

        second.close()
        assert s3_module._SDK.ref_count == before


class TestS3StorageOperations:
    def test_list_directory(self, s3_bucket):
        with S3Storage("s3://models/repo") as storage:
            assert storage.list_directory("s3://models/repo") == {"config.pbtxt", "a", "b", "c"}
            assert storage.list_subdirectories("s3://models/repo") == {"c"}

    def test_is_directory(self, s3_bucket):
        with S3Storage("s3://models") as storage:
            assert storage.is_directory("s3://models") is True
            assert storage.is_directory("s3://models/repo/c") is True
            assert storage.is_directory("s3://models/repo/a") is False

    def test_missing_bucket(self, s3_bucket):
        with S3Storage("s3://models") as storage:
            with pytest.raises(StorageError, match="Could not get MetaData for bucket"):
                storage.is_directory("s3://missing-bucket/x")

    def test_exists(self, s3_bucket):
        with S3Storage("s3://models") as storage:
            assert storage.exists("s3://models/repo/a") is True
            assert storage.exists("s3://models/repo") is True
            assert storage.exists("s3://models/repo/zzz") is False

    def test_modification_time(self, s3_bucket):
        with S3Storage("s3://models") as storage:
            assert storage.modification_time("s3://models/repo/a") > 0
            assert storage.modification_time("s3://models/repo") == 0

    def test_read_text_file(self, s3_bucket):
        with S3Storage("s3://models") as storage:
            assert storage.read_text_file("s3://models/repo/config.pbtxt") == "name: resnet"

    def test_read_missing_file(self, s3_bucket):
        with S3Storage("s3://models") as storage:
            with pytest.raises(StorageError, match="File does not exist at s3://models/repo/zzz"):
                storage.read_text_file("s3://models/repo/zzz")

    def test_slashes_normalized(self, s3_bucket):
        with S3Storage("s3://models") as storage:
            assert storage.read_text_file("s3://models//repo//config.pbtxt") == "name: resnet"

    def test_writes_declined(self, s3_bucket):
        with S3Storage("s3://models") as storage:
            with pytest.raises(UnsupportedOperationError, match="for S3"):
                storage.write_text_file("s3://models/new.txt", "x")
            with pytest.raises(UnsupportedOperationError):
                storage.write_binary_file("s3://models/new.bin", b"x")
            with pytest.raises(UnsupportedOperationError):
                storage.delete_directory_recursive("s3://models/repo")

    def test_localize(self, s3_bucket):
        with S3Storage("s3://models/repo") as storage:
            with storage.localize_directory("s3://models/repo") as localized:
                root = Path(localized.path)
                assert (root / "config.pbtxt").read_bytes() == b"name: resnet"
                assert (root / "c" / "d").read_bytes() == b"delta"
                local_path = localized.path
        assert not os.path.exists(local_path)


class TestGetStorageS3:
    def test_environment_credentials(self, s3_bucket):
        with get_storage("s3://models/repo") as storage:
            assert isinstance(storage, S3Storage)
            assert storage.list_files("s3://models/repo") == {"config.pbtxt", "a", "b"}

    def test_file_credentials(self, s3_bucket, credential_file):
        credential_file(
            {"s3": {"": {"secret_key": "testing", "key_id": "testing", "region": "us-east-1"}}}
        )
        with get_storage("s3://models/repo") as storage:
            assert storage.exists("s3://models/repo/a")

    def test_validation_fails_for_missing_bucket(self, s3_bucket):
        with pytest.raises(StorageError, match="Unable to create S3 filesystem client"):
            get_storage("s3://missing-bucket/repo")
