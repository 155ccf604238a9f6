"""Tests for repofs/lib/_path_utils.py."""

from repofs.lib._path_utils import (
    append_slash,
    base_name,
    dir_name,
    is_absolute_path,
    join_path,
)


class TestJoinPath:
    def test_simple(self):
        assert join_path("a", "b", "c") == "a/b/c"

    def test_no_double_slash(self):
        assert join_path("a/", "b") == "a/b"

    def test_absolute_segment_is_appended(self):
        """An absolute segment does not reset the path."""
        assert join_path("/tmp/x", "/a/b") == "/tmp/x/a/b"
        assert join_path("/tmp/x/", "/a") == "/tmp/x/a"

    def test_uri(self):
        assert join_path("s3://bucket/models", "resnet") == "s3://bucket/models/resnet"

    def test_single_segment(self):
        assert join_path("only") == "only"


class TestBaseName:
    def test_file(self):
        assert base_name("/a/b/c.txt") == "c.txt"

    def test_trailing_slash(self):
        assert base_name("/a/b/") == "b"

    def test_root(self):
        assert base_name("/") == ""

    def test_no_slash(self):
        assert base_name("name") == "name"

    def test_empty(self):
        assert base_name("") == ""


class TestDirName:
    def test_nested(self):
        assert dir_name("/a/b/c") == "/a/b"

    def test_trailing_slash(self):
        assert dir_name("/a/b/") == "/a"

    def test_top_level(self):
        assert dir_name("/a") == "/"

    def test_relative(self):
        assert dir_name("a") == "."

    def test_root(self):
        assert dir_name("/") == "/"


def test_is_absolute_path():
    assert is_absolute_path("/a")
    assert not is_absolute_path("a/b")
    assert not is_absolute_path("")


def test_append_slash():
    assert append_slash("dir") == "dir/"
    assert append_slash("dir/") == "dir/"
    assert append_slash("") == ""
