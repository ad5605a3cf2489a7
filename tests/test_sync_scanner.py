"""Tests for local and remote scanning."""

import os
import threading
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from pys3sync.exceptions import S3AccessDeniedError, ScanError, SyncCancelledError
from pys3sync.models import ListPage, ObjectSummary
from pys3sync.sync.scanner import DirectoryScanner, LocalFile


class TestScanLocal:
    """Tests for walking the local tree."""

    def test_relative_paths_use_forward_slashes(self, store, make_tree):
        root = make_tree({"a.txt": b"1", "sub/b.txt": b"22", "sub/deep/c.txt": b"333"})

        files = DirectoryScanner(store).scan_local(root)

        assert list(files) == ["a.txt", "sub/b.txt", "sub/deep/c.txt"]
        assert files["sub/deep/c.txt"].size == 3
        assert files["sub/deep/c.txt"].path == (root / "sub" / "deep" / "c.txt").resolve()

    def test_records_mtime(self, store, make_tree):
        root = make_tree({"a.txt": b"x"})
        os.utime(root / "a.txt", (1_600_000_000, 1_600_000_000))

        files = DirectoryScanner(store).scan_local(root)

        assert files["a.txt"].mtime == pytest.approx(1_600_000_000)

    def test_empty_directory(self, store, tmp_path):
        assert DirectoryScanner(store).scan_local(tmp_path) == {}

    def test_exclude_patterns(self, store, make_tree):
        root = make_tree({"keep.txt": b"", "skip.tmp": b"", "logs/x.log": b"", "logs/y.txt": b""})

        files = DirectoryScanner(store, exclude_patterns=["*.tmp", "logs/"]).scan_local(root)

        assert list(files) == ["keep.txt"]

    def test_include_patterns(self, store, make_tree):
        root = make_tree({"a.jpg": b"", "b.png": b"", "img/c.jpg": b""})

        files = DirectoryScanner(store, include_patterns=["*.jpg"]).scan_local(root)

        assert list(files) == ["a.jpg", "img/c.jpg"]

    def test_exclude_wins_over_include(self, store, make_tree):
        root = make_tree({"a.jpg": b"", "private/b.jpg": b""})

        scanner = DirectoryScanner(store, include_patterns=["*.jpg"], exclude_patterns=["private/"])

        assert list(scanner.scan_local(root)) == ["a.jpg"]

    def test_symlinked_directory_not_followed(self, store, make_tree, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "secret.txt").write_bytes(b"s")
        root = make_tree({"a.txt": b"a"})
        try:
            (root / "link").symlink_to(outside, target_is_directory=True)
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported")

        assert list(DirectoryScanner(store).scan_local(root)) == ["a.txt"]

    def test_missing_directory_raises_scan_error(self, store, tmp_path):
        with pytest.raises(ScanError, match="Failed to list directory"):
            DirectoryScanner(store).scan_local(tmp_path / "missing")

    def test_cancelled_scan(self, store, make_tree):
        root = make_tree({"a.txt": b"a"})
        event = threading.Event()
        event.set()

        with pytest.raises(SyncCancelledError):
            DirectoryScanner(store).scan_local(root, cancel_event=event)


class TestLocalFile:
    def test_from_path(self, tmp_path):
        (tmp_path / "d").mkdir()
        path = tmp_path / "d" / "f.bin"
        path.write_bytes(b"12345")

        local = LocalFile.from_path(path, tmp_path)

        assert local.relative_path == "d/f.bin"
        assert local.size == 5


class TestScanRemote:
    """Tests for paginated remote listing."""

    def test_strips_prefix(self, store):
        store.add_object("bucket", "site/a.txt", b"abc")
        store.add_object("bucket", "site/sub/b.txt", b"de")
        store.add_object("bucket", "other/c.txt", b"f")

        files = DirectoryScanner(store).scan_remote("bucket", "site/")

        assert list(files) == ["a.txt", "sub/b.txt"]
        assert files["a.txt"].key == "site/a.txt"
        assert files["a.txt"].size == 3
        assert files["sub/b.txt"].etag == store.objects[("bucket", "site/sub/b.txt")].etag

    def test_root_prefix(self, store):
        store.add_object("bucket", "a.txt", b"abc")
        assert list(DirectoryScanner(store).scan_remote("bucket", "")) == ["a.txt"]

    def test_skips_folder_markers(self, store):
        store.add_object("bucket", "site/", b"")
        store.add_object("bucket", "site/dir/", b"")
        store.add_object("bucket", "site/dir/a.txt", b"a")

        assert list(DirectoryScanner(store).scan_remote("bucket", "site/")) == ["dir/a.txt"]

    def test_follows_continuation_tokens(self, store):
        for i in range(2500):
            store.add_object("bucket", f"p/{i:05d}.txt", b"x")

        files = DirectoryScanner(store).scan_remote("bucket", "p/")

        assert len(files) == 2500
        assert store.list_calls == [None, "1000", "2000"]

    def test_last_modified_converted_to_timestamp(self, store):
        modified = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        store.add_object("bucket", "a.txt", b"a", last_modified=modified)

        files = DirectoryScanner(store).scan_remote("bucket", "")

        assert files["a.txt"].last_modified == modified.timestamp()

    def test_list_error_raises_scan_error(self):
        failing = Mock()
        failing.list_objects_page.side_effect = S3AccessDeniedError(
            "Access Denied", op="listObjectsV2", bucket="bucket"
        )

        with pytest.raises(ScanError, match="Access Denied") as exc_info:
            DirectoryScanner(failing).scan_remote("bucket", "p/")
        assert exc_info.value.bucket == "bucket"

    def test_cancel_checked_before_each_page(self):
        event = threading.Event()
        paged = Mock()

        def list_page(bucket, prefix, continuation_token=None, max_keys=1000):
            event.set()
            return ListPage(
                objects=[ObjectSummary("p/a", 1, None, "e")], next_token="next", is_truncated=True
            )

        paged.list_objects_page.side_effect = list_page

        with pytest.raises(SyncCancelledError):
            DirectoryScanner(paged).scan_remote("bucket", "p/", cancel_event=event)
        assert paged.list_objects_page.call_count == 1
