"""Shared fixtures for the pys3sync test suite."""

import _thread
import hashlib
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import pytest

from pys3sync.exceptions import S3NetworkError
from pys3sync.models import DeleteObjectError, DeleteObjectsResult, ListPage, ObjectSummary
from pys3sync.output import OutputFormatter


class StoredObject:
    def __init__(self, data: bytes, etag: str, last_modified: datetime):
        self.data = data
        self.etag = etag
        self.last_modified = last_modified


class FakeObjectStore:
    """In-memory object store implementing the sync engine's store interface.

    Thread-safe. Records every call and the peak number of concurrent
    uploads so tests can assert on batching and concurrency.
    """

    def __init__(self, upload_delay: float = 0.0):
        self.objects: dict[tuple[str, str], StoredObject] = {}
        self.upload_delay = upload_delay
        self.put_calls: list[str] = []
        self.multipart_calls: list[str] = []
        self.list_calls: list[Optional[str]] = []
        self.delete_calls: list[list[str]] = []
        self.fail_uploads: set[str] = set()
        self.fail_delete_keys: set[str] = set()
        self.fail_delete_batches = False
        self.on_upload: Optional[Callable[[str], None]] = None
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    # -- helpers ------------------------------------------------------------

    def add_object(
        self,
        bucket: str,
        key: str,
        data: bytes = b"",
        etag: Optional[str] = None,
        last_modified: Optional[datetime] = None,
    ) -> None:
        """Seed an object without going through put_object."""
        self.objects[(bucket, key)] = StoredObject(
            data,
            etag if etag is not None else hashlib.md5(data).hexdigest(),
            last_modified or datetime.now(timezone.utc),
        )

    def keys(self, bucket: str) -> list[str]:
        return sorted(key for (b, key) in self.objects if b == bucket)

    def interrupt_on_first_upload(self) -> threading.Event:
        """Raise KeyboardInterrupt in the main thread when the first upload starts."""
        interrupted = threading.Event()

        def on_upload(key):
            if not interrupted.is_set():
                interrupted.set()
                _thread.interrupt_main()

        self.on_upload = on_upload
        return interrupted

    def _begin_upload(self, key: str) -> None:
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        if self.on_upload is not None:
            self.on_upload(key)
        if self.upload_delay:
            time.sleep(self.upload_delay)

    def _end_upload(self) -> None:
        with self._lock:
            self.in_flight -= 1

    # -- store interface ----------------------------------------------------

    def put_object(self, bucket, key, body, content_type=None, metadata=None) -> str:
        self._begin_upload(key)
        try:
            data = body if isinstance(body, bytes) else body.read()
            with self._lock:
                self.put_calls.append(key)
                if key in self.fail_uploads:
                    raise S3NetworkError("connection reset", op="putObject", bucket=bucket, key=key)
                etag = hashlib.md5(data).hexdigest()
                self.objects[(bucket, key)] = StoredObject(
                    data, etag, datetime.now(timezone.utc)
                )
                return etag
        finally:
            self._end_upload()

    def upload_multipart(
        self, bucket, key, path: Path, chunk_size=0, max_concurrency=4, callback=None
    ) -> None:
        self._begin_upload(key)
        try:
            data = Path(path).read_bytes()
            with self._lock:
                self.multipart_calls.append(key)
                if key in self.fail_uploads:
                    raise S3NetworkError("upload failed", op="uploadMultipart", bucket=bucket, key=key)
                etag = hashlib.md5(data).hexdigest() + "-2"
                self.objects[(bucket, key)] = StoredObject(
                    data, etag, datetime.now(timezone.utc)
                )
        finally:
            self._end_upload()

    def list_objects_page(self, bucket, prefix="", continuation_token=None, max_keys=1000):
        with self._lock:
            self.list_calls.append(continuation_token)
            keys = sorted(k for (b, k) in self.objects if b == bucket and k.startswith(prefix))
            start = int(continuation_token) if continuation_token else 0
            page_keys = keys[start : start + max_keys]
            truncated = start + max_keys < len(keys)
            return ListPage(
                objects=[
                    ObjectSummary(
                        key=k,
                        size=len(self.objects[(bucket, k)].data),
                        last_modified=self.objects[(bucket, k)].last_modified,
                        etag=self.objects[(bucket, k)].etag,
                    )
                    for k in page_keys
                ],
                next_token=str(start + max_keys) if truncated else None,
                is_truncated=truncated,
            )

    def delete_objects(self, bucket, keys) -> DeleteObjectsResult:
        with self._lock:
            self.delete_calls.append(list(keys))
            if self.fail_delete_batches:
                raise S3NetworkError("connection reset", op="deleteObjects", bucket=bucket)
            deleted, errors = [], []
            for key in keys:
                if key in self.fail_delete_keys:
                    errors.append(DeleteObjectError(key=key, code="AccessDenied", message="Access Denied"))
                    continue
                self.objects.pop((bucket, key), None)
                deleted.append(key)
            return DeleteObjectsResult(deleted=deleted, errors=errors)


@pytest.fixture
def store():
    """Provide an empty in-memory object store."""
    return FakeObjectStore()


@pytest.fixture
def quiet_output():
    """Provide an output formatter that prints nothing."""
    return OutputFormatter(quiet=True)


@pytest.fixture
def make_tree(tmp_path):
    """Create files under a temporary sync root from a {relative path: content} map."""

    def _make(files: dict[str, bytes], root_name: str = "src") -> Path:
        root = tmp_path / root_name
        root.mkdir(exist_ok=True)
        for rel_path, content in files.items():
            path = root / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        return root

    return _make


@pytest.fixture
def make_store():
    """Provide a factory for object stores with custom settings."""
    return FakeObjectStore
