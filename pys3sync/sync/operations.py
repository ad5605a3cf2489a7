"""Object-store operations used by the sync executor."""

import logging
from pathlib import Path
from typing import IO, Callable, Optional, Protocol, Union

from ..models import DeleteObjectsResult, ListPage
from ..utils import DEFAULT_CHUNK_SIZE, DEFAULT_MULTIPART_THRESHOLD

logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    """The object-store primitives the sync engine consumes.

    :class:`pys3sync.client.S3Client` implements this protocol; tests use
    in-memory fakes.
    """

    def put_object(
        self,
        bucket: str,
        key: str,
        body: Union[IO[bytes], bytes],
        content_type: Optional[str] = None,
        metadata: Optional[dict[str, str]] = None,
    ) -> str: ...

    def upload_multipart(
        self,
        bucket: str,
        key: str,
        path: Path,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_concurrency: int = 4,
        callback: Optional[Callable[[int], None]] = None,
    ) -> None: ...

    def list_objects_page(
        self,
        bucket: str,
        prefix: str = "",
        continuation_token: Optional[str] = None,
        max_keys: int = 1000,
    ) -> ListPage: ...

    def delete_objects(self, bucket: str, keys: list[str]) -> DeleteObjectsResult: ...


class SyncOperations:
    """Upload and delete primitives with a common interface."""

    def __init__(
        self,
        store: ObjectStore,
        multipart_threshold: int = DEFAULT_MULTIPART_THRESHOLD,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        multipart_concurrency: int = 4,
    ):
        """Initialize sync operations.

        Args:
            store: Object store to operate on
            multipart_threshold: Files of at least this size use multipart upload
            chunk_size: Part size for multipart uploads
            multipart_concurrency: Concurrent part uploads per multipart file
        """
        self.store = store
        self.multipart_threshold = multipart_threshold
        self.chunk_size = chunk_size
        self.multipart_concurrency = multipart_concurrency

    def upload_file(self, local_path: Path, bucket: str, key: str, size: int) -> None:
        """Upload a local file to the object store.

        Files below the multipart threshold go through a single put; larger
        files use the multipart transfer manager.

        Args:
            local_path: File to upload
            bucket: Destination bucket
            key: Destination key
            size: File size recorded at plan time

        Raises:
            OSError: If the local file cannot be opened
            S3ClientError: If the upload fails
        """
        if size >= self.multipart_threshold:
            logger.debug(f"Multipart upload of {local_path} ({size} bytes) to {key}")
            self.store.upload_multipart(
                bucket,
                key,
                local_path,
                chunk_size=self.chunk_size,
                max_concurrency=self.multipart_concurrency,
            )
            return

        with open(local_path, "rb") as body:
            self.store.put_object(bucket, key, body)

    def delete_batch(self, bucket: str, keys: list[str]) -> DeleteObjectsResult:
        """Delete one batch of keys (at most 1000).

        Returns:
            DeleteObjectsResult with deleted keys and per-key errors
        """
        return self.store.delete_objects(bucket, keys)
