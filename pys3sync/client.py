"""Object-store client for S3-compatible services."""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import IO, Any, Callable

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.config import Config as BotoConfig
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
)

from .config import config
from .exceptions import (
    S3AccessDeniedError,
    S3BucketNotFoundError,
    S3ClientError,
    S3ConfigError,
    S3NetworkError,
    S3NotFoundError,
    S3ValidationError,
)
from .models import BucketInfo, DeleteObjectsResult, ListPage, ObjectInfo
from .utils import DEFAULT_CHUNK_SIZE, LIST_PAGE_SIZE
from .validation import validate_object_key

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
_BUCKET_NOT_FOUND_CODES = {"NoSuchBucket"}
_ACCESS_DENIED_CODES = {"403", "AccessDenied", "AllAccessDisabled", "InvalidAccessKeyId"}


def translate_error(
    error: Exception, op: str, bucket: str | None = None, key: str | None = None
) -> S3ClientError:
    """Map a botocore exception to the pys3sync exception hierarchy.

    Args:
        error: Exception raised by boto3/botocore
        op: Name of the failing operation (e.g. "putObject")
        bucket: Bucket involved, if any
        key: Object key involved, if any

    Returns:
        An S3ClientError subclass carrying op/bucket/key context
    """
    if isinstance(error, ClientError):
        details = error.response.get("Error", {})
        code = str(details.get("Code", ""))
        message = details.get("Message") or str(error)
        if code in _BUCKET_NOT_FOUND_CODES:
            return S3BucketNotFoundError(message, op=op, bucket=bucket, key=key, code=code)
        if code in _NOT_FOUND_CODES:
            return S3NotFoundError(message, op=op, bucket=bucket, key=key, code=code)
        if code in _ACCESS_DENIED_CODES:
            return S3AccessDeniedError(message, op=op, bucket=bucket, key=key, code=code)
        return S3ClientError(message, op=op, bucket=bucket, key=key, code=code)
    if isinstance(error, EndpointConnectionError):
        return S3NetworkError(f"Network error: {error}", op=op, bucket=bucket, key=key)
    if isinstance(error, NoCredentialsError):
        return S3AccessDeniedError(
            "No credentials configured", op=op, bucket=bucket, key=key
        )
    return S3ClientError(str(error), op=op, bucket=bucket, key=key)


class S3Client:
    """Client for S3-compatible object storage.

    Wraps a boto3 S3 client and exposes the narrow set of object-store
    primitives used by the sync engine. Retries are handled by botocore
    according to ``max_retries`` and ``retry_mode``.
    """

    def __init__(
        self,
        region: str | None = None,
        endpoint_url: str | None = None,
        profile: str | None = None,
        max_retries: int | None = None,
        retry_mode: str | None = None,
        path_style: bool | None = None,
        connect_timeout: float = 10.0,
        read_timeout: float = 60.0,
        boto_client: Any | None = None,
    ):
        """Initialize the S3 client.

        Args:
            region: AWS region (uses config if not provided)
            endpoint_url: Custom endpoint for S3-compatible services
            profile: Named AWS profile for credentials
            max_retries: Maximum retry attempts for transient errors
            retry_mode: botocore retry mode ("standard", "adaptive", "legacy")
            path_style: Force path-style addressing
            connect_timeout: Connection timeout in seconds
            read_timeout: Read timeout in seconds
            boto_client: Pre-built boto3 S3 client (used as-is)
        """
        self.region = region or config.region
        self.endpoint_url = endpoint_url or config.endpoint_url
        self.profile = profile or config.profile
        self.max_retries = max_retries if max_retries is not None else config.max_retries
        self.retry_mode = retry_mode or config.retry_mode
        self.path_style = path_style if path_style is not None else config.path_style
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout

        if self.max_retries < 0:
            raise S3ConfigError("max_retries cannot be negative")

        self._client = boto_client

    def _get_client(self) -> Any:
        """Get or create the boto3 client."""
        if self._client is None:
            try:
                session = boto3.session.Session(
                    profile_name=self.profile, region_name=self.region
                )
            except BotoCoreError as e:
                raise S3ConfigError(f"Failed to create AWS session: {e}") from e

            boto_config = BotoConfig(
                retries={
                    "max_attempts": self.max_retries + 1,
                    "mode": self.retry_mode,
                },
                connect_timeout=self.connect_timeout,
                read_timeout=self.read_timeout,
                s3={"addressing_style": "path" if self.path_style else "auto"},
            )
            self._client = session.client(
                "s3", endpoint_url=self.endpoint_url, config=boto_config
            )
            logger.debug(
                "Created S3 client (region=%s, endpoint=%s)",
                self.region,
                self.endpoint_url,
            )
        return self._client

    @property
    def raw(self) -> Any:
        """The underlying boto3 client."""
        return self._get_client()

    # =========================
    # Object Operations
    # =========================

    def put_object(
        self,
        bucket: str,
        key: str,
        body: IO[bytes] | bytes,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Upload an object in a single request.

        Args:
            bucket: Destination bucket
            key: Destination key
            body: Bytes or a readable binary stream
            content_type: MIME type (guessed from the key if not provided)
            metadata: User-defined metadata

        Returns:
            ETag of the stored object (quotes stripped)
        """
        validate_object_key(key)
        params: dict[str, Any] = {
            "Bucket": bucket,
            "Key": key,
            "Body": body,
            "ContentType": content_type or self._guess_content_type(key),
        }
        if metadata:
            params["Metadata"] = metadata

        try:
            response = self._get_client().put_object(**params)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "putObject", bucket, key) from e
        return response.get("ETag", "").strip('"')

    def upload_multipart(
        self,
        bucket: str,
        key: str,
        path: Path,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_concurrency: int = 4,
        callback: Callable[[int], None] | None = None,
    ) -> None:
        """Upload a large file through the managed multipart transfer.

        Args:
            bucket: Destination bucket
            key: Destination key
            path: Local file to upload
            chunk_size: Part size in bytes
            max_concurrency: Concurrent part uploads for this file
            callback: Called with the byte count of each transferred chunk
        """
        validate_object_key(key)
        transfer_config = TransferConfig(
            multipart_threshold=chunk_size,
            multipart_chunksize=chunk_size,
            max_concurrency=max_concurrency,
        )
        try:
            self._get_client().upload_file(
                str(path),
                bucket,
                key,
                ExtraArgs={"ContentType": self._guess_content_type(key)},
                Config=transfer_config,
                Callback=callback,
            )
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "uploadMultipart", bucket, key) from e
        except S3UploadFailedError as e:
            raise S3ClientError(str(e), op="uploadMultipart", bucket=bucket, key=key) from e

    def get_object(self, bucket: str, key: str) -> bytes:
        """Download an object's content into memory."""
        validate_object_key(key)
        try:
            response = self._get_client().get_object(Bucket=bucket, Key=key)
            return response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "getObject", bucket, key) from e

    def download_file(self, bucket: str, key: str, path: Path) -> int:
        """Download an object to a local file through the managed transfer.

        Missing parent directories are created. The transfer writes to a
        temporary file next to ``path`` and renames it on success, so an
        existing file is only replaced by a complete download.

        Args:
            bucket: Source bucket
            key: Source key
            path: Local destination

        Returns:
            Size of the downloaded file in bytes
        """
        validate_object_key(key)
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._get_client().download_file(bucket, key, str(path))
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "downloadFile", bucket, key) from e
        size = path.stat().st_size
        logger.debug("Downloaded s3://%s/%s -> %s (%d bytes)", bucket, key, path, size)
        return size

    def head_object(self, bucket: str, key: str) -> ObjectInfo:
        """Fetch object metadata without downloading its content."""
        validate_object_key(key)
        try:
            response = self._get_client().head_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "headObject", bucket, key) from e
        return ObjectInfo.from_api_response(key, response)

    def object_exists(self, bucket: str, key: str) -> bool:
        """Check whether an object exists."""
        try:
            self.head_object(bucket, key)
            return True
        except S3NotFoundError:
            return False

    def list_objects_page(
        self,
        bucket: str,
        prefix: str = "",
        continuation_token: str | None = None,
        max_keys: int = LIST_PAGE_SIZE,
    ) -> ListPage:
        """Fetch one page of a list-objects-v2 listing.

        Args:
            bucket: Bucket to list
            prefix: Key prefix to restrict the listing to
            continuation_token: Token from the previous page
            max_keys: Page size (at most 1000)

        Returns:
            ListPage with the objects and the next continuation token
        """
        if not 1 <= max_keys <= LIST_PAGE_SIZE:
            raise S3ValidationError(
                f"max_keys must be between 1 and {LIST_PAGE_SIZE}",
                op="listObjects",
                bucket=bucket,
            )

        params: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix, "MaxKeys": max_keys}
        if continuation_token:
            params["ContinuationToken"] = continuation_token

        try:
            response = self._get_client().list_objects_v2(**params)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "listObjects", bucket) from e
        return ListPage.from_api_response(response)

    def delete_object(self, bucket: str, key: str) -> None:
        """Delete a single object. Deleting a missing key is not an error."""
        validate_object_key(key)
        try:
            self._get_client().delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "deleteObject", bucket, key) from e

    def delete_objects(self, bucket: str, keys: list[str]) -> DeleteObjectsResult:
        """Delete up to 1000 objects in one request.

        Args:
            bucket: Bucket holding the objects
            keys: Keys to delete

        Returns:
            DeleteObjectsResult with deleted keys and per-key errors

        Raises:
            S3ValidationError: If more than 1000 keys are given
            S3ClientError: If the request itself fails
        """
        if len(keys) > LIST_PAGE_SIZE:
            raise S3ValidationError(
                f"Cannot delete more than {LIST_PAGE_SIZE} objects per request",
                op="deleteObjects",
                bucket=bucket,
            )
        if not keys:
            return DeleteObjectsResult(deleted=[], errors=[])

        try:
            response = self._get_client().delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": k} for k in keys], "Quiet": False},
            )
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "deleteObjects", bucket) from e
        return DeleteObjectsResult.from_api_response(response)

    def copy_object(
        self, src_bucket: str, src_key: str, dst_bucket: str, dst_key: str
    ) -> str:
        """Copy an object server-side.

        Returns:
            ETag of the new object
        """
        validate_object_key(src_key)
        validate_object_key(dst_key)
        try:
            response = self._get_client().copy_object(
                Bucket=dst_bucket,
                Key=dst_key,
                CopySource={"Bucket": src_bucket, "Key": src_key},
            )
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "copyObject", dst_bucket, dst_key) from e
        return response.get("CopyObjectResult", {}).get("ETag", "").strip('"')

    def move_object(
        self, src_bucket: str, src_key: str, dst_bucket: str, dst_key: str
    ) -> str:
        """Move an object by copying it and then deleting the source.

        The source is only deleted once the copy has succeeded. If that
        delete fails the object exists in both places and the error is
        raised.

        Returns:
            ETag of the new object
        """
        etag = self.copy_object(src_bucket, src_key, dst_bucket, dst_key)
        self.delete_object(src_bucket, src_key)
        logger.debug(
            "Moved s3://%s/%s -> s3://%s/%s", src_bucket, src_key, dst_bucket, dst_key
        )
        return etag

    # =========================
    # Bucket Operations
    # =========================

    def create_bucket(self, bucket: str, region: str | None = None) -> None:
        """Create a bucket in the given region (defaults to the client region)."""
        region = region or self.region
        params: dict[str, Any] = {"Bucket": bucket}
        # us-east-1 rejects an explicit location constraint
        if region and region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": region}
        try:
            self._get_client().create_bucket(**params)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "createBucket", bucket) from e

    def delete_bucket(self, bucket: str) -> None:
        """Delete an empty bucket."""
        try:
            self._get_client().delete_bucket(Bucket=bucket)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "deleteBucket", bucket) from e

    def bucket_exists(self, bucket: str) -> bool:
        """Check whether a bucket exists and is reachable."""
        try:
            self._get_client().head_bucket(Bucket=bucket)
            return True
        except (ClientError, BotoCoreError) as e:
            error = translate_error(e, "headBucket", bucket)
            if isinstance(error, (S3NotFoundError, S3BucketNotFoundError)):
                return False
            raise error from e

    def list_buckets(self) -> list[BucketInfo]:
        """List all buckets visible to the credentials."""
        try:
            response = self._get_client().list_buckets()
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, "listBuckets") from e
        return [BucketInfo.from_api_response(b) for b in response.get("Buckets", [])]

    @staticmethod
    def _guess_content_type(key: str) -> str:
        mime_type, _ = mimetypes.guess_type(key)
        return mime_type or "application/octet-stream"
