"""Exception hierarchy for pys3sync."""

from typing import Any, Optional


class S3SyncError(Exception):
    """Base exception for all pys3sync errors.

    Carries the name of the failing operation and, where known, the bucket
    and object key so that messages can be located without re-deriving
    which call produced them.
    """

    def __init__(
        self,
        message: str,
        op: Optional[str] = None,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.op = op
        self.bucket = bucket
        self.key = key

    def __str__(self) -> str:
        if not self.op:
            return self.message
        if self.bucket and self.key:
            return f"s3.{self.op} {self.bucket}/{self.key}: {self.message}"
        if self.bucket:
            return f"s3.{self.op} bucket {self.bucket}: {self.message}"
        if self.key:
            return f"s3.{self.op} object {self.key}: {self.message}"
        return f"s3.{self.op}: {self.message}"


class S3ConfigError(S3SyncError):
    """Raised when client configuration is missing or invalid."""

    pass


class S3ClientError(S3SyncError):
    """Raised when an object-store call fails."""

    def __init__(
        self,
        message: str,
        op: Optional[str] = None,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message, op=op, bucket=bucket, key=key)
        self.code = code


class S3NotFoundError(S3ClientError):
    """Raised when an object does not exist."""

    pass


class S3BucketNotFoundError(S3ClientError):
    """Raised when a bucket does not exist."""

    pass


class S3AccessDeniedError(S3ClientError):
    """Raised when credentials lack permission for the request."""

    pass


class S3NetworkError(S3ClientError):
    """Raised when the endpoint cannot be reached."""

    pass


class S3ValidationError(S3SyncError):
    """Raised when caller input is rejected before any request is sent."""

    pass


class InvalidBucketNameError(S3ValidationError):
    """Raised when a bucket name is not DNS-compliant."""

    pass


class InvalidObjectKeyError(S3ValidationError):
    """Raised when an object key is empty, too long or unsafe."""

    pass


class ScanError(S3SyncError):
    """Raised when the local walk or the remote listing fails."""

    pass


class ComparatorError(S3SyncError):
    """Raised when a comparator cannot decide whether a file changed."""

    pass


class PlanningError(S3SyncError):
    """Raised when a sync plan cannot be built or is inconsistent."""

    pass


class SyncCancelledError(S3SyncError):
    """Raised when a sync is cancelled through its cancel event.

    When cancellation happens after execution started, ``result`` holds the
    partial outcome of the operations that did run.
    """

    def __init__(
        self,
        message: str,
        op: Optional[str] = None,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
        result: Optional[Any] = None,
    ):
        super().__init__(message, op=op, bucket=bucket, key=key)
        self.result = result


class ExecutionError(S3SyncError):
    """Raised when a single upload or delete fails during execution."""

    pass
