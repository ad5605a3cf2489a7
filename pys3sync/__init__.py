"""pys3sync - synchronize local directories with S3-compatible object stores."""

from .client import S3Client
from .exceptions import (
    ComparatorError,
    ExecutionError,
    InvalidBucketNameError,
    InvalidObjectKeyError,
    PlanningError,
    S3AccessDeniedError,
    S3BucketNotFoundError,
    S3ClientError,
    S3ConfigError,
    S3NetworkError,
    S3NotFoundError,
    S3SyncError,
    S3ValidationError,
    ScanError,
    SyncCancelledError,
)
from .sync import SyncEngine, SyncResult

__version__ = "0.1.0"

__all__ = [
    "S3Client",
    "SyncEngine",
    "SyncResult",
    "S3SyncError",
    "S3ClientError",
    "S3NotFoundError",
    "S3BucketNotFoundError",
    "S3AccessDeniedError",
    "S3NetworkError",
    "S3ConfigError",
    "S3ValidationError",
    "InvalidBucketNameError",
    "InvalidObjectKeyError",
    "ScanError",
    "ComparatorError",
    "PlanningError",
    "SyncCancelledError",
    "ExecutionError",
]
