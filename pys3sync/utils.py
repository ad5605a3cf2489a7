"""Utility functions for pys3sync."""

import hashlib
import re
from collections.abc import Iterator, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

T = TypeVar("T")

# =============================================================================
# Constants for transfer operations
# =============================================================================

# Page size for list-objects-v2 requests (S3 maximum)
LIST_PAGE_SIZE: int = 1000

# Maximum number of keys accepted by a single delete-objects request
DELETE_BATCH_SIZE: int = 1000

# Files at or above this size use the multipart transfer manager (100 MB)
DEFAULT_MULTIPART_THRESHOLD: int = 100 * 1024 * 1024

# Part size for multipart uploads (16 MB)
DEFAULT_CHUNK_SIZE: int = 16 * 1024 * 1024

# Default number of concurrent uploads during a sync
DEFAULT_PARALLELISM: int = 5

# Read size used when hashing local files
HASH_READ_SIZE: int = 1024 * 1024


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# Hash and ETag utilities
# =============================================================================


def compute_file_hash(
    path: Path,
    hash_factory: Callable[[], Any] = hashlib.md5,
) -> str:
    """Compute the hex digest of a file's contents.

    Args:
        path: File to hash
        hash_factory: Hash constructor (defaults to MD5, matching S3 ETags)

    Returns:
        Lowercase hex digest

    Raises:
        OSError: If the file cannot be opened or read
    """
    digest = hash_factory()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(HASH_READ_SIZE), b""):
            digest.update(block)
    return digest.hexdigest()


def normalize_etag(etag: Optional[str]) -> str:
    """Strip surrounding quotes from an ETag.

    Examples:
        >>> normalize_etag('"d41d8cd98f00b204e9800998ecf8427e"')
        'd41d8cd98f00b204e9800998ecf8427e'
        >>> normalize_etag(None)
        ''
    """
    if not etag:
        return ""
    return etag.strip('"')


_MULTIPART_ETAG = re.compile(r"[0-9a-fA-F]+-\d+")


def is_multipart_etag(etag: str) -> bool:
    """Check whether an ETag is a multipart composite value.

    Multipart ETags carry a ``-<part count>`` suffix and cannot be compared
    to a single-pass content hash.

    Examples:
        >>> is_multipart_etag("9b2cf535f27731c974343645a3985328-3")
        True
        >>> is_multipart_etag("9b2cf535f27731c974343645a3985328")
        False
    """
    return _MULTIPART_ETAG.fullmatch(etag) is not None


# =============================================================================
# Timestamp utilities
# =============================================================================


def to_timestamp(value: Optional[datetime]) -> float:
    """Convert a datetime from the object store to a Unix timestamp.

    Naive datetimes are interpreted as local time, matching
    ``datetime.timestamp``. ``None`` maps to 0.0.
    """
    if value is None:
        return 0.0
    return value.timestamp()


# =============================================================================
# S3 URL utilities
# =============================================================================


def parse_s3_url(url: str, default_bucket: Optional[str] = None) -> tuple[str, str]:
    """Split an ``s3://bucket/prefix`` URL into bucket and prefix.

    Args:
        url: URL or plain ``bucket/prefix`` string
        default_bucket: Bucket to use when the URL names none
            (``""`` or ``s3:///prefix``)

    Returns:
        Tuple of (bucket, prefix)

    Raises:
        ValueError: If no bucket name is present and there is no default

    Examples:
        >>> parse_s3_url("s3://my-bucket/backups/site")
        ('my-bucket', 'backups/site')
        >>> parse_s3_url("my-bucket")
        ('my-bucket', '')
        >>> parse_s3_url("s3:///www", default_bucket="my-bucket")
        ('my-bucket', 'www')
    """
    if url.startswith("s3://"):
        url = url[len("s3://") :]
    bucket, _, prefix = url.partition("/")
    if not bucket:
        if not default_bucket:
            raise ValueError(f"No bucket in S3 URL: {url!r}")
        bucket = default_bucket
    return bucket, prefix


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most ``size`` items.

    Examples:
        >>> [list(c) for c in chunked([1, 2, 3, 4, 5], 2)]
        [[1, 2], [3, 4], [5]]
    """
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    for start in range(0, len(items), size):
        yield items[start : start + size]
