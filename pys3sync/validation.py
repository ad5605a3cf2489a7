"""Input validation for bucket names, object keys and prefixes.

All checks run before a request is sent so that obviously invalid input
fails fast with a descriptive error instead of an opaque service response.
"""

import ipaddress
import re

from .exceptions import InvalidBucketNameError, InvalidObjectKeyError

_BUCKET_CHARS = re.compile(r"^[a-z0-9.\-]+$")

MAX_KEY_BYTES = 1024


def validate_bucket_name(bucket: str) -> None:
    """Validate that a bucket name follows the S3 naming rules.

    Args:
        bucket: Bucket name to check

    Raises:
        InvalidBucketNameError: If the name is not DNS-compliant

    Examples:
        >>> validate_bucket_name("my-backups.2024")
    """

    def fail(reason: str) -> None:
        raise InvalidBucketNameError(reason, op="validateBucketName", bucket=bucket)

    if not bucket:
        fail("bucket name cannot be empty")
    if len(bucket) < 3 or len(bucket) > 63:
        fail("bucket name must be between 3 and 63 characters long")
    if not _BUCKET_CHARS.match(bucket):
        fail(
            "bucket name can only contain lowercase letters, numbers, dots, "
            "and hyphens"
        )
    if bucket[0] in ".-" or bucket[-1] in ".-":
        fail("bucket name must start and end with a letter or number")
    if ".." in bucket or ".-" in bucket or "-." in bucket:
        fail("bucket name cannot contain adjacent special characters")
    if bucket.startswith("xn--"):
        fail("bucket name cannot start with 'xn--'")
    if bucket.endswith("-s3alias"):
        fail("bucket name cannot end with '-s3alias'")
    try:
        ipaddress.IPv4Address(bucket)
    except ValueError:
        pass
    else:
        fail("bucket name cannot be formatted as an IP address")


def validate_object_key(key: str) -> None:
    """Validate that an object key is safe to send.

    Args:
        key: Object key to check

    Raises:
        InvalidObjectKeyError: If the key is empty, too long, contains
            control characters, or contains ``..`` path segments
    """
    if not key:
        raise InvalidObjectKeyError("object key cannot be empty", op="validateObjectKey")

    if len(key.encode("utf-8")) > MAX_KEY_BYTES:
        raise InvalidObjectKeyError(
            f"object key cannot exceed {MAX_KEY_BYTES} bytes",
            op="validateObjectKey",
            key=key,
        )

    if any(ord(ch) < 32 or ord(ch) == 127 for ch in key):
        raise InvalidObjectKeyError(
            "object key cannot contain control characters",
            op="validateObjectKey",
            key=key,
        )

    if ".." in key.split("/"):
        raise InvalidObjectKeyError(
            "object key cannot contain path traversal segments",
            op="validateObjectKey",
            key=key,
        )


def normalize_prefix(prefix: str) -> str:
    """Normalize a remote prefix so it can be joined with relative paths.

    A leading slash is removed and a non-empty prefix always ends with
    exactly one ``/``. The bucket root is represented by ``""``.

    Examples:
        >>> normalize_prefix("backups/site")
        'backups/site/'
        >>> normalize_prefix("/backups/site/")
        'backups/site/'
        >>> normalize_prefix("/")
        ''
    """
    prefix = prefix.lstrip("/")
    if not prefix:
        return ""
    return prefix.rstrip("/") + "/"
