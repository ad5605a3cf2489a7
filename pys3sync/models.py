"""Data models for object-store responses."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .utils import normalize_etag


@dataclass(frozen=True)
class ObjectSummary:
    """One object from a list-objects-v2 page."""

    key: str
    size: int
    last_modified: Optional[datetime]
    etag: str
    storage_class: str = "STANDARD"

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "ObjectSummary":
        """Create an ObjectSummary from a ``Contents`` entry."""
        return cls(
            key=data["Key"],
            size=int(data.get("Size", 0)),
            last_modified=data.get("LastModified"),
            etag=normalize_etag(data.get("ETag")),
            storage_class=data.get("StorageClass", "STANDARD"),
        )


@dataclass(frozen=True)
class ListPage:
    """One page of a paginated object listing."""

    objects: list[ObjectSummary]
    """Objects returned in this page"""

    next_token: Optional[str]
    """Continuation token for the next page (None on the last page)"""

    is_truncated: bool
    """Whether more pages are available"""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "ListPage":
        """Create a ListPage from a list-objects-v2 response."""
        return cls(
            objects=[ObjectSummary.from_api_response(o) for o in data.get("Contents", [])],
            next_token=data.get("NextContinuationToken"),
            is_truncated=bool(data.get("IsTruncated", False)),
        )


@dataclass(frozen=True)
class ObjectInfo:
    """Metadata returned by head-object."""

    key: str
    size: int
    etag: str
    last_modified: Optional[datetime]
    content_type: str = "binary/octet-stream"
    metadata: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_api_response(cls, key: str, data: dict[str, Any]) -> "ObjectInfo":
        """Create an ObjectInfo from a head-object response."""
        return cls(
            key=key,
            size=int(data.get("ContentLength", 0)),
            etag=normalize_etag(data.get("ETag")),
            last_modified=data.get("LastModified"),
            content_type=data.get("ContentType", "binary/octet-stream"),
            metadata=dict(data.get("Metadata", {})),
        )


@dataclass(frozen=True)
class DeleteObjectError:
    """A per-key failure reported inside a successful delete-objects call."""

    key: str
    code: str
    message: str


@dataclass(frozen=True)
class DeleteObjectsResult:
    """Outcome of one delete-objects batch call."""

    deleted: list[str]
    errors: list[DeleteObjectError]

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "DeleteObjectsResult":
        """Create a DeleteObjectsResult from a delete-objects response."""
        return cls(
            deleted=[d["Key"] for d in data.get("Deleted", []) if d.get("Key")],
            errors=[
                DeleteObjectError(
                    key=e.get("Key", ""),
                    code=e.get("Code", ""),
                    message=e.get("Message", ""),
                )
                for e in data.get("Errors", [])
            ],
        )


@dataclass(frozen=True)
class BucketInfo:
    """A bucket from list-buckets."""

    name: str
    creation_date: Optional[datetime]

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "BucketInfo":
        return cls(name=data["Name"], creation_date=data.get("CreationDate"))
