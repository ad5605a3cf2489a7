"""Reconciliation of local and remote inventories into an ordered plan."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from ..exceptions import ComparatorError, PlanningError
from .comparator import FileComparator
from .scanner import LocalFile, RemoteFile

logger = logging.getLogger(__name__)

# Upload ordering buckets: small files first so many quick wins land early
_SIZE_CLASS_BOUNDS = (1024 * 1024, 10 * 1024 * 1024, 100 * 1024 * 1024)


class OperationType(str, Enum):
    """Actions a plan can contain."""

    UPLOAD = "upload"
    """Upload local file to the bucket"""

    DELETE = "delete"
    """Delete object from the bucket"""

    SKIP = "skip"
    """Leave the pair untouched"""


@dataclass(frozen=True)
class Operation:
    """One planned action."""

    type: OperationType
    relative_path: str
    remote_key: str
    size: int = 0
    """Bytes to transfer for uploads; remote size for deletes"""
    local_path: Optional[Path] = None
    """Absolute local path (uploads and skips of local files)"""
    reason: str = ""

    def __str__(self) -> str:
        return f"{self.type.value}: {self.relative_path} ({self.reason})"


@dataclass
class PlanSummary:
    """Counts and byte totals per action."""

    uploads: int = 0
    deletes: int = 0
    skips: int = 0
    upload_bytes: int = 0
    delete_bytes: int = 0

    @property
    def total(self) -> int:
        return self.uploads + self.deletes + self.skips

    @property
    def has_changes(self) -> bool:
        return self.uploads > 0 or self.deletes > 0

    def to_dict(self) -> dict:
        return {
            "uploads": self.uploads,
            "deletes": self.deletes,
            "skips": self.skips,
            "upload_bytes": self.upload_bytes,
            "delete_bytes": self.delete_bytes,
        }


def size_class(size: int) -> int:
    """Bucket a file size into one of four ordering classes (0-3)."""
    for index, bound in enumerate(_SIZE_CLASS_BOUNDS):
        if size < bound:
            return index
    return len(_SIZE_CLASS_BOUNDS)


def join_key(prefix: str, relative_path: str) -> str:
    """Join a normalized prefix and a relative path into an object key."""
    return f"{prefix}{relative_path}"


@dataclass
class _PlanBuckets:
    uploads: list[Operation] = field(default_factory=list)
    deletes: list[Operation] = field(default_factory=list)
    skips: list[Operation] = field(default_factory=list)


class SyncPlanner:
    """Turns two path-indexed inventories into an ordered list of operations.

    Ordering:
        1. Uploads, grouped by size class (<1MB, <10MB, <100MB, >=100MB)
        2. Deletes
        3. Skips

    Within each group operations are sorted by relative path, so the same
    inputs always produce the same plan.
    """

    def __init__(self, comparator: FileComparator):
        self.comparator = comparator

    def plan(
        self,
        local_files: dict[str, LocalFile],
        remote_files: dict[str, RemoteFile],
        prefix: str,
        delete_extra: bool = False,
    ) -> list[Operation]:
        """Build the sync plan.

        Args:
            local_files: Local inventory keyed by relative path
            remote_files: Remote inventory keyed by relative path
            prefix: Normalized destination prefix
            delete_extra: Plan deletes for remote-only objects

        Returns:
            Ordered list of operations

        Raises:
            PlanningError: If the comparator fails for any matched pair
        """
        buckets = _PlanBuckets()

        for rel_path, local in local_files.items():
            remote = remote_files.get(rel_path)
            key = join_key(prefix, rel_path)

            if remote is None:
                buckets.uploads.append(
                    Operation(
                        type=OperationType.UPLOAD,
                        relative_path=rel_path,
                        remote_key=key,
                        size=local.size,
                        local_path=local.path,
                        reason="new file",
                    )
                )
                continue

            try:
                changed = self.comparator.has_changed(local, remote)
            except ComparatorError as e:
                raise PlanningError(
                    f"Failed to compare {rel_path}: {e.message}", op="plan", key=remote.key
                ) from e

            if changed:
                buckets.uploads.append(
                    Operation(
                        type=OperationType.UPLOAD,
                        relative_path=rel_path,
                        remote_key=remote.key,
                        size=local.size,
                        local_path=local.path,
                        reason="modified",
                    )
                )
            else:
                buckets.skips.append(
                    Operation(
                        type=OperationType.SKIP,
                        relative_path=rel_path,
                        remote_key=remote.key,
                        size=local.size,
                        local_path=local.path,
                        reason="unchanged",
                    )
                )

        if delete_extra:
            for rel_path, remote in remote_files.items():
                if rel_path in local_files:
                    continue
                buckets.deletes.append(
                    Operation(
                        type=OperationType.DELETE,
                        relative_path=rel_path,
                        remote_key=remote.key,
                        size=remote.size,
                        reason="extra remote file",
                    )
                )

        buckets.uploads.sort(key=lambda op: (size_class(op.size), op.relative_path))
        buckets.deletes.sort(key=lambda op: op.relative_path)
        buckets.skips.sort(key=lambda op: op.relative_path)

        logger.debug(
            f"Planned {len(buckets.uploads)} upload(s), {len(buckets.deletes)} delete(s), "
            f"{len(buckets.skips)} skip(s)"
        )
        return buckets.uploads + buckets.deletes + buckets.skips


def summarize(plan: list[Operation]) -> PlanSummary:
    """Count operations and bytes per action."""
    summary = PlanSummary()
    for op in plan:
        if op.type == OperationType.UPLOAD:
            summary.uploads += 1
            summary.upload_bytes += op.size
        elif op.type == OperationType.DELETE:
            summary.deletes += 1
            summary.delete_bytes += op.size
        else:
            summary.skips += 1
    return summary


def validate_plan(plan: list[Operation]) -> None:
    """Check plan consistency before execution.

    Every relative path may appear once, uploads need a local path, and
    no operation may have an empty key.

    Raises:
        PlanningError: On the first inconsistency found
    """
    seen: set[str] = set()
    for op in plan:
        if not op.remote_key:
            raise PlanningError(f"Operation for {op.relative_path!r} has no key", op="plan")
        if op.relative_path in seen:
            raise PlanningError(
                f"Path {op.relative_path!r} appears more than once in plan", op="plan"
            )
        seen.add(op.relative_path)
        if op.type == OperationType.UPLOAD and op.local_path is None:
            raise PlanningError(
                f"Upload of {op.relative_path!r} has no local path",
                op="plan",
                key=op.remote_key,
            )
