"""Change-detection strategies for matched local/remote file pairs.

Every comparator answers one question: is the remote copy stale relative
to the local file? Comparators hold no mutable state and, apart from
reading the local file, have no side effects.
"""

import hashlib
import logging
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Union

from ..exceptions import ComparatorError
from ..utils import compute_file_hash, is_multipart_etag
from .scanner import LocalFile, RemoteFile

logger = logging.getLogger(__name__)

# Tolerance for filesystem vs object-store timestamp skew (seconds)
DEFAULT_SMART_TIME_TOLERANCE = 2.0
DEFAULT_TIME_TOLERANCE = 1.0


def _time_changed(local: LocalFile, remote: RemoteFile, tolerance: float) -> bool:
    return abs(local.mtime - remote.last_modified) > tolerance


class FileComparator:
    """Base class for comparison strategies."""

    name = "base"

    def has_changed(self, local: LocalFile, remote: RemoteFile) -> bool:
        """Decide whether ``remote`` must be replaced by ``local``.

        Raises:
            ComparatorError: If the strategy cannot reach a decision
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SmartComparator(FileComparator):
    """Size first, then content hash, then modification time.

    - Different sizes are always a change.
    - A plain (single-part) ETag is compared with the local MD5.
    - A multipart or missing ETag, or a local file that can no longer be
      read, falls back to comparing modification times with a tolerance.
    """

    name = "smart"

    def __init__(self, max_time_diff: float = DEFAULT_SMART_TIME_TOLERANCE):
        self.max_time_diff = max_time_diff

    def has_changed(self, local: LocalFile, remote: RemoteFile) -> bool:
        if local.size != remote.size:
            return True

        if remote.etag and not is_multipart_etag(remote.etag):
            try:
                local_md5 = compute_file_hash(local.path)
            except OSError as e:
                logger.debug(
                    f"Hashing {local.relative_path} failed ({e}), "
                    "falling back to modification time"
                )
                return _time_changed(local, remote, self.max_time_diff)
            return local_md5 != remote.etag.lower()

        return _time_changed(local, remote, self.max_time_diff)

    def __repr__(self) -> str:
        return f"SmartComparator(max_time_diff={self.max_time_diff})"


class SizeOnlyComparator(FileComparator):
    """Changed if and only if sizes differ."""

    name = "size-only"

    def has_changed(self, local: LocalFile, remote: RemoteFile) -> bool:
        return local.size != remote.size


class ChecksumComparator(FileComparator):
    """Always hashes the local file.

    Without a single-part ETag there is nothing reliable to compare
    against, so the object is reported as changed.
    """

    name = "checksum"

    def __init__(self, hash_factory: Callable[[], Any] = hashlib.md5):
        self.hash_factory = hash_factory

    def has_changed(self, local: LocalFile, remote: RemoteFile) -> bool:
        try:
            local_hash = compute_file_hash(local.path, self.hash_factory)
        except OSError as e:
            raise ComparatorError(
                f"Failed to compute local checksum for {local.relative_path}: {e}",
                op="compare",
                key=remote.key,
            ) from e

        if remote.etag and not is_multipart_etag(remote.etag):
            return local_hash != remote.etag.lower()
        return True


class TimeComparator(FileComparator):
    """Pure modification-time comparison with a tolerance."""

    name = "time"

    def __init__(self, max_time_diff: float = DEFAULT_TIME_TOLERANCE):
        self.max_time_diff = max_time_diff

    def has_changed(self, local: LocalFile, remote: RemoteFile) -> bool:
        return _time_changed(local, remote, self.max_time_diff)

    def __repr__(self) -> str:
        return f"TimeComparator(max_time_diff={self.max_time_diff})"


class CompositeComparator(FileComparator):
    """Combines several comparators.

    With ``require_all=False`` (the default) the pair is changed as soon as
    any sub-comparator says so. With ``require_all=True`` every
    sub-comparator must report a change; the first "unchanged" answer
    short-circuits. A sub-comparator error aborts the comparison.
    """

    name = "composite"

    def __init__(self, comparators: Sequence[FileComparator], require_all: bool = False):
        self.comparators = list(comparators)
        self.require_all = require_all

    def has_changed(self, local: LocalFile, remote: RemoteFile) -> bool:
        if not self.comparators:
            raise ComparatorError("No comparators configured", op="compare", key=remote.key)

        for comparator in self.comparators:
            try:
                changed = comparator.has_changed(local, remote)
            except ComparatorError:
                raise
            except Exception as e:
                raise ComparatorError(
                    f"{comparator!r} failed: {e}", op="compare", key=remote.key
                ) from e

            if changed and not self.require_all:
                return True
            if not changed and self.require_all:
                return False

        return self.require_all

    def __repr__(self) -> str:
        return (
            f"CompositeComparator({self.comparators!r}, require_all={self.require_all})"
        )


class NullComparator(FileComparator):
    """Never reports a change."""

    name = "null"

    def has_changed(self, local: LocalFile, remote: RemoteFile) -> bool:
        return False


class ComparatorType(str, Enum):
    """Named comparison strategies selectable from configuration."""

    SMART = "smart"
    """Size, then content hash, then modification time (default)"""

    SIZE_ONLY = "size-only"
    """Compare sizes only"""

    CHECKSUM = "checksum"
    """Always hash local files"""

    TIME = "time"
    """Compare modification times only"""

    NULL = "null"
    """Treat every matched pair as unchanged"""

    @classmethod
    def from_string(cls, value: str) -> "ComparatorType":
        """Parse a comparator name, accepting common aliases.

        Raises:
            ValueError: If the name is unknown

        Examples:
            >>> ComparatorType.from_string("size_only")
            <ComparatorType.SIZE_ONLY: 'size-only'>
        """
        normalized = value.strip().lower().replace("_", "-")
        aliases = {"size": "size-only", "md5": "checksum", "mtime": "time", "none": "null"}
        normalized = aliases.get(normalized, normalized)
        for member in cls:
            if member.value == normalized:
                return member
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown comparator '{value}' (expected one of: {valid})")

    def create(self) -> FileComparator:
        """Instantiate the comparator with default settings."""
        factories: dict[ComparatorType, Callable[[], FileComparator]] = {
            ComparatorType.SMART: SmartComparator,
            ComparatorType.SIZE_ONLY: SizeOnlyComparator,
            ComparatorType.CHECKSUM: ChecksumComparator,
            ComparatorType.TIME: TimeComparator,
            ComparatorType.NULL: NullComparator,
        }
        return factories[self]()


def resolve_comparator(
    value: Optional[Union[FileComparator, ComparatorType, str]],
) -> FileComparator:
    """Turn a comparator option into a comparator instance.

    ``None`` selects the smart comparator.
    """
    if value is None:
        return SmartComparator()
    if isinstance(value, FileComparator):
        return value
    if isinstance(value, ComparatorType):
        return value.create()
    return ComparatorType.from_string(value).create()
