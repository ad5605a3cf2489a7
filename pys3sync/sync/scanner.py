"""Directory and bucket scanning for sync operations."""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from ..exceptions import S3ClientError, ScanError, SyncCancelledError
from ..utils import LIST_PAGE_SIZE, to_timestamp
from .operations import ObjectStore
from .patterns import PatternMatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalFile:
    """Represents a local file with metadata."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Relative path (using forward slashes so it can be joined to a key)"""

    size: int
    """File size in bytes"""

    mtime: float
    """Last modification time (Unix timestamp)"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Base path for calculating relative paths

        Returns:
            LocalFile instance

        Raises:
            OSError: If the file cannot be stat'ed
        """
        stat = file_path.stat()
        return cls(
            path=file_path,
            relative_path=file_path.relative_to(base_path).as_posix(),
            size=stat.st_size,
            mtime=stat.st_mtime,
        )


@dataclass(frozen=True)
class RemoteFile:
    """Represents an object under the sync prefix."""

    key: str
    """Full object key"""

    relative_path: str
    """Key relative to the sync prefix"""

    size: int
    """Object size in bytes"""

    last_modified: float
    """Last modification time (Unix timestamp)"""

    etag: str = ""
    """ETag with quotes stripped (empty when unavailable)"""


def _check_cancelled(cancel_event: Optional[threading.Event], what: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise SyncCancelledError(f"Sync cancelled during {what}", op="scan")


class DirectoryScanner:
    """Builds path-indexed inventories of the local tree and the remote prefix.

    Include/exclude patterns apply to the local side only; remote objects
    are listed unfiltered and reconciled during planning.

    Examples:
        >>> scanner = DirectoryScanner(client, exclude_patterns=["*.tmp"])
        >>> local = scanner.scan_local(Path("/srv/site"))
        >>> remote = scanner.scan_remote("my-bucket", "site/")
    """

    def __init__(
        self,
        store: ObjectStore,
        include_patterns: Optional[Sequence[str]] = None,
        exclude_patterns: Optional[Sequence[str]] = None,
    ):
        """Initialize directory scanner.

        Args:
            store: Object store used for remote listings
            include_patterns: Glob patterns a local file must match (any)
            exclude_patterns: Glob patterns that exclude a local file
        """
        self.store = store
        self.matcher = PatternMatcher(include_patterns, exclude_patterns)

    def scan_local(
        self,
        directory: Path,
        cancel_event: Optional[threading.Event] = None,
    ) -> dict[str, LocalFile]:
        """Recursively scan a local directory.

        Symlinked directories are not followed.

        Args:
            directory: Root of the sync tree
            cancel_event: Checked once per file; when set the scan stops

        Returns:
            Mapping of relative path to LocalFile, ordered by relative path

        Raises:
            ScanError: If a directory cannot be listed or a file cannot be stat'ed
            SyncCancelledError: If the cancel event is set during the walk
        """
        base_path = directory.resolve()
        files: list[LocalFile] = []
        self._walk(base_path, base_path, files, cancel_event)
        files.sort(key=lambda f: f.relative_path)
        logger.debug(f"Local scan found {len(files)} file(s) under {base_path}")
        return {f.relative_path: f for f in files}

    def _walk(
        self,
        directory: Path,
        base_path: Path,
        files: list[LocalFile],
        cancel_event: Optional[threading.Event],
    ) -> None:
        try:
            entries = list(directory.iterdir())
        except OSError as e:
            raise ScanError(f"Failed to list directory {directory}: {e}", op="scanLocal") from e

        for item in entries:
            if item.is_dir() and not item.is_symlink():
                self._walk(item, base_path, files, cancel_event)
                continue
            if not item.is_file():
                continue

            _check_cancelled(cancel_event, "local scan")

            relative_path = item.relative_to(base_path).as_posix()
            if not self.matcher.should_include(relative_path):
                logger.debug(f"Ignoring (from patterns): {relative_path}")
                continue

            try:
                files.append(LocalFile.from_path(item, base_path))
            except OSError as e:
                raise ScanError(f"Failed to stat {item}: {e}", op="scanLocal") from e

    def scan_remote(
        self,
        bucket: str,
        prefix: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> dict[str, RemoteFile]:
        """List every object under a prefix, page by page.

        Args:
            bucket: Bucket to list
            prefix: Normalized prefix ("" or ending in "/")
            cancel_event: Checked before each page request

        Returns:
            Mapping of relative key to RemoteFile, ordered by relative key

        Raises:
            ScanError: If a list call fails
            SyncCancelledError: If the cancel event is set between pages
        """
        remote_files: dict[str, RemoteFile] = {}
        token: Optional[str] = None
        pages = 0

        while True:
            _check_cancelled(cancel_event, "remote listing")

            try:
                page = self.store.list_objects_page(
                    bucket, prefix, continuation_token=token, max_keys=LIST_PAGE_SIZE
                )
            except S3ClientError as e:
                raise ScanError(
                    f"Failed to list objects: {e.message}",
                    op="scanRemote",
                    bucket=bucket,
                    key=prefix or None,
                ) from e
            pages += 1

            for obj in page.objects:
                if not obj.key.startswith(prefix):
                    continue
                relative_path = obj.key[len(prefix) :].lstrip("/")
                # Folder markers have no file counterpart
                if not relative_path or relative_path.endswith("/"):
                    continue
                remote_files[relative_path] = RemoteFile(
                    key=obj.key,
                    relative_path=relative_path,
                    size=obj.size,
                    last_modified=to_timestamp(obj.last_modified),
                    etag=obj.etag,
                )

            if not page.is_truncated or not page.next_token:
                break
            token = page.next_token

        logger.debug(
            f"Remote scan found {len(remote_files)} object(s) under "
            f"{bucket}/{prefix} in {pages} page(s)"
        )
        return {path: remote_files[path] for path in sorted(remote_files)}
