"""Per-call sync settings and JSON batch definitions."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from ..exceptions import InvalidBucketNameError, S3ValidationError
from ..utils import DEFAULT_CHUNK_SIZE, DEFAULT_MULTIPART_THRESHOLD, DEFAULT_PARALLELISM
from ..validation import normalize_prefix, validate_bucket_name
from .comparator import ComparatorType, FileComparator, resolve_comparator
from .patterns import PatternMatcher
from .progress import ProgressTracker

logger = logging.getLogger(__name__)

MAX_PARALLELISM = 100


class SyncConfigError(S3ValidationError):
    """Raised when a sync configuration is invalid."""

    pass


@dataclass
class SyncConfig:
    """Settings for one sync invocation.

    Constructed once per call and treated as read-only while the sync runs.
    """

    local_path: Path
    bucket: str
    prefix: str = ""
    dry_run: bool = False
    delete_extra: bool = False
    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)
    parallelism: int = DEFAULT_PARALLELISM
    comparator: Optional[Union[FileComparator, ComparatorType, str]] = None
    progress_tracker: Optional[ProgressTracker] = None
    multipart_threshold: int = DEFAULT_MULTIPART_THRESHOLD
    chunk_size: int = DEFAULT_CHUNK_SIZE

    @property
    def normalized_prefix(self) -> str:
        return normalize_prefix(self.prefix)

    def resolve_comparator(self) -> FileComparator:
        return resolve_comparator(self.comparator)

    def validate(self) -> None:
        """Check every setting before any scanning starts.

        Raises:
            SyncConfigError: On the first invalid setting
        """
        try:
            validate_bucket_name(self.bucket)
        except InvalidBucketNameError as e:
            raise SyncConfigError(str(e)) from e

        if not self.local_path.exists():
            raise SyncConfigError(f"Local path does not exist: {self.local_path}")
        if not self.local_path.is_dir():
            raise SyncConfigError(f"Local path is not a directory: {self.local_path}")

        if self.parallelism < 1 or self.parallelism > MAX_PARALLELISM:
            raise SyncConfigError(
                f"Parallelism must be between 1 and {MAX_PARALLELISM}, got {self.parallelism}"
            )
        if self.multipart_threshold < 1:
            raise SyncConfigError("Multipart threshold must be positive")
        if self.chunk_size < 5 * 1024 * 1024:
            raise SyncConfigError("Multipart chunk size must be at least 5 MB")

        pattern_errors = PatternMatcher(self.include_patterns, self.exclude_patterns).validate()
        if pattern_errors:
            raise SyncConfigError("; ".join(str(e) for e in pattern_errors))

        try:
            self.resolve_comparator()
        except ValueError as e:
            raise SyncConfigError(str(e)) from e


def _string_list(value: Any, name: str, index: int) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise SyncConfigError(f"Sync definition {index}: '{name}' must be a list of strings")
    return list(value)


def _parse_entry(data: Any, index: int, base_dir: Path) -> SyncConfig:
    if not isinstance(data, dict):
        raise SyncConfigError(f"Sync definition {index} must be an object")

    missing = [name for name in ("local", "bucket") if not data.get(name)]
    if missing:
        raise SyncConfigError(
            f"Sync definition {index} is missing required field(s): {', '.join(missing)}"
        )

    local_path = Path(data["local"]).expanduser()
    if not local_path.is_absolute():
        local_path = base_dir / local_path

    parallelism = data.get("parallelism", DEFAULT_PARALLELISM)
    if not isinstance(parallelism, int) or isinstance(parallelism, bool):
        raise SyncConfigError(f"Sync definition {index}: 'parallelism' must be an integer")

    comparator = data.get("comparator")
    if comparator is not None:
        try:
            comparator = ComparatorType.from_string(str(comparator))
        except ValueError as e:
            raise SyncConfigError(f"Sync definition {index}: {e}") from e

    return SyncConfig(
        local_path=local_path,
        bucket=str(data["bucket"]),
        prefix=str(data.get("prefix", "")),
        delete_extra=bool(data.get("deleteExtra", False)),
        include_patterns=_string_list(data.get("include"), "include", index),
        exclude_patterns=_string_list(data.get("exclude"), "exclude", index),
        parallelism=parallelism,
        comparator=comparator,
    )


def load_sync_configs_from_json(path: Path) -> list[SyncConfig]:
    """Load sync definitions from a JSON file.

    The file holds a list of objects (a single object is also accepted)::

        [
          {"local": "./site", "bucket": "my-bucket", "prefix": "www/",
           "deleteExtra": true, "exclude": ["*.tmp"], "comparator": "smart"}
        ]

    Relative ``local`` paths are resolved against the file's directory.

    Args:
        path: Path to the JSON file

    Returns:
        List of SyncConfig, in file order

    Raises:
        SyncConfigError: If the file cannot be read or an entry is malformed
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise SyncConfigError(f"Cannot read sync config {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SyncConfigError(f"Invalid JSON in {path}: {e}") from e

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise SyncConfigError(f"Sync config {path} must contain a list of objects")

    base_dir = Path(path).resolve().parent
    configs = [_parse_entry(entry, index, base_dir) for index, entry in enumerate(data)]
    logger.debug(f"Loaded {len(configs)} sync definition(s) from {path}")
    return configs
