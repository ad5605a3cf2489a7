"""Sync engine for pys3sync - one-way directory to bucket synchronization."""

from .comparator import (
    ChecksumComparator,
    ComparatorType,
    CompositeComparator,
    FileComparator,
    NullComparator,
    SizeOnlyComparator,
    SmartComparator,
    TimeComparator,
    resolve_comparator,
)
from .config import SyncConfig, SyncConfigError, load_sync_configs_from_json
from .engine import SyncEngine, SyncResult
from .executor import (
    DeleteResult,
    ExecutionResult,
    SyncError,
    SyncExecutor,
    UploadResult,
)
from .operations import ObjectStore, SyncOperations
from .patterns import PatternMatcher
from .planner import (
    Operation,
    OperationType,
    PlanSummary,
    SyncPlanner,
    summarize,
    validate_plan,
)
from .progress import CallbackProgressTracker, NullProgressTracker, ProgressTracker
from .scanner import DirectoryScanner, LocalFile, RemoteFile

__all__ = [
    "SyncEngine",
    "SyncResult",
    "SyncConfig",
    "SyncConfigError",
    "load_sync_configs_from_json",
    "SyncOperations",
    "ObjectStore",
    "DirectoryScanner",
    "LocalFile",
    "RemoteFile",
    "PatternMatcher",
    "FileComparator",
    "SmartComparator",
    "SizeOnlyComparator",
    "ChecksumComparator",
    "TimeComparator",
    "CompositeComparator",
    "NullComparator",
    "ComparatorType",
    "resolve_comparator",
    "SyncPlanner",
    "Operation",
    "OperationType",
    "PlanSummary",
    "summarize",
    "validate_plan",
    "SyncExecutor",
    "SyncError",
    "UploadResult",
    "DeleteResult",
    "ExecutionResult",
    "ProgressTracker",
    "NullProgressTracker",
    "CallbackProgressTracker",
]
