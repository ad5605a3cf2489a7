"""Core sync engine for directory-to-bucket synchronization."""

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Union

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..exceptions import SyncCancelledError
from ..output import OutputFormatter
from ..utils import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MULTIPART_THRESHOLD,
    DEFAULT_PARALLELISM,
    format_size,
)
from .comparator import ComparatorType, FileComparator
from .config import SyncConfig
from .executor import ExecutionResult, SyncError, SyncExecutor
from .operations import ObjectStore, SyncOperations
from .planner import Operation, OperationType, PlanSummary, SyncPlanner, summarize, validate_plan
from .progress import NullProgressTracker, ProgressTracker
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of one sync call.

    A result can carry per-item errors even when ``sync()`` returned
    normally; callers should check ``errors`` as well as exceptions.
    """

    files_uploaded: int = 0
    files_skipped: int = 0
    files_deleted: int = 0
    bytes_uploaded: int = 0
    errors: list[SyncError] = field(default_factory=list)
    duration: float = 0.0
    dry_run: bool = False
    operations: list[Operation] = field(default_factory=list)
    first_error: Optional[BaseException] = None

    @property
    def has_errors(self) -> bool:
        return bool(self.errors) or self.first_error is not None

    @property
    def summary(self) -> PlanSummary:
        return summarize(self.operations)

    def to_dict(self) -> dict:
        return {
            "files_uploaded": self.files_uploaded,
            "files_skipped": self.files_skipped,
            "files_deleted": self.files_deleted,
            "bytes_uploaded": self.bytes_uploaded,
            "errors": [str(e) for e in self.errors],
            "duration": round(self.duration, 3),
            "dry_run": self.dry_run,
        }


class SyncEngine:
    """Orchestrates scanning, planning and execution of a sync."""

    def __init__(
        self,
        client: ObjectStore,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize sync engine.

        Args:
            client: Object store client (usually :class:`pys3sync.client.S3Client`)
            output: Output formatter for displaying the plan and summary
        """
        self.client = client
        self.output = output or OutputFormatter()

    def sync(
        self,
        local_path: Union[str, Path],
        bucket: str,
        prefix: str = "",
        dry_run: bool = False,
        delete_extra: bool = False,
        include_patterns: Optional[Sequence[str]] = None,
        exclude_patterns: Optional[Sequence[str]] = None,
        parallelism: int = DEFAULT_PARALLELISM,
        progress_tracker: Optional[ProgressTracker] = None,
        comparator: Optional[Union[FileComparator, ComparatorType, str]] = None,
        cancel_event: Optional[threading.Event] = None,
        multipart_threshold: int = DEFAULT_MULTIPART_THRESHOLD,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> SyncResult:
        """Bring ``bucket/prefix`` into line with a local directory.

        Args:
            local_path: Local directory to sync from
            bucket: Destination bucket
            prefix: Destination key prefix ("" or "/" for the bucket root)
            dry_run: Plan and tally only; no object-store writes
            delete_extra: Delete remote objects that have no local counterpart
            include_patterns: Only sync local files matching one of these globs
            exclude_patterns: Skip local files matching any of these globs
            parallelism: Maximum concurrent uploads
            progress_tracker: Receives ``update``/``complete``/``error`` calls
            comparator: Change-detection strategy (default: smart)
            cancel_event: Set to stop the sync cooperatively
            multipart_threshold: Files of at least this size use multipart upload
            chunk_size: Multipart part size

        Returns:
            SyncResult with counts, bytes and per-item errors

        Raises:
            SyncConfigError: If an argument is invalid
            ScanError: If the local walk or the remote listing fails
            PlanningError: If a comparator fails
            SyncCancelledError: If ``cancel_event`` is set before the sync finishes

        Examples:
            >>> engine = SyncEngine(S3Client())
            >>> result = engine.sync("./site", "my-bucket", "www", delete_extra=True)
            >>> print(f"Uploaded {result.files_uploaded} file(s)")
        """
        config = SyncConfig(
            local_path=Path(local_path),
            bucket=bucket,
            prefix=prefix,
            dry_run=dry_run,
            delete_extra=delete_extra,
            include_patterns=list(include_patterns or []),
            exclude_patterns=list(exclude_patterns or []),
            parallelism=parallelism,
            comparator=comparator,
            progress_tracker=progress_tracker,
            multipart_threshold=multipart_threshold,
            chunk_size=chunk_size,
        )
        return self.sync_directory(config, cancel_event=cancel_event)

    def sync_upload(
        self,
        local_path: Union[str, Path],
        bucket: str,
        prefix: str = "",
        **options,
    ) -> SyncResult:
        """Upload new and modified files without ever deleting remote objects."""
        options["delete_extra"] = False
        return self.sync(local_path, bucket, prefix, **options)

    def sync_directory(
        self,
        config: SyncConfig,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncResult:
        """Run a sync described by a :class:`SyncConfig`.

        See :meth:`sync` for the raised exceptions.
        """
        config.validate()
        tracker = config.progress_tracker or NullProgressTracker()
        start = time.monotonic()

        if not self.output.quiet:
            target = f"s3://{config.bucket}/{config.normalized_prefix}"
            self.output.info(f"Syncing: {config.local_path} -> {target}")
            if config.dry_run:
                self.output.info("Dry run: No changes will be made")
            self.output.print("")

        try:
            plan = self.build_plan(config, cancel_event)
            self._display_plan(summarize(plan))

            executor = SyncExecutor(
                SyncOperations(
                    self.client,
                    multipart_threshold=config.multipart_threshold,
                    chunk_size=config.chunk_size,
                ),
                parallelism=config.parallelism,
                progress_tracker=tracker,
            )
            execution = executor.execute(
                plan, config.bucket, dry_run=config.dry_run, cancel_event=cancel_event
            )
        except Exception as e:
            tracker.error(e)
            raise

        result = self._build_result(plan, execution, time.monotonic() - start)

        if execution.cancelled:
            err = execution.first_error or SyncCancelledError("Sync cancelled", op="sync")
            tracker.error(err)
            raise SyncCancelledError(
                str(err), op="sync", bucket=config.bucket, result=result
            ) from err

        if result.first_error is not None:
            tracker.error(result.first_error)
        else:
            tracker.complete()

        logger.debug(
            f"Sync finished in {result.duration:.2f}s: {result.files_uploaded} uploaded, "
            f"{result.files_deleted} deleted, {result.files_skipped} skipped, "
            f"{len(result.errors)} error(s)"
        )
        self._display_summary(result)
        return result

    def build_plan(
        self,
        config: SyncConfig,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[Operation]:
        """Scan both sides and return the ordered plan without executing it.

        Raises:
            ScanError: If scanning fails
            PlanningError: If a comparator fails or the plan is inconsistent
            SyncCancelledError: If cancelled while scanning
        """
        prefix = config.normalized_prefix
        scanner = DirectoryScanner(
            self.client,
            include_patterns=config.include_patterns,
            exclude_patterns=config.exclude_patterns,
        )

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.output.err_console,
            transient=True,
            disable=self.output.quiet,
        ) as progress:
            task = progress.add_task("Scanning local directory...", total=None)
            local_files = scanner.scan_local(config.local_path, cancel_event)
            progress.update(task, description=f"Found {len(local_files)} local file(s)")

            task = progress.add_task("Scanning remote prefix...", total=None)
            remote_files = scanner.scan_remote(config.bucket, prefix, cancel_event)
            progress.update(task, description=f"Found {len(remote_files)} remote file(s)")

        planner = SyncPlanner(config.resolve_comparator())
        plan = planner.plan(local_files, remote_files, prefix, delete_extra=config.delete_extra)
        validate_plan(plan)
        return plan

    def _build_result(
        self,
        plan: list[Operation],
        execution: ExecutionResult,
        duration: float,
    ) -> SyncResult:
        return SyncResult(
            files_uploaded=execution.uploads.files_uploaded,
            files_skipped=sum(1 for op in plan if op.type == OperationType.SKIP),
            files_deleted=execution.deletes.files_deleted,
            bytes_uploaded=execution.uploads.bytes_uploaded,
            errors=execution.errors,
            duration=duration,
            dry_run=execution.dry_run,
            operations=plan,
            first_error=None if execution.cancelled else execution.first_error,
        )

    def _display_plan(self, summary: PlanSummary) -> None:
        if self.output.quiet:
            return

        self.output.info("Sync plan:")
        if summary.uploads > 0:
            self.output.info(
                f"  ↑ Upload: {summary.uploads} file(s) ({format_size(summary.upload_bytes)})"
            )
        if summary.deletes > 0:
            self.output.info(f"  ✗ Delete remote: {summary.deletes} file(s)")
        if summary.skips > 0:
            self.output.info(f"  = Skip: {summary.skips} file(s)")
        if not summary.has_changes:
            self.output.info("  Nothing to do")
        self.output.print("")

    def _display_summary(self, result: SyncResult) -> None:
        if self.output.quiet:
            return

        if result.dry_run:
            self.output.success("Dry run complete!")
        else:
            self.output.success("Sync complete!")

        total_actions = result.files_uploaded + result.files_deleted
        if total_actions > 0:
            verb = "Would upload" if result.dry_run else "Uploaded"
            if result.files_uploaded > 0:
                self.output.info(
                    f"  {verb}: {result.files_uploaded} "
                    f"({format_size(result.bytes_uploaded)})"
                )
            if result.files_deleted > 0:
                verb = "Would delete" if result.dry_run else "Deleted"
                self.output.info(f"  {verb}: {result.files_deleted}")
        elif not result.errors:
            self.output.info("No changes needed - everything is in sync!")

        for error in result.errors:
            self.output.error(str(error))
