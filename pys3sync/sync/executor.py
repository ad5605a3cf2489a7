"""Parallel execution of sync plans."""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..exceptions import ExecutionError, SyncCancelledError
from ..utils import DEFAULT_PARALLELISM, DELETE_BATCH_SIZE, chunked
from .operations import SyncOperations
from .planner import Operation, OperationType
from .progress import NullProgressTracker, ProgressTracker

logger = logging.getLogger(__name__)

# How often blocked waits re-check for cancellation (seconds)
_ACQUIRE_POLL_INTERVAL = 0.05


@dataclass(frozen=True)
class SyncError:
    """A single failed upload or delete."""

    operation: str
    """Either "upload" or "delete" """

    key: str
    """Remote key the operation targeted"""

    message: str
    local_path: Optional[Path] = None
    cause: Optional[BaseException] = field(default=None, compare=False)

    def __str__(self) -> str:
        target = f"{self.local_path} -> {self.key}" if self.local_path else self.key
        return f"{self.operation} {target}: {self.message}"


class _Counter:
    """Integer counter safe for concurrent increments."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def add(self, amount: int = 1) -> int:
        with self._lock:
            self._value += amount
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class _ErrorList:
    """Append-only error list shared between workers."""

    def __init__(self) -> None:
        self._items: list[SyncError] = []
        self._lock = threading.Lock()

    def append(self, error: SyncError) -> None:
        with self._lock:
            self._items.append(error)

    def snapshot(self) -> list[SyncError]:
        with self._lock:
            return list(self._items)


class UploadResult:
    """Outcome of the upload track."""

    def __init__(self) -> None:
        self._files = _Counter()
        self._bytes = _Counter()
        self._errors = _ErrorList()
        self.duration = 0.0

    @property
    def files_uploaded(self) -> int:
        return self._files.value

    @property
    def bytes_uploaded(self) -> int:
        return self._bytes.value

    @property
    def errors(self) -> list[SyncError]:
        return self._errors.snapshot()

    def record_success(self, size: int) -> int:
        """Count one uploaded file and return the running byte total."""
        self._files.add()
        return self._bytes.add(size)

    def record_error(self, error: SyncError) -> None:
        self._errors.append(error)


class DeleteResult:
    """Outcome of the delete track."""

    def __init__(self) -> None:
        self._files = _Counter()
        self._errors = _ErrorList()
        self.batches_sent = 0
        self.duration = 0.0

    @property
    def files_deleted(self) -> int:
        return self._files.value

    @property
    def errors(self) -> list[SyncError]:
        return self._errors.snapshot()

    def record_deleted(self, count: int) -> None:
        self._files.add(count)

    def record_error(self, error: SyncError) -> None:
        self._errors.append(error)


class ExecutionResult:
    """Combined outcome of both tracks."""

    def __init__(self, dry_run: bool = False) -> None:
        self.uploads = UploadResult()
        self.deletes = DeleteResult()
        self.dry_run = dry_run
        self.duration = 0.0
        self.cancelled = False
        self._first_error: Optional[BaseException] = None
        self._lock = threading.Lock()

    @property
    def first_error(self) -> Optional[BaseException]:
        """The first failure observed on either track, if any."""
        with self._lock:
            return self._first_error

    @property
    def errors(self) -> list[SyncError]:
        return self.uploads.errors + self.deletes.errors

    def note_error(self, err: BaseException) -> None:
        with self._lock:
            if self._first_error is None:
                self._first_error = err

    def mark_cancelled(self, err: SyncCancelledError) -> None:
        with self._lock:
            self.cancelled = True
            if self._first_error is None:
                self._first_error = err


class SyncExecutor:
    """Runs a plan against the object store.

    Uploads and deletes run on two independent tracks, concurrently when
    both have work. Uploads are bounded by a semaphore of ``parallelism``
    slots; a failed upload is recorded and its siblings carry on. Deletes
    are sent sequentially in batches of at most 1000 keys; a failed batch
    call marks all of its keys as failed and stops the remaining batches.
    """

    def __init__(
        self,
        operations: SyncOperations,
        parallelism: int = DEFAULT_PARALLELISM,
        progress_tracker: Optional[ProgressTracker] = None,
    ):
        """Initialize sync executor.

        Args:
            operations: Upload/delete primitives
            parallelism: Maximum number of uploads in flight (<= 0 selects the default)
            progress_tracker: Receives cumulative byte counts as uploads finish
        """
        self.operations = operations
        self.parallelism = parallelism if parallelism > 0 else DEFAULT_PARALLELISM
        self.progress_tracker = progress_tracker or NullProgressTracker()

    def execute(
        self,
        plan: list[Operation],
        bucket: str,
        dry_run: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExecutionResult:
        """Execute a plan.

        Skip operations are never sent anywhere. With ``dry_run`` no network
        call is made; the result carries the counts and bytes the plan
        would have moved.

        Args:
            plan: Operations produced by the planner
            bucket: Destination bucket
            dry_run: Only tally the plan
            cancel_event: When set, no new operation is started

        Returns:
            ExecutionResult; per-item failures are in ``errors`` and the
            earliest one in ``first_error``

        Raises:
            KeyboardInterrupt: Re-raised after setting the cancel event, once
                in-flight uploads have finished
        """
        start = time.monotonic()
        result = ExecutionResult(dry_run=dry_run)

        uploads = [op for op in plan if op.type == OperationType.UPLOAD]
        deletes = [op for op in plan if op.type == OperationType.DELETE]

        if dry_run:
            self._tally(uploads, deletes, result)
            result.duration = time.monotonic() - start
            return result

        # Ctrl-C in the main thread must be able to stop both tracks
        if cancel_event is None:
            cancel_event = threading.Event()

        total_bytes = sum(op.size for op in uploads)
        logger.debug(
            f"Executing {len(uploads)} upload(s) with {self.parallelism} workers "
            f"and {len(deletes)} delete(s)"
        )

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="pys3sync-track") as tracks:
            futures: list[Future] = []
            try:
                if uploads:
                    futures.append(
                        tracks.submit(
                            self._execute_uploads,
                            uploads,
                            bucket,
                            total_bytes,
                            result,
                            cancel_event,
                        )
                    )
                if deletes:
                    futures.append(
                        tracks.submit(self._execute_deletes, deletes, bucket, result, cancel_event)
                    )
                # Poll so a pending KeyboardInterrupt is raised promptly
                pending = set(futures)
                while pending:
                    _, pending = wait(pending, timeout=_ACQUIRE_POLL_INTERVAL)
            except KeyboardInterrupt:
                logger.debug("Interrupted, stopping both tracks")
                cancel_event.set()
                raise
            for future in futures:
                future.result()

        result.duration = time.monotonic() - start
        return result

    def _tally(
        self,
        uploads: list[Operation],
        deletes: list[Operation],
        result: ExecutionResult,
    ) -> None:
        for op in uploads:
            result.uploads.record_success(op.size)
        result.deletes.record_deleted(len(deletes))

    @staticmethod
    def _acquire(
        semaphore: threading.BoundedSemaphore,
        cancel_event: Optional[threading.Event],
    ) -> bool:
        if cancel_event is None:
            semaphore.acquire()
            return True
        while True:
            if cancel_event.is_set():
                return False
            if semaphore.acquire(timeout=_ACQUIRE_POLL_INTERVAL):
                return True

    def _execute_uploads(
        self,
        uploads: list[Operation],
        bucket: str,
        total_bytes: int,
        result: ExecutionResult,
        cancel_event: Optional[threading.Event],
    ) -> None:
        start = time.monotonic()
        semaphore = threading.BoundedSemaphore(self.parallelism)

        futures: list[Future] = []
        with ThreadPoolExecutor(
            max_workers=self.parallelism, thread_name_prefix="pys3sync-upload"
        ) as pool:
            for index, op in enumerate(uploads):
                if not self._acquire(semaphore, cancel_event):
                    remaining = len(uploads) - index
                    logger.debug(f"Cancelled with {remaining} upload(s) not started")
                    result.mark_cancelled(
                        SyncCancelledError(
                            f"Sync cancelled while waiting for an upload slot "
                            f"({remaining} upload(s) not started)",
                            op="upload",
                            bucket=bucket,
                        )
                    )
                    break
                try:
                    futures.append(
                        pool.submit(
                            self._upload_one,
                            op,
                            bucket,
                            total_bytes,
                            result,
                            semaphore,
                            cancel_event,
                        )
                    )
                except BaseException:
                    semaphore.release()
                    raise

        result.uploads.duration = time.monotonic() - start
        # Per-item failures are recorded in _upload_one; surface anything else
        for future in futures:
            future.result()

    def _upload_one(
        self,
        op: Operation,
        bucket: str,
        total_bytes: int,
        result: ExecutionResult,
        semaphore: threading.BoundedSemaphore,
        cancel_event: Optional[threading.Event],
    ) -> None:
        try:
            if cancel_event is not None and cancel_event.is_set():
                result.mark_cancelled(
                    SyncCancelledError(
                        f"Sync cancelled before uploading {op.relative_path}",
                        op="upload",
                        bucket=bucket,
                        key=op.remote_key,
                    )
                )
                return

            started = time.monotonic()
            try:
                self.operations.upload_file(op.local_path, bucket, op.remote_key, op.size)
            except Exception as e:
                elapsed = time.monotonic() - started
                logger.debug(f"Failed {op.relative_path} in {elapsed:.2f}s: {e}")
                result.uploads.record_error(
                    SyncError(
                        operation="upload",
                        key=op.remote_key,
                        message=str(e),
                        local_path=op.local_path,
                        cause=e,
                    )
                )
                result.note_error(e)
                return

            transferred = result.uploads.record_success(op.size)
            self.progress_tracker.update(transferred, total_bytes)
            logger.debug(
                f"Uploaded {op.relative_path} -> {op.remote_key} "
                f"in {time.monotonic() - started:.2f}s"
            )
        finally:
            semaphore.release()

    def _execute_deletes(
        self,
        deletes: list[Operation],
        bucket: str,
        result: ExecutionResult,
        cancel_event: Optional[threading.Event],
    ) -> None:
        start = time.monotonic()

        for batch in chunked(deletes, DELETE_BATCH_SIZE):
            if cancel_event is not None and cancel_event.is_set():
                result.mark_cancelled(
                    SyncCancelledError(
                        "Sync cancelled before sending delete batch", op="delete", bucket=bucket
                    )
                )
                break

            keys = [op.remote_key for op in batch]
            result.deletes.batches_sent += 1
            try:
                response = self.operations.delete_batch(bucket, keys)
            except Exception as e:
                logger.debug(f"Delete batch of {len(keys)} key(s) failed: {e}")
                for key in keys:
                    result.deletes.record_error(
                        SyncError(
                            operation="delete",
                            key=key,
                            message=f"batch delete failed: {e}",
                            cause=e,
                        )
                    )
                result.note_error(e)
                break

            result.deletes.record_deleted(len(response.deleted))
            logger.debug(
                f"Delete batch {result.deletes.batches_sent}: {len(response.deleted)} of "
                f"{len(keys)} key(s) deleted"
            )
            for key_error in response.errors:
                error = SyncError(
                    operation="delete",
                    key=key_error.key,
                    message=f"{key_error.code}: {key_error.message}",
                )
                result.deletes.record_error(error)
                result.note_error(
                    ExecutionError(error.message, op="delete", bucket=bucket, key=error.key)
                )

        result.deletes.duration = time.monotonic() - start
