"""CLI progress display for sync operations.

This module provides a Rich-based progress bar that is driven by the
sync engine's progress tracker contract.
"""

import threading
from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    TransferSpeedColumn,
)

from .sync.config import SyncConfig
from .sync.engine import SyncEngine, SyncResult
from .sync.progress import CallbackProgressTracker, ProgressEvent, ProgressInfo


class SyncProgressDisplay:
    """Rich-based progress display for sync operations.

    The bar is created on the first byte update rather than on entry, so
    scanning output printed by the engine is not interleaved with an
    empty bar, and dry runs never show one.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        """Initialize the progress display.

        Args:
            console: Console to render on (defaults to stderr)
        """
        self._console = console or Console(stderr=True)
        self._progress: Optional[Progress] = None
        self._upload_task: Optional[TaskID] = None
        self._lock = threading.Lock()

    def create_tracker(self) -> CallbackProgressTracker:
        """Create a progress tracker that updates this display."""
        return CallbackProgressTracker(callback=self._handle_event)

    def _start(self, total: int) -> None:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeElapsedColumn(),
            console=self._console,
            refresh_per_second=4,
        )
        self._progress.start()
        self._upload_task = self._progress.add_task("Uploading", total=total)

    def _handle_event(self, info: ProgressInfo) -> None:
        with self._lock:
            if info.event == ProgressEvent.UPDATE:
                if self._progress is None:
                    self._start(info.total_bytes)
                assert self._progress is not None and self._upload_task is not None
                self._progress.update(
                    self._upload_task,
                    completed=info.bytes_transferred,
                    total=info.total_bytes,
                )
            elif self._progress is not None and self._upload_task is not None:
                description = (
                    "Upload complete" if info.event == ProgressEvent.COMPLETE else "Upload failed"
                )
                self._progress.update(self._upload_task, description=description)

    def __enter__(self) -> "SyncProgressDisplay":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Stop the progress display if it was started."""
        with self._lock:
            if self._progress is not None:
                self._progress.stop()
                self._progress = None
                self._upload_task = None


def run_sync_with_progress(
    engine: SyncEngine,
    config: SyncConfig,
    show_progress: bool = True,
    cancel_event: Optional[threading.Event] = None,
) -> SyncResult:
    """Run a sync with a Rich progress display.

    Args:
        engine: SyncEngine instance
        config: Sync settings; its progress tracker is replaced
        show_progress: If False, run without a progress bar
        cancel_event: Passed through to the engine

    Returns:
        SyncResult from the engine
    """
    # For dry-run there is nothing to transfer, so no progress bar
    if config.dry_run or not show_progress:
        return engine.sync_directory(config, cancel_event=cancel_event)

    with SyncProgressDisplay(console=engine.output.err_console) as display:
        config.progress_tracker = display.create_tracker()
        return engine.sync_directory(config, cancel_event=cancel_event)
