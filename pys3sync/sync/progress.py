"""Progress reporting for sync operations.

The executor reports through a three-call contract: ``update`` after every
completed upload with the running byte total, then exactly one of
``complete`` or ``error`` when the run ends. Trackers are called from
worker threads and must be thread-safe.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Base tracker; every hook is a no-op."""

    def update(self, bytes_transferred: int, total_bytes: int) -> None:
        """Report running progress.

        Args:
            bytes_transferred: Bytes uploaded so far in this run
            total_bytes: Total bytes the plan intends to upload
        """

    def complete(self) -> None:
        """Report that the run finished without errors."""

    def error(self, err: BaseException) -> None:
        """Report that the run finished with an error."""


class NullProgressTracker(ProgressTracker):
    """Tracker used when no progress reporting is requested."""


class ProgressEvent(str, Enum):
    UPDATE = "update"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class ProgressInfo:
    """Snapshot passed to progress callbacks."""

    event: ProgressEvent
    bytes_transferred: int = 0
    total_bytes: int = 0
    error: Optional[BaseException] = None

    @property
    def fraction(self) -> float:
        if self.total_bytes <= 0:
            return 1.0 if self.event == ProgressEvent.COMPLETE else 0.0
        return min(1.0, self.bytes_transferred / self.total_bytes)


class CallbackProgressTracker(ProgressTracker):
    """Forwards progress to a callback as :class:`ProgressInfo` events.

    The callback runs under a lock, so it never sees events out of order
    and never runs concurrently with itself.

    Examples:
        >>> events = []
        >>> tracker = CallbackProgressTracker(events.append)
        >>> tracker.update(10, 100)
        >>> events[0].fraction
        0.1
    """

    def __init__(self, callback: Callable[[ProgressInfo], None]):
        self.callback = callback
        self._lock = threading.Lock()
        self._bytes_transferred = 0
        self._total_bytes = 0

    def update(self, bytes_transferred: int, total_bytes: int) -> None:
        with self._lock:
            # Workers finish out of order; never report progress going backwards
            self._bytes_transferred = max(self._bytes_transferred, bytes_transferred)
            self._total_bytes = total_bytes
            self.callback(
                ProgressInfo(
                    event=ProgressEvent.UPDATE,
                    bytes_transferred=self._bytes_transferred,
                    total_bytes=self._total_bytes,
                )
            )

    def complete(self) -> None:
        with self._lock:
            self.callback(
                ProgressInfo(
                    event=ProgressEvent.COMPLETE,
                    bytes_transferred=self._bytes_transferred,
                    total_bytes=self._total_bytes,
                )
            )

    def error(self, err: BaseException) -> None:
        with self._lock:
            self.callback(
                ProgressInfo(
                    event=ProgressEvent.ERROR,
                    bytes_transferred=self._bytes_transferred,
                    total_bytes=self._total_bytes,
                    error=err,
                )
            )
