"""
Transfer statistics for one sync call.

Counts are filled in by the statistics pass, completions are recorded as
transfers finish, and progress is reported at most once per interval.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from shipflow.sync.types import ProgressReporter, ProgressSnapshot, SyncDirection
from shipflow.utils.logging import format_bytes, get_logger

logger = get_logger("shipflow.sync.stats")


def log_progress(snapshot: ProgressSnapshot) -> None:
    """Default reporter: one INFO line per observation."""
    logger.info(
        f"{snapshot.direction.value.capitalize()} progress: "
        f"{snapshot.files_completed}/{snapshot.total_files} files ({snapshot.percent_files}%) | "
        f"{format_bytes(snapshot.bytes_completed)}/{format_bytes(snapshot.total_bytes)} "
        f"({snapshot.percent_bytes}%) | {format_bytes(snapshot.bytes_per_second)}/s"
    )


class TransferStats:
    """
    Mutable counters for a single sync call.

    Owned by one engine invocation. All updates happen on the event loop
    thread between awaits, so plain integer increments are atomic.

    Args:
        direction: Upload or download, used in progress observations
        reporter: Callable receiving each emitted ProgressSnapshot
        clock: Monotonic clock in seconds (injectable for tests)
    """

    def __init__(
        self,
        direction: SyncDirection,
        reporter: ProgressReporter | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.direction = direction
        self.reporter = reporter or log_progress
        self._clock = clock
        self.total_files = 0
        self.files_completed = 0
        self.total_bytes = 0
        self.bytes_completed = 0
        self.start_time = 0.0
        self.last_report_time = 0.0

    def reset(self) -> None:
        """Zero all counters and stamp the start time."""
        now = self._clock()
        self.total_files = 0
        self.files_completed = 0
        self.total_bytes = 0
        self.bytes_completed = 0
        self.start_time = now
        self.last_report_time = now

    def add_entry(self, size: int) -> None:
        """Count one more file of ``size`` bytes in the totals."""
        self.total_files += 1
        self.total_bytes += size

    def record_file_complete(self, nbytes: int) -> None:
        self.files_completed += 1
        self.bytes_completed += nbytes

    @property
    def elapsed_seconds(self) -> float:
        return self._clock() - self.start_time

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            direction=self.direction,
            files_completed=self.files_completed,
            total_files=self.total_files,
            bytes_completed=self.bytes_completed,
            total_bytes=self.total_bytes,
            elapsed_seconds=self.elapsed_seconds,
        )

    def maybe_report(self, interval_ms: float) -> bool:
        """
        Emit a progress observation if ``interval_ms`` has passed since the last one.

        Returns:
            True when an observation was emitted
        """
        now = self._clock()
        if (now - self.last_report_time) * 1000 < interval_ms:
            return False
        self.last_report_time = now
        self.reporter(self.snapshot())
        return True
