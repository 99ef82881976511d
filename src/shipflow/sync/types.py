"""
Type definitions for directory sync.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum


class SyncDirection(StrEnum):
    UPLOAD = "upload"
    DOWNLOAD = "download"


@dataclass(frozen=True)
class DirectoryEntry:
    """
    One leaf found during traversal.

    ``path`` is the local file path (upload) or the object key (download);
    ``relative_path`` always uses forward slashes.
    """

    path: str
    relative_path: str
    size: int
    is_directory: bool = False


@dataclass(frozen=True)
class ProgressSnapshot:
    """Progress observation emitted by TransferStats."""

    direction: SyncDirection
    files_completed: int
    total_files: int
    bytes_completed: int
    total_bytes: int
    elapsed_seconds: float

    @property
    def percent_files(self) -> int:
        return round(self.files_completed / self.total_files * 100) if self.total_files else 0

    @property
    def percent_bytes(self) -> int:
        return round(self.bytes_completed / self.total_bytes * 100) if self.total_bytes else 0

    @property
    def bytes_per_second(self) -> float:
        return self.bytes_completed / self.elapsed_seconds if self.elapsed_seconds > 0 else 0.0


@dataclass(frozen=True)
class SyncResult:
    """Summary of a completed sync call."""

    direction: SyncDirection
    source: str
    destination: str
    files: int
    bytes: int
    elapsed_seconds: float


ProgressReporter = Callable[[ProgressSnapshot], None]
