"""
Sync subsystem: bulk transfer of directory trees to and from object storage.
"""

from shipflow.sync.engine import (
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_PROGRESS_INTERVAL_MS,
    DirectorySyncEngine,
    DownloadSyncEngine,
    UploadSyncEngine,
    join_key,
)
from shipflow.sync.stats import TransferStats, log_progress
from shipflow.sync.types import DirectoryEntry, ProgressSnapshot, SyncDirection, SyncResult

__all__ = [
    "DEFAULT_MAX_CONCURRENCY",
    "DEFAULT_PROGRESS_INTERVAL_MS",
    "DirectorySyncEngine",
    "UploadSyncEngine",
    "DownloadSyncEngine",
    "join_key",
    "TransferStats",
    "log_progress",
    "DirectoryEntry",
    "ProgressSnapshot",
    "SyncDirection",
    "SyncResult",
]
