"""
Shipflow - clone, build and publish static sites through object storage.
"""

__version__ = "0.1.0"

from shipflow.config import Config, load_config

# Exceptions
from shipflow.exceptions import (
    BuildError,
    CloneError,
    ConfigurationError,
    EnumerationError,
    ObjectNotFoundError,
    QueueError,
    ShipflowError,
    StorageError,
    SubmissionError,
    TransferError,
)
from shipflow.pipeline import JobOutcome, JobSubmitter, PipelineOrchestrator, SubmissionResult
from shipflow.sync import DownloadSyncEngine, SyncResult, UploadSyncEngine

__all__ = [
    "__version__",
    "Config",
    "load_config",
    "UploadSyncEngine",
    "DownloadSyncEngine",
    "SyncResult",
    "PipelineOrchestrator",
    "JobOutcome",
    "JobSubmitter",
    "SubmissionResult",
    "ShipflowError",
    "ConfigurationError",
    "StorageError",
    "ObjectNotFoundError",
    "TransferError",
    "EnumerationError",
    "CloneError",
    "SubmissionError",
    "BuildError",
    "QueueError",
]
