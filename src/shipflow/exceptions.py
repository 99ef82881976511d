"""
Shipflow exception hierarchy.

All domain-specific exceptions inherit from ShipflowError, so callers can catch
any pipeline error with a single base class while still handling individual
stages when needed.

Hierarchy::

    ShipflowError
    ├── ConfigurationError        - config loading, parsing, validation
    ├── StorageError              - object storage failures
    │   ├── ObjectNotFoundError   - missing object key
    │   ├── TransferError         - single file put/get, directory creation
    │   └── EnumerationError      - listing / traversal
    ├── CloneError                - version-control clone failure
    ├── SubmissionError           - clone or initial upload during submit
    ├── BuildError                - non-zero exit, missing output directory
    └── QueueError                - broker connectivity during push/pop
"""

from __future__ import annotations


class ShipflowError(Exception):
    """Base exception for all Shipflow errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(ShipflowError):
    """Raised when configuration loading, parsing, or validation fails."""


# --- Storage -----------------------------------------------------------------


class StorageError(ShipflowError):
    """Raised when an object storage operation fails."""


class TransferError(StorageError):
    """Raised when a single file cannot be transferred.

    Aborts the enclosing sync call; ``path`` names the local path or object key
    that failed.
    """

    def __init__(self, path: str, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(f"Transfer failed for '{path}': {message}", details={"path": path})
        self.path = path
        if cause is not None:
            self.__cause__ = cause


class ObjectNotFoundError(StorageError):
    """Raised when a requested object key does not exist."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Object not found: {key}", details={"key": key})
        self.key = key


class EnumerationError(StorageError):
    """Raised when a local directory or remote prefix cannot be listed."""

    def __init__(self, path: str, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(f"Cannot enumerate '{path}': {message}", details={"path": path})
        self.path = path
        if cause is not None:
            self.__cause__ = cause


# --- Submission --------------------------------------------------------------


class CloneError(ShipflowError):
    """Raised when the version-control client cannot clone a repository."""

    def __init__(self, url: str, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(f"Cannot clone '{url}': {message}", details={"url": url, "exit_code": exit_code})
        self.url = url
        self.exit_code = exit_code


class SubmissionError(ShipflowError):
    """Raised when a repository submission fails (clone, upload or enqueue)."""

    def __init__(
        self,
        stage: str,
        message: str,
        *,
        job_id: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(f"Submission failed during {stage}: {message}", details={"stage": stage, "job_id": job_id})
        self.stage = stage
        self.job_id = job_id
        if cause is not None:
            self.__cause__ = cause


# --- Build -------------------------------------------------------------------


class BuildError(ShipflowError):
    """Raised when the project build exits non-zero or produces no output."""

    def __init__(self, job_id: str, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(f"Build for job '{job_id}' failed: {message}", details={"job_id": job_id, "exit_code": exit_code})
        self.job_id = job_id
        self.exit_code = exit_code


# --- Queue -------------------------------------------------------------------


class QueueError(ShipflowError):
    """Raised when the work queue or status store cannot be reached."""
