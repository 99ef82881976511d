"""
Job submission: clone a repository, stage its tree in object storage and
enqueue the job id for the build worker.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from shipflow.config.loader import Config
from shipflow.connections.queue import WorkQueue
from shipflow.connections.storage import BaseStorageConnection
from shipflow.exceptions import ShipflowError, SubmissionError
from shipflow.observability import add_correlation_id, log_job_event
from shipflow.pipeline.vcs import GitCloner, RepositoryCloner
from shipflow.sync import DEFAULT_MAX_CONCURRENCY, DEFAULT_PROGRESS_INTERVAL_MS, UploadSyncEngine
from shipflow.utils.logging import get_logger

logger = get_logger("shipflow.pipeline.submission")


@dataclass(frozen=True)
class SubmissionResult:
    job_id: str
    processing_time_ms: int
    files_uploaded: int = 0


def _new_job_id() -> str:
    return str(uuid.uuid4())


class JobSubmitter:
    """
    Accepts repository URLs and turns them into queued build jobs.

    No rollback is attempted on failure: a clone directory or partially
    uploaded objects may remain.
    """

    def __init__(
        self,
        storage: BaseStorageConnection,
        queue: WorkQueue,
        *,
        cloner: RepositoryCloner | None = None,
        work_dir: str | Path = "output",
        exclude_dirs: Sequence[str] = (".git",),
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        progress_interval_ms: float = DEFAULT_PROGRESS_INTERVAL_MS,
        id_factory: Callable[[], str] = _new_job_id,
    ):
        self.storage = storage
        self.queue = queue
        self.cloner = cloner or GitCloner()
        self.work_dir = Path(work_dir)
        self.exclude_dirs = tuple(exclude_dirs)
        self.max_concurrency = max_concurrency
        self.progress_interval_ms = progress_interval_ms
        self._id_factory = id_factory

    @classmethod
    def from_config(
        cls,
        config: Config,
        storage: BaseStorageConnection,
        queue: WorkQueue,
        **overrides: Any,
    ) -> JobSubmitter:
        kwargs: dict[str, Any] = {
            "work_dir": config.get("pipeline.work_dir", "output"),
            "exclude_dirs": config.get("pipeline.exclude_dirs", [".git"]),
            "max_concurrency": int(config.get("sync.max_concurrency", DEFAULT_MAX_CONCURRENCY)),
            "progress_interval_ms": float(config.get("sync.progress_interval_ms", DEFAULT_PROGRESS_INTERVAL_MS)),
        }
        kwargs.update(overrides)
        return cls(storage, queue, **kwargs)

    async def submit(self, repository_url: str) -> SubmissionResult:
        """
        Clone ``repository_url``, upload the tree under ``<job_id>/`` and push
        the job id onto the work queue.

        Raises:
            SubmissionError: Invalid URL, or the clone, upload or enqueue failed
        """
        started = time.monotonic()
        if not isinstance(repository_url, str) or not repository_url.strip():
            raise SubmissionError("validate", "repository URL must be a non-empty string")
        repository_url = repository_url.strip()
        if repository_url.startswith("-"):
            raise SubmissionError("validate", f"repository URL must not start with '-': {repository_url}")

        job_id = self._id_factory()
        destination = self.work_dir / job_id
        with add_correlation_id(job_id):
            log_job_event("job.submitted", job_id, repository=repository_url)

            engine = UploadSyncEngine(
                self.storage,
                exclude_dirs=self.exclude_dirs,
                max_concurrency=self.max_concurrency,
                progress_interval_ms=self.progress_interval_ms,
            )
            stage = "clone"
            try:
                await self.cloner.clone(repository_url, destination)
                stage = "upload"
                result = await engine.sync(destination, job_id)
                stage = "enqueue"
                await self.queue.push(job_id)
            except ShipflowError as e:
                raise SubmissionError(stage, e.message, job_id=job_id, cause=e) from e
            except Exception as e:
                logger.error(f"Unexpected error during {stage} of job {job_id}: {e}", exc_info=True)
                raise SubmissionError(stage, str(e) or type(e).__name__, job_id=job_id, cause=e) from e

            elapsed_ms = int((time.monotonic() - started) * 1000)
            log_job_event("job.queued", job_id, files=result.files, processing_time_ms=elapsed_ms)
            logger.info(f"Queued job {job_id} ({result.files} files) in {elapsed_ms}ms")
            return SubmissionResult(job_id, elapsed_ms, result.files)
