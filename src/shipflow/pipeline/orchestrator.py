"""
Build worker: the long-running consumer of the build queue.

Each job moves through Queued -> Building -> Succeeded | Failed:

1. block on the queue for the next job id (no timeout);
2. download ``<job_id>/`` into ``<work_dir>/<job_id>``;
3. run the build in that directory;
4. on exit code 0 and an existing output directory, upload it to
   ``deployments/<job_id>/<deployment_id>/`` and record status "deployed".

Any failure is logged, no success status is written, and the loop pauses for
``error_delay`` seconds before popping again. Jobs are processed one at a time;
run more worker processes against the same queue to scale out.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from shipflow.config.loader import Config
from shipflow.connections.queue import StatusStore, WorkQueue
from shipflow.connections.storage import BaseStorageConnection
from shipflow.exceptions import BuildError, QueueError, ShipflowError
from shipflow.observability import add_correlation_id, log_job_event
from shipflow.pipeline.build import BuildRunner
from shipflow.sync import DEFAULT_MAX_CONCURRENCY, DEFAULT_PROGRESS_INTERVAL_MS, DownloadSyncEngine, UploadSyncEngine
from shipflow.utils.logging import get_logger

logger = get_logger("shipflow.pipeline.orchestrator")

STATUS_DEPLOYED = "deployed"
STATUS_FAILED = "failed"

DEFAULT_ERROR_DELAY = 5.0


class JobState(StrEnum):
    QUEUED = "queued"
    BUILDING = "building"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class JobOutcome:
    """Result of processing one job."""

    job_id: str
    state: JobState
    deployment_id: str | None = None
    files_published: int = 0
    error: str | None = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.state == JobState.SUCCEEDED


def deployment_id_from(moment: datetime) -> str:
    """Timestamp-derived deployment id, e.g. ``20240115103000``."""
    return moment.astimezone(UTC).strftime("%Y%m%d%H%M%S")


class PipelineOrchestrator:
    """
    Pops job ids from the work queue and builds and publishes each one.

    Args:
        storage: Object storage holding sources and receiving build output
        queue: Work queue of job ids
        status: Status store receiving terminal labels
        build_runner: Runs the project build (default: npm install + npm run build)
        work_dir: Local directory under which each job gets ``<work_dir>/<job_id>``
        output_dir: Build output directory, relative to the project root
        error_delay: Pause in seconds after a failed iteration
        record_failures: Also write status "failed" for failed jobs
        now: Wall clock used for deployment ids
    """

    def __init__(
        self,
        storage: BaseStorageConnection,
        queue: WorkQueue,
        status: StatusStore,
        *,
        build_runner: BuildRunner | None = None,
        work_dir: str | Path = "output",
        output_dir: str = "dist",
        error_delay: float = DEFAULT_ERROR_DELAY,
        record_failures: bool = False,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        progress_interval_ms: float = DEFAULT_PROGRESS_INTERVAL_MS,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.storage = storage
        self.queue = queue
        self.status = status
        self.build_runner = build_runner or BuildRunner()
        self.work_dir = Path(work_dir)
        self.output_dir = output_dir
        self.error_delay = error_delay
        self.record_failures = record_failures
        self.max_concurrency = max_concurrency
        self.progress_interval_ms = progress_interval_ms
        self._now = now
        self.current_job: str | None = None
        self.current_state: JobState | None = None
        self.jobs_processed = 0

    @classmethod
    def from_config(
        cls,
        config: Config,
        storage: BaseStorageConnection,
        queue: WorkQueue,
        status: StatusStore,
        **overrides: Any,
    ) -> PipelineOrchestrator:
        kwargs: dict[str, Any] = {
            "build_runner": BuildRunner(config.get("pipeline.build_commands"), env=config.get("pipeline.build_env")),
            "work_dir": config.get("pipeline.work_dir", "output"),
            "output_dir": config.get("pipeline.output_dir", "dist"),
            "error_delay": float(config.get("pipeline.error_delay_s", DEFAULT_ERROR_DELAY)),
            "record_failures": bool(config.get("pipeline.record_failures", False)),
            "max_concurrency": int(config.get("sync.max_concurrency", DEFAULT_MAX_CONCURRENCY)),
            "progress_interval_ms": float(config.get("sync.progress_interval_ms", DEFAULT_PROGRESS_INTERVAL_MS)),
        }
        kwargs.update(overrides)
        return cls(storage, queue, status, **kwargs)

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """
        Consume the queue until ``stop_event`` is set (forever when None).

        Failed iterations never end the loop; they pause for ``error_delay``.
        """
        logger.info("Build worker started, waiting for build queue messages...")
        while stop_event is None or not stop_event.is_set():
            try:
                outcome = await self.run_once(stop_event)
            except QueueError as e:
                logger.error(f"Error reading from build queue: {e}")
                await self._pause(stop_event)
                continue

            if outcome is not None and not outcome.succeeded:
                await self._pause(stop_event)
        logger.info("Build worker stopped")

    async def run_once(self, stop_event: asyncio.Event | None = None) -> JobOutcome | None:
        """
        Pop one job and process it.

        Returns:
            The job outcome, or None when ``stop_event`` interrupted the wait

        Raises:
            QueueError: The queue could not be read
        """
        job_id = await self._next_job(stop_event)
        if job_id is None:
            return None
        logger.info(f"Received message from build queue: {job_id}")
        return await self.process_job(job_id)

    async def process_job(self, job_id: str) -> JobOutcome:
        """Download, build and publish one job. Never raises for job failures."""
        started = time.monotonic()
        self.current_job = job_id
        self.current_state = JobState.QUEUED
        with add_correlation_id(job_id):
            log_job_event("job.received", job_id)
            try:
                deployment_id, files = await self._build_and_publish(job_id)
            except Exception as e:
                duration = time.monotonic() - started
                # Unexpected errors get a traceback; known pipeline errors are self-explanatory
                logger.error(f"Error processing job {job_id}: {e}", exc_info=not isinstance(e, ShipflowError))
                log_job_event("job.failed", job_id, error=str(e), duration_seconds=round(duration, 3))
                await self._record_failure(job_id)
                self.current_state = JobState.FAILED
                return JobOutcome(job_id, JobState.FAILED, error=str(e), duration_seconds=duration)
            finally:
                self.jobs_processed += 1
                self.current_job = None

            duration = time.monotonic() - started
            log_job_event(
                "job.deployed",
                job_id,
                deployment_id=deployment_id,
                files=files,
                duration_seconds=round(duration, 3),
            )
            self.current_state = JobState.SUCCEEDED
            return JobOutcome(
                job_id,
                JobState.SUCCEEDED,
                deployment_id=deployment_id,
                files_published=files,
                duration_seconds=duration,
            )

    async def _build_and_publish(self, job_id: str) -> tuple[str, int]:
        project_dir = self.work_dir / job_id

        logger.info(f"Downloading source for {job_id} to {project_dir}")
        await self._engine(DownloadSyncEngine).sync(job_id, project_dir)

        # The source tree is complete; only now may the build start
        self.current_state = JobState.BUILDING
        exit_code = await self.build_runner.run(project_dir, job_id=job_id)
        if exit_code != 0:
            raise BuildError(job_id, f"build exited with code {exit_code}", exit_code=exit_code)

        output = project_dir / self.output_dir
        if not output.is_dir():
            raise BuildError(job_id, f"output directory not found: {output}", exit_code=0)

        deployment_id = deployment_id_from(self._now())
        prefix = f"deployments/{job_id}/{deployment_id}"
        logger.info(f"Publishing {output} to {prefix}")
        result = await self._engine(UploadSyncEngine).sync(output, prefix)

        await self.status.set(job_id, STATUS_DEPLOYED)
        return deployment_id, result.files

    def _engine(self, engine_cls: type[DownloadSyncEngine] | type[UploadSyncEngine]):
        # A fresh engine per transfer keeps statistics exclusive to one sync call
        return engine_cls(
            self.storage,
            max_concurrency=self.max_concurrency,
            progress_interval_ms=self.progress_interval_ms,
        )

    async def _record_failure(self, job_id: str) -> None:
        if not self.record_failures:
            return
        try:
            await self.status.set(job_id, STATUS_FAILED)
        except QueueError as e:
            logger.error(f"Could not record failed status for {job_id}: {e}")

    async def _next_job(self, stop_event: asyncio.Event | None) -> str | None:
        if stop_event is None:
            return await self.queue.pop(timeout=0)

        pop = asyncio.create_task(self.queue.pop(timeout=0))
        stop = asyncio.create_task(stop_event.wait())
        try:
            await asyncio.wait({pop, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop.cancel()
        if pop.done():
            # A job popped at the same moment as the stop request is still processed
            return pop.result()
        pop.cancel()
        await asyncio.gather(pop, return_exceptions=True)
        return None

    async def _pause(self, stop_event: asyncio.Event | None) -> None:
        logger.info(f"Pausing {self.error_delay:.1f}s before the next job")
        if stop_event is None:
            await asyncio.sleep(self.error_delay)
            return
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=self.error_delay)
        except TimeoutError:
            pass
