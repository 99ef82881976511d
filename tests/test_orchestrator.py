"""Tests for the build worker loop."""

from __future__ import annotations

import asyncio
import sys
from datetime import UTC, datetime

import pytest

from shipflow.config.loader import Config, DEFAULTS
from shipflow.connections.memory import MemoryStatusStore, MemoryWorkQueue
from shipflow.exceptions import QueueError
from shipflow.pipeline import BuildRunner, JobState, PipelineOrchestrator, deployment_id_from

FIXED_NOW = datetime(2024, 1, 15, 10, 30, 0, tzinfo=UTC)

BUILD_OK = (
    "import os, pathlib; "
    "assert pathlib.Path('package.json').exists(); "
    "os.makedirs('dist/assets', exist_ok=True); "
    "pathlib.Path('dist/index.html').write_text('<h1>built</h1>'); "
    "pathlib.Path('dist/assets/app.js').write_text('run()')"
)


def python_build(code: str) -> BuildRunner:
    return BuildRunner([[sys.executable, "-c", code]])


def make_orchestrator(storage, queue, status, tmp_path, build: BuildRunner, **kwargs) -> PipelineOrchestrator:
    kwargs.setdefault("error_delay", 0.01)
    return PipelineOrchestrator(
        storage,
        queue,
        status,
        build_runner=build,
        work_dir=tmp_path / "work",
        now=lambda: FIXED_NOW,
        **kwargs,
    )


def seed_source(storage, job_id: str = "abc123") -> None:
    storage.put_bytes(f"{job_id}/package.json", b'{"name": "site"}')
    storage.put_bytes(f"{job_id}/src/main.js", b"main()")


class FlakyQueue(MemoryWorkQueue):
    """Fails the first pop, then behaves normally."""

    def __init__(self):
        super().__init__()
        self.failures = 1

    async def pop(self, timeout: float = 0):
        if self.failures:
            self.failures -= 1
            raise QueueError("connection refused")
        return await super().pop(timeout)


class BrokenStatusStore(MemoryStatusStore):
    async def set(self, job_id, label):
        raise QueueError("status hash unavailable")


async def wait_until(predicate, timeout: float = 10.0) -> None:
    async def poll():
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout)


def test_deployment_id_format():
    assert deployment_id_from(FIXED_NOW) == "20240115103000"


class TestProcessJob:
    @pytest.mark.asyncio
    async def test_successful_job_publishes_and_records_status(self, tmp_path, storage, queue, status):
        seed_source(storage)
        orchestrator = make_orchestrator(storage, queue, status, tmp_path, python_build(BUILD_OK))

        outcome = await orchestrator.process_job("abc123")

        assert outcome.state == JobState.SUCCEEDED
        assert outcome.deployment_id == "20240115103000"
        assert outcome.files_published == 2
        assert status.records == {"abc123": "deployed"}
        assert storage.objects["deployments/abc123/20240115103000/index.html"] == b"<h1>built</h1>"
        assert "deployments/abc123/20240115103000/assets/app.js" in storage.objects
        assert (tmp_path / "work" / "abc123" / "src" / "main.js").read_bytes() == b"main()"

    @pytest.mark.asyncio
    async def test_failed_build_writes_no_status(self, tmp_path, storage, queue, status):
        seed_source(storage)
        orchestrator = make_orchestrator(storage, queue, status, tmp_path, python_build("raise SystemExit(1)"))

        outcome = await orchestrator.process_job("abc123")

        assert outcome.state == JobState.FAILED
        assert "exited with code 1" in outcome.error
        assert status.records == {}
        assert not any(k.startswith("deployments/") for k in storage.objects)

    @pytest.mark.asyncio
    async def test_missing_output_directory_fails_job(self, tmp_path, storage, queue, status):
        seed_source(storage)
        orchestrator = make_orchestrator(storage, queue, status, tmp_path, python_build("pass"))

        outcome = await orchestrator.process_job("abc123")

        assert outcome.state == JobState.FAILED
        assert "output directory not found" in outcome.error
        assert status.records == {}

    @pytest.mark.asyncio
    async def test_record_failures_writes_failed_status(self, tmp_path, storage, queue, status):
        seed_source(storage)
        orchestrator = make_orchestrator(
            storage, queue, status, tmp_path, python_build("raise SystemExit(3)"), record_failures=True
        )

        outcome = await orchestrator.process_job("abc123")

        assert outcome.state == JobState.FAILED
        assert status.records == {"abc123": "failed"}

    @pytest.mark.asyncio
    async def test_status_write_failure_fails_job(self, tmp_path, storage, queue):
        seed_source(storage)
        orchestrator = make_orchestrator(storage, queue, BrokenStatusStore(), tmp_path, python_build(BUILD_OK))

        outcome = await orchestrator.process_job("abc123")

        assert outcome.state == JobState.FAILED
        assert "status hash unavailable" in outcome.error

    @pytest.mark.asyncio
    async def test_missing_build_tool_fails_job(self, tmp_path, storage, queue, status):
        seed_source(storage)
        build = BuildRunner([["shipflow-no-such-build-tool"]])
        orchestrator = make_orchestrator(storage, queue, status, tmp_path, build)

        outcome = await orchestrator.process_job("abc123")

        assert outcome.state == JobState.FAILED
        assert "command not found" in outcome.error


class TestRunLoop:
    @pytest.mark.asyncio
    async def test_run_once_pops_and_processes(self, tmp_path, storage, queue, status):
        seed_source(storage)
        await queue.push("abc123")
        orchestrator = make_orchestrator(storage, queue, status, tmp_path, python_build(BUILD_OK))

        outcome = await orchestrator.run_once()

        assert outcome is not None and outcome.succeeded
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_stop_event_interrupts_idle_wait(self, tmp_path, storage, queue, status):
        orchestrator = make_orchestrator(storage, queue, status, tmp_path, python_build(BUILD_OK))
        stop = asyncio.Event()
        task = asyncio.create_task(orchestrator.run(stop))
        await asyncio.sleep(0.05)

        stop.set()
        await asyncio.wait_for(task, timeout=2)
        assert orchestrator.jobs_processed == 0

    @pytest.mark.asyncio
    async def test_loop_continues_after_failed_job(self, tmp_path, storage, queue, status):
        seed_source(storage, "bad")
        seed_source(storage, "good")
        build = python_build(
            "import os, sys, pathlib; "
            "sys.exit(1) if pathlib.Path.cwd().name == 'bad' else None; " + BUILD_OK
        )
        orchestrator = make_orchestrator(storage, queue, status, tmp_path, build)
        await queue.push("bad")
        await queue.push("good")

        stop = asyncio.Event()
        task = asyncio.create_task(orchestrator.run(stop))
        await wait_until(lambda: orchestrator.jobs_processed == 2)
        stop.set()
        await asyncio.wait_for(task, timeout=2)

        assert status.records == {"good": "deployed"}

    @pytest.mark.asyncio
    async def test_stop_interrupts_error_pause(self, tmp_path, storage, queue, status):
        seed_source(storage)
        orchestrator = make_orchestrator(
            storage, queue, status, tmp_path, python_build("raise SystemExit(1)"), error_delay=60
        )
        await queue.push("abc123")

        stop = asyncio.Event()
        task = asyncio.create_task(orchestrator.run(stop))
        await wait_until(lambda: orchestrator.jobs_processed == 1)
        stop.set()
        await asyncio.wait_for(task, timeout=2)

    @pytest.mark.asyncio
    async def test_queue_error_does_not_end_loop(self, tmp_path, storage, status):
        seed_source(storage)
        queue = FlakyQueue()
        await queue.push("abc123")
        orchestrator = make_orchestrator(storage, queue, status, tmp_path, python_build(BUILD_OK))

        stop = asyncio.Event()
        task = asyncio.create_task(orchestrator.run(stop))
        await wait_until(lambda: "abc123" in status.records)
        stop.set()
        await asyncio.wait_for(task, timeout=2)

        assert status.records["abc123"] == "deployed"


class TestFromConfig:
    def test_settings_taken_from_config(self, tmp_path, storage, queue, status):
        data = {
            **DEFAULTS,
            "pipeline": {**DEFAULTS["pipeline"], "work_dir": str(tmp_path), "error_delay_s": 1.5},
            "sync": {"max_concurrency": 3, "progress_interval_ms": 500},
        }
        orchestrator = PipelineOrchestrator.from_config(Config(data), storage, queue, status)

        assert orchestrator.work_dir == tmp_path
        assert orchestrator.error_delay == 1.5
        assert orchestrator.max_concurrency == 3
        assert orchestrator.record_failures is False
        assert orchestrator.build_runner.commands == [["npm", "install"], ["npm", "run", "build"]]
