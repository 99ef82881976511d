"""Tests for job submission."""

from __future__ import annotations

import pytest

from conftest import FakeCloner
from shipflow.config.loader import Config, DEFAULTS
from shipflow.connections.memory import MemoryWorkQueue
from shipflow.exceptions import CloneError, QueueError, SubmissionError
from shipflow.pipeline import JobSubmitter


class BrokenQueue(MemoryWorkQueue):
    async def push(self, value: str) -> None:
        raise QueueError("redis down")


def make_submitter(storage, queue, tmp_path, cloner=None, **kwargs) -> JobSubmitter:
    return JobSubmitter(
        storage,
        queue,
        cloner=cloner or FakeCloner(),
        work_dir=tmp_path / "output",
        id_factory=lambda: "job-1",
        **kwargs,
    )


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submit_uploads_tree_and_enqueues(self, tmp_path, storage, queue):
        submitter = make_submitter(storage, queue, tmp_path)

        result = await submitter.submit("https://github.com/acme/site.git")

        assert result.job_id == "job-1"
        assert result.files_uploaded == 3
        assert result.processing_time_ms >= 0
        assert set(storage.objects) == {"job-1/package.json", "job-1/src/index.js", "job-1/public/index.html"}
        assert sum(len(v) for v in storage.objects.values()) == 450
        assert queue.pushed == ["job-1"]

    @pytest.mark.asyncio
    async def test_clone_destination_under_work_dir(self, tmp_path, storage, queue):
        cloner = FakeCloner()
        submitter = make_submitter(storage, queue, tmp_path, cloner=cloner)

        await submitter.submit("  https://github.com/acme/site.git ")

        assert cloner.calls == [("https://github.com/acme/site.git", tmp_path / "output" / "job-1")]

    @pytest.mark.asyncio
    async def test_git_directory_not_uploaded_by_default(self, tmp_path, storage, queue):
        await make_submitter(storage, queue, tmp_path).submit("https://example.com/r.git")
        assert not any("/.git/" in key for key in storage.objects)

    @pytest.mark.asyncio
    async def test_ids_are_unique_by_default(self, tmp_path, storage, queue):
        submitter = JobSubmitter(storage, queue, cloner=FakeCloner(), work_dir=tmp_path)
        first = await submitter.submit("https://example.com/r.git")
        second = await submitter.submit("https://example.com/r.git")
        assert first.job_id != second.job_id
        assert queue.pushed == [first.job_id, second.job_id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["", "   ", None, 42])
    async def test_invalid_url_rejected_before_side_effects(self, tmp_path, storage, queue, url):
        cloner = FakeCloner()
        submitter = make_submitter(storage, queue, tmp_path, cloner=cloner)

        with pytest.raises(SubmissionError) as exc_info:
            await submitter.submit(url)

        assert exc_info.value.stage == "validate"
        assert cloner.calls == []
        assert queue.pushed == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["--upload-pack=touch pwned", " -c core.sshCommand=x"])
    async def test_option_like_url_rejected(self, tmp_path, storage, queue, url):
        cloner = FakeCloner()
        submitter = make_submitter(storage, queue, tmp_path, cloner=cloner)

        with pytest.raises(SubmissionError) as exc_info:
            await submitter.submit(url)

        assert exc_info.value.stage == "validate"
        assert cloner.calls == []
        assert queue.pushed == []

    @pytest.mark.asyncio
    async def test_clone_failure(self, tmp_path, storage, queue):
        cloner = FakeCloner(error=CloneError("https://x/r.git", "repository not found", exit_code=128))
        submitter = make_submitter(storage, queue, tmp_path, cloner=cloner)

        with pytest.raises(SubmissionError) as exc_info:
            await submitter.submit("https://x/r.git")

        assert exc_info.value.stage == "clone"
        assert isinstance(exc_info.value.__cause__, CloneError)
        assert storage.objects == {}
        assert queue.pushed == []

    @pytest.mark.asyncio
    async def test_unexpected_clone_error_is_wrapped(self, tmp_path, storage, queue):
        cloner = FakeCloner(error=PermissionError("permission denied: output"))
        submitter = make_submitter(storage, queue, tmp_path, cloner=cloner)

        with pytest.raises(SubmissionError) as exc_info:
            await submitter.submit("https://x/r.git")

        assert exc_info.value.stage == "clone"
        assert "permission denied: output" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, PermissionError)
        assert queue.pushed == []

    @pytest.mark.asyncio
    async def test_enqueue_failure_leaves_uploaded_objects(self, tmp_path, storage):
        submitter = make_submitter(storage, BrokenQueue(), tmp_path)

        with pytest.raises(SubmissionError) as exc_info:
            await submitter.submit("https://x/r.git")

        assert exc_info.value.stage == "enqueue"
        assert exc_info.value.job_id == "job-1"
        # No rollback of the staged source
        assert len(storage.objects) == 3


def test_from_config(tmp_path, storage, queue):
    data = {**DEFAULTS, "pipeline": {**DEFAULTS["pipeline"], "work_dir": str(tmp_path), "exclude_dirs": []}}
    submitter = JobSubmitter.from_config(Config(data), storage, queue, cloner=FakeCloner())
    assert submitter.work_dir == tmp_path
    assert submitter.exclude_dirs == ()
