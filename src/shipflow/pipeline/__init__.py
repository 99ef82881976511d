"""
Pipeline: job submission, the build worker and the external steps they drive.
"""

from shipflow.pipeline.build import DEFAULT_BUILD_COMMANDS, BuildRunner
from shipflow.pipeline.orchestrator import (
    STATUS_DEPLOYED,
    STATUS_FAILED,
    JobOutcome,
    JobState,
    PipelineOrchestrator,
    deployment_id_from,
)
from shipflow.pipeline.submission import JobSubmitter, SubmissionResult
from shipflow.pipeline.vcs import GitCloner, RepositoryCloner

__all__ = [
    "DEFAULT_BUILD_COMMANDS",
    "BuildRunner",
    "STATUS_DEPLOYED",
    "STATUS_FAILED",
    "JobOutcome",
    "JobState",
    "PipelineOrchestrator",
    "deployment_id_from",
    "JobSubmitter",
    "SubmissionResult",
    "GitCloner",
    "RepositoryCloner",
]
