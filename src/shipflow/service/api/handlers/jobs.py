"""
Submission and status endpoints.
"""

import json
import time

from aiohttp import web

from shipflow.exceptions import QueueError, SubmissionError
from shipflow.service.api.errors import ErrorCode, ServiceUnavailableError, ValidationError
from shipflow.service.api.handlers import BaseHandler
from shipflow.utils.logging import get_logger

logger = get_logger("shipflow.service.api.handlers.jobs")


class JobsHandler(BaseHandler):
    """Handler for repository submissions and job status lookups."""

    async def upload(self, request: web.Request) -> web.Response:
        """
        POST /upload

        Request body:
            repoUrl: Git URL of the repository to build

        Returns ``{id, processingTimeMs}``. A failed clone, upload or enqueue
        returns 500 with ``{error, code, message, processingTimeMs}``.
        """
        started = time.monotonic()
        try:
            body = await request.json()
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in request body: {e.msg}") from e

        repo_url = body.get("repoUrl") if isinstance(body, dict) else None
        if not isinstance(repo_url, str) or not repo_url.strip():
            raise ValidationError("'repoUrl' is required")

        try:
            result = await self.service.submitter.submit(repo_url)
        except SubmissionError as e:
            if e.stage == "validate":
                raise ValidationError(e.message) from e
            elapsed_ms = int((time.monotonic() - started) * 1000)
            logger.error(f"Error in upload process after {elapsed_ms}ms: {e}")
            return await self.json_response(
                {
                    "error": "Failed to process the upload",
                    "code": ErrorCode.SUBMISSION_ERROR.value,
                    "message": e.message,
                    "processingTimeMs": elapsed_ms,
                },
                status=500,
                request=request,
            )

        logger.info(f"Upload process completed successfully in {result.processing_time_ms}ms")
        return await self.json_response(
            {"id": result.job_id, "processingTimeMs": result.processing_time_ms},
            request=request,
        )

    async def status(self, request: web.Request) -> web.Response:
        """
        GET /status?id=<jobId>

        Returns ``{status}``; null when no status has been recorded.
        """
        job_id = request.query.get("id", "").strip()
        if not job_id:
            raise ValidationError("'id' query parameter is required")
        try:
            label = await self.service.status.get(job_id)
        except QueueError as e:
            raise ServiceUnavailableError(e.message) from e
        return await self.json_response({"status": label}, request=request)
