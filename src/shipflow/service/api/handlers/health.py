"""
Health endpoint.
"""

import time

from aiohttp import web

from shipflow.service.api.handlers import BaseHandler


class HealthHandler(BaseHandler):
    """Handler for the health check endpoint."""

    def __init__(self, service):
        super().__init__(service)
        self._start_time = time.time()

    async def health(self, request: web.Request) -> web.Response:
        """
        GET /health

        Returns service health status.
        """
        from shipflow import __version__

        data = {
            "status": "ok",
            "version": __version__,
            "uptime_seconds": round(time.time() - self._start_time, 2),
            "bucket": self.config.get("storage.bucket"),
            "queue": self.config.get("queue.name"),
        }
        return await self.json_response(data, request=request)
