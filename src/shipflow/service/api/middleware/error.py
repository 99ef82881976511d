"""
Error handling middleware.

Provides consistent error responses and request ID tracking.
"""

import json
import uuid
from collections.abc import Callable

from aiohttp import web

from shipflow.service.api.errors import APIError, ErrorCode
from shipflow.utils.logging import get_logger

logger = get_logger("shipflow.service.api.middleware.error")


@web.middleware
async def error_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """
    Middleware for consistent error handling.

    - Adds request_id to all requests
    - Catches APIError and returns structured JSON response
    - Catches unexpected errors and returns generic 500
    """
    request_id = f"req_{uuid.uuid4().hex[:12]}"
    request["request_id"] = request_id

    try:
        response = await handler(request)
        response.headers["X-Request-ID"] = request_id
        return response

    except APIError as e:
        logger.warning(f"API error: {e.code.value} - {e.message} ({request.method} {request.path}, {request_id})")
        return web.json_response(
            e.to_dict(request_id),
            status=e.status,
            headers={"X-Request-ID": request_id},
        )

    except json.JSONDecodeError as e:
        logger.warning(f"JSON decode error: {e} ({request.path}, {request_id})")
        return web.json_response(
            {
                "error": {
                    "code": ErrorCode.INVALID_REQUEST.value,
                    "message": "Invalid JSON in request body",
                    "request_id": request_id,
                }
            },
            status=400,
            headers={"X-Request-ID": request_id},
        )

    except web.HTTPException:
        # Let aiohttp handle its own HTTP exceptions
        raise

    except Exception as e:
        logger.error(f"Unexpected error: {e} ({request.method} {request.path}, {request_id})", exc_info=True)
        return web.json_response(
            {
                "error": {
                    "code": ErrorCode.INTERNAL_ERROR.value,
                    "message": "An internal error occurred",
                    "request_id": request_id,
                }
            },
            status=500,
            headers={"X-Request-ID": request_id},
        )
