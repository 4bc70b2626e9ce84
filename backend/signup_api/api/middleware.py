"""
Request middleware for logging, timing, and request ID tracking.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from signup_api.core.logging import get_logger

logger = get_logger(__name__)

# Long-lived streams are logged when they open, not when they finish
STREAM_PATHS = {"/signup/enable"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Assigns a short request ID, binds it to structlog's context, and logs
    method, path, status code and duration for every request.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            logger.error("request_failed", error=str(e), duration_ms=duration_ms)
            raise

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        event = "stream_opened" if request.url.path in STREAM_PATHS else "request_completed"
        logger.info(event, status_code=response.status_code, duration_ms=duration_ms)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        return response
