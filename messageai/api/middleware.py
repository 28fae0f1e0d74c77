"""
FastAPI middleware for request tracking.

Gives every request a short id, logs start and completion with timing,
and returns the id in the X-Request-ID header.
"""

import logging
import time
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")

logger = logging.getLogger(__name__)


def get_request_id() -> str:
    """Get current request ID from context."""
    return request_id_ctx.get()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with a short request id and its elapsed time."""

    async def dispatch(self, request: Request, call_next) -> Response:
        req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        token = request_id_ctx.set(req_id)

        logger.info(f"[{req_id}] {request.method} {request.url.path}")
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = time.perf_counter() - start_time
            logger.error(f"[{req_id}] Request failed after {elapsed:.2f}s: {e}", exc_info=True)
            raise
        finally:
            request_id_ctx.reset(token)

        elapsed = time.perf_counter() - start_time
        logger.info(f"[{req_id}] {response.status_code} in {elapsed:.2f}s")

        response.headers["X-Request-ID"] = req_id
        return response
