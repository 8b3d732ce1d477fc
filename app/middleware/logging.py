"""Request logging middleware."""

import logging
import time
from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request and tags the response with a request id.

    A caller-supplied ``X-Request-ID`` is kept so import runs can be traced
    across the client and the server log.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                f"[{request_id}] {request.method} {request.url.path} failed after "
                f"{(time.perf_counter() - started) * 1000:.1f}ms"
            )
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} "
            f"({elapsed_ms:.1f}ms)",
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
