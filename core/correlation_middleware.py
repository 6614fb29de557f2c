"""
Correlation ID Middleware

Tags every request with a correlation id that appears on all of its log
lines, and logs one summary line per request.
"""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from core.logging import get_logger, set_correlation_id

log = get_logger("http")


class CorrelationMiddleware(BaseHTTPMiddleware):
    """
    - Reads X-Correlation-ID from the request, or generates a UUID
    - Sets it in the logging context
    - Echoes it in the X-Correlation-ID response header
    """

    HEADER_NAME = "X-Correlation-ID"

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        set_correlation_id(correlation_id)

        started = time.perf_counter()
        response = await call_next(request)

        response.headers[self.HEADER_NAME] = correlation_id
        log.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response
