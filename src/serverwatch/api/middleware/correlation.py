"""Correlation ID middleware for request tracing.

Every request gets a correlation ID, taken from the ``X-Correlation-ID``
header or generated, which is bound to the logging context, echoed in the
response and used when recording request metrics.
"""

import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from serverwatch.observability.logging import (
    clear_correlation_id,
    get_logger,
    set_correlation_id,
)
from serverwatch.observability.metrics import get_metrics_collector

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware to inject correlation IDs into requests."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process request with correlation ID.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/handler in chain

        Returns:
            HTTP response with correlation ID header
        """
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        set_correlation_id(correlation_id)
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                duration_ms=int((time.time() - start_time) * 1000),
            )
            clear_correlation_id()
            raise

        duration_seconds = time.time() - start_time
        get_metrics_collector().record_http_request(
            method=request.method,
            endpoint=request.url.path,
            status_code=response.status_code,
            duration_seconds=duration_seconds,
        )
        logger.debug(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=int(duration_seconds * 1000),
        )

        response.headers[CORRELATION_HEADER] = correlation_id
        clear_correlation_id()
        return response
