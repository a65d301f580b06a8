# ==== CORRELATION ID MIDDLEWARE ==== #

"""
Correlation ID middleware for request tracing in EasyBill.

Every request carries an ``X-Correlation-Id`` (generated when the client
sends none), is wrapped in an ``http_request`` span and has its latency
recorded per tenant, method and status.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from easybill.observability.metrics import http_request_latency_seconds
from easybill.observability.tracing import get_tracer


# ==== MODULE INITIALIZATION ==== #

tracer = get_tracer(__name__)

CORRELATION_HEADER = "X-Correlation-Id"


# ==== CORRELATION MIDDLEWARE CLASS ==== #

class CorrelationMiddleware(BaseHTTPMiddleware):
    """Attach correlation IDs, tracing spans and latency metrics to requests."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request with correlation ID tracking and observability.

        Args:
            request (Request): Incoming HTTP request
            call_next (Callable): Next middleware/handler in chain

        Returns:
            Response: HTTP response with correlation ID header
        """
        # --► CORRELATION ID MANAGEMENT
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        start_time = time.perf_counter()

        with tracer.start_as_current_span("http_request") as span:
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.route", request.url.path)
            span.set_attribute("correlation_id", correlation_id)

            response = await call_next(request)

            response.headers[CORRELATION_HEADER] = correlation_id

            # --► METRICS COLLECTION
            tenant = request.scope.get("tenant_id") or "none"
            http_request_latency_seconds.labels(
                tenant=tenant,
                method=request.method,
                status=str(response.status_code),
            ).observe(time.perf_counter() - start_time)

            span.set_attribute("http.status_code", response.status_code)
            span.set_attribute("tenant", tenant)

            return response
