"""
HTTP Metrics Middleware for FastAPI

Tracks request counts by method, endpoint and status code group, and
request duration histograms.
"""

import re
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from marketplace.core.metrics import http_request_duration_seconds, http_requests_total


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP request metrics"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.uuid_pattern = re.compile(
            r"/[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}(/|$)"
        )

    def _template_path(self, path: str) -> str:
        """
        Collapse order ids so the endpoint label stays low-cardinality

        Examples:
            /api/v1/orders/123e4567-e89b-12d3-a456-426614174000 -> /api/v1/orders/{id}
            /api/v1/orders/me -> /api/v1/orders/me
        """
        return self.uuid_pattern.sub(r"/{id}\1", path)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        endpoint = self._template_path(request.url.path)
        start_time = time.time()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            http_requests_total.labels(
                method=method, endpoint=endpoint, status_code=f"{status_code // 100}xx"
            ).inc()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                time.time() - start_time
            )

        return response
