"""
Logging Middleware for HTTP Request/Response Logging

Logs every HTTP request and response with structured data using ECS field
names, and binds a request id into the structlog context so that every log
line emitted while handling the request can be correlated.
"""

import time
import uuid
from typing import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for structured HTTP access logging.

    Logs each request with method, path, query, status code, duration,
    client IP and user agent. 5xx responses are logged at ERROR, slow
    successful requests (>1s) at WARNING, everything else at INFO.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        start_time = time.time()

        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        method = request.method
        path = request.url.path
        query_params = str(request.url.query) if request.url.query else None
        client_ip = request.client.host if request.client else None
        user_agent = request.headers.get("user-agent")

        logger.debug(
            "http_request_received",
            **{"http.request.method": method},
            **{"url.path": path},
            **{"url.query": query_params},
            **{"client.ip": client_ip},
            **{"user_agent.original": user_agent},
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "http_request_completed",
                **{"http.request.method": method},
                **{"url.path": path},
                **{"http.response.status_code": 500},
                duration_ms=round(duration_ms, 2),
                error_type=type(e).__name__,
                error_message=str(e),
                exc_info=e,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        status_code = response.status_code

        log_data = {
            "http.request.method": method,
            "url.path": path,
            "url.query": query_params,
            "http.response.status_code": status_code,
            "event.duration": round(duration_ms * 1_000_000, 0),  # ECS uses nanoseconds
            "duration_ms": round(duration_ms, 2),
            "client.ip": client_ip,
            "user_agent.original": user_agent,
        }

        if status_code >= 500:
            logger.error("http_request_completed", **log_data)
        elif status_code < 400 and duration_ms > 1000:
            logger.warning("http_request_slow", **log_data)
        else:
            logger.info("http_request_completed", **log_data)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
