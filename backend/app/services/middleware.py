"""Request timing and tracing middleware for the Timesheet Reporting API."""
import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("timesheet-api.middleware")

SKIP_LOG_PATHS = {"/health", "/metrics"}


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    Assigns an X-Request-ID to every request, measures its duration, adds an
    X-Process-Time header and emits one structured log line per request
    (health and metrics endpoints excepted).
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = str(uuid.uuid4())
        start_time = time.perf_counter()

        # Route handlers tag their log lines with this id
        request.state.request_id = request_id

        response: Response = await call_next(request)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        if request.url.path not in SKIP_LOG_PATHS:
            logger.info(
                "request completed",
                extra={
                    "http_method": request.method,
                    "http_path": request.url.path,
                    "http_status": response.status_code,
                    "request_id": request_id,
                    "duration_ms": duration_ms,
                },
            )

        return response
