"""
Excalidraw Organizer Backend — Request Logging Middleware
==========================================================

What:  One access log line per HTTP request.
Why:   Monitoring, debugging and performance analysis with request ID correlation.
How:   Measures wall time around the downstream app and logs at a level
       chosen by the status class (5xx ERROR, 4xx WARNING, else INFO).

What we log vs what we DON'T log (privacy):
    Log:       method, path, status, duration, IP, request ID
    Don't log: request bodies (passwords, drawing contents), Authorization
               headers, cookies
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from organizer.middleware.rate_limit import client_ip
from organizer.middleware.request_id import request_id_var

logger = logging.getLogger("organizer.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Typical durations:
        GET /health:               1-5ms
        GET /api/drawings/recent:  10-50ms
        PUT /api/drawings/{id}:    20-200ms (large scenes dominate)
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path

        # Health probes run every few seconds; keep them out of the log
        if path.startswith("/health"):
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = request_id_var.get("")
        ip = client_ip(request)
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": ip,
            },
        )
        return response
