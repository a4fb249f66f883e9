"""
Excalidraw Organizer Backend — Request ID Middleware
=====================================================

What:  Assigns an ID to each incoming request and echoes it in the response.
Why:   Every log line and every error body for one request share the same ID,
       so a user can quote it and support can find the matching log entries.
How:   Honours a client-sent X-Request-ID (the frontend may generate one per
       user action), otherwise generates a short UUID prefix.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local storage for the current request ID; read by the logging
# middleware and the exception handlers
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
