"""
Excalidraw Organizer Backend — HTTPS and Security Headers Middleware
=====================================================================

What:  Forces HTTPS in production and adds browser hardening headers.
How:
    1. Production + plain HTTP (and no `X-Forwarded-Proto: https` from the
       proxy) → 301 to the https:// URL
    2. Production → Strict-Transport-Security for one year, with preload
    3. Always → nosniff, frame denial, referrer policy, CSP and friends

Header set mirrors what helmet applies for an API that also serves the
share-link JSON consumed by the editor.
"""

from typing import Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from organizer.config import settings

HSTS_VALUE = "max-age=31536000; includeSubDomains; preload"

SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "0",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "cross-origin",
    "Content-Security-Policy": (
        "default-src 'self'; "
        "style-src 'self' 'unsafe-inline'; "
        "script-src 'self'; "
        "img-src 'self' data: https:; "
        "connect-src 'self'; "
        "font-src 'self' data:; "
        "object-src 'none'; "
        "frame-src 'none'"
    ),
}

# Swagger UI loads its assets from a CDN; leave its pages alone
_DOCS_PATHS = {"/docs", "/redoc", "/docs/oauth2-redirect"}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, production: Optional[bool] = None, **kwargs):
        super().__init__(app, **kwargs)
        self.production = settings.is_production if production is None else production

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if self.production and not self._is_secure(request):
            https_url = request.url.replace(scheme="https")
            return RedirectResponse(str(https_url), status_code=301)

        response = await call_next(request)

        if request.url.path not in _DOCS_PATHS:
            for header, value in SECURITY_HEADERS.items():
                response.headers.setdefault(header, value)
        if self.production:
            response.headers["Strict-Transport-Security"] = HSTS_VALUE
        return response

    @staticmethod
    def _is_secure(request: Request) -> bool:
        if request.url.scheme == "https":
            return True
        return request.headers.get("x-forwarded-proto", "").lower() == "https"
