"""
Excalidraw Organizer Backend — Rate Limiting
=============================================

What:  Per-IP sliding window rate limiters.
Why:   Protects sign-in from credential stuffing, the reset endpoint from
       email bombing, and the API as a whole from abuse.
How:   Each limiter tracks request timestamps per IP in memory.

Limiters:
    api_limiter             100 / 15 min   every /api request (middleware)
    auth_limiter              5 / 15 min   signup, signin; failed attempts only
    password_reset_limiter    3 / 1 h      forgot-password, reset-password
    public_limiter           50 / 15 min   public share links
    drawing_limiter          30 / 1 min    drawing writes

Algorithm: Sliding Window Log
    1. Each IP gets a list of request timestamps
    2. On each request, remove timestamps older than the window
    3. If remaining count >= limit, reject with 429
    4. Otherwise record the current timestamp and allow through

    Unlike a fixed window this never lets a client burst 2x the limit
    across a window boundary.

Production Upgrade Path:
    This in-memory implementation works for single-process deployments.
    For multi-worker/multi-instance deployments replace the storage with
    Redis (shared state, atomic operations).
"""

import logging
import math
import time
from collections import defaultdict
from typing import Callable, Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from organizer.config import settings
from organizer.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    """Client address; request.client is None under some test transports."""
    return getattr(request.client, "host", "unknown") if request.client else "unknown"


class SlidingWindowLimiter:
    """
    One named limit: at most `max_requests` per `window` seconds per key.

    `check` and `record` are separate so callers can decide after the fact
    whether a request counts (the auth limiter only records failures).
    """

    def __init__(
        self,
        name: str,
        max_requests: int,
        window: int,
        message: str = "Too many requests from this IP, please try again later",
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self.max_requests = max_requests
        self.window = window
        self.message = message
        self._clock = clock
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._recorded = 0

    def _prune(self, key: str, now: float) -> List[float]:
        window_start = now - self.window
        timestamps = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = timestamps
        return timestamps

    def check(self, key: str) -> None:
        """
        Raises RateLimitExceededError when `key` has used up its window.

        Retry-After is the number of seconds until the oldest request in the
        window expires.
        """
        now = self._clock()
        timestamps = self._prune(key, now)
        if len(timestamps) >= self.max_requests:
            retry_after = max(1, math.ceil(timestamps[0] + self.window - now))
            logger.warning(
                "Rate limit '%s' exceeded for %s: %d requests in %ds window",
                self.name,
                key,
                len(timestamps),
                self.window,
            )
            raise RateLimitExceededError(
                retry_after=retry_after,
                message=self.message,
                context={"limit": self.max_requests, "window": self.window},
            )

    def record(self, key: str) -> None:
        self._requests[key].append(self._clock())
        self._recorded += 1
        # Periodic cleanup of inactive keys
        if self._recorded % 1000 == 0:
            self._cleanup_inactive(self._clock() - self.window)

    def hit(self, key: str) -> None:
        """check() then record(): the common case."""
        self.check(key)
        self.record(key)

    def remaining(self, key: str) -> int:
        timestamps = self._prune(key, self._clock())
        return max(0, self.max_requests - len(timestamps))

    def reset_after(self, key: str) -> int:
        """Seconds until the window for `key` has fully drained."""
        timestamps = self._prune(key, self._clock())
        if not timestamps:
            return self.window
        return max(0, math.ceil(timestamps[-1] + self.window - self._clock()))

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._requests.clear()
        else:
            self._requests.pop(key, None)

    def _cleanup_inactive(self, window_start: float) -> None:
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or max(timestamps) < window_start
        ]
        for key in inactive:
            del self._requests[key]
        if inactive:
            logger.debug("Limiter '%s' cleaned up %d inactive keys", self.name, len(inactive))


# ── Limiter Instances ─────────────────────────────────────────────────────
api_limiter = SlidingWindowLimiter(
    "api",
    settings.rate_limit_requests,
    settings.rate_limit_window,
)
auth_limiter = SlidingWindowLimiter(
    "auth",
    settings.auth_rate_limit_requests,
    settings.auth_rate_limit_window,
    message="Too many authentication attempts from this IP, please try again after 15 minutes",
)
password_reset_limiter = SlidingWindowLimiter(
    "password_reset",
    settings.password_reset_rate_limit_requests,
    settings.password_reset_rate_limit_window,
    message="Too many password reset attempts from this IP, please try again after an hour",
)
public_limiter = SlidingWindowLimiter(
    "public",
    settings.public_rate_limit_requests,
    settings.public_rate_limit_window,
)
drawing_limiter = SlidingWindowLimiter(
    "drawing",
    settings.drawing_rate_limit_requests,
    settings.drawing_rate_limit_window,
    message="Too many drawing operations, please slow down",
)

ALL_LIMITERS = (api_limiter, auth_limiter, password_reset_limiter, public_limiter, drawing_limiter)


def reset_all_limiters() -> None:
    for limiter in ALL_LIMITERS:
        limiter.reset()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies the API-wide limiter to every /api request and reports the
    standard RateLimit-Limit / RateLimit-Remaining / RateLimit-Reset headers.

    Health checks and docs live outside /api and are never limited.
    """

    PREFIX = "/api"

    def __init__(self, app, limiter: Optional[SlidingWindowLimiter] = None, **kwargs):
        super().__init__(app, **kwargs)
        self.limiter = limiter or api_limiter

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not request.url.path.startswith(self.PREFIX) or request.method == "OPTIONS":
            return await call_next(request)

        key = client_ip(request)
        try:
            self.limiter.hit(key)
        except RateLimitExceededError as exc:
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": {"retry_after": exc.retry_after},
                },
                headers={
                    "Retry-After": str(exc.retry_after),
                    **self._headers(key),
                },
            )

        response = await call_next(request)
        response.headers.update(self._headers(key))
        return response

    def _headers(self, key: str) -> Dict[str, str]:
        return {
            "RateLimit-Limit": str(self.limiter.max_requests),
            "RateLimit-Remaining": str(self.limiter.remaining(key)),
            "RateLimit-Reset": str(self.limiter.reset_after(key)),
        }
