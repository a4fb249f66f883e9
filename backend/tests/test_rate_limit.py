"""
Excalidraw Organizer Backend — Rate Limit & CSRF Unit Tests
============================================================

What we test:
    ✅ Sliding window: limit, Retry-After, window expiry, per-key isolation
    ✅ RateLimit-* headers from the middleware on /api routes only
    ✅ CSRF token store: issue, verify, replace, expiry
    ✅ enforce_csrf: safe methods, exempt paths, missing and wrong tokens
"""

import pytest
from starlette.requests import Request

from organizer.exceptions import ForbiddenError, RateLimitExceededError
from organizer.middleware.csrf import CSRF_HEADER, CsrfTokenStore, csrf_store, enforce_csrf
from organizer.middleware.rate_limit import SlidingWindowLimiter, api_limiter


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_request(method: str = "POST", path: str = "/api/drawings", token: str = None) -> Request:
    headers = [(CSRF_HEADER.lower().encode(), token.encode())] if token else []
    return Request({
        "type": "http",
        "method": method,
        "path": path,
        "root_path": "",
        "scheme": "http",
        "query_string": b"",
        "headers": headers,
        "server": ("test", 80),
    })


class TestSlidingWindowLimiter:

    def setup_method(self):
        self.clock = FakeClock()
        self.limiter = SlidingWindowLimiter("test", max_requests=3, window=60, clock=self.clock)

    def test_allows_up_to_the_limit(self):
        for _ in range(3):
            self.limiter.hit("1.2.3.4")
        assert self.limiter.remaining("1.2.3.4") == 0

    def test_rejects_over_the_limit_with_retry_after(self):
        for _ in range(3):
            self.limiter.hit("1.2.3.4")
            self.clock.now += 10
        with pytest.raises(RateLimitExceededError) as exc_info:
            self.limiter.hit("1.2.3.4")
        # Oldest request was 30s ago in a 60s window
        assert exc_info.value.retry_after == 30
        assert exc_info.value.status_code == 429

    def test_window_slides(self):
        for _ in range(3):
            self.limiter.hit("1.2.3.4")
        self.clock.now += 61
        self.limiter.hit("1.2.3.4")
        assert self.limiter.remaining("1.2.3.4") == 2

    def test_keys_are_isolated(self):
        for _ in range(3):
            self.limiter.hit("1.2.3.4")
        self.limiter.hit("5.6.7.8")
        assert self.limiter.remaining("5.6.7.8") == 2

    def test_check_without_record_does_not_count(self):
        for _ in range(10):
            self.limiter.check("1.2.3.4")
        assert self.limiter.remaining("1.2.3.4") == 3

    def test_reset_after(self):
        assert self.limiter.reset_after("1.2.3.4") == 60
        self.limiter.hit("1.2.3.4")
        self.clock.now += 15
        assert self.limiter.reset_after("1.2.3.4") == 45

    def test_reset_single_key(self):
        self.limiter.hit("1.2.3.4")
        self.limiter.hit("5.6.7.8")
        self.limiter.reset("1.2.3.4")
        assert self.limiter.remaining("1.2.3.4") == 3
        assert self.limiter.remaining("5.6.7.8") == 2


class TestRateLimitMiddleware:

    @pytest.mark.asyncio
    async def test_api_responses_carry_rate_limit_headers(self, test_client):
        response = await test_client.get("/api")
        assert response.status_code == 200
        assert response.headers["RateLimit-Limit"] == str(api_limiter.max_requests)
        assert int(response.headers["RateLimit-Remaining"]) == api_limiter.max_requests - 1

    @pytest.mark.asyncio
    async def test_health_is_not_limited(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        assert "RateLimit-Limit" not in response.headers

    @pytest.mark.asyncio
    async def test_exhausted_limit_returns_429(self, test_client):
        for _ in range(api_limiter.max_requests):
            api_limiter.record("127.0.0.1")
        response = await test_client.get("/api")
        assert response.status_code == 429
        assert response.json()["error"] == "rate_limit_exceeded"
        assert int(response.headers["Retry-After"]) >= 1


class TestCsrfTokenStore:

    def setup_method(self):
        self.clock = FakeClock()
        self.store = CsrfTokenStore(ttl=100, clock=self.clock)

    def test_generate_and_verify(self):
        token = self.store.generate("user-1")
        assert len(token) == 64
        assert self.store.verify("user-1", token) is True
        assert self.store.verify("user-2", token) is False
        assert self.store.verify("user-1", "wrong") is False
        assert self.store.verify("user-1", None) is False

    def test_new_token_replaces_old(self):
        first = self.store.generate("user-1")
        second = self.store.generate("user-1")
        assert self.store.verify("user-1", first) is False
        assert self.store.verify("user-1", second) is True
        assert len(self.store) == 1

    def test_expired_token_fails_and_is_removed(self):
        token = self.store.generate("user-1")
        self.clock.now += 101
        assert self.store.verify("user-1", token) is False
        assert len(self.store) == 0

    def test_cleanup_purges_expired(self):
        self.store.generate("user-1")
        self.clock.now += 50
        self.store.generate("user-2")
        self.clock.now += 60
        assert self.store.cleanup() == 1
        assert len(self.store) == 1


class TestEnforceCsrf:

    def test_disabled_outside_production(self):
        enforce_csrf(make_request(), "user-1")

    @pytest.mark.parametrize("method", ["GET", "HEAD", "OPTIONS"])
    def test_safe_methods_skip(self, method):
        enforce_csrf(make_request(method=method), "user-1", enabled=True)

    @pytest.mark.parametrize("path", ["/api/public/abc", "/api/auth/signin", "/api/auth/signup"])
    def test_exempt_paths_skip(self, path):
        enforce_csrf(make_request(path=path), "user-1", enabled=True)

    def test_missing_token(self):
        with pytest.raises(ForbiddenError) as exc_info:
            enforce_csrf(make_request(), "user-1", enabled=True)
        assert exc_info.value.message == "CSRF token is missing"

    def test_wrong_token(self):
        csrf_store.generate("user-1")
        with pytest.raises(ForbiddenError) as exc_info:
            enforce_csrf(make_request(token="f" * 64), "user-1", enabled=True)
        assert exc_info.value.message == "Invalid CSRF token"

    def test_valid_token(self):
        token = csrf_store.generate("user-1")
        enforce_csrf(make_request(token=token), "user-1", enabled=True)
