"""
Excalidraw Organizer Backend — CSRF Token Store
================================================

What:  Per-user CSRF tokens for state-changing requests.
Why:   The auth token may travel in a cookie; a cookie alone must not be
       enough to delete or overwrite someone's drawings from another site.
How:   GET /api/auth/csrf-token issues 32 random bytes (hex) per user, valid
       for 24 hours. Unsafe requests must echo it in the X-CSRF-Token header.

Enforcement:
    - Production only (settings.csrf_enabled)
    - Skipped for GET, HEAD and OPTIONS
    - Skipped for /api/public, /api/auth/signin and /api/auth/signup
    - Checked after authentication, keyed by the authenticated user ID

Production Upgrade Path:
    Tokens live in process memory; multi-worker deployments need a shared
    store (Redis) for the same reason the rate limiter does.
"""

import hmac
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from starlette.requests import Request

from organizer.config import settings
from organizer.exceptions import ForbiddenError

logger = logging.getLogger(__name__)

CSRF_HEADER = "X-CSRF-Token"
SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}
EXEMPT_PREFIXES = ("/api/public", "/api/auth/signin", "/api/auth/signup")


@dataclass
class _StoredToken:
    token: str
    expires_at: float


class CsrfTokenStore:
    """In-memory mapping of user ID → current CSRF token."""

    def __init__(self, ttl: int, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._tokens: Dict[str, _StoredToken] = {}

    def generate(self, user_id: str) -> str:
        """Issues a fresh token, replacing any previous one for this user."""
        token = secrets.token_hex(32)
        self._tokens[str(user_id)] = _StoredToken(token, self._clock() + self.ttl)
        self.cleanup()
        return token

    def verify(self, user_id: str, token: Optional[str]) -> bool:
        stored = self._tokens.get(str(user_id))
        if stored is None or not token:
            return False
        if stored.expires_at < self._clock():
            del self._tokens[str(user_id)]
            return False
        return hmac.compare_digest(stored.token, token)

    def cleanup(self) -> int:
        now = self._clock()
        expired = [uid for uid, stored in self._tokens.items() if stored.expires_at < now]
        for uid in expired:
            del self._tokens[uid]
        if expired:
            logger.debug("Purged %d expired CSRF tokens", len(expired))
        return len(expired)

    def reset(self) -> None:
        self._tokens.clear()

    def __len__(self) -> int:
        return len(self._tokens)


csrf_store = CsrfTokenStore(ttl=settings.csrf_token_ttl)


def enforce_csrf(request: Request, user_id: str, enabled: Optional[bool] = None) -> None:
    """
    Rejects unsafe requests that do not carry the user's CSRF token.

    Raises:
        ForbiddenError: header missing ("CSRF token is missing") or wrong
                        ("Invalid CSRF token")
    """
    active = settings.csrf_enabled if enabled is None else enabled
    if not active:
        return
    if request.method in SAFE_METHODS:
        return
    if request.url.path.startswith(EXEMPT_PREFIXES):
        return

    token = request.headers.get(CSRF_HEADER)
    if not token:
        raise ForbiddenError(message="CSRF token is missing")
    if not csrf_store.verify(user_id, token):
        logger.warning("CSRF token mismatch for user %s on %s", user_id, request.url.path)
        raise ForbiddenError(message="Invalid CSRF token")
