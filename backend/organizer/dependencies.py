"""
Excalidraw Organizer Backend — Request Dependencies
====================================================

What:  FastAPI dependencies for authentication, CSRF and per-route limits.
Why:   Routes declare what they need (`user_id: str = Depends(require_user)`)
       instead of repeating token parsing in every handler.

Dependency chain for an authenticated write:
    get_current_user_id   Bearer header, else auth cookie → decoded JWT sub
        └── require_user  + CSRF check for unsafe methods (production)

Per-route limiters (on top of the API-wide middleware):
    rate_limit(auth_limiter, failures_only=True)   signup, signin
    rate_limit(password_reset_limiter)             forgot/reset password
    rate_limit(public_limiter)                     /api/public
    rate_limit(drawing_limiter)                    drawing writes
"""

import logging
import uuid
from typing import AsyncGenerator, Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from organizer.exceptions import AuthenticationError, AuthorizationError
from organizer.middleware.csrf import enforce_csrf
from organizer.middleware.rate_limit import SlidingWindowLimiter, client_ip
from organizer.utils.cookies import auth_cookie_name
from organizer.utils.security import decode_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Resolves the authenticated user's ID.

    Raises:
        AuthenticationError: no token, or token expired (401)
        AuthorizationError: token invalid (403)
    """
    token = credentials.credentials if credentials else request.cookies.get(auth_cookie_name())
    if not token:
        raise AuthenticationError(message="No token provided")

    payload = decode_token(token)
    try:
        return str(uuid.UUID(str(payload["sub"])))
    except ValueError:
        logger.warning("Token subject is not a user ID")
        raise AuthorizationError(message="Invalid token")


async def require_user(
    request: Request,
    user_id: str = Depends(get_current_user_id),
) -> str:
    """Authenticated user with the CSRF check applied to unsafe methods."""
    enforce_csrf(request, user_id)
    return user_id


def rate_limit(
    limiter: SlidingWindowLimiter,
    failures_only: bool = False,
) -> Callable[[Request], AsyncGenerator[None, None]]:
    """
    Builds a dependency that applies `limiter` to the client IP.

    With failures_only the request is only counted when the handler raises,
    so successful sign-ins never lock a user out.
    """

    async def dependency(request: Request) -> AsyncGenerator[None, None]:
        key = client_ip(request)
        limiter.check(key)
        if not failures_only:
            limiter.record(key)
            yield
            return
        try:
            yield
        except Exception:
            limiter.record(key)
            raise

    return dependency
