"""
Cookie settings for the auth and CSRF cookies.

In production the names carry the `__Secure-` prefix, which browsers only
accept on cookies set with the Secure flag over HTTPS.
"""

from typing import Any, Dict

from starlette.responses import Response

from organizer.config import settings

AUTH_COOKIE_MAX_AGE = 7 * 24 * 60 * 60
CSRF_COOKIE_MAX_AGE = 24 * 60 * 60


def cookie_name(base_name: str) -> str:
    prefix = "__Secure-" if settings.is_production else ""
    return f"{prefix}{base_name}"


def auth_cookie_name() -> str:
    return cookie_name("auth_token")


def csrf_cookie_name() -> str:
    return cookie_name("csrf_token")


def _base_options() -> Dict[str, Any]:
    return {
        "secure": settings.is_production,
        "samesite": "strict",
    }


def auth_cookie_options() -> Dict[str, Any]:
    return {**_base_options(), "httponly": True, "max_age": AUTH_COOKIE_MAX_AGE, "path": "/"}


def csrf_cookie_options() -> Dict[str, Any]:
    # Readable from JavaScript so the frontend can echo it in X-CSRF-Token
    return {**_base_options(), "httponly": False, "max_age": CSRF_COOKIE_MAX_AGE, "path": "/"}


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(auth_cookie_name(), token, **auth_cookie_options())


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(
        auth_cookie_name(),
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="strict",
    )


def set_csrf_cookie(response: Response, token: str) -> None:
    response.set_cookie(csrf_cookie_name(), token, **csrf_cookie_options())
