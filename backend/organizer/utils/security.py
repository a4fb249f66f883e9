"""
Excalidraw Organizer Backend — Password Hashing and JWT Utilities
==================================================================

What:  bcrypt password hashing (passlib) and HS256 JSON Web Tokens (python-jose).
Why:   Authentication is stateless: the server stores only password hashes and
       verifies signed tokens on every request.

Token payload:
    {
        "sub":   "<user uuid>",
        "email": "user@example.com",
        "type":  "access" | "reset",
        "iat":   <issued at>,
        "exp":   <expiry>
    }

    The `type` claim keeps a password reset token from being used as a
    session token and vice versa.

Failure mapping:
    expired signature     → AuthenticationError (401) "Token expired. Please sign in again"
    anything else invalid → AuthorizationError (403) "Invalid token"
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from organizer.config import settings
from organizer.exceptions import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)

ACCESS_TOKEN = "access"
RESET_TOKEN = "reset"

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison; malformed hashes count as a mismatch."""
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


def _create_token(
    user_id: str,
    email: str,
    token_type: str,
    expires_delta: timedelta,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "type": token_type,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(
    user_id: str,
    email: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Session token returned by signup/signin (7 days by default)."""
    return _create_token(
        user_id,
        email,
        ACCESS_TOKEN,
        expires_delta or timedelta(minutes=settings.jwt_expires_minutes),
    )


def create_reset_token(
    user_id: str,
    email: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Single-purpose token embedded in the password reset link (1 hour)."""
    return _create_token(
        user_id,
        email,
        RESET_TOKEN,
        expires_delta or timedelta(minutes=settings.reset_token_expires_minutes),
    )


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> Dict[str, Any]:
    """
    Verify signature, expiry and type of a token and return its payload.

    Raises:
        AuthenticationError: the token has expired
        AuthorizationError: the token is malformed, forged, or of the wrong type
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError(message="Token expired. Please sign in again")
    except JWTError as e:
        logger.debug("JWT validation failed: %s", str(e))
        raise AuthorizationError(message="Invalid token")

    if payload.get("type") != expected_type:
        logger.warning(
            "Token type mismatch. Expected: %s, got: %s", expected_type, payload.get("type")
        )
        raise AuthorizationError(message="Invalid token")
    if not payload.get("sub"):
        raise AuthorizationError(message="Invalid token")
    return payload
