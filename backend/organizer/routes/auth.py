"""
Excalidraw Organizer Backend — Auth Route Handlers
===================================================

What:  /api/auth: signup, signin, signout, password reset, account settings.
How:   Validates the body via schemas, delegates to AuthService, and sets or
       clears the auth cookie on the response.

Token transport:
    Signup and signin return the JWT in the body AND set it as an httpOnly
    cookie. Clients may use either; the Bearer header wins when both exist.

Rate limits:
    signup/signin            5 failed attempts / 15 min per IP
    forgot/reset password    3 requests / hour per IP
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from organizer.database import get_db_session
from organizer.dependencies import get_current_user_id, rate_limit, require_user
from organizer.middleware.rate_limit import auth_limiter, password_reset_limiter
from organizer.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    CsrfTokenResponse,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    PreferencesUpdate,
    ProfileUpdate,
    ResetPasswordRequest,
    SigninRequest,
    SignupRequest,
    UserEnvelope,
)
from organizer.schemas.common import ErrorResponse, MessageResponse
from organizer.services.auth_service import auth_service
from organizer.utils.cookies import clear_auth_cookie, set_auth_cookie, set_csrf_cookie

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

auth_attempts = rate_limit(auth_limiter, failures_only=True)
reset_attempts = rate_limit(password_reset_limiter)


@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_attempts)],
    responses={
        400: {"description": "Invalid input or weak password", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
        429: {"description": "Too many failed attempts", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def signup(
    body: SignupRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    result = await auth_service.signup(db, body)
    set_auth_cookie(response, result.token)
    return result


@router.post(
    "/signin",
    response_model=AuthResponse,
    dependencies=[Depends(auth_attempts)],
    responses={
        401: {"description": "Invalid email or password", "model": ErrorResponse},
        429: {"description": "Too many failed attempts", "model": ErrorResponse},
    },
    summary="Sign in with email and password",
)
async def signin(
    body: SigninRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    result = await auth_service.signin(db, body)
    set_auth_cookie(response, result.token)
    return result


@router.post("/signout", response_model=MessageResponse, summary="Sign out")
async def signout(response: Response, user_id: str = Depends(require_user)) -> MessageResponse:
    """
    JWTs are stateless, so signing out means dropping the cookie; clients
    holding the token in memory discard it themselves.
    """
    clear_auth_cookie(response)
    logger.info("User signed out: %s", user_id)
    return MessageResponse(message="Signed out successfully")


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(reset_attempts)],
    summary="Request a password reset link",
    description=(
        "Always returns the same message so the endpoint cannot be used to "
        "discover registered emails."
    ),
)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ForgotPasswordResponse:
    return await auth_service.forgot_password(db, body.email)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    dependencies=[Depends(reset_attempts)],
    responses={400: {"description": "Weak password or invalid link", "model": ErrorResponse}},
    summary="Set a new password with a reset token",
)
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    message = await auth_service.reset_password(db, body)
    return MessageResponse(message=message)


@router.get("/me", response_model=UserEnvelope, response_model_exclude_none=True, summary="Current user")
async def me(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    return await auth_service.get_user(db, user_id)


@router.put(
    "/profile",
    response_model=UserEnvelope,
    responses={409: {"description": "Email already in use", "model": ErrorResponse}},
    summary="Update name, email or preferences",
)
async def update_profile(
    body: ProfileUpdate,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    return await auth_service.update_profile(db, user_id, body)


@router.put("/preferences", response_model=UserEnvelope, summary="Update UI preferences")
async def update_preferences(
    body: PreferencesUpdate,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    return await auth_service.update_preferences(db, user_id, body)


@router.put(
    "/password",
    response_model=MessageResponse,
    responses={401: {"description": "Current password is incorrect", "model": ErrorResponse}},
    summary="Change password",
)
async def change_password(
    body: ChangePasswordRequest,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    message = await auth_service.change_password(db, user_id, body)
    return MessageResponse(message=message)


@router.get("/csrf-token", response_model=CsrfTokenResponse, summary="Issue a CSRF token")
async def csrf_token(
    response: Response,
    user_id: str = Depends(get_current_user_id),
) -> CsrfTokenResponse:
    """Token is valid for 24 hours and must be sent back in X-CSRF-Token."""
    token = auth_service.issue_csrf_token(user_id)
    set_csrf_cookie(response, token)
    return CsrfTokenResponse(csrf_token=token)
