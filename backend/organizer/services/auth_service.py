"""
Excalidraw Organizer Backend — Auth Service (Accounts and Sessions)
====================================================================

What:  Signup, signin, password reset and account settings.
Why:   Keeps credential handling (hashing, token issue, enumeration-safe
       responses) out of the route handlers.
How:   Stateless service; each method receives the request's AsyncSession
       and either returns a response schema or raises an OrganizerError.

Flows:
    signup           strength check → unique email → hash → insert → JWT
    signin           lookup → bcrypt verify → JWT (same 401 for both misses)
    forgot_password  lookup → reset JWT (1h); identical message either way
    reset_password   strength check → verify reset JWT → new hash

Error Handling Strategy:
    Duplicate emails are checked up front for a friendly 409 and again via
    the unique constraint (IntegrityError on flush) for concurrent signups.
    Commit and rollback happen in get_db_session, not here.
"""

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from organizer.config import settings
from organizer.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from organizer.middleware.csrf import csrf_store
from organizer.models.user import User, default_preferences
from organizer.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordResponse,
    PreferencesUpdate,
    ProfileUpdate,
    ResetPasswordRequest,
    SigninRequest,
    SignupRequest,
    UserEnvelope,
    UserResponse,
)
from organizer.utils.password_validation import get_password_strength_label, validate_password_strength
from organizer.utils.security import (
    RESET_TOKEN,
    create_access_token,
    create_reset_token,
    decode_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "An account with this email already exists"
INVALID_CREDENTIALS = "Invalid email or password"
RESET_REQUESTED = "If an account exists with this email, a password reset link has been sent"
INVALID_RESET_LINK = "The password reset link is invalid or has expired"


def _check_strength(password: str) -> None:
    strength = validate_password_strength(password)
    if not strength.is_valid:
        raise ValidationError(
            message="Password does not meet security requirements",
            context={
                "errors": strength.errors,
                "suggestions": strength.suggestions,
                "strength": get_password_strength_label(strength.score),
            },
        )


class AuthService:
    """
    Business logic for /api/auth.

    Responsibilities:
        - signup() / signin(): issue access tokens
        - forgot_password() / reset_password(): reset token flow
        - update_profile() / update_preferences() / change_password()
        - get_user(): the current account
    """

    # ── Lookups ───────────────────────────────────────────────────────────

    async def _find_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def _get_user(self, db: AsyncSession, user_id: Any) -> User:
        user = await db.get(User, uuid.UUID(str(user_id)))
        if user is None:
            raise NotFoundError(resource="User", resource_id=str(user_id))
        return user

    async def _email_taken_by_other(self, db: AsyncSession, email: str, user_id: uuid.UUID) -> bool:
        result = await db.execute(
            select(User.id).where(User.email == email, User.id != user_id)
        )
        return result.first() is not None

    async def get_user(self, db: AsyncSession, user_id: Any) -> UserEnvelope:
        user = await self._get_user(db, user_id)
        return UserEnvelope(user=UserResponse.model_validate(user))

    # ── Sessions ──────────────────────────────────────────────────────────

    async def signup(self, db: AsyncSession, data: SignupRequest) -> AuthResponse:
        """
        Creates an account and signs it in.

        Raises:
            ValidationError: password too weak (details carry errors and suggestions)
            ConflictError: email already registered
        """
        _check_strength(data.password)

        if await self._find_by_email(db, data.email) is not None:
            raise ConflictError(message=EMAIL_TAKEN)

        user = User(
            name=data.name,
            email=data.email,
            password_hash=hash_password(data.password),
            preferences=default_preferences(),
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(message=EMAIL_TAKEN)
        await db.refresh(user)

        logger.info("User created: %s", user.id)
        return AuthResponse(
            message="User created successfully",
            user=UserResponse.model_validate(user),
            token=create_access_token(user.id, user.email),
        )

    async def signin(self, db: AsyncSession, data: SigninRequest) -> AuthResponse:
        user = await self._find_by_email(db, data.email)
        # One message for unknown email and wrong password
        if user is None or not verify_password(data.password, user.password_hash):
            logger.info("Failed sign-in attempt for %s", data.email)
            raise AuthenticationError(message=INVALID_CREDENTIALS)

        logger.info("User signed in: %s", user.id)
        return AuthResponse(
            message="Signed in successfully",
            user=UserResponse.model_validate(user),
            token=create_access_token(user.id, user.email),
        )

    # ── Password reset ────────────────────────────────────────────────────

    async def forgot_password(self, db: AsyncSession, email: str) -> ForgotPasswordResponse:
        """
        Issues a reset token if the account exists.

        The response is the same whether or not the email is registered.
        Outside production (no mailer configured) the token is returned in
        the body so the flow can be completed by hand.
        """
        user = await self._find_by_email(db, email)
        if user is None:
            return ForgotPasswordResponse(message=RESET_REQUESTED)

        token = create_reset_token(user.id, user.email)
        logger.info("Password reset requested for user %s", user.id)
        logger.debug("Reset link: %s/reset-password?token=%s", settings.frontend_url, token)
        return ForgotPasswordResponse(
            message=RESET_REQUESTED,
            reset_token=None if settings.is_production else token,
        )

    async def reset_password(self, db: AsyncSession, data: ResetPasswordRequest) -> str:
        _check_strength(data.new_password)

        try:
            payload = decode_token(data.token, expected_type=RESET_TOKEN)
            user_id = uuid.UUID(payload["sub"])
        except (AuthenticationError, AuthorizationError, ValueError):
            raise ValidationError(message=INVALID_RESET_LINK)

        user = await db.get(User, user_id)
        if user is None:
            raise ValidationError(message=INVALID_RESET_LINK)

        user.password_hash = hash_password(data.new_password)
        await db.flush()
        logger.info("Password reset for user %s", user.id)
        return "Password reset successfully"

    # ── Account settings ──────────────────────────────────────────────────

    async def update_profile(
        self,
        db: AsyncSession,
        user_id: Any,
        data: ProfileUpdate,
    ) -> UserEnvelope:
        """Partial update; preferences are merged into the stored ones."""
        user = await self._get_user(db, user_id)

        if data.email is not None and data.email != user.email:
            if await self._email_taken_by_other(db, data.email, user.id):
                raise ConflictError(message=EMAIL_TAKEN)
            user.email = data.email
        if data.name is not None:
            user.name = data.name
        if data.preferences is not None:
            user.preferences = {**(user.preferences or {}), **data.preferences}

        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(message=EMAIL_TAKEN)
        await db.refresh(user)

        logger.info(
            "Profile updated for user %s (name=%s, email=%s, preferences=%s)",
            user.id,
            data.name is not None,
            data.email is not None,
            data.preferences is not None,
        )
        return UserEnvelope(
            message="Profile updated successfully",
            user=UserResponse.model_validate(user),
        )

    async def update_preferences(
        self,
        db: AsyncSession,
        user_id: Any,
        data: PreferencesUpdate,
    ) -> UserEnvelope:
        user = await self._get_user(db, user_id)
        # Assign a new dict so the JSON column is flagged as changed
        user.preferences = {**(user.preferences or {}), **data.as_preferences()}
        await db.flush()
        await db.refresh(user)

        logger.info("Preferences updated for user %s: %s", user.id, user.preferences)
        return UserEnvelope(
            message="Preferences updated successfully",
            user=UserResponse.model_validate(user),
        )

    async def change_password(
        self,
        db: AsyncSession,
        user_id: Any,
        data: ChangePasswordRequest,
    ) -> str:
        """
        Raises:
            AuthenticationError: current password is wrong
            ValidationError: new password too weak
        """
        user = await self._get_user(db, user_id)
        if not verify_password(data.current_password, user.password_hash):
            raise AuthenticationError(message="Current password is incorrect")
        _check_strength(data.new_password)

        user.password_hash = hash_password(data.new_password)
        await db.flush()
        logger.info("Password changed for user %s", user.id)
        return "Password changed successfully"

    # ── CSRF ──────────────────────────────────────────────────────────────

    def issue_csrf_token(self, user_id: Any) -> str:
        return csrf_store.generate(str(user_id))


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService()
