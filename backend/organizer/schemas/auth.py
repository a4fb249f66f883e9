"""
Excalidraw Organizer Backend — Auth and Account Schemas
========================================================

What:  Request/response contracts for /api/auth.
How:   Names are trimmed and emails lowercased before validation (CleanStr,
       Email), so length limits and the uniqueness check see the stored form.

Password rules here are only the minimum length; the full strength check
(utils/password_validation.py) runs in the service so its errors and
suggestions can be returned together.
"""

import uuid
from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Optional

from pydantic import Field, field_validator, model_validator

from organizer.schemas.common import CamelModel, CleanStr, Email
from organizer.utils.sanitize import sanitize_object

Theme = Literal["light", "dark", "system"]
ViewMode = Literal["list", "grid"]


# ══════════════════════════════════════════════════════════════════════════
# Requests
# ══════════════════════════════════════════════════════════════════════════


class SignupRequest(CamelModel):
    name: CleanStr = Field(min_length=2, max_length=255)
    email: Email
    password: str = Field(min_length=8, max_length=128)


class SigninRequest(CamelModel):
    email: Email
    password: str = Field(min_length=1, max_length=128)


class ForgotPasswordRequest(CamelModel):
    email: Email


class ResetPasswordRequest(CamelModel):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=128)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=8, max_length=128)


class PreferencesUpdate(CamelModel):
    theme: Optional[Theme] = None
    default_view_mode: Optional[ViewMode] = None

    @model_validator(mode="after")
    def require_one_field(self) -> "PreferencesUpdate":
        if self.theme is None and self.default_view_mode is None:
            raise ValueError("At least one preference (theme or defaultViewMode) must be provided")
        return self

    def as_preferences(self) -> Dict[str, Any]:
        """camelCase dict of only the fields that were sent."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ProfileUpdate(CamelModel):
    name: Optional[Annotated[CleanStr, Field(min_length=2, max_length=255)]] = None
    email: Optional[Email] = None
    preferences: Optional[Dict[str, Any]] = None

    @field_validator("preferences")
    @classmethod
    def clean_preferences(cls, v: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        return None if v is None else sanitize_object(v)

    @model_validator(mode="after")
    def require_one_field(self) -> "ProfileUpdate":
        if self.name is None and self.email is None and self.preferences is None:
            raise ValueError("At least one field (name, email, or preferences) must be provided")
        return self


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class UserResponse(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    created_at: datetime
    preferences: Dict[str, Any]


class AuthResponse(CamelModel):
    """Returned by signup and signin; the token is also set as a cookie."""
    message: str
    user: UserResponse
    token: str


class UserEnvelope(CamelModel):
    message: Optional[str] = None
    user: UserResponse


class ForgotPasswordResponse(CamelModel):
    message: str
    # Only populated outside production, where no email is actually sent
    reset_token: Optional[str] = None


class CsrfTokenResponse(CamelModel):
    csrf_token: str
