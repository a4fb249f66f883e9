"""
Excalidraw Organizer Backend — Shared Schema Building Blocks
=============================================================

What:  Base model and response shapes shared by all resources.
Why:   The frontend speaks camelCase JSON (drawingCount, excalidrawData);
       Python code stays snake_case. CamelModel bridges the two: responses
       are serialized with camelCase aliases, requests accept either form.
"""

import re
import uuid
from typing import Annotated, Any, List, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from organizer.utils.sanitize import sanitize_email, sanitize_string


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    message: str


class DeleteResponse(CamelModel):
    message: str
    id: uuid.UUID


class PageMeta(CamelModel):
    """Offset pagination summary appended to every list response."""
    count: int = Field(description="Items in this page")
    total_count: int = Field(description="Items matching the query across all pages")
    has_more: bool = Field(description="Whether offset + count < totalCount")


class FieldError(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "Drawing not found",
            "details": {"resource": "Drawing"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[Any] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class ValidationErrorDetails(BaseModel):
    errors: List[FieldError]


# ══════════════════════════════════════════════════════════════════════════
# Sanitized string types
# ══════════════════════════════════════════════════════════════════════════

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _trim(value: Any) -> Any:
    return sanitize_string(value) if isinstance(value, str) else value


def _lower(value: Any) -> Any:
    return sanitize_email(value) if isinstance(value, str) else value


def _check_email(value: str) -> str:
    if len(value) > 255 or not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email address")
    return value


# Length limits declared with Field() apply to the cleaned value
CleanStr = Annotated[str, BeforeValidator(_trim)]
Email = Annotated[str, BeforeValidator(_lower), AfterValidator(_check_email)]
