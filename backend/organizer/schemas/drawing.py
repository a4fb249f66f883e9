"""
Excalidraw Organizer Backend — Drawing Schemas
===============================================

What:  Request/response contracts for /api/drawings and /api/public.

Payload notes:
    excalidrawData  Opaque scene JSON from the editor ({elements, appState,
                    files}); validated only as "present and JSON"
    thumbnail       PNG preview as a data URL (data:image/png;base64,...);
                    other image data URLs are accepted, anything else is not

List endpoints return DrawingSummary (no scene data) so the Recent and
project views stay small no matter how large the drawings are.
"""

import base64
import binascii
import re
import uuid
from datetime import datetime
from typing import Annotated, Any, List, Optional

from pydantic import AfterValidator, Field, field_validator, model_validator

from organizer.schemas.common import CamelModel, CleanStr, PageMeta

# data:image/<subtype>;base64,<payload>
IMAGE_DATA_URL = re.compile(r"^data:(image/[a-z0-9.+-]+);base64,", re.IGNORECASE)


def _check_thumbnail(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    match = IMAGE_DATA_URL.match(value)
    if match is None:
        raise ValueError("Thumbnail must be a base64 image data URL")
    try:
        image = base64.b64decode(value[match.end():], validate=True)
    except (binascii.Error, ValueError):
        image = b""
    if not image:
        raise ValueError("Thumbnail is not valid base64 image data")
    return value


Thumbnail = Annotated[Optional[str], AfterValidator(_check_thumbnail)]


# ══════════════════════════════════════════════════════════════════════════
# Requests
# ══════════════════════════════════════════════════════════════════════════


class DrawingCreate(CamelModel):
    name: CleanStr = Field(min_length=1, max_length=255)
    project_id: uuid.UUID
    excalidraw_data: Any = Field(description="Excalidraw scene JSON")
    thumbnail: Thumbnail = None

    @field_validator("excalidraw_data")
    @classmethod
    def require_data(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Excalidraw data is required")
        return v


class DrawingUpdate(CamelModel):
    name: Optional[Annotated[CleanStr, Field(min_length=1, max_length=255)]] = None
    excalidraw_data: Optional[Any] = None
    thumbnail: Thumbnail = None

    @model_validator(mode="after")
    def require_one_field(self) -> "DrawingUpdate":
        if self.name is None and self.excalidraw_data is None and self.thumbnail is None:
            raise ValueError(
                "At least one field (name, excalidrawData, or thumbnail) must be provided"
            )
        return self


class DrawingMove(CamelModel):
    target_project_id: uuid.UUID


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class DrawingSummary(CamelModel):
    id: uuid.UUID
    name: str
    user_id: uuid.UUID
    project_id: uuid.UUID
    thumbnail: Optional[str] = None
    is_public: bool
    public_share_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    last_accessed_at: datetime


class DrawingResponse(DrawingSummary):
    excalidraw_data: Any


class DrawingEnvelope(CamelModel):
    drawing: DrawingResponse


class DrawingMutationResponse(CamelModel):
    message: str
    drawing: DrawingResponse


class DrawingMovedResponse(CamelModel):
    """Move returns the drawing without its scene data."""
    message: str
    drawing: DrawingSummary


class DrawingListResponse(PageMeta):
    drawings: List[DrawingSummary]


class ShareResponse(CamelModel):
    message: str
    share_id: str
    share_url: str


class PublicDrawing(CamelModel):
    """What an anonymous viewer of a share link gets: no owner or project IDs."""
    id: uuid.UUID
    name: str
    excalidraw_data: Any
    thumbnail: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PublicDrawingResponse(CamelModel):
    drawing: PublicDrawing
