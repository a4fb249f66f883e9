"""Request/response contracts for /api/projects."""

import uuid
from datetime import datetime
from typing import List

from pydantic import Field

from organizer.schemas.common import CamelModel, CleanStr, PageMeta


class ProjectWrite(CamelModel):
    """Body of POST and PUT; the only writable field is the name."""
    name: CleanStr = Field(min_length=1, max_length=255)


class ProjectResponse(CamelModel):
    id: uuid.UUID
    name: str
    user_id: uuid.UUID
    drawing_count: int
    created_at: datetime
    updated_at: datetime


class ProjectEnvelope(CamelModel):
    project: ProjectResponse


class ProjectMutationResponse(CamelModel):
    message: str
    project: ProjectResponse


class ProjectListResponse(PageMeta):
    projects: List[ProjectResponse]
