"""
Excalidraw Organizer Backend — Drawing SQLAlchemy Model
========================================================

What:  ORM model for the `drawings` table.
Why:   The canonical copy of every drawing lives here; object storage holds a
       snapshot of the same data plus the decoded thumbnail.

Column notes:
    - excalidraw_data: the editor's scene (elements and app state) as JSON
    - thumbnail: PNG preview as a base64 data URL, optional
    - public_share_id: 32 hex chars, set the first time the drawing is shared;
      never regenerated, so old share links keep working
    - last_accessed_at: bumped on open and update; drives the "Recent" view
    - updated_at: set by the service on content changes only, so opening a
      drawing does not reorder the project view

Query Patterns:
    - Recent drawings: WHERE user_id = :uid ORDER BY last_accessed_at DESC
    - Project contents: WHERE project_id = :pid ORDER BY updated_at DESC
    - Public lookup: WHERE public_share_id = :sid AND is_public
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column

from organizer.database import Base
from organizer.models.common import JSONType, utcnow


class Drawing(Base):
    """A saved Excalidraw scene filed under a project."""

    __tablename__ = "drawings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    excalidraw_data: Mapped[Any] = mapped_column(JSONType, nullable=False)
    thumbnail: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_public: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    public_share_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    last_accessed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("idx_drawings_user_id", "user_id"),
        Index("idx_drawings_project_id", "project_id"),
        Index("idx_drawings_last_accessed_at", "last_accessed_at"),
        Index("idx_drawings_public_share_id", "public_share_id"),
    )

    def __repr__(self) -> str:
        return f"<Drawing(id={self.id}, name='{self.name}', project_id={self.project_id})>"
