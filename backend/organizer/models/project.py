"""
Excalidraw Organizer Backend — Project SQLAlchemy Model
========================================================

What:  ORM model for the `projects` table (folders of drawings).

Table Design Rationale:
    - (user_id, name) is unique: one user cannot have two folders with the
      same name, two users can
    - drawing_count is denormalized so the sidebar can show counts without a
      GROUP BY; the drawing service keeps it in step on create, delete and
      move, and a project can only be deleted when it reaches zero

Query Patterns:
    - List a user's projects: WHERE user_id = :uid ORDER BY updated_at DESC
      → idx_projects_user_id
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from organizer.database import Base
from organizer.models.common import utcnow


class Project(Base):
    """A named folder grouping one user's drawings."""

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    drawing_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_projects_user_id_name"),
        Index("idx_projects_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name='{self.name}', drawings={self.drawing_count})>"
