"""
Excalidraw Organizer Backend — User SQLAlchemy Model
=====================================================

What:  ORM model for the `users` table.
Why:   Every project and drawing belongs to exactly one user; deleting a user
       cascades to both at the database level.

Table Design Rationale:
    - UUID primary key: non-sequential, cannot be enumerated
    - email: unique and always stored lowercase (sanitized before insert)
    - password_hash: bcrypt hash, never the plain password
    - preferences: free-form JSON so the frontend can add settings without a
      migration; defaults to {"theme": "system", "defaultViewMode": "list"}
"""

import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from organizer.database import Base
from organizer.models.common import JSONType, utcnow

DEFAULT_PREFERENCES: Dict[str, Any] = {"theme": "system", "defaultViewMode": "list"}


def default_preferences() -> Dict[str, Any]:
    return dict(DEFAULT_PREFERENCES)


class User(Base):
    """A registered account."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    preferences: Mapped[Dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=default_preferences,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (Index("idx_users_email", "email"),)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
