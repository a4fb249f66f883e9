"""
Shared column types and helpers for the ORM models.

JSON columns map to JSONB on PostgreSQL and to plain JSON elsewhere (SQLite
in tests). All timestamps are timezone-aware UTC.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
