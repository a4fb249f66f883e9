"""Create users, projects and drawings tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Initial schema: accounts, project folders and drawings.
How:   PostgreSQL types (UUID, JSONB, TIMESTAMP WITH TIME ZONE); deleting a
       user cascades to projects and drawings, deleting a project to its
       drawings.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False, comment="bcrypt hash"),
        sa.Column(
            "preferences",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("""'{"theme": "system", "defaultViewMode": "list"}'::jsonb"""),
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("idx_users_email", "users", ["email"])

    # ── projects ──────────────────────────────────────────────────────────
    op.create_table(
        "projects",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "drawing_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Maintained by the API on create, delete and move",
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "name", name="uq_projects_user_id_name"),
    )
    op.create_index("idx_projects_user_id", "projects", ["user_id"])

    # ── drawings ──────────────────────────────────────────────────────────
    op.create_table(
        "drawings",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("excalidraw_data", postgresql.JSONB(), nullable=False),
        sa.Column("thumbnail", sa.Text(), nullable=True, comment="PNG data URL"),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("public_share_id", sa.String(255), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _timestamp("last_accessed_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("public_share_id", name="uq_drawings_public_share_id"),
    )
    op.create_index("idx_drawings_user_id", "drawings", ["user_id"])
    op.create_index("idx_drawings_project_id", "drawings", ["project_id"])
    # Recent view: ORDER BY last_accessed_at DESC
    op.create_index(
        "idx_drawings_last_accessed_at",
        "drawings",
        [sa.text("last_accessed_at DESC")],
    )
    op.create_index("idx_drawings_public_share_id", "drawings", ["public_share_id"])


def downgrade() -> None:
    """Drops everything, children first. All data is lost."""
    op.drop_index("idx_drawings_public_share_id", table_name="drawings")
    op.drop_index("idx_drawings_last_accessed_at", table_name="drawings")
    op.drop_index("idx_drawings_project_id", table_name="drawings")
    op.drop_index("idx_drawings_user_id", table_name="drawings")
    op.drop_table("drawings")

    op.drop_index("idx_projects_user_id", table_name="projects")
    op.drop_table("projects")

    op.drop_index("idx_users_email", table_name="users")
    op.drop_table("users")
