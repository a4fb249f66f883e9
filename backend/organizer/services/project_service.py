"""
Excalidraw Organizer Backend — Project Service
===============================================

What:  CRUD for a user's projects (the folders drawings are filed under).
How:   Every query is scoped by user_id; a project owned by someone else is
       reported exactly like a missing one (404), so IDs cannot be probed.

Rules:
    - Names are unique per user (409 on create or rename)
    - A project can only be deleted once it holds no drawings
    - drawing_count is never written here; DrawingService owns it
"""

import logging
import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from organizer.exceptions import ConflictError, NotFoundError, ValidationError
from organizer.models.common import utcnow
from organizer.models.project import Project
from organizer.schemas.common import DeleteResponse
from organizer.schemas.project import (
    ProjectEnvelope,
    ProjectListResponse,
    ProjectMutationResponse,
    ProjectResponse,
    ProjectWrite,
)

logger = logging.getLogger(__name__)

PROJECT_NOT_FOUND = "The specified project does not exist or you do not have access to it"


class ProjectService:

    async def get_owned(self, db: AsyncSession, user_id: Any, project_id: Any) -> Project:
        """
        Loads a project belonging to the user.

        Raises:
            NotFoundError: missing, or owned by another user
        """
        result = await db.execute(
            select(Project).where(
                Project.id == uuid.UUID(str(project_id)),
                Project.user_id == uuid.UUID(str(user_id)),
            )
        )
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundError(
                resource="Project", resource_id=str(project_id), message=PROJECT_NOT_FOUND
            )
        return project

    async def _name_taken(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        name: str,
        exclude_id: Any = None,
    ) -> bool:
        query = select(Project.id).where(Project.user_id == user_id, Project.name == name)
        if exclude_id is not None:
            query = query.where(Project.id != exclude_id)
        result = await db.execute(query)
        return result.first() is not None

    async def create_project(
        self,
        db: AsyncSession,
        user_id: Any,
        data: ProjectWrite,
    ) -> ProjectMutationResponse:
        owner = uuid.UUID(str(user_id))
        if await self._name_taken(db, owner, data.name):
            raise ConflictError(message="A project with this name already exists")

        project = Project(name=data.name, user_id=owner, drawing_count=0)
        db.add(project)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(message="A project with this name already exists")
        await db.refresh(project)

        logger.info("Project created: %s (user=%s)", project.id, owner)
        return ProjectMutationResponse(
            message="Project created successfully",
            project=ProjectResponse.model_validate(project),
        )

    async def list_projects(
        self,
        db: AsyncSession,
        user_id: Any,
        limit: int = 100,
        offset: int = 0,
    ) -> ProjectListResponse:
        """Most recently updated first, with offset pagination."""
        owner = uuid.UUID(str(user_id))

        total = await db.scalar(
            select(func.count()).select_from(Project).where(Project.user_id == owner)
        )
        result = await db.execute(
            select(Project)
            .where(Project.user_id == owner)
            .order_by(Project.updated_at.desc(), Project.id)
            .limit(limit)
            .offset(offset)
        )
        projects = [ProjectResponse.model_validate(p) for p in result.scalars().all()]
        total = total or 0

        return ProjectListResponse(
            projects=projects,
            count=len(projects),
            total_count=total,
            has_more=offset + len(projects) < total,
        )

    async def get_project(self, db: AsyncSession, user_id: Any, project_id: Any) -> ProjectEnvelope:
        project = await self.get_owned(db, user_id, project_id)
        return ProjectEnvelope(project=ProjectResponse.model_validate(project))

    async def update_project(
        self,
        db: AsyncSession,
        user_id: Any,
        project_id: Any,
        data: ProjectWrite,
    ) -> ProjectMutationResponse:
        project = await self.get_owned(db, user_id, project_id)

        if data.name != project.name:
            if await self._name_taken(db, project.user_id, data.name, exclude_id=project.id):
                raise ConflictError(message="Another project with this name already exists")
            project.name = data.name
        project.updated_at = utcnow()

        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(message="Another project with this name already exists")
        await db.refresh(project)

        logger.info("Project renamed: %s", project.id)
        return ProjectMutationResponse(
            message="Project updated successfully",
            project=ProjectResponse.model_validate(project),
        )

    async def delete_project(self, db: AsyncSession, user_id: Any, project_id: Any) -> DeleteResponse:
        """
        Raises:
            NotFoundError: not owned
            ValidationError: the project still contains drawings
        """
        project = await self.get_owned(db, user_id, project_id)
        if project.drawing_count > 0:
            raise ValidationError(
                message=(
                    f"This project contains {project.drawing_count} drawing(s). "
                    "Please move or delete all drawings before deleting the project."
                ),
                context={"drawing_count": project.drawing_count},
            )

        deleted_id = project.id
        await db.delete(project)
        await db.flush()

        logger.info("Project deleted: %s", deleted_id)
        return DeleteResponse(message="Project deleted successfully", id=deleted_id)


# ── Singleton Instance ────────────────────────────────────────────────────
project_service = ProjectService()
