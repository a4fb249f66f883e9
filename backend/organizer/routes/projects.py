"""
Excalidraw Organizer Backend — Project Route Handlers
======================================================

What:  /api/projects CRUD for the signed-in user.
How:   Thin handlers: parse path/query/body, delegate to ProjectService.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from organizer.database import get_db_session
from organizer.dependencies import require_user
from organizer.schemas.common import DeleteResponse, ErrorResponse
from organizer.schemas.project import (
    ProjectEnvelope,
    ProjectListResponse,
    ProjectMutationResponse,
    ProjectWrite,
)
from organizer.services.project_service import project_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["Projects"])

NOT_FOUND = {404: {"description": "Project not found", "model": ErrorResponse}}
CONFLICT = {409: {"description": "Duplicate project name", "model": ErrorResponse}}


@router.post(
    "",
    response_model=ProjectMutationResponse,
    status_code=status.HTTP_201_CREATED,
    responses=CONFLICT,
    summary="Create a project",
)
async def create_project(
    body: ProjectWrite,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectMutationResponse:
    return await project_service.create_project(db, user_id, body)


@router.get(
    "",
    response_model=ProjectListResponse,
    summary="List projects",
    description="Most recently updated first. Total count is also sent as X-Total-Count.",
)
async def list_projects(
    response: Response,
    limit: int = Query(default=100, ge=1, le=200, description="Items per page (max 200)"),
    offset: int = Query(default=0, ge=0),
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectListResponse:
    result = await project_service.list_projects(db, user_id, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get("/{project_id}", response_model=ProjectEnvelope, responses=NOT_FOUND, summary="Get a project")
async def get_project(
    project_id: UUID,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectEnvelope:
    return await project_service.get_project(db, user_id, project_id)


@router.put(
    "/{project_id}",
    response_model=ProjectMutationResponse,
    responses={**NOT_FOUND, **CONFLICT},
    summary="Rename a project",
)
async def update_project(
    project_id: UUID,
    body: ProjectWrite,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectMutationResponse:
    return await project_service.update_project(db, user_id, project_id, body)


@router.delete(
    "/{project_id}",
    response_model=DeleteResponse,
    responses={
        **NOT_FOUND,
        400: {"description": "Project still contains drawings", "model": ErrorResponse},
    },
    summary="Delete an empty project",
)
async def delete_project(
    project_id: UUID,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> DeleteResponse:
    return await project_service.delete_project(db, user_id, project_id)
