"""
Excalidraw Organizer Backend — Drawing Route Handlers
======================================================

What:  /api/drawings: CRUD, recent list, per-project list, move, share and
       thumbnail image.
How:   Handlers delegate to DrawingService; create/update/delete schedule the
       object storage sync as a background task so the client never waits
       on (or fails because of) storage.

Caching Strategy:
    - Drawing JSON: no caching (edited continuously)
    - GET /{id}/thumbnail: private, 5 minutes; served from the thumbnail cache

Route order matters: /recent and /project/{id} are declared before /{id}.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from organizer.database import get_db_session
from organizer.dependencies import rate_limit, require_user
from organizer.middleware.rate_limit import drawing_limiter
from organizer.schemas.common import DeleteResponse, ErrorResponse
from organizer.schemas.drawing import (
    DrawingCreate,
    DrawingEnvelope,
    DrawingListResponse,
    DrawingMove,
    DrawingMovedResponse,
    DrawingMutationResponse,
    DrawingUpdate,
    ShareResponse,
)
from organizer.services.drawing_service import drawing_service, purge_drawing, snapshot_drawing

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/drawings", tags=["Drawings"])

drawing_writes = rate_limit(drawing_limiter)

NOT_FOUND = {404: {"description": "Drawing not found", "model": ErrorResponse}}
THUMBNAIL_CACHE_CONTROL = "private, max-age=300"


@router.post(
    "",
    response_model=DrawingMutationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(drawing_writes)],
    responses={404: {"description": "Project not found", "model": ErrorResponse}},
    summary="Create a drawing in a project",
)
async def create_drawing(
    body: DrawingCreate,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> DrawingMutationResponse:
    result = await drawing_service.create_drawing(db, user_id, body)
    drawing = result.drawing
    background_tasks.add_task(snapshot_drawing, drawing.id, drawing.excalidraw_data, drawing.thumbnail)
    return result


@router.get(
    "/recent",
    response_model=DrawingListResponse,
    summary="Recently opened drawings",
    description="All of the user's drawings by last access, without scene data.",
)
async def list_recent(
    response: Response,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> DrawingListResponse:
    result = await drawing_service.list_recent(db, user_id, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/project/{project_id}",
    response_model=DrawingListResponse,
    responses={404: {"description": "Project not found", "model": ErrorResponse}},
    summary="Drawings in a project",
)
async def list_project_drawings(
    project_id: UUID,
    response: Response,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> DrawingListResponse:
    result = await drawing_service.list_by_project(
        db, user_id, project_id, limit=limit, offset=offset
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get("/{drawing_id}", response_model=DrawingEnvelope, responses=NOT_FOUND, summary="Open a drawing")
async def get_drawing(
    drawing_id: UUID,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> DrawingEnvelope:
    return await drawing_service.get_drawing(db, user_id, drawing_id)


@router.get(
    "/{drawing_id}/thumbnail",
    response_class=Response,
    responses={
        200: {"content": {"image/png": {}, "image/*": {}}, "description": "Thumbnail image"},
        **NOT_FOUND,
    },
    summary="Thumbnail image",
)
async def get_thumbnail(
    drawing_id: UUID,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    image, media_type = await drawing_service.get_thumbnail(db, user_id, drawing_id)
    return Response(
        content=image,
        media_type=media_type,
        headers={"Cache-Control": THUMBNAIL_CACHE_CONTROL},
    )


@router.put(
    "/{drawing_id}",
    response_model=DrawingMutationResponse,
    dependencies=[Depends(drawing_writes)],
    responses=NOT_FOUND,
    summary="Update name, scene data or thumbnail",
)
async def update_drawing(
    drawing_id: UUID,
    body: DrawingUpdate,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> DrawingMutationResponse:
    result = await drawing_service.update_drawing(db, user_id, drawing_id, body)
    if body.excalidraw_data is not None or body.thumbnail is not None:
        drawing = result.drawing
        background_tasks.add_task(
            snapshot_drawing, drawing.id, drawing.excalidraw_data, drawing.thumbnail
        )
    return result


@router.delete(
    "/{drawing_id}",
    response_model=DeleteResponse,
    dependencies=[Depends(drawing_writes)],
    responses=NOT_FOUND,
    summary="Delete a drawing",
)
async def delete_drawing(
    drawing_id: UUID,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> DeleteResponse:
    result = await drawing_service.delete_drawing(db, user_id, drawing_id)
    background_tasks.add_task(purge_drawing, result.id)
    return result


@router.put(
    "/{drawing_id}/move",
    response_model=DrawingMovedResponse,
    dependencies=[Depends(drawing_writes)],
    responses={
        **NOT_FOUND,
        400: {"description": "Already in the target project", "model": ErrorResponse},
    },
    summary="Move a drawing to another project",
)
async def move_drawing(
    drawing_id: UUID,
    body: DrawingMove,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> DrawingMovedResponse:
    return await drawing_service.move_drawing(db, user_id, drawing_id, body)


@router.post(
    "/{drawing_id}/share",
    response_model=ShareResponse,
    dependencies=[Depends(drawing_writes)],
    responses=NOT_FOUND,
    summary="Create or fetch the public share link",
)
async def share_drawing(
    drawing_id: UUID,
    user_id: str = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
) -> ShareResponse:
    return await drawing_service.share_drawing(db, user_id, drawing_id)
