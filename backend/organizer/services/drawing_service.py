"""
Excalidraw Organizer Backend — Drawing Service (Business Logic Orchestrator)
============================================================================

What:  Drawing CRUD, moving between projects, public sharing and thumbnails.
Why:   Keeps the drawing/project bookkeeping (drawing_count, last access,
       share IDs) in one place, independent of HTTP concerns.
How:   Composes ProjectService (ownership checks), the thumbnail cache and
       the storage service around SQLAlchemy queries.

Orchestration Flow (POST /api/drawings):
    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐    ┌────────────┐
    │ Own project? │───▶│ Insert row   │───▶│ drawing_count│───▶│ Snapshot   │
    │ (404 if not) │    │ (flush)      │    │ + 1          │    │ (bg task)  │
    └──────────────┘    └──────────────┘    └──────────────┘    └────────────┘

Counter bookkeeping (Project.drawing_count):
    create  +1 on the project
    delete  -1 on the project (never below zero)
    move    -1 on the source, +1 on the target
    Counters are changed with UPDATE ... SET drawing_count = drawing_count ± 1
    so concurrent requests cannot lose an increment.

Timestamps:
    last_accessed_at  bumped on open (GET /{id}) and on update
    updated_at        bumped on content change (update, move)

Thumbnail cache:
    A new thumbnail or a delete is committed before the cached preview is
    dropped, so a concurrent thumbnail read cannot re-cache the old one.
"""

import logging
import secrets
import uuid
from typing import Any, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import defer

from organizer.config import settings
from organizer.exceptions import NotFoundError, StorageError, ValidationError
from organizer.models.common import utcnow
from organizer.models.drawing import Drawing
from organizer.models.project import Project
from organizer.schemas.common import DeleteResponse
from organizer.schemas.drawing import (
    DrawingCreate,
    DrawingEnvelope,
    DrawingListResponse,
    DrawingMove,
    DrawingMovedResponse,
    DrawingMutationResponse,
    DrawingResponse,
    DrawingSummary,
    DrawingUpdate,
    PublicDrawing,
    PublicDrawingResponse,
    ShareResponse,
)
from organizer.services.project_service import project_service
from organizer.services.storage_service import data_url_media_type, decode_data_url, storage_service
from organizer.services.thumbnail_cache import thumbnail_cache

logger = logging.getLogger(__name__)

DRAWING_NOT_FOUND = "The specified drawing does not exist or you do not have access to it"
TARGET_NOT_FOUND = "The target project does not exist or you do not have access to it"
SHARED_NOT_FOUND = "The shared drawing does not exist or is no longer public"

SHARE_ID_BYTES = 16


def share_url(share_id: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/public/{share_id}"


async def _adjust_drawing_count(db: AsyncSession, project_id: uuid.UUID, delta: int) -> None:
    query = (
        update(Project)
        .where(Project.id == project_id)
        .values(drawing_count=Project.drawing_count + delta)
        .execution_options(synchronize_session="fetch")
    )
    if delta < 0:
        query = query.where(Project.drawing_count > 0)
    await db.execute(query)


class DrawingService:
    """
    Business logic layer for drawing operations.

    Responsibilities:
        - create/get/update/delete for the owner
        - list_recent() / list_by_project(): paginated summaries
        - move(): refile under another project
        - share() / get_public(): public links
        - get_thumbnail(): preview bytes through the thumbnail cache
    """

    async def get_owned(self, db: AsyncSession, user_id: Any, drawing_id: Any) -> Drawing:
        """
        Raises:
            NotFoundError: missing, or owned by another user
        """
        result = await db.execute(
            select(Drawing).where(
                Drawing.id == uuid.UUID(str(drawing_id)),
                Drawing.user_id == uuid.UUID(str(user_id)),
            )
        )
        drawing = result.scalar_one_or_none()
        if drawing is None:
            raise NotFoundError(
                resource="Drawing", resource_id=str(drawing_id), message=DRAWING_NOT_FOUND
            )
        return drawing

    # ── Create ────────────────────────────────────────────────────────────

    async def create_drawing(
        self,
        db: AsyncSession,
        user_id: Any,
        data: DrawingCreate,
    ) -> DrawingMutationResponse:
        project = await project_service.get_owned(db, user_id, data.project_id)

        now = utcnow()
        drawing = Drawing(
            name=data.name,
            user_id=project.user_id,
            project_id=project.id,
            excalidraw_data=data.excalidraw_data,
            thumbnail=data.thumbnail,
            is_public=False,
            created_at=now,
            updated_at=now,
            last_accessed_at=now,
        )
        db.add(drawing)
        await db.flush()
        await _adjust_drawing_count(db, project.id, +1)
        await db.refresh(drawing)

        logger.info("Drawing created: %s in project %s", drawing.id, project.id)
        return DrawingMutationResponse(
            message="Drawing created successfully",
            drawing=DrawingResponse.model_validate(drawing),
        )

    # ── Read ──────────────────────────────────────────────────────────────

    async def _page(
        self,
        db: AsyncSession,
        where: list,
        order_by: Any,
        limit: int,
        offset: int,
    ) -> DrawingListResponse:
        total = await db.scalar(select(func.count()).select_from(Drawing).where(*where)) or 0
        result = await db.execute(
            select(Drawing)
            .options(defer(Drawing.excalidraw_data))
            .where(*where)
            .order_by(order_by, Drawing.id)
            .limit(limit)
            .offset(offset)
        )
        drawings = [DrawingSummary.model_validate(d) for d in result.scalars().all()]
        return DrawingListResponse(
            drawings=drawings,
            count=len(drawings),
            total_count=total,
            has_more=offset + len(drawings) < total,
        )

    async def list_recent(
        self,
        db: AsyncSession,
        user_id: Any,
        limit: int = 50,
        offset: int = 0,
    ) -> DrawingListResponse:
        """All of the user's drawings, most recently opened first."""
        return await self._page(
            db,
            where=[Drawing.user_id == uuid.UUID(str(user_id))],
            order_by=Drawing.last_accessed_at.desc(),
            limit=limit,
            offset=offset,
        )

    async def list_by_project(
        self,
        db: AsyncSession,
        user_id: Any,
        project_id: Any,
        limit: int = 50,
        offset: int = 0,
    ) -> DrawingListResponse:
        project = await project_service.get_owned(db, user_id, project_id)
        return await self._page(
            db,
            where=[Drawing.project_id == project.id, Drawing.user_id == project.user_id],
            order_by=Drawing.updated_at.desc(),
            limit=limit,
            offset=offset,
        )

    async def get_drawing(self, db: AsyncSession, user_id: Any, drawing_id: Any) -> DrawingEnvelope:
        """Full drawing for the editor; counts as an access."""
        drawing = await self.get_owned(db, user_id, drawing_id)
        drawing.last_accessed_at = utcnow()
        await db.flush()
        return DrawingEnvelope(drawing=DrawingResponse.model_validate(drawing))

    # ── Update / Delete ───────────────────────────────────────────────────

    async def update_drawing(
        self,
        db: AsyncSession,
        user_id: Any,
        drawing_id: Any,
        data: DrawingUpdate,
    ) -> DrawingMutationResponse:
        drawing = await self.get_owned(db, user_id, drawing_id)

        if data.name is not None:
            drawing.name = data.name
        if data.excalidraw_data is not None:
            drawing.excalidraw_data = data.excalidraw_data
        if data.thumbnail is not None:
            drawing.thumbnail = data.thumbnail
        now = utcnow()
        drawing.updated_at = now
        drawing.last_accessed_at = now
        await db.flush()
        await db.refresh(drawing)

        if data.thumbnail is not None:
            # Commit first: a thumbnail read between removal and commit would
            # re-cache the old preview
            await db.commit()
            await thumbnail_cache.remove(str(drawing.id))

        logger.info("Drawing updated: %s", drawing.id)
        return DrawingMutationResponse(
            message="Drawing updated successfully",
            drawing=DrawingResponse.model_validate(drawing),
        )

    async def delete_drawing(self, db: AsyncSession, user_id: Any, drawing_id: Any) -> DeleteResponse:
        drawing = await self.get_owned(db, user_id, drawing_id)
        deleted_id, project_id = drawing.id, drawing.project_id

        await db.delete(drawing)
        await db.flush()
        await _adjust_drawing_count(db, project_id, -1)
        await db.commit()
        await thumbnail_cache.remove(str(deleted_id))

        logger.info("Drawing deleted: %s", deleted_id)
        return DeleteResponse(message="Drawing deleted successfully", id=deleted_id)

    # ── Move ──────────────────────────────────────────────────────────────

    async def move_drawing(
        self,
        db: AsyncSession,
        user_id: Any,
        drawing_id: Any,
        data: DrawingMove,
    ) -> DrawingMovedResponse:
        """
        Raises:
            NotFoundError: drawing or target project not owned
            ValidationError: drawing already lives in the target project
        """
        drawing = await self.get_owned(db, user_id, drawing_id)
        source_id = drawing.project_id
        if source_id == data.target_project_id:
            raise ValidationError(message="Drawing is already in the target project")

        try:
            target = await project_service.get_owned(db, user_id, data.target_project_id)
        except NotFoundError:
            raise NotFoundError(
                resource="Project",
                resource_id=str(data.target_project_id),
                message=TARGET_NOT_FOUND,
            )

        drawing.project_id = target.id
        drawing.updated_at = utcnow()
        await db.flush()
        await _adjust_drawing_count(db, source_id, -1)
        await _adjust_drawing_count(db, target.id, +1)
        await db.refresh(drawing)

        logger.info("Drawing %s moved from %s to %s", drawing.id, source_id, target.id)
        return DrawingMovedResponse(
            message="Drawing moved successfully",
            drawing=DrawingSummary.model_validate(drawing),
        )

    # ── Sharing ───────────────────────────────────────────────────────────

    async def share_drawing(self, db: AsyncSession, user_id: Any, drawing_id: Any) -> ShareResponse:
        """Idempotent: an existing share ID is returned unchanged."""
        drawing = await self.get_owned(db, user_id, drawing_id)

        if drawing.public_share_id:
            if not drawing.is_public:
                drawing.is_public = True
                await db.flush()
            return ShareResponse(
                message="Public share link retrieved",
                share_id=drawing.public_share_id,
                share_url=share_url(drawing.public_share_id),
            )

        share_id = secrets.token_hex(SHARE_ID_BYTES)
        drawing.public_share_id = share_id
        drawing.is_public = True
        await db.flush()

        logger.info("Drawing %s shared publicly", drawing.id)
        return ShareResponse(
            message="Public share link created successfully",
            share_id=share_id,
            share_url=share_url(share_id),
        )

    async def get_public(self, db: AsyncSession, share_id: str) -> PublicDrawingResponse:
        result = await db.execute(select(Drawing).where(Drawing.public_share_id == share_id))
        drawing = result.scalar_one_or_none()
        if drawing is None or not drawing.is_public:
            raise NotFoundError(resource="Drawing", message=SHARED_NOT_FOUND)
        return PublicDrawingResponse(drawing=PublicDrawing.model_validate(drawing))

    # ── Thumbnails ────────────────────────────────────────────────────────

    async def get_thumbnail(
        self, db: AsyncSession, user_id: Any, drawing_id: Any
    ) -> Tuple[bytes, str]:
        """
        Preview image bytes and their media type for a drawing card.

        Ownership is checked on every call; only the thumbnail column is
        loaded, and only on a cache miss.

        Raises:
            NotFoundError: drawing not owned, or it has no thumbnail
        """
        owned = await db.scalar(
            select(Drawing.id).where(
                Drawing.id == uuid.UUID(str(drawing_id)),
                Drawing.user_id == uuid.UUID(str(user_id)),
            )
        )
        if owned is None:
            raise NotFoundError(
                resource="Drawing", resource_id=str(drawing_id), message=DRAWING_NOT_FOUND
            )

        key = str(owned)
        thumbnail: Optional[str] = await thumbnail_cache.get(key)
        if thumbnail is None:
            thumbnail = await db.scalar(select(Drawing.thumbnail).where(Drawing.id == owned))
            if not thumbnail:
                raise NotFoundError(resource="Thumbnail", resource_id=key)
            await thumbnail_cache.set(key, thumbnail)
        return decode_data_url(thumbnail), data_url_media_type(thumbnail)


# ══════════════════════════════════════════════════════════════════════════
# Background storage sync
# ══════════════════════════════════════════════════════════════════════════


async def snapshot_drawing(drawing_id: Any, excalidraw_data: Any, thumbnail: Optional[str]) -> None:
    """
    Copies a drawing into object storage after the response is sent.

    Failures are logged only; the database row is the source of truth and
    the next save writes a fresh snapshot.
    """
    try:
        await storage_service.upload_drawing(drawing_id, excalidraw_data)
        if thumbnail:
            await storage_service.upload_thumbnail(drawing_id, thumbnail)
    except (StorageError, ValidationError) as e:
        logger.error("Storage snapshot failed for drawing %s: %s", drawing_id, e.message)


async def purge_drawing(drawing_id: Any) -> None:
    """Removes a deleted drawing's stored objects."""
    deleted = await storage_service.delete_drawing(drawing_id)
    logger.info("Removed %d stored object(s) for drawing %s", deleted, drawing_id)


# ── Singleton Instance ────────────────────────────────────────────────────
drawing_service = DrawingService()
