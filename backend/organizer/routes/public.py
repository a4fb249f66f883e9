"""
Excalidraw Organizer Backend — Public Share Route
==================================================

What:  GET /api/public/{share_id}: read-only access to a shared drawing.
Why:   Share links are opened by people without an account.
How:   No authentication and no CSRF; a dedicated per-IP limit instead.

The response omits owner and project IDs. A drawing that exists but is not
public is reported exactly like a missing one.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from organizer.database import get_db_session
from organizer.dependencies import rate_limit
from organizer.middleware.rate_limit import public_limiter
from organizer.schemas.common import ErrorResponse
from organizer.schemas.drawing import PublicDrawingResponse
from organizer.services.drawing_service import drawing_service

router = APIRouter(prefix="/api/public", tags=["Public"])


@router.get(
    "/{share_id}",
    response_model=PublicDrawingResponse,
    dependencies=[Depends(rate_limit(public_limiter))],
    responses={404: {"description": "Not shared or does not exist", "model": ErrorResponse}},
    summary="View a publicly shared drawing",
)
async def get_public_drawing(
    share_id: str = Path(min_length=1, max_length=255),
    db: AsyncSession = Depends(get_db_session),
) -> PublicDrawingResponse:
    return await drawing_service.get_public(db, share_id)
