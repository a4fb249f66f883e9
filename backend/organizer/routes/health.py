"""
Excalidraw Organizer Backend — Health Check Routes
===================================================

What:  Liveness and dependency probes, plus the /api index.
Why:   Load balancers and Docker need a cheap "is the process up" check;
       operators need to know which dependency is down when it is not.
How:   /health never touches a dependency. /health/db and /health/storage
       each run one lightweight probe and answer 500 when it fails.

Endpoints:
    GET /health          {status: "ok", timestamp, environment, version}
    GET /health/db       SELECT 1 against the database
    GET /health/storage  list/write probe against the storage backend
    GET /api             API name, version and endpoint map

None of these are rate limited except /api, and none are access-logged.
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from organizer import __version__
from organizer.config import settings
from organizer.database import check_connection
from organizer.schemas.health import ApiIndexResponse, DependencyHealth, HealthResponse
from organizer.services.storage_service import storage_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Module-level: set once when the module loads
_start_time = time.time()


def _now() -> datetime:
    return datetime.now(timezone.utc)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service liveness check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="ok",
        timestamp=_now(),
        environment=settings.environment,
        version=__version__,
        uptime_seconds=round(time.time() - _start_time, 2),
    )


@router.get(
    "/health/db",
    response_model=DependencyHealth,
    response_model_exclude_none=True,
    responses={500: {"description": "Database unreachable", "model": DependencyHealth}},
    summary="Database connectivity check",
)
async def database_health():
    try:
        await check_connection()
    except Exception as e:
        logger.error("Health check: database unreachable: %s", str(e))
        body = DependencyHealth(status="error", database="disconnected")
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))
    return DependencyHealth(status="ok", database="connected", timestamp=_now())


@router.get(
    "/health/storage",
    response_model=DependencyHealth,
    response_model_exclude_none=True,
    responses={500: {"description": "Storage unreachable", "model": DependencyHealth}},
    summary="Object storage connectivity check",
)
async def storage_health():
    try:
        backend = storage_service.backend
        healthy = await storage_service.health_check()
    except Exception as e:
        logger.error("Health check: storage unreachable: %s", str(e))
        healthy = False
        backend = None

    if not healthy:
        body = DependencyHealth(
            status="error",
            storage="disconnected",
            backend=settings.storage_backend,
        )
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))
    return DependencyHealth(
        status="ok",
        storage="connected",
        backend=backend.name,
        bucket=backend.location,
    )


@router.get("/api", response_model=ApiIndexResponse, summary="API index")
async def api_index() -> ApiIndexResponse:
    return ApiIndexResponse(
        message="Excalidraw Organizer API",
        version=__version__,
        endpoints={
            "health": "/health",
            "dbHealth": "/health/db",
            "storageHealth": "/health/storage",
            "auth": "/api/auth/*",
            "drawings": "/api/drawings/*",
            "projects": "/api/projects/*",
            "public": "/api/public/{shareId}",
        },
    )
