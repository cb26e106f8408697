"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy import text

from deaftube.api.deps import StorageDep
from deaftube.logging import get_logger

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    database: bool
    uploads: bool


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Basic health check endpoint that verifies the API is running.",
)
async def health_check() -> HealthResponse:
    """Basic health check - is the API up?"""
    from deaftube import __version__

    return HealthResponse(status="healthy", version=__version__)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Verifies the database answers and the upload directory is writable.",
)
async def readiness_check(storage: StorageDep) -> ReadinessResponse:
    """Readiness check including dependencies."""
    database_ok = False
    try:
        from deaftube.db.session import engine

        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            database_ok = True
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))

    uploads_ok = False
    try:
        probe = storage.base_path / ".ready"
        probe.write_bytes(b"")
        probe.unlink()
        uploads_ok = True
    except OSError as e:
        logger.error("uploads_health_check_failed", error=str(e))

    return ReadinessResponse(
        ready=database_ok and uploads_ok,
        database=database_ok,
        uploads=uploads_ok,
    )


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Simple liveness probe for Kubernetes.",
)
async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe - is the process alive?"""
    return {"status": "alive"}
