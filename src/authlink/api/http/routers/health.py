"""Health check endpoints."""

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from src.authlink.api.http.deps import get_db_service
from src.authlink.core.services.database.db_session import DbSessionService

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health() -> dict[str, str]:
    """Liveness probe; does not check dependencies."""
    return {"status": "healthy", "service": "authlink"}


@router.get("/ready", response_model=None)
def readiness(db: DbSessionService = Depends(get_db_service)) -> dict[str, str] | JSONResponse:
    """Readiness probe; 503 when the database is unreachable."""
    if db.health_check():
        return {"status": "ready", "database": "healthy"}
    return JSONResponse(
        status_code=503, content={"status": "not_ready", "database": "unhealthy"}
    )
