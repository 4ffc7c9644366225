"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.models.responses import HealthResponse
from core.backend import backend_configured
from core.config import API_VERSION

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint for monitoring.

    Returns 200 if the backend is configured, 503 otherwise.
    """
    configured = backend_configured()
    timestamp = datetime.now(timezone.utc).isoformat()

    if configured:
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            backend_configured=True,
            timestamp=timestamp,
        )
    else:
        return JSONResponse(
            status_code=503,
            content=HealthResponse(
                status="unhealthy",
                version=API_VERSION,
                backend_configured=False,
                timestamp=timestamp,
                error="Backend credentials not configured",
            ).model_dump(),
        )
