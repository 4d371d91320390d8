"""Liveness and readiness probes.

- GET /health: process is up; never touches storage
- GET /ready: storage answers a ping
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.dependencies import get_user_repo
from api.models import HealthResponse
from port.user_repository import UserRepository

logger = logging.getLogger(__name__)

SERVICE_NAME = "user-service"

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health():
    """Liveness probe."""
    return HealthResponse(status="ok", service=SERVICE_NAME)


@router.get("/ready")
def ready(repo: UserRepository = Depends(get_user_repo)):
    """Readiness probe: 200 when storage is reachable, 503 otherwise."""
    timestamp = datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')

    if repo.ping():
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": "ready", "timestamp": timestamp, "services": {"mongodb": "healthy"}},
        )

    logger.warning("Readiness check failed: storage unreachable")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "unavailable", "timestamp": timestamp, "services": {"mongodb": "unhealthy"}},
    )
