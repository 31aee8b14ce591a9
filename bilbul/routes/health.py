"""
Health check route for Bilbul backend.

PUBLIC endpoint (no authentication required) for load balancers,
monitoring, and deployment verification.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from bilbul.schemas.health import HealthResponse
from bilbul.services.session_store import SessionStore, get_session_store
from bilbul.utils.logging import get_logger

logger = get_logger(__name__)

# Mounted at root level in main.py
router = APIRouter(tags=["system"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint",
    description="Public health check. Also reports how many split sessions are held in memory.",
    status_code=200,
)
async def health_check(
    store: Annotated[SessionStore, Depends(get_session_store)]
) -> HealthResponse:
    logger.debug("Health check endpoint called")
    return HealthResponse(status="ok", active_sessions=len(store))
