"""Health check endpoint."""
import logging
from fastapi import APIRouter, Request

from app.services.call_session.manager import active_session_count

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    logger.debug(
        f"[HEALTH] Health check requested - Client: {request.client.host if request.client else 'unknown'}"
    )
    return {"status": "healthy", "active_calls": active_session_count()}
