"""Health check for the media server."""

from fastapi import APIRouter

from lumen import __version__
from lumen.schemas.system import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Lightweight connectivity check used by the dashboard."""
    return HealthResponse(version=__version__)
