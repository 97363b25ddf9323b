"""API route registration."""

from fastapi import APIRouter

from lumen.api.routes import health, media, system

# Served under a prefix an asset path is unlikely to use; registered before
# the media catch-all so they win the match.
status_router = APIRouter()
status_router.include_router(health.router, tags=["health"])
status_router.include_router(system.router, tags=["system"])

media_router = media.router
