"""Server telemetry — request counter, asset storage and host load."""

import asyncio
import time

import psutil
from fastapi import APIRouter, Request

from lumen.api.routes.media import get_context
from lumen.schemas.system import ServerStats
from lumen.utils.storage import volume_usage

router = APIRouter()

_boot_time = psutil.boot_time()


@router.get("/stats", response_model=ServerStats)
async def server_stats(request: Request):
    """Counters for the dashboard chart; the asset walk runs off the event loop."""
    ctx = get_context(request)
    assets_bytes = await asyncio.to_thread(ctx.store.usage)

    return ServerStats(
        requests_served=ctx.request_count,
        assets_bytes=assets_bytes,
        disk=volume_usage(ctx.root),
        cpu_percent=psutil.cpu_percent(interval=None),
        memory_percent=psutil.virtual_memory().percent,
        uptime_seconds=round(time.time() - _boot_time, 0),
    )
