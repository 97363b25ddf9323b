"""Health and telemetry schemas."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Media server health check."""
    status: str = "ok"
    version: str
    service: str = "lumen-media"


class DiskUsage(BaseModel):
    total_bytes: int
    used_bytes: int
    free_bytes: int
    percent: float


class ServerStats(BaseModel):
    """Telemetry polled by the dashboard; it diffs ``requests_served`` itself."""
    requests_served: int
    assets_bytes: int
    disk: DiskUsage
    cpu_percent: float
    memory_percent: float
    uptime_seconds: float
