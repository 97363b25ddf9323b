"""Lumen configuration — Pydantic BaseSettings loaded from .env."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Settings shared by the media server and the screen player."""

    app_name: str = "Lumen"
    debug: bool = False
    log_level: str = "INFO"

    # Media server
    host: str = "0.0.0.0"
    media_port: int = 11222

    # Storage paths (relative resolved from project root at runtime)
    data_dir: str = "./data"
    assets_dir: str = "./data/Assets"
    cache_dir: str = "./data/cache/media"
    cache_db_path: str = "./data/cache.db"
    device_file: str = "./data/device.json"

    # Hosted backend (PostgREST / Supabase)
    backend_url: str = ""
    backend_anon_key: str = ""
    backend_timeout: float = 10.0

    # Player
    poll_interval_seconds: float = 5.0
    default_image_seconds: float = 10.0
    crossfade_enabled: bool = True
    crossfade_seconds: float = 1.2
    headless_video_seconds: float = 15.0

    # Local-context heuristic for falling back to the media server
    player_hostname: str = "localhost"
    local_hostnames: Annotated[list[str], NoDecode] = ["localhost", "127.0.0.1"]
    media_base_url: str = "http://localhost:11222"

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        env_prefix="LUMEN_",
        extra="ignore",
    )

    @field_validator("local_hostnames", mode="before")
    @classmethod
    def split_csv(cls, value: list[str] | str) -> list[str]:
        if isinstance(value, str):
            if value.startswith("["):
                return json.loads(value)
            return [o.strip() for o in value.split(",") if o.strip()]
        return value

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Ensure data paths are absolute."""
        base = Path(__file__).resolve().parent.parent  # backend/
        for field in ("data_dir", "assets_dir", "cache_dir", "cache_db_path", "device_file"):
            val = getattr(self, field)
            if not Path(val).is_absolute():
                setattr(self, field, str(base / val))
        self.media_base_url = self.media_base_url.rstrip("/")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
