"""Screen and playlist schemas — rows read from the hosted backend."""

import json
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Device(BaseModel):
    """Per-install identity shown on the pairing screen."""
    device_id: str
    pairing_code: str


class Screen(BaseModel):
    """Screen row; owned by the dashboard, only read and pinged here."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    name: str | None = None
    pairing_code: str | None = None
    status: str = "pending"  # pending, online, offline
    current_playlist_id: str | None = None
    last_ping: datetime | None = None


class PlaylistItem(BaseModel):
    """One playable unit. ``url`` wins over ``relative_path`` when both are set."""
    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    unique_id: str | None = Field(
        default=None, validation_alias=AliasChoices("unique_id", "uniqueId", "id"),
    )
    type: str = "image"
    name: str | None = None
    url: str | None = None
    relative_path: str | None = Field(
        default=None, validation_alias=AliasChoices("relative_path", "relativePath"),
    )
    path: str | None = None  # legacy absolute/desktop path
    duration_seconds: float | None = Field(
        default=None,
        validation_alias=AliasChoices("duration_seconds", "durationSeconds", "duration"),
    )

    @property
    def is_video(self) -> bool:
        return self.type == "video"


class Playlist(BaseModel):
    """Ordered list of items; order is playback order."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    name: str | None = ""
    items: list[PlaylistItem] = []

    @field_validator("items", mode="before")
    @classmethod
    def parse_items(cls, value: Any) -> Any:
        # items may arrive as a JSON-encoded string
        if isinstance(value, str):
            return json.loads(value) if value.strip() else []
        return value if value is not None else []

    def items_signature(self) -> list[dict[str, Any]]:
        """Structural form of the items used for change detection."""
        return [item.model_dump(mode="json", by_alias=False) for item in self.items]
