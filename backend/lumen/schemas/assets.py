"""Asset listing schemas."""

from typing import Literal

from pydantic import BaseModel


class AssetEntry(BaseModel):
    """One file or folder below the asset root."""
    name: str
    absolute_path: str
    relative_path: str  # forward slashes, identity of the entry
    kind: Literal["file", "folder"]
    size_bytes: int = 0
    media_type: Literal["image", "video", "folder"]
