"""Resolve a playlist item to the URL the player fetches.

Precedence, first match wins:

1. ``url``: remote/cloud URL, used everywhere.
2. ``relative_path``: served by the local media server.
3. legacy ``path`` containing the ``Assets`` anchor folder: the part after
   the last anchor, with Windows separators normalised.
4. legacy absolute ``path`` (``/...`` or ``C:\\...``): its file name.
5. bare ``name``.

Steps 2-5 only apply in a local context; elsewhere the player would trip
browser "local network access" prompts, so those items resolve to None.
"""

from __future__ import annotations

import re
from urllib.parse import quote

from lumen.schemas.playlist import PlaylistItem

ASSETS_ANCHOR = "Assets"
_WINDOWS_ABS_RE = re.compile(r"^[A-Za-z]:\\")


def is_local_context(hostname: str, local_hostnames: list[str]) -> bool:
    """Hostname heuristic for "running next to the media server".

    A string comparison, not a security boundary.
    """
    return hostname.strip().lower() in {h.lower() for h in local_hostnames}


def _local_url(base_url: str, relative: str) -> str:
    return f"{base_url.rstrip('/')}/{quote(relative.lstrip('/'), safe='/')}"


def local_relative_path(item: PlaylistItem) -> str | None:
    """Root-relative path of an item on the media server, if derivable."""
    if item.relative_path:
        return item.relative_path.replace("\\", "/").lstrip("/")

    path = item.path or ""
    if ASSETS_ANCHOR in path:
        rel = path.split(ASSETS_ANCHOR)[-1]
        rel = rel.lstrip("/\\").replace("\\", "/")
        if rel:
            return rel
    if path.startswith("/") or _WINDOWS_ABS_RE.match(path):
        name = re.split(r"[/\\]", path)[-1]
        if name:
            return name

    if item.name:
        return item.name
    return None


def resolve_item_url(item: PlaylistItem, local_context: bool, base_url: str) -> str | None:
    if item.url:
        return item.url
    if not local_context:
        return None
    relative = local_relative_path(item)
    if relative is None:
        return None
    return _local_url(base_url, relative)
