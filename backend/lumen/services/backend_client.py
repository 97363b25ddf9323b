"""Hosted backend client — PostgREST tables for screens and playlists."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from lumen.config import settings
from lumen.errors import ErrorKind, Result
from lumen.schemas.playlist import Playlist, Screen

logger = logging.getLogger(__name__)


def _unexpected_shape(path: str, value: Any) -> Result[Any]:
    return Result.failure(
        ErrorKind.TRANSIENT_NETWORK,
        f"{path}: expected a JSON array, got {type(value).__name__}",
    )


class BackendClient:
    """Reads screens/playlists and registers this screen.

    Every call returns a ``Result``; nothing here raises on network trouble.
    """

    def __init__(
        self,
        base_url: str | None = None,
        anon_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = (base_url or settings.backend_url).rstrip("/") + "/rest/v1"
        key = anon_key if anon_key is not None else settings.backend_anon_key
        self._headers = {"apikey": key, "Authorization": f"Bearer {key}"}
        self._timeout = timeout or settings.backend_timeout
        self._transport = transport

    async def _request(self, method: str, path: str, **kwargs) -> Result[Any]:
        headers = {**self._headers, **kwargs.pop("headers", {})}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.request(
                    method, f"{self._base_url}{path}", headers=headers, **kwargs,
                )
                resp.raise_for_status()
                if not resp.content:
                    return Result.success(None)
                return Result.success(resp.json())
        except httpx.HTTPStatusError as e:
            kind = (
                ErrorKind.NOT_FOUND
                if e.response.status_code == 404
                else ErrorKind.TRANSIENT_NETWORK
            )
            return Result.failure(kind, f"{method} {path}: HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            return Result.failure(ErrorKind.TRANSIENT_NETWORK, f"{method} {path}: {e!r}")
        except ValueError as e:
            return Result.failure(ErrorKind.TRANSIENT_NETWORK, f"{method} {path}: bad JSON ({e})")

    async def get_screen_by_code(self, pairing_code: str) -> Result[Screen | None]:
        """Screen row for a pairing code; ``value`` is None when there is none."""
        result = await self._request(
            "GET", "/screens",
            params={"pairing_code": f"eq.{pairing_code}", "select": "*", "limit": "1"},
        )
        if not result.ok:
            return result
        rows = result.value or []
        if not isinstance(rows, list):
            return _unexpected_shape("/screens", rows)
        if not rows:
            return Result.success(None)
        try:
            return Result.success(Screen.model_validate(rows[0]))
        except ValidationError as e:
            return Result.failure(ErrorKind.NOT_FOUND, f"Malformed screen row: {e}")

    async def get_playlist(self, playlist_id: str) -> Result[Playlist]:
        result = await self._request(
            "GET", "/playlists",
            params={"id": f"eq.{playlist_id}", "select": "*", "limit": "1"},
        )
        if not result.ok:
            return result
        rows = result.value or []
        if not isinstance(rows, list):
            return _unexpected_shape("/playlists", rows)
        if not rows:
            return Result.failure(ErrorKind.NOT_FOUND, f"Playlist {playlist_id} not found")
        try:
            return Result.success(Playlist.model_validate(rows[0]))
        except ValidationError as e:
            return Result.failure(ErrorKind.NOT_FOUND, f"Malformed playlist {playlist_id}: {e}")

    async def upsert_screen(self, device_id: str, pairing_code: str) -> Result[Screen]:
        """Register (or re-register) this device as a pending screen."""
        row = {
            "id": device_id,
            "name": f"TV-{pairing_code}",
            "status": "pending",
            "pairing_code": pairing_code,
            "last_ping": datetime.now(timezone.utc).isoformat(),
        }
        result = await self._request(
            "POST", "/screens",
            json=row,
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        if not result.ok:
            return result
        rows = result.value or [row]
        if not isinstance(rows, list):
            return _unexpected_shape("/screens", rows)
        try:
            return Result.success(Screen.model_validate(rows[0]))
        except ValidationError as e:
            return Result.failure(ErrorKind.NOT_FOUND, f"Malformed screen row: {e}")

    async def ping_screen(self, pairing_code: str) -> Result[None]:
        """Liveness ping RPC; marks the screen online on the backend."""
        result = await self._request("POST", "/rpc/ping_screen", json={"p_code": pairing_code})
        if not result.ok:
            return result
        return Result.success(None)
