"""Screen sync — polls the backend for this screen's playlist."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from lumen.config import settings
from lumen.schemas.playlist import Playlist
from lumen.services.backend_client import BackendClient
from lumen.services.playback import PlayerState

logger = logging.getLogger(__name__)

PlaylistCallback = Callable[[Playlist | None], None]
StateCallback = Callable[[PlayerState], None]


class SyncLoop:
    """Fixed-interval poll of Screen -> Playlist with structural change detection.

    Each tick runs to completion before the next sleep starts, so polls
    never overlap. Backend failures keep the current state and are retried
    on the next tick.
    """

    def __init__(
        self,
        backend: BackendClient,
        pairing_code: str,
        on_playlist: PlaylistCallback,
        on_state: StateCallback,
        interval: float | None = None,
    ):
        self._backend = backend
        self._code = pairing_code
        self._on_playlist = on_playlist
        self._on_state = on_state
        self._interval = interval or settings.poll_interval_seconds
        self._playlist: Playlist | None = None
        self._task: asyncio.Task | None = None
        self._pings: set[asyncio.Task] = set()
        self._wake = asyncio.Event()
        self._running = False

    @property
    def playlist(self) -> Playlist | None:
        return self._playlist

    def start(self) -> None:
        """Start the background poll."""
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Sync loop started (every %.1fs)", self._interval)

    async def stop(self) -> None:
        """Stop polling and drop in-flight pings."""
        self._running = False
        tasks = [t for t in (self._task, *self._pings) if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._pings.clear()
        logger.info("Sync loop stopped")

    def request_refresh(self) -> None:
        """Poll now instead of waiting out the interval (change-feed hook)."""
        self._wake.set()

    async def tick(self) -> None:
        lookup = await self._backend.get_screen_by_code(self._code)
        if not lookup.ok:
            logger.warning("Screen poll failed (%s): %s", lookup.kind.value, lookup.error)
            return

        screen = lookup.value
        if screen is None:
            self._on_state(PlayerState.PAIRING)
            self._replace_playlist(None)
            return

        self._ping()

        if not screen.current_playlist_id:
            self._on_state(PlayerState.PAIRING)
            self._replace_playlist(None)
            return

        fetched = await self._backend.get_playlist(screen.current_playlist_id)
        if not fetched.ok:
            logger.warning(
                "Playlist %s fetch failed (%s): %s",
                screen.current_playlist_id, fetched.kind.value, fetched.error,
            )
            return

        self._replace_playlist(fetched.value)
        self._on_state(PlayerState.PLAYING)

    def _replace_playlist(self, playlist: Playlist | None) -> None:
        """Swap the held playlist only when its identity or items changed."""
        if not _changed(self._playlist, playlist):
            return
        if playlist is not None:
            logger.info("Playlist %s updated, reloading content", playlist.id)
        self._playlist = playlist
        self._on_playlist(playlist)

    def _ping(self) -> None:
        task = asyncio.create_task(self._send_ping())
        self._pings.add(task)
        task.add_done_callback(self._pings.discard)

    async def _send_ping(self) -> None:
        result = await self._backend.ping_screen(self._code)
        if not result.ok:
            logger.warning("Ping failed (%s): %s", result.kind.value, result.error)

    async def _run_loop(self) -> None:
        while self._running:
            # a refresh requested during the tick triggers the next one at once
            self._wake.clear()
            try:
                await self.tick()
            except Exception as e:
                logger.error("Sync tick error: %s", e)

            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass


def _changed(old: Playlist | None, new: Playlist | None) -> bool:
    if old is None or new is None:
        return old is not new
    return old.id != new.id or old.items_signature() != new.items_signature()
