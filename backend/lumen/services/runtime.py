"""Player runtime — wires pairing, sync, cache and playback together."""

from __future__ import annotations

import asyncio
import logging
from functools import partial

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from lumen.config import settings
from lumen.database import create_cache_engine, create_session_factory, init_db
from lumen.schemas.playlist import Playlist
from lumen.services.backend_client import BackendClient
from lumen.services.content_cache import ContentCache
from lumen.services.device import DeviceIdentityStore
from lumen.services.display import Display, HeadlessDisplay
from lumen.services.pairing import PairingClient
from lumen.services.playback import PlaybackEngine, PlayerState
from lumen.services.resolver import is_local_context, resolve_item_url
from lumen.services.sync_loop import SyncLoop

logger = logging.getLogger(__name__)


class PlayerRuntime:
    """One screen: identity, backend sync, media cache and the display loop."""

    def __init__(
        self,
        backend: BackendClient | None = None,
        display: Display | None = None,
        device_file: str | None = None,
        cache_dir: str | None = None,
        cache_db_path: str | None = None,
        media_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._backend = backend or BackendClient()
        self._display = display
        self._identity = DeviceIdentityStore(device_file or settings.device_file)
        self._cache_dir = cache_dir or settings.cache_dir
        self._cache_db_path = cache_db_path or settings.cache_db_path
        self._media_transport = media_transport
        self._local_context = is_local_context(settings.player_hostname, settings.local_hostnames)

        self.pairing = PairingClient(self._identity, self._backend)
        self.engine: PlaybackEngine | None = None
        self.cache: ContentCache | None = None
        self.sync: SyncLoop | None = None
        self._db: AsyncEngine | None = None
        self._warm_tasks: set[asyncio.Task] = set()

    async def start(self) -> None:
        """Open the cache index, register the screen and start polling."""
        self._db = create_cache_engine(self._cache_db_path)
        await init_db(self._db)
        self.cache = ContentCache(
            create_session_factory(self._db),
            self._cache_dir,
            local_context=self._local_context,
            base_url=settings.media_base_url,
            transport=self._media_transport,
        )
        self.engine = PlaybackEngine(
            self._display or HeadlessDisplay(),
            resolve_url=partial(
                resolve_item_url,
                local_context=self._local_context,
                base_url=settings.media_base_url,
            ),
        )

        device = self.pairing.device
        registered = await self.pairing.bootstrap()
        if not registered.ok:
            logger.warning("Continuing unregistered, the sync loop will retry lookups")

        self.sync = SyncLoop(
            self._backend,
            device.pairing_code,
            on_playlist=self._on_playlist,
            on_state=self._on_state,
        )
        self.sync.start()
        logger.info(
            "Player runtime started (local context: %s)", "yes" if self._local_context else "no"
        )

    async def stop(self) -> None:
        if self.sync is not None:
            await self.sync.stop()
            self.sync = None
        for task in list(self._warm_tasks):
            task.cancel()
        for task in list(self._warm_tasks):
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._warm_tasks.clear()
        if self.engine is not None:
            self.engine.stop()
        if self._db is not None:
            await self._db.dispose()
            self._db = None
        logger.info("Player runtime stopped")

    def _on_state(self, state: PlayerState) -> None:
        self.engine.set_state(state, self.pairing.device.pairing_code)

    def _on_playlist(self, playlist: Playlist | None) -> None:
        self.engine.load_playlist(playlist)
        if playlist is None:
            return
        task = asyncio.create_task(self._warm(playlist))
        self._warm_tasks.add(task)
        task.add_done_callback(self._warm_tasks.discard)

    async def _warm(self, playlist: Playlist) -> None:
        try:
            result = await self.cache.warm(playlist)
        except Exception as e:
            logger.error("Caching playlist %s failed: %s", playlist.id, e, exc_info=True)
            return
        if result.kind is not None:
            logger.warning(
                "Playlist %s partially cached (%s): %d of %d items failed",
                playlist.id, result.kind.value, len(result.failed),
                len(result.failed) + len(result.succeeded),
            )
