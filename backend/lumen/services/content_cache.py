"""Cache-first pre-fetch of every media URL in the active playlist."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import httpx
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lumen.errors import BatchResult
from lumen.models.cache_entry import CacheEntry
from lumen.schemas.playlist import Playlist
from lumen.services.resolver import resolve_item_url
from lumen.utils.hashing import digest_file, url_key

logger = logging.getLogger(__name__)

FETCH_TIMEOUT = 60.0  # seconds per media file


class CacheStatus(str, Enum):
    IDLE = "idle"
    CACHING = "caching"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class CacheProgress:
    processed: int = 0
    total: int = 0

    @property
    def fraction(self) -> float:
        return self.processed / self.total if self.total else 1.0

    @property
    def percent(self) -> int:
        return round(self.fraction * 100)


class ContentCache:
    """Stores fetched bodies on disk, indexed by the exact resolved URL.

    Items are fetched one after another; a failing item is logged and
    skipped. Progress counts every item, including failed and
    unresolvable ones.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache_dir: str | Path,
        local_context: bool,
        base_url: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._sessions = session_factory
        self._cache_dir = Path(cache_dir)
        self._local_context = local_context
        self._base_url = base_url
        self._transport = transport
        self._generation = 0
        self.status = CacheStatus.IDLE
        self.progress = CacheProgress()

    async def warm(self, playlist: Playlist) -> BatchResult:
        """Fetch every not-yet-cached item of ``playlist``.

        A later call supersedes a running one; the older run stops before
        its next item.
        """
        self._generation += 1
        generation = self._generation
        items = playlist.items
        result = BatchResult()
        self.progress = CacheProgress(0, len(items))

        if not items:
            self.status = CacheStatus.DONE
            return result

        self.status = CacheStatus.CACHING
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Cache directory unavailable: %s", e)
            self.status = CacheStatus.ERROR
            return result

        try:
            async with httpx.AsyncClient(
                timeout=FETCH_TIMEOUT, transport=self._transport, follow_redirects=True
            ) as client:
                for index, item in enumerate(items):
                    if generation != self._generation:
                        logger.info("Cache warm for playlist %s superseded", playlist.id)
                        return result

                    url = resolve_item_url(item, self._local_context, self._base_url)
                    if url is None:
                        logger.debug("Item %s has no fetchable URL", item.name or item.unique_id)
                    else:
                        try:
                            if await self.lookup(url) is None:
                                logger.info("Caching: %s", url)
                                await self._fetch_and_store(client, url)
                            result.succeeded.append(url)
                        except (
                            httpx.HTTPError, httpx.InvalidURL, ValueError, OSError, SQLAlchemyError,
                        ) as e:
                            logger.warning("Failed to cache %s: %s", url, e)
                            result.failed.append((url, str(e)))

                    if generation == self._generation:
                        self.progress = CacheProgress(index + 1, len(items))
        except Exception:
            self.status = CacheStatus.ERROR
            raise

        self.status = CacheStatus.DONE
        logger.info(
            "Playlist %s cached: %d ok, %d failed",
            playlist.id, len(result.succeeded), len(result.failed),
        )
        return result

    async def _fetch_and_store(self, client: httpx.AsyncClient, url: str) -> None:
        file_name = url_key(url)
        dest = self._cache_dir / file_name
        part = self._cache_dir / f"{file_name}.part"
        try:
            async with client.stream("GET", url) as resp:
                resp.raise_for_status()
                content_type = resp.headers.get("content-type", "application/octet-stream")
                with open(part, "wb") as f:
                    async for chunk in resp.aiter_bytes():
                        f.write(chunk)
            part.replace(dest)
        finally:
            part.unlink(missing_ok=True)

        digest, size = await asyncio.to_thread(digest_file, dest)
        async with self._sessions() as session:
            await session.merge(
                CacheEntry(
                    url=url,
                    file_name=file_name,
                    content_type=content_type,
                    size_bytes=size,
                    sha256=digest,
                )
            )
            await session.commit()

    async def lookup(self, url: str) -> Path | None:
        """Cached body for ``url``, or None when absent or missing on disk."""
        async with self._sessions() as session:
            entry = await session.get(CacheEntry, url)
        if entry is None:
            return None
        path = self._cache_dir / entry.file_name
        return path if path.is_file() else None

    async def count(self) -> int:
        async with self._sessions() as session:
            return await session.scalar(select(func.count()).select_from(CacheEntry)) or 0
