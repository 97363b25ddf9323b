"""Render targets for the playback engine."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol

from lumen.config import settings
from lumen.errors import AutoplayBlocked
from lumen.schemas.playlist import PlaylistItem

logger = logging.getLogger(__name__)

MediaEndedCallback = Callable[[int], None]


def item_key(item: PlaylistItem) -> str:
    return item.unique_id or item.url or item.relative_path or item.name or f"#{id(item)}"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Source of one-shot timers; swapped for a manual clock in tests."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class Display(Protocol):
    """What the engine needs from a screen.

    ``play_video`` starts muted from position 0 and raises ``AutoplayBlocked``
    when the platform refuses to start it. The end of a video is reported
    back through the callback given to ``bind`` with the generation it was
    started under.
    """

    def bind(self, on_media_ended: MediaEndedCallback) -> None: ...

    def show_status(self, state: str, pairing_code: str | None = None) -> None: ...

    def show(self, item: PlaylistItem, url: str | None) -> None: ...

    def play_video(self, item: PlaylistItem, url: str | None, generation: int) -> None: ...

    def unmount(self, item: PlaylistItem) -> None: ...

    def set_overlay(self, visible: bool) -> None: ...

    def resume_videos(self) -> None: ...


class HeadlessDisplay:
    """Log-only display; pretends every video runs for ``video_seconds``."""

    def __init__(
        self,
        scheduler: Scheduler | None = None,
        video_seconds: float | None = None,
        autoplay_allowed: bool = True,
    ):
        self._scheduler = scheduler or AsyncioScheduler()
        self._video_seconds = video_seconds or settings.headless_video_seconds
        self.autoplay_allowed = autoplay_allowed
        self.mounted: list[str] = []
        self.overlay = False
        self.status: str | None = None
        self._on_media_ended: MediaEndedCallback | None = None
        self._videos: dict[str, tuple[int, TimerHandle | None]] = {}

    def bind(self, on_media_ended: MediaEndedCallback) -> None:
        self._on_media_ended = on_media_ended

    def show_status(self, state: str, pairing_code: str | None = None) -> None:
        self.status = state
        self._clear()
        if pairing_code:
            logger.info("Screen %s, pairing code %s", state, pairing_code)
        else:
            logger.info("Screen %s", state)

    def show(self, item: PlaylistItem, url: str | None) -> None:
        self.status = "playing"
        key = item_key(item)
        if key in self.mounted:
            self.mounted.remove(key)
        self.mounted.append(key)
        logger.info("Showing %s %s (%s)", item.type, item.name or key, url or "no url")

    def play_video(self, item: PlaylistItem, url: str | None, generation: int) -> None:
        self._cancel_video(item_key(item))
        self._videos[item_key(item)] = (generation, None)
        if not self.autoplay_allowed:
            raise AutoplayBlocked(f"Autoplay refused for {item.name or item.unique_id}")
        self._start(item_key(item), generation)

    def unmount(self, item: PlaylistItem) -> None:
        if item_key(item) in self.mounted:
            self.mounted.remove(item_key(item))
        self._cancel_video(item_key(item))
        logger.debug("Unmounted %s", item.name or item.unique_id)

    def set_overlay(self, visible: bool) -> None:
        self.overlay = visible
        logger.info("Interaction overlay %s", "shown" if visible else "hidden")

    def resume_videos(self) -> None:
        self.autoplay_allowed = True
        for key, (generation, timer) in list(self._videos.items()):
            if timer is None:
                self._start(key, generation)

    def _start(self, key: str, generation: int) -> None:
        timer = self._scheduler.call_later(
            self._video_seconds, lambda: self._ended(key, generation)
        )
        self._videos[key] = (generation, timer)

    def _ended(self, key: str, generation: int) -> None:
        self._videos.pop(key, None)
        if self._on_media_ended is not None:
            self._on_media_ended(generation)

    def _cancel_video(self, key: str) -> None:
        entry = self._videos.pop(key, None)
        if entry and entry[1] is not None:
            entry[1].cancel()

    def _clear(self) -> None:
        for key in list(self._videos):
            self._cancel_video(key)
        self.mounted.clear()
        self.overlay = False
