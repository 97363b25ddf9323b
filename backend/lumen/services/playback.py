"""Playback engine: outer screen state plus the playlist rotation."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from lumen.config import settings
from lumen.errors import AutoplayBlocked
from lumen.schemas.playlist import Playlist, PlaylistItem
from lumen.services.display import (
    AsyncioScheduler, Display, Scheduler, TimerHandle, item_key,
)

logger = logging.getLogger(__name__)

UrlResolver = Callable[[PlaylistItem], str | None]


class PlayerState(str, Enum):
    LOADING = "loading"
    PAIRING = "pairing"
    PLAYING = "playing"
    IDLE = "idle"  # assigned playlist with no items


VALID_TRANSITIONS: dict[PlayerState, set[PlayerState]] = {
    PlayerState.LOADING: {PlayerState.PAIRING, PlayerState.PLAYING, PlayerState.IDLE},
    PlayerState.PAIRING: {PlayerState.PLAYING, PlayerState.IDLE},
    PlayerState.PLAYING: {PlayerState.PAIRING, PlayerState.IDLE},
    PlayerState.IDLE: {PlayerState.PLAYING, PlayerState.PAIRING},
}


class PlaybackEngine:
    """Drives a ``Display`` through the items of the current playlist.

    Stills advance on a timer, videos on their end event. Every timer and
    every video start is tagged with the rotation generation it was armed
    under; the generation moves on each item change, playlist replacement
    and stop, and callbacks from an older generation are dropped.
    """

    def __init__(
        self,
        display: Display,
        scheduler: Scheduler | None = None,
        resolve_url: UrlResolver | None = None,
        default_image_seconds: float | None = None,
        crossfade_enabled: bool | None = None,
        crossfade_seconds: float | None = None,
    ):
        self._display = display
        self._scheduler = scheduler or AsyncioScheduler()
        self._resolve_url = resolve_url or (lambda item: item.url)
        self._default_seconds = default_image_seconds or settings.default_image_seconds
        self._crossfade = (
            settings.crossfade_enabled if crossfade_enabled is None else crossfade_enabled
        )
        self._crossfade_seconds = (
            settings.crossfade_seconds if crossfade_seconds is None else crossfade_seconds
        )

        self._state = PlayerState.LOADING
        self._pairing_code: str | None = None
        self._playlist: Playlist | None = None

        self.index = 0
        self.generation = 0
        self.current: PlaylistItem | None = None
        self.previous: PlaylistItem | None = None
        self.awaiting_interaction = False
        self._advance_timer: TimerHandle | None = None
        self._unmount_timer: TimerHandle | None = None

        display.bind(self.on_media_ended)
        display.show_status(self._state.value)

    @property
    def state(self) -> PlayerState:
        return self._state

    @property
    def playlist(self) -> Playlist | None:
        return self._playlist

    def transition(self, new_state: PlayerState) -> bool:
        """Move to ``new_state``. Returns False if the move is not allowed."""
        if new_state == self._state:
            return True

        valid = VALID_TRANSITIONS.get(self._state, set())
        if new_state not in valid:
            logger.warning(
                "Invalid player state transition: %s -> %s (valid: %s)",
                self._state.value, new_state.value, sorted(s.value for s in valid),
            )
            return False

        old_state = self._state
        self._state = new_state
        logger.info("Player state: %s -> %s", old_state.value, new_state.value)
        return True

    def set_state(self, requested: PlayerState, pairing_code: str | None = None) -> None:
        """Apply a state reported by the sync loop."""
        if pairing_code:
            self._pairing_code = pairing_code
        if requested == PlayerState.PLAYING and not self._has_items():
            requested = PlayerState.IDLE

        if requested == self._state:
            return
        if not self.transition(requested):
            return

        if requested == PlayerState.PLAYING:
            self._restart()
        else:
            self._halt()
            self._display.show_status(requested.value, self._pairing_code)

    def load_playlist(self, playlist: Playlist | None) -> None:
        """Replace the playlist; rotation restarts at index 0."""
        self._playlist = playlist
        logger.info(
            "Loaded playlist %s (%d items)",
            playlist.id if playlist else None, len(playlist.items) if playlist else 0,
        )
        if self._state == PlayerState.PLAYING and not self._has_items():
            self.set_state(PlayerState.IDLE)
        elif self._state == PlayerState.IDLE and self._has_items():
            self.set_state(PlayerState.PLAYING)
        elif self._state == PlayerState.PLAYING:
            self._restart()
        else:
            self._halt()

    def advance(self) -> None:
        if not self._has_items():
            return
        self.index = (self.index + 1) % len(self._playlist.items)
        self._play_current()

    def on_media_ended(self, generation: int) -> None:
        if generation != self.generation or self.current is None or not self.current.is_video:
            logger.debug("Ignoring stale media end (generation %d)", generation)
            return
        self.advance()

    def on_user_interaction(self) -> None:
        """First click/touch/key after a blocked autoplay resumes videos."""
        if not self.awaiting_interaction:
            return
        try:
            self._display.resume_videos()
        except AutoplayBlocked as e:
            logger.warning("Videos still blocked: %s", e)
            return
        self.awaiting_interaction = False
        self._display.set_overlay(False)

    def stop(self) -> None:
        self._halt()

    def to_dict(self) -> dict:
        return {
            "state": self._state.value,
            "playlist_id": self._playlist.id if self._playlist else None,
            "index": self.index,
            "generation": self.generation,
            "current": self.current.unique_id if self.current else None,
            "awaiting_interaction": self.awaiting_interaction,
        }

    def _has_items(self) -> bool:
        return self._playlist is not None and bool(self._playlist.items)

    def _restart(self) -> None:
        self._halt()
        self.index = 0
        self._play_current()

    def _halt(self) -> None:
        self.generation += 1
        self._cancel(self._advance_timer)
        self._advance_timer = None
        self._flush_unmount()
        if self.current is not None:
            self._display.unmount(self.current)
        self.current = None
        if self.awaiting_interaction:
            self.awaiting_interaction = False
            self._display.set_overlay(False)

    def _play_current(self) -> None:
        self.generation += 1
        generation = self.generation
        self._cancel(self._advance_timer)
        self._advance_timer = None
        self._flush_unmount()

        item = self._playlist.items[self.index]
        outgoing = self.current
        self.current = item
        self._display.show(item, self._resolve_url(item))

        # the same asset twice in a row shares one layer on the display
        if outgoing is not None and item_key(outgoing) != item_key(item):
            if self._crossfade and self._crossfade_seconds > 0:
                self.previous = outgoing
                self._unmount_timer = self._scheduler.call_later(
                    self._crossfade_seconds, lambda: self._on_unmount(generation)
                )
            else:
                self._display.unmount(outgoing)

        if item.is_video:
            self._start_video(item, generation)
        else:
            seconds = item.duration_seconds
            if not seconds or seconds <= 0:
                seconds = self._default_seconds
            self._advance_timer = self._scheduler.call_later(
                seconds, lambda: self._on_timer(generation)
            )

    def _start_video(self, item: PlaylistItem, generation: int) -> None:
        try:
            self._display.play_video(item, self._resolve_url(item), generation)
        except AutoplayBlocked as e:
            logger.warning("Autoplay blocked, waiting for interaction: %s", e)
            self.awaiting_interaction = True
            self._display.set_overlay(True)

    def _on_timer(self, generation: int) -> None:
        if generation != self.generation:
            return
        self._advance_timer = None
        self.advance()

    def _on_unmount(self, generation: int) -> None:
        if generation != self.generation:
            return
        self._unmount_timer = None
        if self.previous is not None and (
            self.current is None or item_key(self.previous) != item_key(self.current)
        ):
            self._display.unmount(self.previous)
        self.previous = None

    def _flush_unmount(self) -> None:
        self._cancel(self._unmount_timer)
        self._unmount_timer = None
        if self.previous is not None:
            if self.current is None or item_key(self.previous) != item_key(self.current):
                self._display.unmount(self.previous)
            self.previous = None

    @staticmethod
    def _cancel(timer: TimerHandle | None) -> None:
        if timer is not None:
            timer.cancel()
