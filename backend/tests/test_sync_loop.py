"""Tests for the sync loop — change detection, pairing fallback, failures."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from lumen.errors import ErrorKind, Result
from lumen.schemas.playlist import Playlist, Screen
from lumen.services.playback import PlayerState
from lumen.services.sync_loop import SyncLoop

ITEMS = [
    {"uniqueId": "a", "type": "image", "url": "https://cdn/a.jpg", "duration": 5},
    {"uniqueId": "b", "type": "video", "url": "https://cdn/b.mp4"},
]


def screen(playlist_id="p1") -> Result:
    return Result.success(Screen(id="s1", status="online", current_playlist_id=playlist_id))


def playlist(items=ITEMS, playlist_id="p1") -> Result:
    return Result.success(Playlist.model_validate({"id": playlist_id, "items": items}))


@pytest.fixture
def backend():
    b = MagicMock()
    b.get_screen_by_code = AsyncMock(return_value=screen())
    b.get_playlist = AsyncMock(return_value=playlist())
    b.ping_screen = AsyncMock(return_value=Result.success(None))
    return b


@pytest.fixture
def on_playlist():
    return MagicMock()


@pytest.fixture
def on_state():
    return MagicMock()


@pytest.fixture
def loop(backend, on_playlist, on_state):
    return SyncLoop(backend, "ABC234", on_playlist, on_state, interval=60)


class TestChangeDetection:
    @pytest.mark.asyncio
    async def test_identical_playlist_signals_once(self, loop, on_playlist, on_state):
        await loop.tick()
        await loop.tick()
        await loop.tick()
        on_playlist.assert_called_once()
        assert loop.playlist.id == "p1"
        on_state.assert_called_with(PlayerState.PLAYING)

    @pytest.mark.asyncio
    async def test_duration_change_signals_again(self, loop, backend, on_playlist):
        await loop.tick()
        changed = [dict(ITEMS[0], duration=8), ITEMS[1]]
        backend.get_playlist.return_value = playlist(changed)
        await loop.tick()
        assert on_playlist.call_count == 2
        assert loop.playlist.items[0].duration_seconds == 8

    @pytest.mark.asyncio
    async def test_new_identity_same_items_signals(self, loop, backend, on_playlist):
        await loop.tick()
        backend.get_screen_by_code.return_value = screen("p2")
        backend.get_playlist.return_value = playlist(playlist_id="p2")
        await loop.tick()
        assert on_playlist.call_count == 2
        assert loop.playlist.id == "p2"


class TestPairingFallback:
    @pytest.mark.asyncio
    async def test_no_screen_is_pairing(self, loop, backend, on_state, on_playlist):
        backend.get_screen_by_code.return_value = Result.success(None)
        await loop.tick()
        on_state.assert_called_once_with(PlayerState.PAIRING)
        on_playlist.assert_not_called()
        backend.ping_screen.assert_not_called()

    @pytest.mark.asyncio
    async def test_revoked_assignment_clears_playlist(self, loop, backend, on_state, on_playlist):
        await loop.tick()
        backend.get_screen_by_code.return_value = screen(None)
        await loop.tick()
        on_state.assert_called_with(PlayerState.PAIRING)
        on_playlist.assert_called_with(None)
        assert loop.playlist is None

    @pytest.mark.asyncio
    async def test_reassigned_after_revoke_reloads(self, loop, backend, on_playlist):
        await loop.tick()
        backend.get_screen_by_code.return_value = screen(None)
        await loop.tick()
        backend.get_screen_by_code.return_value = screen()
        await loop.tick()
        assert on_playlist.call_count == 3


class TestFailures:
    @pytest.mark.asyncio
    async def test_ping_failure_does_not_block(self, loop, backend, on_playlist):
        backend.ping_screen.return_value = Result.failure(ErrorKind.TRANSIENT_NETWORK, "down")
        await loop.tick()
        await asyncio.sleep(0)
        backend.ping_screen.assert_awaited_once_with("ABC234")
        on_playlist.assert_called_once()

    @pytest.mark.asyncio
    async def test_screen_lookup_failure_keeps_state(self, loop, backend, on_state, on_playlist):
        await loop.tick()
        on_state.reset_mock()
        on_playlist.reset_mock()
        backend.get_screen_by_code.return_value = Result.failure(
            ErrorKind.TRANSIENT_NETWORK, "timeout"
        )
        await loop.tick()
        on_state.assert_not_called()
        on_playlist.assert_not_called()
        assert loop.playlist is not None

    @pytest.mark.asyncio
    async def test_playlist_fetch_failure_keeps_state(self, loop, backend, on_state):
        backend.get_playlist.return_value = Result.failure(ErrorKind.NOT_FOUND, "gone")
        await loop.tick()
        on_state.assert_not_called()
        assert loop.playlist is None


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_refresh_wakes_loop_and_stop_cancels(self, loop, backend):
        ticks = asyncio.Queue()

        async def lookup(code):
            ticks.put_nowait(code)
            return screen()

        backend.get_screen_by_code.side_effect = lookup

        loop.start()
        await asyncio.wait_for(ticks.get(), timeout=1)
        loop.request_refresh()
        await asyncio.wait_for(ticks.get(), timeout=1)
        await loop.stop()

        assert backend.get_screen_by_code.await_count == 2

    @pytest.mark.asyncio
    async def test_tick_error_does_not_kill_loop(self, loop, backend):
        ticks = asyncio.Queue()
        calls = []

        async def lookup(code):
            calls.append(code)
            ticks.put_nowait(code)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return screen()

        backend.get_screen_by_code.side_effect = lookup

        loop.start()
        await asyncio.wait_for(ticks.get(), timeout=1)
        loop.request_refresh()
        await asyncio.wait_for(ticks.get(), timeout=1)
        await loop.stop()
