"""End-to-end wiring of the player runtime against a fake backend."""

import asyncio
import json

import httpx
import pytest

from lumen.services.backend_client import BackendClient
from lumen.services.display import HeadlessDisplay
from lumen.services.playback import PlayerState
from lumen.services.runtime import PlayerRuntime

PLAYLIST = {
    "id": "p1",
    "name": "Lobby",
    "items": [
        {"uniqueId": "a", "type": "image", "url": "https://cdn.example/a.jpg", "duration": 30},
        {"uniqueId": "b", "type": "video", "url": "https://cdn.example/b.mp4"},
    ],
}


async def wait_until(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


class FakeBackend:
    def __init__(self, assigned: bool):
        self.assigned = assigned
        self.screens = {}
        self.pings = 0

    def __call__(self, request: httpx.Request):
        path = request.url.path
        if path == "/rest/v1/screens" and request.method == "GET":
            code = request.url.params["pairing_code"].removeprefix("eq.")
            rows = [s for s in self.screens.values() if s["pairing_code"] == code]
            return httpx.Response(200, json=rows)
        if path == "/rest/v1/screens" and request.method == "POST":
            row = json.loads(request.content)
            if self.assigned:
                row["current_playlist_id"] = "p1"
            self.screens[row["id"]] = row
            return httpx.Response(201, json=[row])
        if path == "/rest/v1/playlists":
            return httpx.Response(200, json=[PLAYLIST])
        if path == "/rest/v1/rpc/ping_screen":
            self.pings += 1
            return httpx.Response(204)
        return httpx.Response(404)


def make_runtime(tmp_path, fake):
    backend = BackendClient(
        base_url="https://backend.example", anon_key="anon",
        transport=httpx.MockTransport(fake),
    )
    media = httpx.MockTransport(lambda r: httpx.Response(200, content=b"media"))
    return PlayerRuntime(
        backend=backend,
        display=HeadlessDisplay(video_seconds=60),
        device_file=str(tmp_path / "device.json"),
        cache_dir=str(tmp_path / "media"),
        cache_db_path=str(tmp_path / "cache.db"),
        media_transport=media,
    )


@pytest.mark.asyncio
async def test_registers_syncs_caches_and_plays(tmp_path):
    fake = FakeBackend(assigned=True)
    runtime = make_runtime(tmp_path, fake)

    await runtime.start()
    try:
        assert len(fake.screens) == 1
        await wait_until(lambda: runtime.engine.state == PlayerState.PLAYING)
        assert runtime.engine.current.unique_id == "a"
        await wait_until(lambda: runtime.cache.progress.processed == 2)
        assert await runtime.cache.count() == 2
        await wait_until(lambda: fake.pings >= 1)
    finally:
        await runtime.stop()


@pytest.mark.asyncio
async def test_unassigned_screen_shows_pairing(tmp_path):
    fake = FakeBackend(assigned=False)
    runtime = make_runtime(tmp_path, fake)

    await runtime.start()
    try:
        await wait_until(lambda: runtime.engine.state == PlayerState.PAIRING)
        screen = next(iter(fake.screens.values()))
        assert screen["pairing_code"] == runtime.pairing.device.pairing_code
        assert screen["status"] == "pending"
    finally:
        await runtime.stop()
