"""Test fixtures — temp asset root, media server client, cache index, manual clock."""

import heapq
import itertools

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from lumen.database import create_cache_engine, create_session_factory, init_db
from lumen.main import create_app
from lumen.services.asset_store import AssetStore


@pytest.fixture
def asset_root(tmp_path):
    """Asset root with a small mixed tree."""
    root = tmp_path / "Assets"
    (root / "promo").mkdir(parents=True)
    (root / "clip.mp4").write_bytes(bytes(range(256)) * 4)  # 1024 bytes
    (root / "poster.png").write_bytes(b"\x89PNG" + b"\x00" * 96)
    (root / "notes.txt").write_text("not media")
    (root / ".hidden.jpg").write_bytes(b"x")
    (root / "promo" / "summer.jpg").write_bytes(b"\xff\xd8" + b"\x00" * 48)
    return root


@pytest.fixture
def store(asset_root):
    return AssetStore(asset_root)


@pytest_asyncio.fixture
async def client(asset_root):
    """Async client against a media server rooted at ``asset_root``."""
    app = create_app(str(asset_root))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Session factory over a fresh SQLite cache index."""
    engine = create_cache_engine(tmp_path / "cache.db")
    await init_db(engine)
    yield create_session_factory(engine)
    await engine.dispose()


class _Timer:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualClock:
    """Scheduler whose time only moves when a test calls ``advance``."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = itertools.count()

    def call_later(self, delay, callback):
        timer = _Timer()
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), timer, callback))
        return timer

    def advance(self, seconds):
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, timer, callback = heapq.heappop(self._queue)
            self.now = when
            if not timer.cancelled:
                callback()
        self.now = target

    @property
    def pending(self):
        return sum(1 for _, _, timer, _ in self._queue if not timer.cancelled)


@pytest.fixture
def clock():
    return ManualClock()
