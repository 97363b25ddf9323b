"""SHA-256 helpers for the content cache."""

import hashlib
from pathlib import Path

CHUNK_SIZE = 64 * 1024  # 64 KB


def url_key(url: str) -> str:
    """File name for a cached body: digest of the exact URL string."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


def digest_file(path: Path) -> tuple[str, int]:
    """SHA-256 hex digest and byte count of a cached body, read in chunks."""
    sha256 = hashlib.sha256()
    size = 0
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            sha256.update(chunk)
            size += len(chunk)
    return sha256.hexdigest(), size
