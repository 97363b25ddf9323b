"""Media routes — read-only byte-range file serving from the asset root."""

from __future__ import annotations

import logging
import os
import stat
import threading
from pathlib import Path
from typing import BinaryIO, Iterator
from urllib.parse import unquote

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from lumen.services.asset_store import AssetStore
from lumen.utils.paths import Escaped, confine_path

logger = logging.getLogger(__name__)
router = APIRouter()

STREAM_CHUNK_SIZE = 64 * 1024  # 64 KB

MIME_TYPES = {
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


class RangeNotSatisfiable(Exception):
    pass


class ServerContext:
    """Per-app state handed to request handlers via ``app.state.context``."""

    def __init__(self, store: AssetStore):
        self.store = store
        self._request_count = 0
        self._lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self.store.root

    @property
    def request_count(self) -> int:
        return self._request_count

    def count_request(self) -> int:
        with self._lock:
            self._request_count += 1
            return self._request_count


def get_context(request: Request) -> ServerContext:
    return request.app.state.context


def mime_type_for(name: str) -> str:
    _, ext = os.path.splitext(name.lower())
    return MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)


def parse_range(header: str, size: int) -> tuple[int, int] | None:
    """Parse ``bytes=start-end`` into an inclusive span.

    Returns None for a header that is not a byte range (served as a full
    response). Only the first span of a multi-range header is honoured.
    """
    unit, _, ranges = header.partition("=")
    if unit.strip().lower() != "bytes" or not ranges:
        return None
    first = ranges.split(",", 1)[0].strip()
    start_s, sep, end_s = first.partition("-")
    if not sep:
        return None
    try:
        if not start_s:
            # Suffix range: last N bytes
            suffix = int(end_s)
            if suffix <= 0 or size == 0:
                raise RangeNotSatisfiable(header)
            return max(size - suffix, 0), size - 1
        start = int(start_s)
        end = int(end_s) if end_s else size - 1
    except ValueError:
        return None

    if start < 0 or start >= size or end < start:
        raise RangeNotSatisfiable(header)
    return start, min(end, size - 1)


def request_relative_path(request: Request) -> str:
    """Percent-decoded request path without query string or leading slash."""
    raw = request.scope.get("raw_path")
    if raw:
        path = unquote(raw.decode("latin-1").split("?", 1)[0])
    else:
        path = request.scope["path"]
    return path[1:] if path.startswith("/") else path


def _iter_file(handle: BinaryIO, start: int, length: int) -> Iterator[bytes]:
    """Yield ``length`` bytes from ``start``; closes the handle when done."""
    remaining = length
    try:
        handle.seek(start)
        while remaining > 0:
            chunk = handle.read(min(STREAM_CHUNK_SIZE, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk
    except OSError:
        # Headers are already on the wire; the server aborts the connection
        logger.exception("Stream error after %d/%d bytes", length - remaining, length)
        raise
    finally:
        handle.close()


@router.api_route("/{file_path:path}", methods=["GET", "HEAD"], include_in_schema=False)
async def serve_media(request: Request, file_path: str):
    """Serve one file, honouring ``Range: bytes=start-end``."""
    ctx = get_context(request)
    relative = request_relative_path(request)

    confined = confine_path(ctx.root, relative)
    if isinstance(confined, Escaped):
        logger.warning("403 %r: %s", confined.candidate, confined.reason)
        return PlainTextResponse("Forbidden", status_code=403)

    path = confined.path
    try:
        st = path.stat()
    except FileNotFoundError:
        logger.info("404 Not Found: %s", relative)
        return PlainTextResponse("Not found", status_code=404)
    except OSError:
        logger.exception("Failed to stat %s", path)
        return PlainTextResponse("Internal Server Error", status_code=500)

    if stat.S_ISDIR(st.st_mode):
        return PlainTextResponse("Not found", status_code=404)

    size = st.st_size
    media_type = mime_type_for(path.name)
    headers = {"Accept-Ranges": "bytes"}
    status_code = 200
    start, end = 0, size - 1

    range_header = request.headers.get("range")
    if range_header:
        try:
            span = parse_range(range_header, size)
        except RangeNotSatisfiable:
            return Response(
                status_code=416,
                headers={"Content-Range": f"bytes */{size}", "Accept-Ranges": "bytes"},
            )
        if span is not None:
            start, end = span
            status_code = 206
            headers["Content-Range"] = f"bytes {start}-{end}/{size}"

    length = max(end - start + 1, 0)
    headers["Content-Length"] = str(length)

    if request.method == "HEAD":
        return Response(status_code=status_code, headers=headers, media_type=media_type)

    try:
        handle = open(path, "rb")
    except OSError:
        logger.exception("Failed to open %s", path)
        return PlainTextResponse("Internal Server Error", status_code=500)

    return StreamingResponse(
        _iter_file(handle, start, length),
        status_code=status_code,
        headers=headers,
        media_type=media_type,
    )
