"""Filesystem asset store — every path confined to one root directory."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from lumen.errors import AssetNotFound, BatchResult, OutOfBounds
from lumen.schemas.assets import AssetEntry
from lumen.utils.paths import Confined, Escaped, confine_path
from lumen.utils.storage import stored_bytes

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = {".mp4", ".webm", ".mov"}
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif"}
MEDIA_EXTENSIONS = VIDEO_EXTENSIONS | IMAGE_EXTENSIONS


def media_type_for(name: str) -> str:
    """Classify a file name as video or image by extension."""
    _, ext = os.path.splitext(name.lower())
    return "video" if ext in VIDEO_EXTENSIONS else "image"


def is_media_file(name: str) -> bool:
    _, ext = os.path.splitext(name.lower())
    return ext in MEDIA_EXTENSIONS


class AssetStore:
    """List, import, delete and read media below a single asset root.

    Listings are built from a fresh directory scan on every call; nothing
    is held in memory between requests.
    """

    def __init__(self, root: str | Path):
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        self._root = self._root.resolve()

    @property
    def root(self) -> Path:
        return self._root

    def confine(self, candidate: str | Path, allow_absolute: bool = False) -> Confined:
        """Resolve ``candidate`` below the root or raise ``OutOfBounds``."""
        result = confine_path(self._root, candidate, allow_absolute=allow_absolute)
        if isinstance(result, Escaped):
            logger.warning("Rejected path %r: %s", result.candidate, result.reason)
            raise OutOfBounds(f"{result.candidate!r} escapes the asset root")
        return result

    def _entry(self, path: Path, relative: str) -> AssetEntry:
        if path.is_dir():
            return AssetEntry(
                name=path.name,
                absolute_path=str(path),
                relative_path=relative,
                kind="folder",
                size_bytes=0,
                media_type="folder",
            )
        return AssetEntry(
            name=path.name,
            absolute_path=str(path),
            relative_path=relative,
            kind="file",
            size_bytes=path.stat().st_size,
            media_type=media_type_for(path.name),
        )

    def list(self, sub_dir: str = "") -> list[AssetEntry]:
        """List one directory: folders first, then files, by name."""
        target = self.confine(sub_dir)
        if not target.path.is_dir():
            raise AssetNotFound(f"Directory not found: {sub_dir!r}")

        entries: list[AssetEntry] = []
        children = sorted(
            target.path.iterdir(), key=lambda p: (not p.is_dir(), p.name.lower())
        )
        for child in children:
            if child.name.startswith("."):
                continue
            relative = f"{target.relative}/{child.name}" if target.relative else child.name
            try:
                entries.append(self._entry(child, relative))
            except OSError as e:
                logger.warning("Skipping unreadable entry %s: %s", child, e)
        return entries

    def list_recursive_flattened(self) -> list[AssetEntry]:
        """Depth-first walk returning only media files."""
        entries: list[AssetEntry] = []
        self._walk(self._root, entries)
        return entries

    def _walk(self, directory: Path, out: list[AssetEntry]) -> None:
        try:
            children = sorted(directory.iterdir(), key=lambda p: p.name.lower())
        except OSError as e:
            logger.warning("Cannot walk %s: %s", directory, e)
            return
        for child in children:
            # Symlinks are skipped so the walk cannot leave the root or loop
            if child.name.startswith(".") or child.is_symlink():
                continue
            if child.is_dir():
                self._walk(child, out)
            elif child.is_file() and is_media_file(child.name):
                try:
                    out.append(self._entry(child, child.relative_to(self._root).as_posix()))
                except OSError as e:
                    logger.warning("Skipping unreadable file %s: %s", child, e)

    def create_folder(self, sub_dir: str, name: str) -> bool:
        """Create ``name`` inside ``sub_dir``. False if it already exists."""
        parent = self.confine(sub_dir)
        target = self.confine(f"{parent.relative}/{name}" if parent.relative else name)
        if target.path.exists():
            return False
        target.path.mkdir(parents=True)
        logger.info("Created folder %s", target.relative)
        return True

    def import_files(self, paths: list[str], sub_dir: str = "") -> BatchResult:
        """Copy each source file into ``sub_dir``; one failure skips one file."""
        target = self.confine(sub_dir)
        target.path.mkdir(parents=True, exist_ok=True)
        result = BatchResult()

        for src in paths or []:
            if not src:
                continue
            try:
                src_path = Path(src)
                if not src_path.is_file():
                    raise FileNotFoundError(f"Not a file: {src}")
                dest = self.confine(
                    f"{target.relative}/{src_path.name}" if target.relative else src_path.name
                )
                shutil.copy2(src_path, dest.path)
                result.succeeded.append(str(dest.path))
            except (OSError, OutOfBounds) as e:
                logger.warning("Failed to import %s: %s", src, e)
                result.failed.append((src, str(e)))

        logger.info(
            "Imported %d/%d files into %r",
            len(result.succeeded), len(result.succeeded) + len(result.failed), target.relative,
        )
        return result

    def delete(self, relative_path: str) -> bool:
        """Remove a file or a directory tree. False when nothing was removed."""
        target = self.confine(relative_path)
        if not target.relative:
            logger.warning("Refusing to delete the asset root")
            return False
        try:
            if target.path.is_dir():
                shutil.rmtree(target.path)
            elif target.path.exists():
                target.path.unlink()
            else:
                return False
        except OSError as e:
            logger.error("Failed to delete %s: %s", target.relative, e)
            return False
        logger.info("Deleted %s", target.relative)
        return True

    def read_buffer(self, path: str) -> bytes:
        """Return raw bytes of a file given its relative or absolute path."""
        target = self.confine(path, allow_absolute=True)
        if not target.path.is_file():
            raise AssetNotFound(f"File not found: {path!r}")
        return target.path.read_bytes()

    def usage(self) -> int:
        """Total bytes stored below the root."""
        return stored_bytes(self._root)
