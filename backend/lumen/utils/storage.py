"""Byte accounting for the asset root, reported by ``/_lumen/stats``."""

import shutil
from pathlib import Path

from lumen.schemas.system import DiskUsage


def volume_usage(asset_root: str | Path) -> DiskUsage:
    """Capacity of the volume the asset root lives on."""
    total, used, free = shutil.disk_usage(str(asset_root))
    percent = round(used / total * 100, 1) if total > 0 else 0
    return DiskUsage(total_bytes=total, used_bytes=used, free_bytes=free, percent=percent)


def stored_bytes(asset_root: str | Path) -> int:
    """Bytes held in asset files; links are neither counted nor followed."""
    total = 0
    for entry in Path(asset_root).rglob("*"):
        try:
            if entry.is_file() and not entry.is_symlink():
                total += entry.stat().st_size
        except OSError:
            continue  # deleted mid-walk
    return total
