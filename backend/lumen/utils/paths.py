"""Confine user-supplied paths to a single root directory."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

_DRIVE_RE = re.compile(r"^[A-Za-z]:")


@dataclass(frozen=True)
class Confined:
    path: Path
    relative: str  # forward-slash path below the root, "" for the root itself


@dataclass(frozen=True)
class Escaped:
    candidate: str
    reason: str


def _fold(path: Path) -> str:
    return os.path.normcase(str(path)).casefold()


def is_within(root: Path, target: Path) -> bool:
    """Component-wise, case-insensitive containment of two resolved paths."""
    root_f = _fold(root).rstrip(os.sep)
    target_f = _fold(target)
    return target_f == root_f or target_f.startswith(root_f + os.sep)


def confine_path(
    root: str | Path,
    candidate: str | Path,
    allow_absolute: bool = False,
) -> Confined | Escaped:
    """Resolve ``candidate`` against ``root`` and check it stays inside.

    Symlinks and ``..`` segments are resolved before the comparison, so the
    check applies to the real location on disk. Absolute candidates escape
    unless ``allow_absolute`` is set, in which case they must still resolve
    inside the root.
    """
    root_path = Path(root).resolve()
    text = str(candidate).replace("\\", "/")
    is_absolute = text.startswith("/") or bool(_DRIVE_RE.match(text))

    if is_absolute and not allow_absolute:
        return Escaped(str(candidate), "absolute path")

    try:
        target = Path(text) if is_absolute else root_path / text
        resolved = target.resolve()
    except (OSError, ValueError) as e:
        return Escaped(str(candidate), f"unresolvable path: {e}")

    if not is_within(root_path, resolved):
        return Escaped(str(candidate), "outside root")

    relative = "/".join(resolved.parts[len(root_path.parts):])
    return Confined(resolved, relative)
