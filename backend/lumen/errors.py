"""Error kinds, exceptions and result containers shared across Lumen."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    OUT_OF_BOUNDS = "out_of_bounds"
    NOT_FOUND = "not_found"
    TRANSIENT_NETWORK = "transient_network"
    AUTOPLAY_BLOCKED = "autoplay_blocked"
    PARTIAL_BATCH_FAILURE = "partial_batch_failure"


class LumenError(Exception):
    """Base exception for Lumen errors."""

    kind: ErrorKind = ErrorKind.NOT_FOUND


class OutOfBounds(LumenError):
    """Raised when a path resolves outside the asset root."""

    kind = ErrorKind.OUT_OF_BOUNDS


class AssetNotFound(LumenError):
    """Raised when a file or directory does not exist."""

    kind = ErrorKind.NOT_FOUND


class TransientNetwork(LumenError):
    """Raised when the backend cannot be reached."""

    kind = ErrorKind.TRANSIENT_NETWORK


class AutoplayBlocked(LumenError):
    """Raised by a display when the platform refuses to start a video."""

    kind = ErrorKind.AUTOPLAY_BLOCKED


@dataclass
class Result(Generic[T]):
    """Outcome of a network call: a value or an error kind plus message."""

    ok: bool
    value: T | None = None
    kind: ErrorKind | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: T | None = None) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, error: str) -> "Result[T]":
        return cls(ok=False, kind=kind, error=error)


@dataclass
class BatchResult:
    """Per-item outcome of a multi-item operation (import, cache warm)."""

    succeeded: list[Any] = field(default_factory=list)
    failed: list[tuple[Any, str]] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failed) and bool(self.succeeded)

    @property
    def kind(self) -> ErrorKind | None:
        return ErrorKind.PARTIAL_BATCH_FAILURE if self.failed else None
