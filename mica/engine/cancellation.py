"""Cooperative cancellation for long-running alignments."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Generic, TypeVar

from mica.engine.errors import AlignmentCancelled

T = TypeVar("T")


class CancellationToken:
    """Thread-safe flag. One token is shared by every step of a run."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        """Suspension point: raise if cancellation was requested."""
        if self._event.is_set():
            raise AlignmentCancelled()


def check(token: CancellationToken | None) -> None:
    if token is not None:
        token.check()


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a cancellable operation: either a value or cancelled."""

    value: T | None = None
    cancelled: bool = False

    @classmethod
    def of(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def cancel(cls) -> "Outcome[T]":
        return cls(cancelled=True)

    def unwrap(self) -> T:
        if self.cancelled:
            raise AlignmentCancelled()
        return self.value  # type: ignore[return-value]
