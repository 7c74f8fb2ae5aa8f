# pairpref/pipeline/scheduler.py
from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from typing import AsyncIterator, Iterable, Iterator, TypeVar

from pairpref.utils.errors import AnalysisCancelled

T = TypeVar("T")


@dataclass(frozen=True)
class ProgressEvent:
    """
    One bounded unit of work finished.

    fraction = (phase_index + phase_fraction) / total_phases
    """

    phase: str
    phase_index: int
    message: str
    phase_fraction: float
    fraction: float


class CancelToken:
    """
    Cooperative cancellation flag, polled between units of work.

    cancel() may be called from another thread (e.g. a UI thread); the
    pipeline only reads the flag at its yield points.
    """

    def __init__(self):
        self._event = threading.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        if self._event.is_set():
            raise AnalysisCancelled(self.reason or "cancelled")


def drain(events: Iterable[T]) -> int:
    """Exhaust a phase-stepper synchronously; returns the number of events."""
    n = 0
    for _ in events:
        n += 1
    return n


async def astep(events: Iterator[T]) -> AsyncIterator[T]:
    """
    Async adapter: hands control back to the event loop after every event.
    """
    for ev in events:
        yield ev
        await asyncio.sleep(0)
