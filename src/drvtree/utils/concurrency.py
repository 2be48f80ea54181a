"""Build-slot, claim and cancellation primitives for the async build scheduler."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Hashable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class CancellationToken:
    """Set once to stop the scheduler from dispatching any further builds."""

    __slots__ = ("_reason", "_stopped")

    def __init__(self) -> None:
        self._stopped = asyncio.Event()
        self._reason = "build cancelled"

    def cancel(self, reason: str | None = None) -> None:
        if reason:
            self._reason = reason
        self._stopped.set()

    @property
    def is_cancelled(self) -> bool:
        return self._stopped.is_set()

    async def wait(self) -> None:
        await self._stopped.wait()

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled:
            raise asyncio.CancelledError(self._reason)


class BoundedSemaphore:
    """Caps concurrent builds at ``limit`` and remembers the highest occupancy seen."""

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError(f"job limit must be at least 1, got {limit}")
        self.limit = limit
        self.in_use = 0
        self.peak = 0
        self._slots = asyncio.Semaphore(limit)

    async def acquire(self) -> None:
        await self._slots.acquire()
        self.in_use += 1
        if self.in_use > self.peak:
            self.peak = self.in_use

    def release(self) -> None:
        if not self.in_use:
            raise RuntimeError("no build slot is held")
        self.in_use -= 1
        self._slots.release()

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        """Hold one build slot for the duration of the block."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()


class ClaimRegistry:
    """Keys already handed to a build task; a second claim on the same key is refused."""

    __slots__ = ("_guard", "_taken")

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._taken: set[Hashable] = set()

    def claim(self, key: Hashable) -> bool:
        with self._guard:
            before = len(self._taken)
            self._taken.add(key)
            return len(self._taken) > before

    def is_claimed(self, key: Hashable) -> bool:
        with self._guard:
            return key in self._taken

    def __len__(self) -> int:
        with self._guard:
            return len(self._taken)


__all__ = ["BoundedSemaphore", "CancellationToken", "ClaimRegistry"]
