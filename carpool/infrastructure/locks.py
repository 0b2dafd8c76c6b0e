"""
Engine-wide lock.

The reservation engine is not internally synchronised, so every caller
that may run concurrently (API handlers, the autosave worker) must hold
this lock around each engine call.  One lock for the whole graph keeps
seat counts and request lists consistent across trips.

Acquire waits at most ``timeout_seconds``; the async context manager
raises ``RuntimeError`` when the lock could not be taken in time.
"""

from __future__ import annotations

import asyncio
from typing import Optional


class EngineLock:
    def __init__(self, name: str = "engine", timeout_seconds: Optional[float] = 5.0):
        self.name = name
        self.timeout = timeout_seconds
        self._lock = asyncio.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    async def acquire(self) -> bool:
        """Try to acquire within the timeout. Returns True on success."""
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout=self.timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def release(self) -> None:
        """Release if held; releasing an unheld lock is a no-op."""
        if self._lock.locked():
            self._lock.release()

    # context-manager support
    async def __aenter__(self):
        acquired = await self.acquire()
        if not acquired:
            raise RuntimeError(f"Could not acquire lock: {self.name}")
        return self

    async def __aexit__(self, *args):
        self.release()
