"""
Background Autosave Worker
==========================

Runs every ``AUTOSAVE_INTERVAL_SECONDS`` (default 300 s) and saves the
engine to the flat-file store when its ``revision`` moved since the last
successful save.  Each save takes a backup first (see ``FlatFileStore``).

Concurrency safety
------------------
The engine-wide ``EngineLock`` is held while the graph is serialised, so
API handlers cannot mutate trips half-way through a save.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from carpool.config import settings
from carpool.domain.engine import ReservationEngine
from carpool.domain.errors import StoreWriteError
from carpool.infrastructure.locks import EngineLock
from carpool.infrastructure.store import FlatFileStore

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None
_saved_revision: Optional[int] = None


# ── Public API ────────────────────────────────────────────────────────


async def start_autosave_loop(
    engine: ReservationEngine, store: FlatFileStore, lock: EngineLock
) -> None:
    global _task, _stop_event, _saved_revision
    _stop_event = asyncio.Event()
    _saved_revision = engine.revision
    _task = asyncio.create_task(_loop(engine, store, lock))
    logger.info(
        "Autosave worker started (interval=%ds)", settings.autosave_interval_seconds
    )


async def stop_autosave_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Autosave worker stopped")


def mark_saved(engine: ReservationEngine) -> None:
    """Record that *engine* was just saved by someone else (e.g. an admin call)."""
    global _saved_revision
    _saved_revision = engine.revision


# ── Internals ─────────────────────────────────────────────────────────


async def _loop(engine: ReservationEngine, store: FlatFileStore, lock: EngineLock) -> None:
    """Periodic loop: sleep for the interval, then run a save cycle."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.autosave_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # interval elapsed
        try:
            await run_save_cycle(engine, store, lock)
        except Exception:
            logger.exception("Unhandled error in autosave cycle")


async def run_save_cycle(
    engine: ReservationEngine, store: FlatFileStore, lock: EngineLock, force: bool = False
) -> bool:
    """Save if there are unsaved changes (or *force*).  Returns True if saved."""
    global _saved_revision
    if not force and engine.revision == _saved_revision:
        logger.debug("No unsaved changes – skipping autosave")
        return False

    async with lock:
        revision = engine.revision
        try:
            await asyncio.to_thread(store.save, engine)
        except StoreWriteError:
            logger.exception("Autosave failed; will retry next cycle")
            return False
    _saved_revision = revision
    return True
