"""FastAPI dependency injection helpers."""

from typing import AsyncIterator

from fastapi import HTTPException, Request

from carpool.domain.engine import ReservationEngine
from carpool.infrastructure.locks import EngineLock
from carpool.infrastructure.store import FlatFileStore


def get_store(request: Request) -> FlatFileStore:
    return request.app.state.store


async def get_engine(request: Request) -> AsyncIterator[ReservationEngine]:  # type: ignore[misc]
    """Yield the engine while holding the engine-wide lock."""
    lock: EngineLock = request.app.state.lock
    if not await lock.acquire():
        raise HTTPException(status_code=503, detail="Engine is busy, retry later")
    try:
        yield request.app.state.engine
    finally:
        lock.release()
