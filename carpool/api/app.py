"""
FastAPI application factory.

* Registers routes for identities, trips and admin.
* Loads the flat-file store on startup, runs the autosave worker, and
  saves once more on shutdown via lifespan events.
* Maps engine / store errors onto HTTP status codes.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

import asyncio
from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from carpool.api.middleware import limiter
from carpool.api.routes import admin, identities, trips
from carpool.config import settings
from carpool.domain.engine import ReservationEngine
from carpool.domain.errors import (
    DuplicateIdentity,
    DuplicateRequest,
    IdentityNotFound,
    InvalidTripParameters,
    NotInProgress,
    RequestNotFound,
    ReservationError,
    StoreWriteError,
    TripClosed,
    TripFull,
    ValidationError,
)
from carpool.infrastructure.locks import EngineLock
from carpool.infrastructure.store import FlatFileStore
from carpool.workers import autosave as _autosave

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type, int] = {
    ValidationError: 422,
    InvalidTripParameters: 422,
    IdentityNotFound: 404,
    RequestNotFound: 404,
    DuplicateIdentity: 409,
    DuplicateRequest: 409,
    TripFull: 409,
    TripClosed: 409,
    NotInProgress: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the store and start autosave on startup; save on shutdown."""
    state = app.state
    async with state.lock:
        result = await asyncio.to_thread(state.store.load_into, state.engine)
    logger.info(
        "Loaded %d drivers, %d passengers, %d trips (%d skipped)",
        len(result.drivers), len(result.passengers), len(result.trips),
        result.error_count,
    )
    if settings.autosave_enabled:
        await _autosave.start_autosave_loop(state.engine, state.store, state.lock)
    yield
    if settings.autosave_enabled:
        await _autosave.stop_autosave_loop()
    await _autosave.run_save_cycle(state.engine, state.store, state.lock, force=True)


async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
    status = next(
        (code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)), 400
    )
    body = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, ValidationError):
        body["field"] = exc.field
    return JSONResponse(status_code=status, content=body)


async def store_write_error_handler(request: Request, exc: StoreWriteError) -> JSONResponse:
    logger.error("Store write failed: %s", exc)
    return JSONResponse(
        status_code=503, content={"detail": str(exc), "error": type(exc).__name__}
    )


def create_app(
    store: Optional[FlatFileStore] = None,
    engine: Optional[ReservationEngine] = None,
) -> FastAPI:
    app = FastAPI(
        title="Campus Carpool Reservation API",
        description=(
            "Drivers publish trips, passengers request seats, drivers approve "
            "or deny them.  State is kept in flat files with rotating backups."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Shared state: one engine, one store, one lock serialising both
    app.state.engine = engine if engine is not None else ReservationEngine()
    app.state.store = store if store is not None else FlatFileStore()
    app.state.lock = EngineLock(timeout_seconds=settings.lock_timeout_seconds)

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain / store errors
    app.add_exception_handler(ReservationError, reservation_error_handler)
    app.add_exception_handler(StoreWriteError, store_write_error_handler)

    # Routers
    app.include_router(identities.router, prefix="/api/v1")
    app.include_router(trips.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
