"""
Admin / store endpoints
=======================

GET  /api/v1/admin/health   -- health check with entity counts
POST /api/v1/admin/save     -- back up, then save the engine to disk
POST /api/v1/admin/restore  -- restore live files from the newest backups and reload
POST /api/v1/admin/export   -- write the spreadsheet export of all trips
"""

import asyncio

from fastapi import APIRouter, Depends, Request

from carpool.api.dependencies import get_engine, get_store
from carpool.api.middleware import RATE_LIMIT, limiter
from carpool.api.schemas import (
    ERROR_RESPONSES,
    ExportRequest,
    ExportResponse,
    HealthResponse,
    LoadReportResponse,
    SaveResponse,
)
from carpool.domain.engine import ReservationEngine
from carpool.infrastructure.store import FlatFileStore
from carpool.workers import autosave

router = APIRouter(prefix="/admin", tags=["admin"], responses=ERROR_RESPONSES)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(engine: ReservationEngine = Depends(get_engine)):
    return HealthResponse(
        drivers=len(engine.drivers()),
        passengers=len(engine.passengers()),
        trips=len(engine.trips()),
    )


@router.post("/save", response_model=SaveResponse, summary="Save the store now")
@limiter.limit(RATE_LIMIT)
async def save(
    request: Request,
    engine: ReservationEngine = Depends(get_engine),
    store: FlatFileStore = Depends(get_store),
):
    result = await asyncio.to_thread(store.save, engine)
    autosave.mark_saved(engine)
    return SaveResponse(
        drivers=result.drivers,
        passengers=result.passengers,
        trips=result.trips,
        backups=[p.name for p in result.backups],
    )


@router.post(
    "/restore",
    response_model=LoadReportResponse,
    summary="Restore the newest backups and reload the engine",
)
@limiter.limit(RATE_LIMIT)
async def restore(
    request: Request,
    engine: ReservationEngine = Depends(get_engine),
    store: FlatFileStore = Depends(get_store),
):
    restored = await asyncio.to_thread(store.restore_from_backup)
    result = await asyncio.to_thread(store.load_into, engine)
    autosave.mark_saved(engine)
    return LoadReportResponse(
        restored=[p.name for p in restored],
        drivers=len(result.drivers),
        passengers=len(result.passengers),
        trips=len(result.trips),
        skipped_records=result.error_count,
    )


@router.post("/export", response_model=ExportResponse, summary="Export trips for spreadsheets")
@limiter.limit(RATE_LIMIT)
async def export(
    request: Request,
    body: ExportRequest,
    engine: ReservationEngine = Depends(get_engine),
    store: FlatFileStore = Depends(get_store),
):
    path = await asyncio.to_thread(store.export_trips, engine.trips(), body.filename)
    return ExportResponse(path=str(path))
