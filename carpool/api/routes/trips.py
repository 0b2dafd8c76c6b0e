"""
Trip endpoints
==============

POST   /api/v1/trips                                      -- publish a trip
GET    /api/v1/trips                                      -- search open trips
GET    /api/v1/trips/{trip_id}                            -- trip details
PATCH  /api/v1/trips/{trip_id}/price                      -- change the price
POST   /api/v1/trips/{trip_id}/requests                   -- passenger asks for a seat
POST   /api/v1/trips/{trip_id}/requests/{pid}/approve     -- driver accepts
POST   /api/v1/trips/{trip_id}/requests/{pid}/deny        -- driver refuses
DELETE /api/v1/trips/{trip_id}/requests/{pid}             -- passenger cancels
POST   /api/v1/trips/{trip_id}/finish                     -- driver closes the trip

``trip_id`` is the trip's position in the engine's trip list.
"""

from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from carpool.api.dependencies import get_engine
from carpool.api.middleware import RATE_LIMIT, limiter
from carpool.api.schemas import (
    ERROR_RESPONSES,
    PriceUpdateRequest,
    SeatRequest,
    TripCreateRequest,
    TripResponse,
)
from carpool.domain.engine import ReservationEngine
from carpool.domain.entities import Trip, TripFilter

router = APIRouter(prefix="/trips", tags=["trips"], responses=ERROR_RESPONSES)


def _trip_or_404(engine: ReservationEngine, trip_id: int) -> Trip:
    try:
        return engine.get_trip(trip_id)
    except IndexError:
        raise HTTPException(status_code=404, detail=f"Trip {trip_id} not found")


def _response(engine: ReservationEngine, trip: Trip) -> TripResponse:
    return TripResponse.from_trip(engine.trip_index(trip), trip)


@router.post(
    "",
    status_code=201,
    response_model=TripResponse,
    summary="Publish a trip",
)
@limiter.limit(RATE_LIMIT)
async def publish_trip(
    request: Request,
    body: TripCreateRequest,
    engine: ReservationEngine = Depends(get_engine),
):
    driver = engine.lookup_driver(body.driver_id)
    trip = engine.publish_trip(
        driver,
        body.departure,
        body.arrival,
        timedelta(minutes=body.duration_minutes),
        body.price,
    )
    return _response(engine, trip)


@router.get(
    "",
    response_model=list[TripResponse],
    summary="Search trips that still have a free seat",
)
@limiter.limit(RATE_LIMIT)
async def search_trips(
    request: Request,
    departure: Optional[str] = Query(None),
    arrival: Optional[str] = Query(None),
    max_price: Optional[float] = Query(None, ge=0),
    engine: ReservationEngine = Depends(get_engine),
):
    search = engine.search_available_trips(
        TripFilter(departure_contains=departure, arrival_contains=arrival, max_price=max_price)
    )
    return [_response(engine, trip) for trip in search]


@router.get("/{trip_id}", response_model=TripResponse, summary="Get a trip")
@limiter.limit(RATE_LIMIT)
async def get_trip(
    request: Request,
    trip_id: int,
    engine: ReservationEngine = Depends(get_engine),
):
    return _response(engine, _trip_or_404(engine, trip_id))


@router.patch("/{trip_id}/price", response_model=TripResponse, summary="Change the price")
@limiter.limit(RATE_LIMIT)
async def update_price(
    request: Request,
    trip_id: int,
    body: PriceUpdateRequest,
    engine: ReservationEngine = Depends(get_engine),
):
    trip = engine.update_price(_trip_or_404(engine, trip_id), body.price)
    return _response(engine, trip)


@router.post(
    "/{trip_id}/requests",
    status_code=201,
    response_model=TripResponse,
    summary="Request a seat",
)
@limiter.limit(RATE_LIMIT)
async def submit_request(
    request: Request,
    trip_id: int,
    body: SeatRequest,
    engine: ReservationEngine = Depends(get_engine),
):
    trip = _trip_or_404(engine, trip_id)
    passenger = engine.lookup_passenger(body.passenger_id)
    engine.submit_request(trip, passenger)
    return _response(engine, trip)


@router.post(
    "/{trip_id}/requests/{passenger_id}/approve",
    response_model=TripResponse,
    summary="Accept a pending request",
)
@limiter.limit(RATE_LIMIT)
async def approve_request(
    request: Request,
    trip_id: int,
    passenger_id: str,
    engine: ReservationEngine = Depends(get_engine),
):
    trip = _trip_or_404(engine, trip_id)
    engine.approve_request(trip, passenger_id)
    return _response(engine, trip)


@router.post(
    "/{trip_id}/requests/{passenger_id}/deny",
    response_model=TripResponse,
    summary="Refuse a pending request",
)
@limiter.limit(RATE_LIMIT)
async def deny_request(
    request: Request,
    trip_id: int,
    passenger_id: str,
    engine: ReservationEngine = Depends(get_engine),
):
    trip = _trip_or_404(engine, trip_id)
    engine.deny_request(trip, passenger_id)
    return _response(engine, trip)


@router.delete(
    "/{trip_id}/requests/{passenger_id}",
    response_model=TripResponse,
    summary="Cancel one's own pending request",
)
@limiter.limit(RATE_LIMIT)
async def cancel_request(
    request: Request,
    trip_id: int,
    passenger_id: str,
    engine: ReservationEngine = Depends(get_engine),
):
    trip = _trip_or_404(engine, trip_id)
    engine.cancel_request(trip, passenger_id)
    return _response(engine, trip)


@router.post("/{trip_id}/finish", response_model=TripResponse, summary="Finish a trip")
@limiter.limit(RATE_LIMIT)
async def finish_trip(
    request: Request,
    trip_id: int,
    engine: ReservationEngine = Depends(get_engine),
):
    trip = engine.finish_trip(_trip_or_404(engine, trip_id))
    return _response(engine, trip)
