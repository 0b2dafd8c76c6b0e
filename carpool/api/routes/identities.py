"""
Identity endpoints
==================

POST /api/v1/identities/drivers               -- register a driver
POST /api/v1/identities/passengers            -- register a passenger
GET  /api/v1/identities/{national_id}         -- look up either kind
GET  /api/v1/identities/drivers/{id}/inbox    -- pending requests on the driver's trips
GET  /api/v1/identities/drivers/{id}/passengers -- accepted passengers with contact details
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from carpool.api.dependencies import get_engine
from carpool.api.middleware import RATE_LIMIT, limiter
from carpool.api.schemas import (
    ERROR_RESPONSES,
    DriverCreateRequest,
    IdentityResponse,
    InboxEntryResponse,
    PassengerContactResponse,
    PassengerCreateRequest,
)
from carpool.domain.engine import ReservationEngine
from carpool.domain.entities import Driver, Passenger

router = APIRouter(prefix="/identities", tags=["identities"], responses=ERROR_RESPONSES)


@router.post(
    "/drivers",
    status_code=201,
    response_model=IdentityResponse,
    summary="Register a driver",
)
@limiter.limit(RATE_LIMIT)
async def register_driver(
    request: Request,
    body: DriverCreateRequest,
    engine: ReservationEngine = Depends(get_engine),
):
    driver = Driver.create(**body.model_dump())
    engine.register_identity(driver)
    return IdentityResponse.from_identity(driver)


@router.post(
    "/passengers",
    status_code=201,
    response_model=IdentityResponse,
    summary="Register a passenger",
)
@limiter.limit(RATE_LIMIT)
async def register_passenger(
    request: Request,
    body: PassengerCreateRequest,
    engine: ReservationEngine = Depends(get_engine),
):
    passenger = Passenger.create(**body.model_dump())
    engine.register_identity(passenger)
    return IdentityResponse.from_identity(passenger)


@router.get(
    "/{national_id}",
    response_model=IdentityResponse,
    summary="Look up a driver or passenger",
)
@limiter.limit(RATE_LIMIT)
async def get_identity(
    request: Request,
    national_id: str,
    engine: ReservationEngine = Depends(get_engine),
):
    identity = engine.lookup_identity(national_id)
    if identity is None:
        raise HTTPException(status_code=404, detail=f"Identity {national_id} not found")
    return IdentityResponse.from_identity(identity)


@router.get(
    "/drivers/{national_id}/inbox",
    response_model=list[InboxEntryResponse],
    summary="Pending seat requests across the driver's open trips",
)
@limiter.limit(RATE_LIMIT)
async def driver_inbox(
    request: Request,
    national_id: str,
    engine: ReservationEngine = Depends(get_engine),
):
    driver = engine.lookup_driver(national_id)
    return [
        InboxEntryResponse(
            trip_id=engine.trip_index(trip),
            departure=trip.departure,
            arrival=trip.arrival,
            passenger_id=passenger.national_id,
            passenger_name=passenger.full_name,
            passenger_phone=passenger.phone,
        )
        for trip, passenger in engine.driver_inbox(driver)
    ]


@router.get(
    "/drivers/{national_id}/passengers",
    response_model=list[PassengerContactResponse],
    summary="Contact details of passengers accepted on the driver's trips",
)
@limiter.limit(RATE_LIMIT)
async def accepted_passengers(
    request: Request,
    national_id: str,
    engine: ReservationEngine = Depends(get_engine),
):
    driver = engine.lookup_driver(national_id)
    return [
        PassengerContactResponse(
            trip_id=engine.trip_index(trip),
            departure=trip.departure,
            arrival=trip.arrival,
            passenger_id=passenger.national_id,
            passenger_name=passenger.full_name,
            passenger_phone=passenger.phone,
            passenger_email=passenger.email,
            passenger_address=passenger.address,
        )
        for trip, passenger in engine.accepted_for_driver(driver)
    ]
