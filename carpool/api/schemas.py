"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from carpool.domain.entities import Identity, Trip
from carpool.domain.enums import IdentityKind


# ── Requests ──────────────────────────────────────────────────────────


class IdentityCreateRequest(BaseModel):
    national_id: str
    name: str
    surname: str
    phone: str
    academic_year: int
    address: str = ""
    email: str
    password: str


class DriverCreateRequest(IdentityCreateRequest):
    vehicle_name: str
    vehicle_make: str
    plate_number: str
    seat_capacity: int = Field(..., ge=1, le=8)


class PassengerCreateRequest(IdentityCreateRequest):
    seeking_ride: bool = True


class TripCreateRequest(BaseModel):
    driver_id: str
    departure: str
    arrival: str
    duration_minutes: int = Field(..., ge=1)
    price: float = Field(..., ge=0)


class PriceUpdateRequest(BaseModel):
    price: float = Field(..., ge=0)


class SeatRequest(BaseModel):
    passenger_id: str


class ExportRequest(BaseModel):
    filename: str = Field("export_trajets.csv", pattern=r"^[\w.-]+\.csv$")


# ── Responses ─────────────────────────────────────────────────────────


class IdentityResponse(BaseModel):
    national_id: str
    kind: IdentityKind
    name: str
    surname: str
    phone: str
    academic_year: int
    address: str
    email: str
    vehicle_name: Optional[str] = None
    vehicle_make: Optional[str] = None
    plate_number: Optional[str] = None
    seat_capacity: Optional[int] = None
    seeking_ride: Optional[bool] = None

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityResponse":
        data = dict(
            national_id=identity.national_id,
            kind=identity.kind,
            name=identity.name,
            surname=identity.surname,
            phone=identity.phone,
            academic_year=identity.academic_year,
            address=identity.address,
            email=identity.email,
        )
        if identity.is_driver:
            driver = identity.as_driver()
            data.update(
                vehicle_name=driver.vehicle_name,
                vehicle_make=driver.vehicle_make,
                plate_number=driver.plate_number,
                seat_capacity=driver.seat_capacity,
            )
        else:
            data.update(seeking_ride=identity.as_passenger().seeking_ride)
        return cls(**data)


class TripResponse(BaseModel):
    id: int
    departure: str
    arrival: str
    duration_minutes: int
    price: float
    status: str
    max_seats: int
    available_seats: int
    driver_id: Optional[str] = None
    accepted_ids: list[str] = []
    pending_ids: list[str] = []

    @classmethod
    def from_trip(cls, trip_id: int, trip: Trip) -> "TripResponse":
        return cls(
            id=trip_id,
            departure=trip.departure,
            arrival=trip.arrival,
            duration_minutes=trip.duration_minutes,
            price=trip.price,
            status=trip.status.value,
            max_seats=trip.max_seats,
            available_seats=trip.available_seats,
            driver_id=trip.driver.national_id if trip.driver else None,
            accepted_ids=trip.accepted_ids,
            pending_ids=trip.pending_ids,
        )


class InboxEntryResponse(BaseModel):
    trip_id: int
    departure: str
    arrival: str
    passenger_id: str
    passenger_name: str
    passenger_phone: str


class PassengerContactResponse(InboxEntryResponse):
    passenger_email: str
    passenger_address: str


class SaveResponse(BaseModel):
    drivers: int
    passengers: int
    trips: int
    backups: list[str] = []


class LoadReportResponse(BaseModel):
    restored: list[str] = []
    drivers: int
    passengers: int
    trips: int
    skipped_records: int


class ExportResponse(BaseModel):
    path: str


class HealthResponse(BaseModel):
    status: str = "ok"
    drivers: int = 0
    passengers: int = 0
    trips: int = 0


class ErrorResponse(BaseModel):
    detail: str
    error: str
    field: Optional[str] = None


# Documented on every router; the bodies come from the app's error handlers.
ERROR_RESPONSES: dict = {
    404: {"model": ErrorResponse, "description": "Unknown identity, trip or request"},
    409: {"model": ErrorResponse, "description": "Operation conflicts with the trip's state"},
    503: {"model": ErrorResponse, "description": "Engine busy or store unavailable"},
}
