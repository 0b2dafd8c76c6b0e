"""
Domain entities with business logic.

Patterns used
-------------
- **Tagged variants** for identities: ``Identity.kind`` discriminates
  ``Driver`` from ``Passenger``; callers branch on the kind and use the
  ``as_driver`` / ``as_passenger`` accessors instead of ``isinstance``.
- **Derived state** on ``Trip``: ``status`` and ``available_seats`` are
  computed from the request lists, so they can never disagree with them.
  The only stored lifecycle fact is ``finished``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import ClassVar, Optional

from . import validation
from .enums import IdentityKind, TripStatus


# ── Identities ────────────────────────────────────────────────────────


@dataclass
class Identity:
    kind: ClassVar[IdentityKind]

    national_id: str = ""
    name: str = ""
    surname: str = ""
    phone: str = ""
    academic_year: int = 2024
    address: str = ""
    email: str = ""
    password_hash: str = ""

    @property
    def is_driver(self) -> bool:
        return self.kind is IdentityKind.DRIVER

    @property
    def is_passenger(self) -> bool:
        return self.kind is IdentityKind.PASSENGER

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.surname}".strip()

    def as_driver(self) -> "Driver":
        raise TypeError(f"{self.national_id} is a {self.kind.value}, not a driver")

    def as_passenger(self) -> "Passenger":
        raise TypeError(f"{self.national_id} is a {self.kind.value}, not a passenger")

    def check_password(self, password: str) -> bool:
        return validation.verify_password(password, self.password_hash)

    def validate(self) -> None:
        """Validate the shared attributes; raises ``ValidationError``."""
        validation.validate_national_id(self.national_id)
        validation.validate_name(self.name, "name")
        validation.validate_name(self.surname, "surname")
        validation.validate_phone(self.phone)
        validation.validate_academic_year(self.academic_year)
        validation.validate_email(self.email)


@dataclass
class Driver(Identity):
    kind: ClassVar[IdentityKind] = IdentityKind.DRIVER

    vehicle_name: str = ""
    vehicle_make: str = ""
    plate_number: str = ""
    seat_capacity: int = 1

    def as_driver(self) -> "Driver":
        return self

    def validate(self) -> None:
        """Validate every field; normalises ``plate_number`` to upper case."""
        super().validate()
        validation.validate_vehicle_name(self.vehicle_name, "vehicle_name")
        validation.validate_vehicle_name(self.vehicle_make, "vehicle_make")
        self.plate_number = validation.validate_plate(self.plate_number)
        validation.validate_seat_capacity(self.seat_capacity)

    @classmethod
    def create(
        cls,
        *,
        national_id: str,
        name: str,
        surname: str,
        phone: str,
        academic_year: int,
        address: str,
        email: str,
        password: str,
        vehicle_name: str,
        vehicle_make: str,
        plate_number: str,
        seat_capacity: int,
    ) -> "Driver":
        """Validate every field, normalise the plate and hash the password."""
        validation.validate_password(password)
        return cls(
            national_id=validation.validate_national_id(national_id),
            name=validation.validate_name(name, "name"),
            surname=validation.validate_name(surname, "surname"),
            phone=validation.validate_phone(phone),
            academic_year=validation.validate_academic_year(academic_year),
            address=address,
            email=validation.validate_email(email),
            password_hash=validation.hash_password(password),
            vehicle_name=validation.validate_vehicle_name(vehicle_name, "vehicle_name"),
            vehicle_make=validation.validate_vehicle_name(vehicle_make, "vehicle_make"),
            plate_number=validation.validate_plate(plate_number),
            seat_capacity=validation.validate_seat_capacity(seat_capacity),
        )


@dataclass
class Passenger(Identity):
    kind: ClassVar[IdentityKind] = IdentityKind.PASSENGER

    seeking_ride: bool = True

    def as_passenger(self) -> "Passenger":
        return self

    @classmethod
    def create(
        cls,
        *,
        national_id: str,
        name: str,
        surname: str,
        phone: str,
        academic_year: int,
        address: str,
        email: str,
        password: str,
        seeking_ride: bool = True,
    ) -> "Passenger":
        validation.validate_password(password)
        return cls(
            national_id=validation.validate_national_id(national_id),
            name=validation.validate_name(name, "name"),
            surname=validation.validate_name(surname, "surname"),
            phone=validation.validate_phone(phone),
            academic_year=validation.validate_academic_year(academic_year),
            address=address,
            email=validation.validate_email(email),
            password_hash=validation.hash_password(password),
            seeking_ride=seeking_ride,
        )


# ── Trip ──────────────────────────────────────────────────────────────


@dataclass
class Trip:
    departure: str = ""
    arrival: str = ""
    duration: timedelta = field(default_factory=lambda: timedelta(minutes=1))
    price: float = 0.0
    max_seats: int = 1
    driver: Optional[Driver] = None
    pending_requests: list[Passenger] = field(default_factory=list)
    accepted_passengers: list[Passenger] = field(default_factory=list)
    finished: bool = False

    @property
    def status(self) -> TripStatus:
        if self.finished:
            return TripStatus.FINISHED
        if self.accepted_passengers:
            return TripStatus.IN_PROGRESS
        if self.pending_requests:
            return TripStatus.PENDING_APPROVAL
        return TripStatus.PENDING

    @property
    def available_seats(self) -> int:
        return max(0, self.max_seats - len(self.accepted_passengers))

    @property
    def is_full(self) -> bool:
        return self.available_seats == 0

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)

    @property
    def accepted_ids(self) -> list[str]:
        return [p.national_id for p in self.accepted_passengers]

    @property
    def pending_ids(self) -> list[str]:
        return [p.national_id for p in self.pending_requests]

    def is_pending(self, passenger_id: str) -> bool:
        return passenger_id in self.pending_ids

    def is_accepted(self, passenger_id: str) -> bool:
        return passenger_id in self.accepted_ids

    def holds(self, passenger_id: str) -> bool:
        """True if the passenger is either pending or accepted on this trip."""
        return self.is_pending(passenger_id) or self.is_accepted(passenger_id)

    def is_driven_by(self, driver: Driver) -> bool:
        return self.driver is not None and self.driver.national_id == driver.national_id


@dataclass(frozen=True)
class TripFilter:
    """Passenger-side search criteria; ``None`` means "don't filter"."""

    departure_contains: Optional[str] = None
    arrival_contains: Optional[str] = None
    max_price: Optional[float] = None

    def matches(self, trip: Trip) -> bool:
        if self.departure_contains and (
            self.departure_contains.casefold() not in trip.departure.casefold()
        ):
            return False
        if self.arrival_contains and (
            self.arrival_contains.casefold() not in trip.arrival.casefold()
        ):
            return False
        if self.max_price is not None and trip.price > self.max_price:
            return False
        return True
