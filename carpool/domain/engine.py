"""
Reservation Engine
==================

Owns the in-memory identity / trip graph and every operation that mutates
it.  Callers (API routes, the autosave worker, scripts) hold their own
``current driver`` / ``current passenger`` reference and pass it in
explicitly; the engine keeps no per-session cursor.

Trip lifecycle
--------------
::

    PENDING --submit--> PENDING_APPROVAL --approve--> IN_PROGRESS --finish--> FINISHED
       ^                     |  (deny / cancel empties the queue)
       +---------------------+

Status is derived from the request lists (see ``Trip.status``); only
``finished`` is stored.  ``available_seats`` is the sole capacity gate.

Every operation validates first and mutates last, so a raised error
leaves the graph exactly as it was.

Concurrency
-----------
Not internally synchronised.  A multi-caller surface must serialise calls
(see ``carpool.infrastructure.locks.EngineLock``).
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import Iterable, Iterator, Optional

from .entities import Driver, Identity, Passenger, Trip, TripFilter
from .enums import IdentityKind
from .errors import (
    DuplicateIdentity,
    DuplicateRequest,
    IdentityNotFound,
    InvalidTripParameters,
    NotInProgress,
    RequestNotFound,
    TripClosed,
    TripFull,
)

logger = logging.getLogger(__name__)


class TripSearch:
    """Lazy, restartable view over the engine's open trips.

    Each iteration re-scans the live trip list in insertion order, so a
    search object stays valid across mutations.
    """

    def __init__(self, trips: list[Trip], trip_filter: TripFilter):
        self._trips = trips
        self.trip_filter = trip_filter

    def __iter__(self) -> Iterator[Trip]:
        for trip in self._trips:
            if (
                not trip.finished
                and trip.driver is not None
                and trip.available_seats > 0
                and self.trip_filter.matches(trip)
            ):
                yield trip

    def first(self) -> Optional[Trip]:
        return next(iter(self), None)


class ReservationEngine:
    def __init__(self) -> None:
        self._identities: dict[str, Identity] = {}
        self._trips: list[Trip] = []
        self.revision = 0

    # ── State ─────────────────────────────────────────────────────

    def _touch(self) -> None:
        self.revision += 1

    def replace_state(self, identities: Iterable[Identity], trips: Iterable[Trip]) -> None:
        """Install a graph produced by the store (drops the current one)."""
        self._identities = {}
        for identity in identities:
            self._identities.setdefault(identity.national_id, identity)
        self._trips = list(trips)
        self.revision = 0

    def identities(self) -> list[Identity]:
        return list(self._identities.values())

    def drivers(self) -> list[Driver]:
        return [i.as_driver() for i in self._identities.values() if i.kind is IdentityKind.DRIVER]

    def passengers(self) -> list[Passenger]:
        return [
            i.as_passenger() for i in self._identities.values()
            if i.kind is IdentityKind.PASSENGER
        ]

    def trips(self) -> list[Trip]:
        return list(self._trips)

    def get_trip(self, index: int) -> Trip:
        """Trip by its position in the trip list; ``IndexError`` if absent."""
        if index < 0:
            raise IndexError(index)
        return self._trips[index]

    def trip_index(self, trip: Trip) -> int:
        for i, candidate in enumerate(self._trips):
            if candidate is trip:
                return i
        raise ValueError("trip is not managed by this engine")

    # ── Identities ────────────────────────────────────────────────

    def register_identity(self, identity: Identity) -> Identity:
        identity.validate()
        if identity.national_id in self._identities:
            raise DuplicateIdentity(identity.national_id)
        self._identities[identity.national_id] = identity
        self._touch()
        logger.info("Registered %s %s", identity.kind.value.lower(), identity.national_id)
        return identity

    def lookup_identity(self, national_id: str) -> Optional[Identity]:
        return self._identities.get((national_id or "").strip())

    def lookup_driver(self, national_id: str) -> Driver:
        identity = self.lookup_identity(national_id)
        if identity is None or identity.kind is not IdentityKind.DRIVER:
            raise IdentityNotFound(national_id, "driver")
        return identity.as_driver()

    def lookup_passenger(self, national_id: str) -> Passenger:
        identity = self.lookup_identity(national_id)
        if identity is None or identity.kind is not IdentityKind.PASSENGER:
            raise IdentityNotFound(national_id, "passenger")
        return identity.as_passenger()

    def authenticate(self, national_id: str, password: str) -> Optional[Identity]:
        identity = self.lookup_identity(national_id)
        if identity is None or not identity.check_password(password):
            return None
        return identity

    # ── Trips (driver side) ───────────────────────────────────────

    def publish_trip(
        self,
        driver: Driver,
        departure: str,
        arrival: str,
        duration: timedelta,
        price: float,
    ) -> Trip:
        if driver is None or self._identities.get(driver.national_id) is not driver:
            raise InvalidTripParameters("driver must be a registered driver")
        if not isinstance(departure, str) or not departure.strip():
            raise InvalidTripParameters("departure must not be empty")
        if not isinstance(arrival, str) or not arrival.strip():
            raise InvalidTripParameters("arrival must not be empty")
        # the store keeps whole minutes
        if not isinstance(duration, timedelta) or duration < timedelta(minutes=1):
            raise InvalidTripParameters("duration must be at least one minute")
        if duration % timedelta(minutes=1):
            raise InvalidTripParameters("duration must be a whole number of minutes")
        price = self._checked_price(price)
        if driver.seat_capacity < 1:
            raise InvalidTripParameters("driver seat capacity must be at least 1")

        trip = Trip(
            departure=departure.strip(),
            arrival=arrival.strip(),
            duration=duration,
            price=price,
            max_seats=driver.seat_capacity,
            driver=driver,
        )
        self._trips.append(trip)
        self._touch()
        logger.info(
            "Driver %s published trip %s -> %s (%d seats)",
            driver.national_id, trip.departure, trip.arrival, trip.max_seats,
        )
        return trip

    @staticmethod
    def _checked_price(price: float) -> float:
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            raise InvalidTripParameters("price must be a number")
        if not math.isfinite(price) or price < 0:
            raise InvalidTripParameters("price must be a finite, non-negative amount")
        return float(price)

    def update_price(self, trip: Trip, price: float) -> Trip:
        self._ensure_open(trip)
        trip.price = self._checked_price(price)
        self._touch()
        return trip

    def finish_trip(self, trip: Trip) -> Trip:
        self._ensure_open(trip)
        if not trip.accepted_passengers:
            raise NotInProgress()
        for passenger in trip.accepted_passengers:
            passenger.seeking_ride = True
        trip.finished = True
        self._touch()
        logger.info(
            "Trip %s -> %s finished with %d passenger(s)",
            trip.departure, trip.arrival, len(trip.accepted_passengers),
        )
        return trip

    # ── Requests ──────────────────────────────────────────────────

    @staticmethod
    def _ensure_open(trip: Trip) -> None:
        if trip.finished:
            raise TripClosed()

    def submit_request(self, trip: Trip, passenger: Passenger) -> Trip:
        self._ensure_open(trip)
        if trip.holds(passenger.national_id):
            raise DuplicateRequest(passenger.national_id)
        if trip.available_seats == 0:
            raise TripFull(trip.max_seats)
        trip.pending_requests.append(passenger)
        self._touch()
        logger.info("Passenger %s requested a seat", passenger.national_id)
        return trip

    def approve_request(self, trip: Trip, passenger_id: str) -> Passenger:
        self._ensure_open(trip)
        passenger = self._pending(trip, passenger_id)
        if trip.available_seats == 0:
            raise TripFull(trip.max_seats)
        trip.pending_requests.remove(passenger)
        trip.accepted_passengers.append(passenger)
        passenger.seeking_ride = False
        self._touch()
        logger.info(
            "Passenger %s accepted (%d seat(s) left)", passenger_id, trip.available_seats
        )
        return passenger

    def deny_request(self, trip: Trip, passenger_id: str) -> Passenger:
        self._ensure_open(trip)
        passenger = self._pending(trip, passenger_id)
        trip.pending_requests.remove(passenger)
        self._touch()
        logger.info("Request from passenger %s denied", passenger_id)
        return passenger

    def cancel_request(self, trip: Trip, passenger_id: str) -> Passenger:
        self._ensure_open(trip)
        passenger = self._pending(trip, passenger_id)
        trip.pending_requests.remove(passenger)
        self._touch()
        logger.info("Passenger %s cancelled their request", passenger_id)
        return passenger

    @staticmethod
    def _pending(trip: Trip, passenger_id: str) -> Passenger:
        for passenger in trip.pending_requests:
            if passenger.national_id == passenger_id:
                return passenger
        raise RequestNotFound(passenger_id)

    # ── Queries ───────────────────────────────────────────────────

    def search_available_trips(self, trip_filter: Optional[TripFilter] = None) -> TripSearch:
        return TripSearch(self._trips, trip_filter or TripFilter())

    def trips_for_driver(self, driver: Driver) -> list[Trip]:
        return [t for t in self._trips if t.is_driven_by(driver)]

    def driver_inbox(self, driver: Driver) -> list[tuple[Trip, Passenger]]:
        """Pending requests across the driver's open trips, in trip order."""
        return [
            (trip, passenger)
            for trip in self.trips_for_driver(driver)
            if not trip.finished
            for passenger in trip.pending_requests
        ]

    def accepted_for_driver(self, driver: Driver) -> list[tuple[Trip, Passenger]]:
        """Accepted passengers on every trip of the driver, finished ones included."""
        return [
            (trip, passenger)
            for trip in self.trips_for_driver(driver)
            for passenger in trip.accepted_passengers
        ]

    def requests_for_passenger(self, passenger: Passenger) -> list[Trip]:
        return [t for t in self._trips if t.is_pending(passenger.national_id)]

    def bookings_for_passenger(self, passenger: Passenger) -> list[Trip]:
        return [t for t in self._trips if t.is_accepted(passenger.national_id)]
