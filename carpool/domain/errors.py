"""
Error kinds raised by the reservation engine and the flat-file store.

Engine errors are raised before any state changes, so a caller that
catches one can assume the trip / identity graph is untouched.
"""

from __future__ import annotations


class ReservationError(Exception):
    """Base class for every rejected engine operation."""


class ValidationError(ReservationError, ValueError):
    """A single field failed validation."""

    def __init__(self, field: str, value: object, reason: str = "invalid value"):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"{field}: {reason} (received {value!r})")


class DuplicateIdentity(ReservationError):
    def __init__(self, national_id: str):
        self.national_id = national_id
        super().__init__(f"Identity {national_id} is already registered")


class IdentityNotFound(ReservationError):
    def __init__(self, national_id: str, kind: str = "identity"):
        self.national_id = national_id
        self.kind = kind
        super().__init__(f"No {kind} registered with id {national_id}")


class InvalidTripParameters(ReservationError, ValueError):
    """Trip fields (route, duration, price, driver) are unusable."""


class DuplicateRequest(ReservationError):
    def __init__(self, passenger_id: str):
        self.passenger_id = passenger_id
        super().__init__(f"Passenger {passenger_id} already holds a request on this trip")


class TripFull(ReservationError):
    def __init__(self, max_seats: int):
        self.max_seats = max_seats
        super().__init__(f"Trip has no seat left (capacity {max_seats})")


class TripClosed(ReservationError):
    def __init__(self):
        super().__init__("Trip is finished and can no longer be modified")


class RequestNotFound(ReservationError):
    def __init__(self, passenger_id: str):
        self.passenger_id = passenger_id
        super().__init__(f"Passenger {passenger_id} has no pending request on this trip")


class NotInProgress(ReservationError):
    def __init__(self):
        super().__init__("Trip has no accepted passenger and cannot be finished")


# ── Store ─────────────────────────────────────────────────────────────


class StoreError(Exception):
    """Base class for flat-file store failures."""


class StoreReadError(StoreError):
    """One record could not be parsed; collected, never raised by ``load``."""

    def __init__(self, record: str, cause: object, source: str = ""):
        self.record = record
        self.cause = cause
        self.source = source
        where = f"{source}: " if source else ""
        super().__init__(f"{where}skipped record {record!r}: {cause}")


class StoreWriteError(StoreError):
    """A save attempt failed; the previous on-disk state is left in place."""

    def __init__(self, cause: BaseException, path: str = ""):
        self.cause = cause
        self.path = path
        super().__init__(f"Could not write {path or 'store'}: {cause}")
