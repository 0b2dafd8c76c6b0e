"""
Repository Pattern -- one repository per flat file.

Each repository knows its file name, its header and how to turn a domain
object into a row (and back).  Reading and writing the file itself is
shared in ``FlatFileRepository`` so the store only orchestrates order
(identities before trips) and backups.

Row layouts
-----------
* drivers:     CIN;Nom;Prenom;Tel;AnneeUniv;Adresse;Mail;PasswordHash;
               NomVoiture;MarqueVoiture;Matricule;PlacesDisponibles
* passengers:  CIN;Nom;Prenom;Tel;AnneeUniv;Adresse;Mail;PasswordHash;ChercheCovoit
* trips:       Depart;Arrivee;DureeMinutes;Status;Prix;ConducteurCIN;PassagerCIN;
               MaxPlaces;AcceptedCINs;PendingCINs

Trip rows written before multi-passenger support stop after
``PassagerCIN`` (7 columns); both layouts are accepted on read.
"""

from __future__ import annotations

import contextlib
import csv
import logging
import math
import os
from datetime import timedelta
from pathlib import Path
from typing import Any, Generic, Iterable, Optional, Sequence, TypeVar

from carpool.domain.entities import Driver, Identity, Passenger, Trip
from carpool.domain.enums import IdentityKind, TripStatus, parse_status
from carpool.domain.errors import StoreReadError, StoreWriteError

from .codec import decode_ids, encode_ids, encode_row, parse_bool, read_rows

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FlatFileRepository(Generic[T]):
    base_name: str = ""
    header: tuple[str, ...] = ()
    min_columns: int = 0

    @property
    def file_name(self) -> str:
        return f"{self.base_name}.csv"

    def encode(self, record: T) -> Sequence[object]:
        raise NotImplementedError

    def decode(self, fields: list[str], **context: Any) -> T:
        raise NotImplementedError

    # ── I/O ───────────────────────────────────────────────────────

    def write(self, path: Path, records: Iterable[T]) -> int:
        """Write header + one row per record via a temp file and rename.

        Returns the number of records written; raises ``StoreWriteError``.
        """
        tmp = path.with_name(path.name + ".tmp")
        count = 0
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8", newline="") as handle:
                handle.write(encode_row(self.header) + "\n")
                for record in records:
                    handle.write(encode_row(self.encode(record)) + "\n")
                    count += 1
            os.replace(tmp, path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise StoreWriteError(exc, str(path)) from exc
        return count

    def read(self, path: Path, **context: Any) -> tuple[list[T], list[StoreReadError]]:
        """Parse every record; malformed ones are skipped and returned as errors."""
        records: list[T] = []
        errors: list[StoreReadError] = []
        if not path.exists():
            logger.info("%s not found, starting with no %s", path, self.base_name)
            return records, errors

        try:
            with open(path, encoding="utf-8-sig", newline="") as handle:
                rows = read_rows(handle)
                next(rows, None)  # header
                for line_no, fields in rows:
                    if not any(f.strip() for f in fields):
                        continue
                    try:
                        records.append(self.decode(fields, **context))
                    except (ValueError, IndexError) as exc:
                        error = StoreReadError(
                            encode_row(fields), exc, f"{path.name}:{line_no}"
                        )
                        logger.warning("%s", error)
                        errors.append(error)
        except (OSError, csv.Error) as exc:
            error = StoreReadError(str(path), exc, path.name)
            logger.error("Stopped reading %s: %s", path, exc)
            errors.append(error)

        logger.info("Loaded %d %s from %s", len(records), self.base_name, path)
        return records, errors

    def _check_width(self, fields: list[str]) -> None:
        if len(fields) < self.min_columns:
            raise ValueError(
                f"expected at least {self.min_columns} columns, got {len(fields)}"
            )


# ── Identities ────────────────────────────────────────────────────────


_IDENTITY_HEADER = (
    "CIN", "Nom", "Prenom", "Tel", "AnneeUniv", "Adresse", "Mail", "PasswordHash",
)


def _identity_fields(identity: Identity) -> list[object]:
    return [
        identity.national_id,
        identity.name,
        identity.surname,
        identity.phone,
        identity.academic_year,
        identity.address,
        identity.email,
        identity.password_hash or "",
    ]


def _identity_kwargs(fields: list[str]) -> dict[str, Any]:
    national_id = fields[0].strip()
    if not national_id:
        raise ValueError("empty national id")
    return dict(
        national_id=national_id,
        name=fields[1],
        surname=fields[2],
        phone=fields[3],
        academic_year=int(fields[4]),
        address=fields[5],
        email=fields[6],
        password_hash=fields[7],
    )


class DriverRepository(FlatFileRepository[Driver]):
    base_name = "conducteurs"
    header = _IDENTITY_HEADER + (
        "NomVoiture", "MarqueVoiture", "Matricule", "PlacesDisponibles",
    )
    min_columns = 12

    def encode(self, record: Driver) -> list[object]:
        return _identity_fields(record) + [
            record.vehicle_name,
            record.vehicle_make,
            record.plate_number,
            record.seat_capacity,
        ]

    def decode(self, fields: list[str], **context: Any) -> Driver:
        self._check_width(fields)
        seat_capacity = int(fields[11])
        if seat_capacity < 1:
            raise ValueError(f"seat capacity must be at least 1, got {seat_capacity}")
        return Driver(
            **_identity_kwargs(fields),
            vehicle_name=fields[8],
            vehicle_make=fields[9],
            plate_number=fields[10].strip().upper(),
            seat_capacity=seat_capacity,
        )


class PassengerRepository(FlatFileRepository[Passenger]):
    base_name = "passagers"
    header = _IDENTITY_HEADER + ("ChercheCovoit",)
    min_columns = 9

    def encode(self, record: Passenger) -> list[object]:
        return _identity_fields(record) + ["true" if record.seeking_ride else "false"]

    def decode(self, fields: list[str], **context: Any) -> Passenger:
        self._check_width(fields)
        return Passenger(**_identity_kwargs(fields), seeking_ride=parse_bool(fields[8]))


# ── Trips ─────────────────────────────────────────────────────────────


LEGACY_TRIP_COLUMNS = 7
EXTENDED_TRIP_COLUMNS = 10


class TripRepository(FlatFileRepository[Trip]):
    base_name = "trajets"
    header = (
        "Depart", "Arrivee", "DureeMinutes", "Status", "Prix",
        "ConducteurCIN", "PassagerCIN", "MaxPlaces", "AcceptedCINs", "PendingCINs",
    )
    min_columns = LEGACY_TRIP_COLUMNS

    def encode(self, record: Trip) -> list[object]:
        accepted = record.accepted_ids
        return [
            record.departure,
            record.arrival,
            record.duration_minutes,
            record.status.value,
            repr(float(record.price)),
            record.driver.national_id if record.driver else "",
            accepted[0] if accepted else "",  # legacy single-passenger column
            record.max_seats,
            encode_ids(accepted),
            encode_ids(record.pending_ids),
        ]

    def decode(self, fields: list[str], **context: Any) -> Trip:
        """Rebuild a trip; needs ``identities`` (id -> Identity) in *context*."""
        self._check_width(fields)
        identities: dict[str, Identity] = context.get("identities", {})

        minutes = int(fields[2])
        if minutes <= 0:
            raise ValueError(f"duration must be positive, got {minutes} minutes")
        status = parse_status(fields[3])
        price = float(fields[4])
        if not math.isfinite(price) or price < 0:
            raise ValueError(f"illegal price {fields[4]!r}")

        driver = self._resolve(identities, fields[5], IdentityKind.DRIVER)
        fallback_seats = driver.seat_capacity if driver else 1

        if len(fields) >= EXTENDED_TRIP_COLUMNS:
            max_seats = self._max_seats(fields[7], fallback_seats)
            accepted_ids = decode_ids(fields[8])
            pending_ids = decode_ids(fields[9])
        else:
            max_seats = fallback_seats
            accepted_ids = decode_ids(fields[6])[:1]
            pending_ids = []

        accepted = self._resolve_all(identities, accepted_ids)
        pending = [
            p for p in self._resolve_all(identities, pending_ids)
            if p.national_id not in accepted_ids
        ]
        if len(accepted) > max_seats:
            logger.warning(
                "Trip %s -> %s lists %d accepted passengers for %d seats; "
                "keeping the first %d",
                fields[0], fields[1], len(accepted), max_seats, max_seats,
            )
            accepted = accepted[:max_seats]

        trip = Trip(
            departure=fields[0],
            arrival=fields[1],
            duration=timedelta(minutes=minutes),
            price=price,
            max_seats=max_seats,
            driver=driver,
            pending_requests=pending,
            accepted_passengers=accepted,
            finished=status is TripStatus.FINISHED,
        )
        if trip.status is not status:
            logger.warning(
                "Trip %s -> %s stored as %s, seat state says %s",
                trip.departure, trip.arrival, status.value, trip.status.value,
            )
        return trip

    @staticmethod
    def _max_seats(raw: str, fallback: int) -> int:
        try:
            value = int(raw.strip())
        except ValueError:
            return fallback
        return value if value >= 1 else fallback

    @staticmethod
    def _resolve(
        identities: dict[str, Identity], raw_id: str, kind: IdentityKind
    ) -> Optional[Any]:
        national_id = raw_id.strip()
        if not national_id:
            return None
        identity = identities.get(national_id)
        if identity is None or identity.kind is not kind:
            logger.warning("Unknown %s %s referenced by a trip", kind.value.lower(), national_id)
            return None
        return identity

    def _resolve_all(self, identities: dict[str, Identity], ids: list[str]) -> list[Passenger]:
        resolved = []
        for national_id in ids:
            passenger = self._resolve(identities, national_id, IdentityKind.PASSENGER)
            if passenger is not None:
                resolved.append(passenger)
        return resolved
