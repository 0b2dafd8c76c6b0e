"""
Flat-file Durable Store
=======================

Persists the engine's graph to three ``;``-delimited files::

    <data_dir>/conducteurs.csv   drivers
    <data_dir>/passagers.csv     passengers
    <data_dir>/trajets.csv       trips (references identities by national ID)

Write path
----------
1. Snapshot the current live files into ``<backup_dir>`` and rotate.
2. Write each file to ``<name>.tmp`` and ``os.replace`` it over the live
   file, so a reader never observes a half-written file and a failed
   write leaves the previous file in place.

Read path
---------
Drivers, then passengers, then trips (which resolve their driver and
passenger lists against the identities just loaded).  Missing files load
as empty collections; malformed records are skipped and reported in
``LoadResult.errors``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from carpool.config import settings
from carpool.domain.engine import ReservationEngine
from carpool.domain.entities import Driver, Identity, Passenger, Trip
from carpool.domain.errors import StoreReadError, StoreWriteError

from .backups import BackupManager
from .codec import DELIMITER
from .repositories import DriverRepository, PassengerRepository, TripRepository

logger = logging.getLogger(__name__)

EXPORT_HEADER = (
    "Point de Départ", "Point d'Arrivée", "Durée (min)", "Statut",
    "Prix (TND)", "Conducteur", "Passager",
)
UNASSIGNED_DRIVER = "Non assigné"
NO_PASSENGER = "En attente"


@dataclass
class LoadResult:
    drivers: list[Driver] = field(default_factory=list)
    passengers: list[Passenger] = field(default_factory=list)
    trips: list[Trip] = field(default_factory=list)
    errors: list[StoreReadError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def identities(self) -> list[Identity]:
        return [*self.drivers, *self.passengers]


@dataclass
class SaveResult:
    drivers: int = 0
    passengers: int = 0
    trips: int = 0
    backups: list[Path] = field(default_factory=list)


class FlatFileStore:
    def __init__(
        self,
        data_dir: Optional[Path | str] = None,
        backup_dir: Optional[Path | str] = None,
        max_backups: Optional[int] = None,
    ):
        self.data_dir = Path(data_dir if data_dir is not None else settings.data_dir)
        self.backup_dir = Path(
            backup_dir if backup_dir is not None else settings.backup_dir
        )
        self.drivers = DriverRepository()
        self.passengers = PassengerRepository()
        self.trips = TripRepository()
        self.backups = BackupManager(
            self.data_dir,
            self.backup_dir,
            [repo.base_name for repo in (self.drivers, self.passengers, self.trips)],
            max_backups=max_backups if max_backups is not None else settings.max_backups,
        )

    @property
    def drivers_path(self) -> Path:
        return self.data_dir / self.drivers.file_name

    @property
    def passengers_path(self) -> Path:
        return self.data_dir / self.passengers.file_name

    @property
    def trips_path(self) -> Path:
        return self.data_dir / self.trips.file_name

    # ── Write ─────────────────────────────────────────────────────

    def save(self, engine: ReservationEngine) -> SaveResult:
        """Back up the live files, then rewrite all three.

        Raises ``StoreWriteError`` on the first file that cannot be
        written; files written before it keep their new content, the
        failing one and those after it keep their previous content.
        """
        result = SaveResult()
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            result.backups = self.backups.create_backup()
        except OSError as exc:
            logger.error("Could not prepare %s for saving: %s", self.data_dir, exc)
            raise StoreWriteError(exc, str(self.data_dir)) from exc

        try:
            result.drivers = self.drivers.write(self.drivers_path, engine.drivers())
            result.passengers = self.passengers.write(
                self.passengers_path, engine.passengers()
            )
            result.trips = self.trips.write(self.trips_path, engine.trips())
        except StoreWriteError as exc:
            logger.error("Save aborted: %s", exc)
            raise

        logger.info(
            "Saved %d drivers, %d passengers, %d trips to %s",
            result.drivers, result.passengers, result.trips, self.data_dir,
        )
        return result

    # ── Read ──────────────────────────────────────────────────────

    def load(self) -> LoadResult:
        result = LoadResult()

        drivers, errors = self.drivers.read(self.drivers_path)
        result.errors.extend(errors)
        passengers, errors = self.passengers.read(self.passengers_path)
        result.errors.extend(errors)

        identities: dict[str, Identity] = {}
        for identity in [*drivers, *passengers]:
            if identity.national_id in identities:
                result.errors.append(
                    StoreReadError(identity.national_id, "duplicate national id", "identities")
                )
                logger.warning("Duplicate national id %s ignored", identity.national_id)
                continue
            identities[identity.national_id] = identity
            if identity.is_driver:
                result.drivers.append(identity.as_driver())
            else:
                result.passengers.append(identity.as_passenger())

        result.trips, errors = self.trips.read(self.trips_path, identities=identities)
        result.errors.extend(errors)

        if result.error_count:
            logger.warning("Load finished with %d skipped record(s)", result.error_count)
        return result

    def load_into(self, engine: ReservationEngine) -> LoadResult:
        result = self.load()
        engine.replace_state(result.identities, result.trips)
        return result

    # ── Recovery ──────────────────────────────────────────────────

    def restore_from_backup(self) -> list[Path]:
        """Copy the newest backups over the live files (does not reload)."""
        try:
            return self.backups.restore_from_backup()
        except OSError as exc:
            logger.error("Restore from %s failed: %s", self.backup_dir, exc)
            raise StoreWriteError(exc, str(self.data_dir)) from exc

    # ── Export ────────────────────────────────────────────────────

    def export_trips(self, trips: Iterable[Trip], filename: str = "export_trajets.csv") -> Path:
        """Write a spreadsheet-friendly copy of *trips* (UTF-8 with BOM).

        The export is for people, not for re-import: values are written
        verbatim, without quoting.
        """
        path = self.data_dir / filename
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8-sig", newline="") as handle:
                handle.write(DELIMITER.join(EXPORT_HEADER) + "\n")
                for trip in trips:
                    handle.write(DELIMITER.join(_export_row(trip)) + "\n")
        except OSError as exc:
            logger.error("Export to %s failed: %s", path, exc)
            raise StoreWriteError(exc, str(path)) from exc
        logger.info("Exported trips to %s", path)
        return path


def _export_row(trip: Trip) -> list[str]:
    driver = trip.driver.full_name if trip.driver else UNASSIGNED_DRIVER
    passengers = (
        ", ".join(p.full_name for p in trip.accepted_passengers)
        if trip.accepted_passengers
        else NO_PASSENGER
    )
    return [
        trip.departure,
        trip.arrival,
        str(trip.duration_minutes),
        trip.status.value,
        f"{trip.price:.2f}",
        driver,
        passengers,
    ]
