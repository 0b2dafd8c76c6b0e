"""
Shared test fixtures.

Identities are built through ``Driver.create`` / ``Passenger.create`` so
every fixture passes the same validation as real registrations.  Store
tests write into pytest's ``tmp_path`` instead of ``./data``.
"""

from datetime import timedelta

import pytest

from carpool.domain.engine import ReservationEngine
from carpool.domain.entities import Driver, Passenger
from carpool.infrastructure.store import FlatFileStore

PASSWORD = "Secret@123"


def make_driver(national_id: str = "10000001", seat_capacity: int = 2, **overrides) -> Driver:
    fields = dict(
        national_id=national_id,
        name="Amine",
        surname="Ben Salah",
        phone="20123456",
        academic_year=2024,
        address="Ariana",
        email=f"driver{national_id}@gmail.com",
        password=PASSWORD,
        vehicle_name="Clio",
        vehicle_make="Renault",
        plate_number="123tu4567",
        seat_capacity=seat_capacity,
    )
    fields.update(overrides)
    return Driver.create(**fields)


def make_passenger(national_id: str = "20000001", **overrides) -> Passenger:
    fields = dict(
        national_id=national_id,
        name="Ines",
        surname="Jlassi",
        phone="50123456",
        academic_year=2023,
        address="Manouba",
        email=f"p{national_id}@enit.utm.tn",
        password=PASSWORD,
    )
    fields.update(overrides)
    return Passenger.create(**fields)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def engine() -> ReservationEngine:
    return ReservationEngine()


@pytest.fixture
def driver(engine: ReservationEngine) -> Driver:
    return engine.register_identity(make_driver())


@pytest.fixture
def passengers(engine: ReservationEngine) -> list[Passenger]:
    return [
        engine.register_identity(make_passenger(f"2000000{i}")) for i in range(1, 4)
    ]


@pytest.fixture
def trip(engine: ReservationEngine, driver: Driver):
    """A two-seat trip owned by ``driver``."""
    return engine.publish_trip(driver, "Ariana", "ENIT Campus", timedelta(minutes=35), 3.5)


@pytest.fixture
def store(tmp_path) -> FlatFileStore:
    return FlatFileStore(tmp_path / "data", tmp_path / "data" / "backups", max_backups=5)
