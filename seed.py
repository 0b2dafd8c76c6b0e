"""
Seed script -- populates the flat-file store with sample data for reviewers.

Run once before starting the API:
    python seed.py

Creates:
  - 3 sample drivers
  - 6 sample passengers
  - 4 sample trips (mix of PENDING, PENDING_APPROVAL, IN_PROGRESS, FINISHED)
"""

import logging
import sys
from datetime import timedelta

from carpool.domain.engine import ReservationEngine
from carpool.domain.entities import Driver, Passenger
from carpool.domain.errors import StoreWriteError
from carpool.infrastructure.store import FlatFileStore

PASSWORD = "Covoit@2024"

DRIVERS = [
    {"national_id": "11111111", "name": "Amine", "surname": "Ben Salah", "phone": "20111111",
     "address": "Cité El Ghazala, Ariana", "email": "amine.bensalah@gmail.com",
     "vehicle_name": "Clio", "vehicle_make": "Renault", "plate_number": "123TU4567",
     "seat_capacity": 3},
    {"national_id": "22222222", "name": "Salma", "surname": "Trabelsi", "phone": "20222222",
     "address": "Rue de Marseille; Tunis", "email": "salma.trabelsi@enit.utm.tn",
     "vehicle_name": "Polo", "vehicle_make": "Volkswagen", "plate_number": "45TU1200",
     "seat_capacity": 2},
    {"national_id": "33333333", "name": "Youssef", "surname": "Gharbi", "phone": "20333333",
     "address": "Sousse", "email": "youssef.gharbi@gmail.com",
     "vehicle_name": "i10", "vehicle_make": "Hyundai", "plate_number": "9TU0042",
     "seat_capacity": 4},
]

PASSENGERS = [
    {"national_id": "44444444", "name": "Ines", "surname": "Jlassi", "phone": "50444444",
     "address": "Manouba", "email": "ines.jlassi@gmail.com"},
    {"national_id": "55555555", "name": "Mehdi", "surname": "Bouazizi", "phone": "50555555",
     "address": "La Marsa", "email": "mehdi.bouazizi@insat.rnu.tn"},
    {"national_id": "66666666", "name": "Nour", "surname": "Hammami", "phone": "50666666",
     "address": "Bardo", "email": "nour.hammami@gmail.com"},
    {"national_id": "77777777", "name": "Rania", "surname": "Mejri", "phone": "50777777",
     "address": "Ben Arous", "email": "rania.mejri@gmail.com"},
    {"national_id": "88888888", "name": "Karim", "surname": "Chaabane", "phone": "50888888",
     "address": "Ariana", "email": "karim.chaabane@gmail.com"},
    {"national_id": "99999999", "name": "Lina", "surname": "D'Souza", "phone": "50999999",
     "address": "El Menzah", "email": "lina.dsouza@gmail.com"},
]


def seed(store: FlatFileStore) -> ReservationEngine:
    engine = ReservationEngine()

    # ── Identities ────────────────────────────────────────────────
    drivers = [
        engine.register_identity(Driver.create(academic_year=2024, password=PASSWORD, **d))
        for d in DRIVERS
    ]
    passengers = [
        engine.register_identity(Passenger.create(academic_year=2024, password=PASSWORD, **p))
        for p in PASSENGERS
    ]
    print(f"  Created {len(drivers)} drivers, {len(passengers)} passengers")

    # ── Trips ─────────────────────────────────────────────────────
    campus = engine.publish_trip(
        drivers[0], "Ariana", "ENIT Campus", timedelta(minutes=35), 3.5
    )
    engine.submit_request(campus, passengers[0])
    engine.submit_request(campus, passengers[1])
    engine.approve_request(campus, passengers[0].national_id)  # IN_PROGRESS

    sousse = engine.publish_trip(
        drivers[2], "Tunis", "Sousse", timedelta(hours=2), 12.0
    )
    engine.submit_request(sousse, passengers[2])  # PENDING_APPROVAL

    engine.publish_trip(drivers[1], "La Marsa", "Tunis Centre", timedelta(minutes=40), 4.0)

    done = engine.publish_trip(drivers[1], "Bardo", "Manouba", timedelta(minutes=20), 2.0)
    engine.submit_request(done, passengers[3])
    engine.submit_request(done, passengers[4])
    engine.approve_request(done, passengers[3].national_id)
    engine.approve_request(done, passengers[4].national_id)
    engine.finish_trip(done)  # FINISHED
    print(f"  Created {len(engine.trips())} trips")

    store.save(engine)
    return engine


def main() -> int:
    logging.basicConfig(level=logging.WARNING)
    store = FlatFileStore()
    if store.drivers_path.exists() or store.trips_path.exists():
        print(f"Store at {store.data_dir} already has data. Skipping.")
        return 0

    print("Seeding flat-file store...")
    try:
        seed(store)
    except StoreWriteError as exc:
        print(f"Seed failed: {exc}", file=sys.stderr)
        return 1
    print("\nSeed complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
