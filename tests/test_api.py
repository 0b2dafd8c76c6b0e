"""
Integration tests for the REST API endpoints.

The app is built with a store rooted in pytest's ``tmp_path``; the
lifespan (store load + autosave worker) does not run under
``ASGITransport``, so every test starts from an empty engine.
"""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from carpool.api.app import create_app
from carpool.api.middleware import limiter
from tests.conftest import PASSWORD

API = "/api/v1"

DRIVER = {
    "national_id": "10000001",
    "name": "Amine",
    "surname": "Ben Salah",
    "phone": "20123456",
    "academic_year": 2024,
    "address": "Ariana",
    "email": "amine@gmail.com",
    "password": PASSWORD,
    "vehicle_name": "Clio",
    "vehicle_make": "Renault",
    "plate_number": "123tu4567",
    "seat_capacity": 2,
}


def _passenger(national_id: str) -> dict:
    return {
        "national_id": national_id,
        "name": "Ines",
        "surname": "Jlassi",
        "phone": "50123456",
        "academic_year": 2023,
        "address": "Manouba",
        "email": f"p{national_id}@enit.utm.tn",
        "password": PASSWORD,
    }


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def app(store):
    limiter.reset()
    return create_app(store=store)


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def trip_id(client):
    """Register a driver + three passengers and publish one two-seat trip."""
    resp = await client.post(f"{API}/identities/drivers", json=DRIVER)
    assert resp.status_code == 201
    for i in range(1, 4):
        resp = await client.post(f"{API}/identities/passengers", json=_passenger(f"2000000{i}"))
        assert resp.status_code == 201
    resp = await client.post(
        f"{API}/trips",
        json={
            "driver_id": DRIVER["national_id"],
            "departure": "Ariana",
            "arrival": "ENIT Campus",
            "duration_minutes": 35,
            "price": 3.5,
        },
    )
    assert resp.status_code == 201
    return resp.json()["id"]


async def _request_and_approve(client, trip_id: int, passenger_id: str):
    resp = await client.post(
        f"{API}/trips/{trip_id}/requests", json={"passenger_id": passenger_id}
    )
    assert resp.status_code == 201
    return await client.post(f"{API}/trips/{trip_id}/requests/{passenger_id}/approve")


# ── Tests ─────────────────────────────────────────────────────────────


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get(f"{API}/admin/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "drivers": 0, "passengers": 0, "trips": 0}


class TestIdentities:
    @pytest.mark.asyncio
    async def test_register_driver(self, client):
        resp = await client.post(f"{API}/identities/drivers", json=DRIVER)
        assert resp.status_code == 201
        data = resp.json()
        assert data["kind"] == "DRIVER"
        assert data["plate_number"] == "123TU4567"
        assert "password" not in data and "password_hash" not in data

    @pytest.mark.asyncio
    async def test_duplicate_registration_conflicts(self, client):
        await client.post(f"{API}/identities/drivers", json=DRIVER)
        resp = await client.post(
            f"{API}/identities/passengers", json=_passenger(DRIVER["national_id"])
        )
        assert resp.status_code == 409
        assert resp.json()["error"] == "DuplicateIdentity"

    @pytest.mark.asyncio
    async def test_invalid_field_is_reported(self, client):
        resp = await client.post(
            f"{API}/identities/passengers",
            json={**_passenger("20000001"), "email": "someone@yahoo.com"},
        )
        assert resp.status_code == 422
        assert resp.json()["field"] == "email"

    @pytest.mark.asyncio
    async def test_lookup(self, client):
        await client.post(f"{API}/identities/passengers", json=_passenger("20000001"))
        resp = await client.get(f"{API}/identities/20000001")
        assert resp.status_code == 200
        assert resp.json()["seeking_ride"] is True

        resp = await client.get(f"{API}/identities/99999999")
        assert resp.status_code == 404


class TestTrips:
    @pytest.mark.asyncio
    async def test_publish_unknown_driver(self, client):
        resp = await client.post(
            f"{API}/trips",
            json={
                "driver_id": "99999999",
                "departure": "A",
                "arrival": "B",
                "duration_minutes": 10,
                "price": 1,
            },
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_get_trip(self, client, trip_id):
        resp = await client.get(f"{API}/trips/{trip_id}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "PENDING"
        assert data["max_seats"] == 2
        assert data["available_seats"] == 2

        assert (await client.get(f"{API}/trips/42")).status_code == 404

    @pytest.mark.asyncio
    async def test_seat_lifecycle(self, client, trip_id):
        resp = await client.post(
            f"{API}/trips/{trip_id}/requests", json={"passenger_id": "20000001"}
        )
        assert resp.json()["status"] == "PENDING_APPROVAL"

        resp = await client.post(f"{API}/trips/{trip_id}/requests/20000001/approve")
        assert resp.status_code == 200
        assert resp.json()["status"] == "IN_PROGRESS"
        assert resp.json()["available_seats"] == 1

        resp = await client.post(f"{API}/trips/{trip_id}/finish")
        assert resp.json()["status"] == "FINISHED"

        resp = await client.post(
            f"{API}/trips/{trip_id}/requests", json={"passenger_id": "20000002"}
        )
        assert resp.status_code == 409
        assert resp.json()["error"] == "TripClosed"

    @pytest.mark.asyncio
    async def test_third_approval_is_rejected(self, client, trip_id):
        for pid in ("20000001", "20000002", "20000003"):
            await client.post(f"{API}/trips/{trip_id}/requests", json={"passenger_id": pid})
        await client.post(f"{API}/trips/{trip_id}/requests/20000001/approve")
        await client.post(f"{API}/trips/{trip_id}/requests/20000002/approve")

        resp = await client.post(f"{API}/trips/{trip_id}/requests/20000003/approve")
        assert resp.status_code == 409
        assert resp.json()["error"] == "TripFull"

        trip = (await client.get(f"{API}/trips/{trip_id}")).json()
        assert trip["available_seats"] == 0
        assert trip["pending_ids"] == ["20000003"]

    @pytest.mark.asyncio
    async def test_deny_and_cancel(self, client, trip_id):
        for pid in ("20000001", "20000002"):
            await client.post(f"{API}/trips/{trip_id}/requests", json={"passenger_id": pid})

        resp = await client.post(f"{API}/trips/{trip_id}/requests/20000001/deny")
        assert resp.json()["pending_ids"] == ["20000002"]
        resp = await client.delete(f"{API}/trips/{trip_id}/requests/20000002")
        assert resp.json()["status"] == "PENDING"

        resp = await client.delete(f"{API}/trips/{trip_id}/requests/20000002")
        assert resp.status_code == 404
        assert resp.json()["error"] == "RequestNotFound"

    @pytest.mark.asyncio
    async def test_finish_without_passengers(self, client, trip_id):
        resp = await client.post(f"{API}/trips/{trip_id}/finish")
        assert resp.status_code == 409
        assert resp.json()["error"] == "NotInProgress"

    @pytest.mark.asyncio
    async def test_search_hides_full_trips(self, client, trip_id):
        resp = await client.get(f"{API}/trips", params={"arrival": "enit"})
        assert [t["id"] for t in resp.json()] == [trip_id]

        await _request_and_approve(client, trip_id, "20000001")
        await _request_and_approve(client, trip_id, "20000002")
        resp = await client.get(f"{API}/trips")
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_update_price(self, client, trip_id):
        resp = await client.patch(f"{API}/trips/{trip_id}/price", json={"price": 5})
        assert resp.json()["price"] == 5.0
        resp = await client.get(f"{API}/trips", params={"max_price": 4})
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_driver_inbox(self, client, trip_id):
        await client.post(f"{API}/trips/{trip_id}/requests", json={"passenger_id": "20000002"})
        resp = await client.get(f"{API}/identities/drivers/{DRIVER['national_id']}/inbox")
        assert resp.status_code == 200
        [entry] = resp.json()
        assert entry["trip_id"] == trip_id
        assert entry["passenger_id"] == "20000002"
        assert entry["passenger_name"] == "Ines Jlassi"


class TestAcceptedPassengers:
    @pytest.mark.asyncio
    async def test_contacts_of_accepted_passengers(self, client, trip_id):
        await _request_and_approve(client, trip_id, "20000001")
        await client.post(f"{API}/trips/{trip_id}/requests", json={"passenger_id": "20000002"})

        resp = await client.get(f"{API}/identities/drivers/{DRIVER['national_id']}/passengers")
        assert resp.status_code == 200
        [entry] = resp.json()
        assert entry["trip_id"] == trip_id
        assert entry["passenger_id"] == "20000001"
        assert entry["passenger_email"] == "p20000001@enit.utm.tn"
        assert entry["passenger_address"] == "Manouba"

    @pytest.mark.asyncio
    async def test_unknown_driver(self, client):
        resp = await client.get(f"{API}/identities/drivers/99999999/passengers")
        assert resp.status_code == 404
        assert resp.json()["error"] == "IdentityNotFound"


class TestOpenAPI:
    @pytest.mark.asyncio
    async def test_error_model_is_documented(self, client):
        schema = (await client.get("/openapi.json")).json()
        approve = schema["paths"][f"{API}/trips/{{trip_id}}/requests/{{passenger_id}}/approve"]
        conflict = approve["post"]["responses"]["409"]
        assert conflict["content"]["application/json"]["schema"]["$ref"].endswith(
            "/ErrorResponse"
        )
        assert "ErrorResponse" in schema["components"]["schemas"]


class TestAdmin:
    @pytest.mark.asyncio
    async def test_save_then_restore(self, client, store, trip_id):
        resp = await client.post(f"{API}/admin/save")
        assert resp.status_code == 200
        assert resp.json()["trips"] == 1
        assert store.trips_path.exists()

        await client.post(
            f"{API}/trips",
            json={
                "driver_id": DRIVER["national_id"],
                "departure": "Tunis",
                "arrival": "Sousse",
                "duration_minutes": 120,
                "price": 12,
            },
        )
        resp = await client.post(f"{API}/admin/save")
        assert resp.json()["backups"]

        resp = await client.post(f"{API}/admin/restore")
        assert resp.status_code == 200
        report = resp.json()
        assert report["trips"] == 1
        assert report["skipped_records"] == 0

    @pytest.mark.asyncio
    async def test_export(self, client, store, trip_id):
        resp = await client.post(f"{API}/admin/export", json={"filename": "trips.csv"})
        assert resp.status_code == 200
        assert (store.data_dir / "trips.csv").read_bytes().startswith(b"\xef\xbb\xbf")

    @pytest.mark.asyncio
    async def test_export_rejects_path_names(self, client):
        resp = await client.post(f"{API}/admin/export", json={"filename": "../x.csv"})
        assert resp.status_code == 422
