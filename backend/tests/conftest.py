"""Shared test configuration and fixtures for backend tests.

Key principles:
- All HTTP calls go through the local ASGI app, never a remote URL.
- Each test gets its own in-memory Mongo database (mongomock-motor), so no
  server is needed and nothing leaks between tests.
- AnyIO is the single async runner via the pytest plugin (@pytest.mark.anyio).
"""

from typing import AsyncGenerator, Any, Dict

import sys
from pathlib import Path
import uuid

import pytest
import httpx
from bson import ObjectId
from httpx import ASGITransport
from mongomock_motor import AsyncMongoMockClient

# Ensure backend root is on sys.path so that `server` module is importable
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from server import app
from tripdesk.auth import create_access_token
from tripdesk.db import get_db
from tripdesk.utils import now_utc


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Force the AnyIO plugin to use the asyncio event loop."""

    return "asyncio"


@pytest.fixture(scope="function")
async def test_db() -> AsyncGenerator[Any, None]:
    """Function-scoped isolated in-memory database for each test."""

    client = AsyncMongoMockClient()
    yield client[f"tripdesk_test_{uuid.uuid4().hex}"]


@pytest.fixture(scope="function")
async def app_with_overrides(test_db) -> AsyncGenerator[Any, None]:
    """FastAPI app instance whose get_db dependency points to test_db."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def async_client(app_with_overrides) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app instance."""

    transport = ASGITransport(app=app_with_overrides)
    async with httpx.AsyncClient(transport=transport, base_url="http://test", timeout=30.0) as client:
        yield client


@pytest.fixture
async def catalog(test_db) -> Dict[str, Any]:
    """Seed room types, a hotel with room inventory and one active trip.

    Inventory: 2 Double rooms, 1 Single room. The Suite has no inventory entry
    so it can never make the trip full.
    """

    double_id, single_id, suite_id = ObjectId(), ObjectId(), ObjectId()
    await test_db.room_types.insert_many(
        [
            {"_id": double_id, "name": "Double", "capacity": 2},
            {"_id": single_id, "name": "Single", "capacity": 1},
            {"_id": suite_id, "name": "Suite", "capacity": 4},
        ]
    )

    hotel_id = ObjectId()
    await test_db.hotels.insert_one(
        {
            "_id": hotel_id,
            "name": "Sea View Resort",
            "room_inventory": [
                {"room_type_id": str(double_id), "count": 2},
                {"room_type_id": str(single_id), "count": 1},
            ],
        }
    )

    trip_id = ObjectId()
    await test_db.trips.insert_one(
        {
            "_id": trip_id,
            "hotel_id": str(hotel_id),
            "destination_id": "dest_coast",
            "start_date": now_utc(),
            "end_date": now_utc(),
            "status": "active",
            "room_offers": [
                {"room_type_id": str(double_id), "price_per_person": 100.0},
                {"room_type_id": str(single_id), "price_per_person": 150.0},
                {"room_type_id": str(suite_id), "price_per_person": 80.0},
            ],
            "transportation_price_per_person": 50.0,
            "extra_fees": [
                {"id": "fee_boat", "name": "Boat tour", "price_per_person": 25.0},
            ],
        }
    )

    return {
        "trip_id": str(trip_id),
        "hotel_id": str(hotel_id),
        "double_id": str(double_id),
        "single_id": str(single_id),
        "suite_id": str(suite_id),
    }


async def _headers_for(test_db, email: str, roles: list[str]) -> Dict[str, str]:
    await test_db.users.insert_one({"email": email, "name": email.split("@")[0].title(), "roles": roles})
    token = create_access_token(subject=email, roles=roles)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin_headers(test_db) -> Dict[str, str]:
    return await _headers_for(test_db, "admin@tripdesk.test", ["admin"])


@pytest.fixture
async def sales_headers(test_db) -> Dict[str, str]:
    return await _headers_for(test_db, "sales@tripdesk.test", ["sales"])


@pytest.fixture
async def accountant_headers(test_db) -> Dict[str, str]:
    return await _headers_for(test_db, "accountant@tripdesk.test", ["accountant"])


@pytest.fixture
async def customer_headers(test_db) -> Dict[str, str]:
    return await _headers_for(test_db, "guest@tripdesk.test", ["authenticated_user"])


@pytest.fixture
def reservation_payload(catalog: Dict[str, Any]):
    """Factory for a booking of 1 Double room, 2 bus seats and the boat tour for 2 guests.

    Priced at 200 + 100 + 50 = 350 against the seeded trip.
    """

    def _make(**overrides: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "guest_name": "Mona Adel",
            "guest_phone": "+201001234567",
            "guest_email": "mona@example.com",
            "number_of_guests": 2,
            "requested_rooms": [{"room_type_id": catalog["double_id"], "number_of_rooms": 1}],
            "selected_extra_fees": [{"fee_id": "fee_boat", "number_of_guests_for_fee": 2}],
            "number_of_transportation_seats": 2,
        }
        payload.update(overrides)
        return payload

    return _make
