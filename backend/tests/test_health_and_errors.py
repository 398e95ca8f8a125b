from __future__ import annotations

import pytest
from bson import ObjectId


@pytest.mark.anyio
async def test_deployment_health(async_client) -> None:
    resp = await async_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


@pytest.mark.anyio
async def test_correlation_id_is_echoed_in_errors(async_client) -> None:
    resp = await async_client.post(
        f"/api/trips/{ObjectId()}/quote",
        json={"number_of_guests": 1},
        headers={"X-Correlation-Id": "cid-123"},
    )
    assert resp.status_code == 404
    assert resp.headers["X-Correlation-Id"] == "cid-123"
    assert resp.json()["error"]["details"]["correlation_id"] == "cid-123"


@pytest.mark.anyio
async def test_expired_token_is_rejected(async_client, catalog) -> None:
    from tripdesk.auth import create_access_token

    token = create_access_token(subject="admin@tripdesk.test", roles=["admin"], minutes=-5)
    resp = await async_client.get(
        "/api/admin/reservations",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Token expired"


@pytest.mark.anyio
async def test_reservation_indexes_are_idempotent(test_db) -> None:
    from tripdesk.indexes.reservation_indexes import ensure_reservation_indexes

    await ensure_reservation_indexes(test_db)
    await ensure_reservation_indexes(test_db)

    info = await test_db.reservations.index_information()
    assert "reservations_by_trip_status" in info
    assert "reservations_list" in info
