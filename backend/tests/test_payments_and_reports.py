from __future__ import annotations

from typing import Any, Dict

import pytest

from tripdesk.errors import AppError
from tripdesk.repositories.reservation_repository import ReservationRepository
from tripdesk.services.reports import payment_summary
from tripdesk.services.reservations import create_reservation, record_payment, set_deposit


async def _book(async_client, catalog: Dict[str, Any], payload: Dict[str, Any]) -> str:
    resp = await async_client.post(f"/api/trips/{catalog['trip_id']}/reservations", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


@pytest.mark.anyio
async def test_payments_accumulate_until_fully_paid(
    async_client, catalog, reservation_payload, accountant_headers
) -> None:
    reservation_id = await _book(async_client, catalog, reservation_payload())
    url = f"/api/admin/reservations/{reservation_id}/payments"

    first = await async_client.post(url, json={"amount": 100}, headers=accountant_headers)
    assert first.status_code == 200, first.text
    assert first.json()["deposit_amount"] == 100
    assert first.json()["remaining_amount"] == 250

    second = await async_client.post(url, json={"amount": 250}, headers=accountant_headers)
    assert second.status_code == 200, second.text
    assert second.json()["remaining_amount"] == 0

    over = await async_client.post(url, json={"amount": 1}, headers=accountant_headers)
    assert over.status_code == 422
    assert over.json()["error"]["code"] == "payment_exceeds_total"


@pytest.mark.anyio
@pytest.mark.parametrize("amount", [0, -20])
async def test_non_positive_payment_is_rejected(
    async_client, catalog, reservation_payload, accountant_headers, amount
) -> None:
    reservation_id = await _book(async_client, catalog, reservation_payload())

    resp = await async_client.post(
        f"/api/admin/reservations/{reservation_id}/payments",
        json={"amount": amount},
        headers=accountant_headers,
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "invalid_amount"


@pytest.mark.anyio
async def test_payment_conflict_is_retryable(
    async_client, catalog, reservation_payload, accountant_headers, monkeypatch
) -> None:
    reservation_id = await _book(async_client, catalog, reservation_payload())

    async def _always_stale(self, reservation_id, *, expected, new_amount):
        return None

    monkeypatch.setattr(ReservationRepository, "compare_and_set_deposit", _always_stale)

    resp = await async_client.post(
        f"/api/admin/reservations/{reservation_id}/payments",
        json={"amount": 50},
        headers=accountant_headers,
    )
    assert resp.status_code == 409
    err = resp.json()["error"]
    assert err["code"] == "payment_concurrency_conflict"
    assert err["retryable"] is True


@pytest.mark.anyio
async def test_set_deposit(async_client, catalog, reservation_payload, sales_headers) -> None:
    reservation_id = await _book(async_client, catalog, reservation_payload())
    url = f"/api/admin/reservations/{reservation_id}/deposit"

    ok = await async_client.put(url, json={"deposit_amount": 120.5}, headers=sales_headers)
    assert ok.status_code == 200, ok.text
    assert ok.json()["deposit_amount"] == 120.5
    assert ok.json()["remaining_amount"] == 229.5

    negative = await async_client.put(url, json={"deposit_amount": -1}, headers=sales_headers)
    assert negative.status_code == 422
    assert negative.json()["error"]["code"] == "invalid_amount"

    too_much = await async_client.put(url, json={"deposit_amount": 351}, headers=sales_headers)
    assert too_much.status_code == 422
    assert too_much.json()["error"]["code"] == "payment_exceeds_total"


@pytest.mark.anyio
async def test_payments_require_payment_role(async_client, catalog, reservation_payload, customer_headers) -> None:
    reservation_id = await _book(async_client, catalog, reservation_payload())

    resp = await async_client.post(
        f"/api/admin/reservations/{reservation_id}/payments",
        json={"amount": 10},
        headers=customer_headers,
    )
    assert resp.status_code == 403


@pytest.mark.anyio
async def test_payment_summary_per_trip(
    async_client, catalog, reservation_payload, sales_headers, accountant_headers
) -> None:
    paid = await _book(async_client, catalog, reservation_payload())
    cancelled = await _book(async_client, catalog, reservation_payload(guest_name="Karim Saleh"))
    await async_client.post(
        f"/api/admin/reservations/{paid}/payments", json={"amount": 100}, headers=accountant_headers
    )
    await async_client.patch(
        f"/api/admin/reservations/{cancelled}/status", json={"status": "cancelled"}, headers=sales_headers
    )

    resp = await async_client.get("/api/admin/reports/payments", headers=accountant_headers)
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["total"] == 350
    assert data["paid"] == 100
    assert data["remaining"] == 250
    assert data["trips"] == [
        {"trip_id": catalog["trip_id"], "reservations": 1, "total": 350, "paid": 100, "remaining": 250}
    ]

    resp = await async_client.get(
        "/api/admin/reports/payments", params={"include_cancelled": "true"}, headers=accountant_headers
    )
    assert resp.json()["total"] == 700
    assert resp.json()["trips"][0]["reservations"] == 2


@pytest.mark.anyio
async def test_payment_summary_csv(async_client, catalog, reservation_payload, accountant_headers) -> None:
    await _book(async_client, catalog, reservation_payload())

    resp = await async_client.get("/api/admin/reports/payments.csv", headers=accountant_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    lines = resp.text.strip().splitlines()
    assert lines[0] == "trip_id,reservations,total,paid,remaining"
    assert lines[1].startswith(f"{catalog['trip_id']},1,350")
    assert lines[-1].startswith("TOTAL,1,350")


@pytest.mark.anyio
async def test_housing_roster_lists_confirmed_guests(
    async_client, catalog, reservation_payload, sales_headers, accountant_headers
) -> None:
    confirmed = await _book(async_client, catalog, reservation_payload())
    await _book(async_client, catalog, reservation_payload(guest_name="Still Pending"))
    await async_client.patch(
        f"/api/admin/reservations/{confirmed}/status", json={"status": "confirmed"}, headers=sales_headers
    )

    resp = await async_client.get("/api/admin/reports/housing", headers=sales_headers)
    assert resp.status_code == 200, resp.text

    roster = resp.json()
    assert len(roster) == 1
    assert roster[0]["trip_id"] == catalog["trip_id"]
    assert roster[0]["reservations"] == [
        {
            "reservation_id": confirmed,
            "guest_name": "Mona Adel",
            "guest_phone": "+201001234567",
            "number_of_guests": 2,
            "rooms": "1x Double",
        }
    ]

    forbidden = await async_client.get("/api/admin/reports/housing", headers=accountant_headers)
    assert forbidden.status_code == 403


@pytest.mark.anyio
@pytest.mark.parametrize("raw", ["NaN", "Infinity", "-Infinity"])
async def test_non_finite_payment_is_rejected_and_not_stored(
    async_client, test_db, catalog, reservation_payload, sales_headers, raw
) -> None:
    reservation_id = await _book(async_client, catalog, reservation_payload())

    resp = await async_client.post(
        f"/api/admin/reservations/{reservation_id}/payments",
        content=f'{{"amount": {raw}}}',
        headers={**sales_headers, "Content-Type": "application/json"},
    )
    assert resp.status_code == 422, resp.text
    assert resp.json()["error"]["code"] == "validation_error"

    deposit = await async_client.put(
        f"/api/admin/reservations/{reservation_id}/deposit",
        content=f'{{"deposit_amount": {raw}}}',
        headers={**sales_headers, "Content-Type": "application/json"},
    )
    assert deposit.status_code == 422, deposit.text

    stored = await async_client.get(f"/api/admin/reservations/{reservation_id}", headers=sales_headers)
    assert stored.status_code == 200, stored.text
    assert stored.json()["deposit_amount"] == 0


@pytest.mark.anyio
@pytest.mark.parametrize("amount", [float("nan"), float("inf")])
async def test_services_reject_non_finite_amounts(test_db, catalog, reservation_payload, amount) -> None:
    doc = await create_reservation(test_db, catalog["trip_id"], reservation_payload())
    reservation_id = str(doc["_id"])

    for call in (record_payment, set_deposit):
        with pytest.raises(AppError) as exc:
            await call(test_db, reservation_id, amount)
        assert exc.value.code == "invalid_amount"

    stored = await test_db.reservations.find_one({"_id": doc["_id"]})
    assert stored["deposit_amount"] == 0


@pytest.mark.anyio
async def test_set_deposit_on_vanished_reservation_is_404(test_db, catalog, reservation_payload, monkeypatch) -> None:
    doc = await create_reservation(test_db, catalog["trip_id"], reservation_payload())

    async def _gone(self, reservation_id, updates):
        return None

    monkeypatch.setattr(ReservationRepository, "update_fields", _gone)

    with pytest.raises(AppError) as exc:
        await set_deposit(test_db, str(doc["_id"]), 10)
    assert exc.value.status_code == 404


@pytest.mark.anyio
async def test_payment_summary_counts_every_reservation(test_db, catalog) -> None:
    count = 5001
    await test_db.reservations.insert_many(
        [
            {
                "trip_id": catalog["trip_id"],
                "status": "pending",
                "total_calculated_price": 10.0,
                "deposit_amount": 1.0,
            }
            for _ in range(count)
        ]
    )

    summary = await payment_summary(test_db)

    assert summary["trips"][0]["reservations"] == count
    assert summary["total"] == 10.0 * count
    assert summary["paid"] == 1.0 * count
