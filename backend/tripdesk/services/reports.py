from __future__ import annotations

import csv
import io
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from tripdesk.domain.reservation_state_machine import CANCELLED, CONFIRMED
from tripdesk.repositories.reservation_repository import ReservationRepository
from tripdesk.repositories.trip_repository import CatalogRepository, TripRepository
from tripdesk.utils import as_money


async def payment_summary(db: AsyncIOMotorDatabase, *, include_cancelled: bool = False) -> Dict[str, Any]:
    """Total / paid / remaining per trip, plus grand totals.

    Remaining is clamped at zero per reservation so an overpaid booking does
    not hide another one's debt.
    """

    docs = await ReservationRepository(db).all_reservations()
    by_trip: Dict[str, Dict[str, Any]] = {}
    for doc in docs:
        if not include_cancelled and doc.get("status") == CANCELLED:
            continue
        trip_id = str(doc.get("trip_id"))
        total = as_money(doc.get("total_calculated_price"))
        paid = as_money(doc.get("deposit_amount"))
        row = by_trip.setdefault(
            trip_id,
            {"trip_id": trip_id, "reservations": 0, "total": 0.0, "paid": 0.0, "remaining": 0.0},
        )
        row["reservations"] += 1
        row["total"] += total
        row["paid"] += paid
        row["remaining"] += max(0.0, total - paid)

    trips: List[Dict[str, Any]] = []
    for row in by_trip.values():
        trips.append({**row, **{k: as_money(row[k]) for k in ("total", "paid", "remaining")}})
    trips.sort(key=lambda r: r["trip_id"])

    return {
        "trips": trips,
        "total": as_money(sum(r["total"] for r in trips)),
        "paid": as_money(sum(r["paid"] for r in trips)),
        "remaining": as_money(sum(r["remaining"] for r in trips)),
    }


PAYMENT_CSV_COLUMNS = ["trip_id", "reservations", "total", "paid", "remaining"]


def payment_summary_csv(summary: Dict[str, Any]) -> str:
    """One row per trip from :func:`payment_summary`, followed by a TOTAL row."""

    buff = io.StringIO()
    writer = csv.DictWriter(buff, fieldnames=PAYMENT_CSV_COLUMNS)
    writer.writeheader()
    for row in summary["trips"]:
        writer.writerow({k: row.get(k, "") for k in PAYMENT_CSV_COLUMNS})
    writer.writerow(
        {
            "trip_id": "TOTAL",
            "reservations": sum(r["reservations"] for r in summary["trips"]),
            "total": summary["total"],
            "paid": summary["paid"],
            "remaining": summary["remaining"],
        }
    )
    return buff.getvalue()


def _room_line_label(line: Dict[str, Any], room_types: Dict[str, Dict[str, Any]]) -> str:
    room_type_id = str(line.get("room_type_id"))
    name = (room_types.get(room_type_id) or {}).get("name") or line.get("room_type_name") or f"ID: {room_type_id}"
    return f"{line.get('number_of_rooms')}x {name}"


async def housing_roster(db: AsyncIOMotorDatabase, *, trip_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """Trips that have confirmed reservations, with who sleeps in what."""

    confirmed = await ReservationRepository(db).all_reservations(status=CONFIRMED, trip_id=trip_id)
    by_trip: Dict[str, List[Dict[str, Any]]] = {}
    room_type_ids: set[str] = set()
    for doc in confirmed:
        by_trip.setdefault(str(doc.get("trip_id")), []).append(doc)
        for line in doc.get("requested_rooms") or []:
            room_type_ids.add(str(line.get("room_type_id")))

    if not by_trip:
        return []

    room_types = await CatalogRepository(db).room_types_by_id(room_type_ids)
    trips = await TripRepository(db).list_by_ids(by_trip.keys())

    out: List[Dict[str, Any]] = []
    for trip in trips:
        rows = by_trip.get(str(trip["_id"])) or []
        out.append(
            {
                "trip_id": str(trip["_id"]),
                "hotel_id": str(trip.get("hotel_id")),
                "start_date": trip.get("start_date"),
                "end_date": trip.get("end_date"),
                "status": trip.get("status"),
                "reservations": [
                    {
                        "reservation_id": str(r["_id"]),
                        "guest_name": r.get("guest_name"),
                        "guest_phone": r.get("guest_phone"),
                        "number_of_guests": r.get("number_of_guests"),
                        "rooms": ", ".join(_room_line_label(line, room_types) for line in r.get("requested_rooms") or []),
                    }
                    for r in rows
                ],
            }
        )
    return out
