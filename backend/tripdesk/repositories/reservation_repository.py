from __future__ import annotations

from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from tripdesk.domain.reservation_state_machine import CONFIRMED, PENDING
from tripdesk.repositories.base_repository import by_id_filter, get_collection
from tripdesk.utils import now_utc


def _list_filter(status: Optional[str], trip_id: Optional[str]) -> Dict[str, Any]:
    flt: Dict[str, Any] = {}
    if status:
        flt["status"] = status
    if trip_id:
        flt["trip_id"] = trip_id
    return flt


class ReservationRepository:
    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db
        self._col = get_collection(db, "reservations")

    async def create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        now = now_utc()
        doc: Dict[str, Any] = dict(payload)
        doc.setdefault("status", PENDING)
        doc.setdefault("deposit_amount", 0.0)
        doc["created_at"] = now
        doc["updated_at"] = now
        res = await self._col.insert_one(doc)
        doc["_id"] = res.inserted_id
        return doc

    async def get_by_id(self, reservation_id: Any) -> Optional[Dict[str, Any]]:
        return await self._col.find_one(by_id_filter(reservation_id))

    async def update_fields(
        self,
        reservation_id: Any,
        updates: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        updates = dict(updates)
        updates["updated_at"] = now_utc()
        return await self._col.find_one_and_update(
            by_id_filter(reservation_id),
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )

    async def compare_and_set_status(
        self,
        reservation_id: Any,
        *,
        expected: str,
        updates: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """Apply a status change only if the reservation is still in `expected`."""

        updates = dict(updates)
        updates["updated_at"] = now_utc()
        return await self._col.find_one_and_update(
            by_id_filter(reservation_id, {"status": expected}),
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )

    async def compare_and_set_deposit(
        self,
        reservation_id: Any,
        *,
        expected: float,
        new_amount: float,
    ) -> Optional[Dict[str, Any]]:
        return await self._col.find_one_and_update(
            by_id_filter(reservation_id, {"deposit_amount": expected}),
            {"$set": {"deposit_amount": new_amount, "updated_at": now_utc()}},
            return_document=ReturnDocument.AFTER,
        )

    async def list_reservations(
        self,
        *,
        status: Optional[str] = None,
        trip_id: Optional[str] = None,
        limit: int = 500,
    ) -> List[Dict[str, Any]]:
        cursor = self._col.find(_list_filter(status, trip_id)).sort("created_at", -1).limit(limit)
        return await cursor.to_list(limit)

    async def all_reservations(
        self,
        *,
        status: Optional[str] = None,
        trip_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Every matching reservation, newest first. Reports need the full set."""
        return await self._col.find(_list_filter(status, trip_id)).sort("created_at", -1).to_list(length=None)

    async def confirmed_for_trip(self, trip_id: str) -> List[Dict[str, Any]]:
        cursor = self._col.find({"trip_id": trip_id, "status": CONFIRMED})
        return await cursor.to_list(length=None)
