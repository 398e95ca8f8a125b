from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from tripdesk.repositories.base_repository import by_id_filter, get_collection
from tripdesk.utils import id_variants, now_utc


class TripRepository:
    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db
        self._col = get_collection(db, "trips")

    async def get_by_id(self, trip_id: Any) -> Optional[Dict[str, Any]]:
        return await self._col.find_one(by_id_filter(trip_id))

    async def list_by_ids(self, trip_ids: Iterable[Any]) -> List[Dict[str, Any]]:
        ids: list[Any] = []
        for tid in trip_ids:
            ids.extend(id_variants(tid))
        if not ids:
            return []
        return await self._col.find({"_id": {"$in": ids}}).sort("start_date", -1).to_list(length=None)

    async def compare_and_set_status(
        self,
        trip_id: Any,
        *,
        expected: str,
        new_status: str,
    ) -> Optional[Dict[str, Any]]:
        """Move the trip to `new_status` only if it is still `expected`.

        Returns the updated document, or None when another writer got there
        first (or the trip is gone).
        """

        return await self._col.find_one_and_update(
            by_id_filter(trip_id, {"status": expected}),
            {"$set": {"status": new_status, "updated_at": now_utc()}},
            return_document=ReturnDocument.AFTER,
        )


class CatalogRepository:
    """Read access to hotels and master room types."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db
        self._hotels = get_collection(db, "hotels")
        self._room_types = get_collection(db, "room_types")

    async def get_hotel(self, hotel_id: Any) -> Optional[Dict[str, Any]]:
        if hotel_id is None:
            return None
        return await self._hotels.find_one(by_id_filter(hotel_id))

    async def room_types_by_id(self, room_type_ids: Iterable[Any]) -> Dict[str, Dict[str, Any]]:
        ids: list[Any] = []
        for rid in room_type_ids:
            ids.extend(id_variants(rid))
        if not ids:
            return {}
        docs = await self._room_types.find({"_id": {"$in": ids}}).to_list(length=None)
        return {str(d["_id"]): d for d in docs}
