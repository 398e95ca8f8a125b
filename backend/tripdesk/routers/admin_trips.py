from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends

from tripdesk import config
from tripdesk.auth import require_roles
from tripdesk.db import get_db
from tripdesk.errors import AppError, ErrorCode, not_found
from tripdesk.repositories.trip_repository import TripRepository
from tripdesk.schemas import ReconcileOut, RoomCapacityOut, TripCapacityOut
from tripdesk.services.capacity_reconciler import load_trip_capacity, reconcile_trip_capacity

router = APIRouter(prefix="/api/admin/trips", tags=["admin_trips"])

StaffDep = Depends(require_roles(config.STAFF_ROLES))
AdminDep = Depends(require_roles(config.ADMIN_ROLES))


@router.get("/{trip_id}/capacity", dependencies=[StaffDep], response_model=TripCapacityOut)
async def trip_capacity(trip_id: str, db=Depends(get_db)) -> TripCapacityOut:
    trip = await TripRepository(db).get_by_id(trip_id)
    if not trip:
        raise not_found(ErrorCode.TRIP_NOT_FOUND, "Trip not found", trip_id=trip_id)

    state = await load_trip_capacity(db, trip)
    return TripCapacityOut(
        trip_id=trip_id,
        status=str(trip.get("status") or ""),
        should_be_full=state.should_be_full,
        rooms=[
            RoomCapacityOut(
                room_type_id=room.room_type_id,
                room_type_name=(state.room_types.get(room.room_type_id) or {}).get("name"),
                inventory=room.inventory,
                reserved=room.reserved,
                remaining=room.remaining,
            )
            for room in state.rooms
        ],
    )


@router.post("/{trip_id}/reconcile", dependencies=[AdminDep], response_model=ReconcileOut)
async def reconcile(trip_id: str, mode: Optional[str] = None, db=Depends(get_db)) -> ReconcileOut:
    if mode is not None and mode not in {config.ONE_WAY, config.RECOMPUTE}:
        raise AppError(422, ErrorCode.INVALID_MODE.value, "Unknown reconcile mode", {"mode": mode})
    result = await reconcile_trip_capacity(db, trip_id, mode=mode)
    return ReconcileOut(**asdict(result))
