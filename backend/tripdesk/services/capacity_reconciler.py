"""Persist capacity-driven trip status changes.

The status write is a compare-and-swap on the status that was read, so two
admins confirming against the same trip cannot both flip it; the loser just
reports ``changed=False``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from tripdesk import config
from tripdesk.domain.capacity import RoomCapacity, capacity_snapshot, should_mark_trip_full
from tripdesk.domain.trip_status import FULL, capacity_target_status
from tripdesk.repositories.reservation_repository import ReservationRepository
from tripdesk.repositories.trip_repository import CatalogRepository, TripRepository
from tripdesk.services.notifications import push_notification
from tripdesk.services.pricing_service import hotel_inventory, offered_room_type_ids, reservation_snapshot

logger = logging.getLogger("capacity")


@dataclass
class TripCapacityState:
    trip: Dict[str, Any]
    hotel: Optional[Dict[str, Any]]
    room_types: Dict[str, Dict[str, Any]]
    rooms: List[RoomCapacity] = field(default_factory=list)
    should_be_full: bool = False


@dataclass
class CapacityReconciliation:
    trip_id: str
    mode: str
    previous_status: Optional[str] = None
    status: Optional[str] = None
    should_be_full: bool = False
    changed: bool = False


async def load_trip_capacity(db: AsyncIOMotorDatabase, trip: Dict[str, Any]) -> TripCapacityState:
    """Read hotel inventory and confirmed reservations and evaluate the trip."""

    catalog = CatalogRepository(db)
    hotel = await catalog.get_hotel(trip.get("hotel_id"))
    room_type_ids = offered_room_type_ids(trip)
    room_types = await catalog.room_types_by_id(room_type_ids)

    state = TripCapacityState(trip=trip, hotel=hotel, room_types=room_types)
    if hotel is None:
        return state

    inventory = hotel_inventory(hotel)
    confirmed = await ReservationRepository(db).confirmed_for_trip(str(trip["_id"]))
    snapshots = [reservation_snapshot(doc) for doc in confirmed]

    state.rooms = capacity_snapshot(room_type_ids, inventory, snapshots)
    state.should_be_full = should_mark_trip_full(room_type_ids, inventory, snapshots)
    return state


async def reconcile_trip_capacity(
    db: AsyncIOMotorDatabase,
    trip_id: str,
    *,
    mode: Optional[str] = None,
) -> CapacityReconciliation:
    mode = mode or config.CAPACITY_RECONCILE_MODE
    result = CapacityReconciliation(trip_id=trip_id, mode=mode)

    trips = TripRepository(db)
    trip = await trips.get_by_id(trip_id)
    if not trip:
        logger.warning("Trip %s not found during capacity check", trip_id)
        return result

    current = str(trip.get("status") or "")
    result.previous_status = current
    result.status = current

    state = await load_trip_capacity(db, trip)
    if state.hotel is None:
        logger.warning("Hotel %s for trip %s not found", trip.get("hotel_id"), trip_id)
        return result

    result.should_be_full = state.should_be_full
    target = capacity_target_status(current, state.should_be_full, mode)
    if target is None:
        return result

    updated = await trips.compare_and_set_status(trip["_id"], expected=current, new_status=target)
    if updated is None:
        logger.info("Trip %s status changed concurrently, skipping %s -> %s", trip_id, current, target)
        latest = await trips.get_by_id(trip_id)
        result.status = (latest or {}).get("status")
        return result

    result.status = target
    result.changed = True
    logger.info("Trip %s status %s -> %s (mode=%s)", trip_id, current, target, mode)

    if target == FULL:
        hotel_name = (state.hotel or {}).get("name") or trip.get("hotel_id")
        await push_notification(
            db,
            message=f"Trip {trip_id} for {hotel_name} was automatically set to 'full' due to room capacity.",
            type="status_update",
            link=f"/admin/trips/{trip_id}",
            trip_id=trip_id,
            target_roles=config.NEW_RESERVATION_NOTIFY_ROLES,
        )
    return result
