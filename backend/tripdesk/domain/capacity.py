"""Trip capacity from confirmed reservations vs. hotel room inventory.

A trip is full as soon as one offered room type has as many confirmed rooms
as the hotel physically owns. Room types without a hotel inventory entry are
not constrainable and never make a trip full.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from tripdesk.domain.pricing import RequestedRoom
from tripdesk.domain.reservation_state_machine import CONFIRMED


@dataclass(frozen=True)
class HotelInventoryItem:
    room_type_id: str
    count: int


@dataclass(frozen=True)
class ReservationSnapshot:
    status: str
    requested_rooms: Sequence[RequestedRoom] = ()


@dataclass(frozen=True)
class RoomCapacity:
    room_type_id: str
    inventory: Optional[int]
    reserved: int

    @property
    def remaining(self) -> Optional[int]:
        if self.inventory is None:
            return None
        return max(0, self.inventory - self.reserved)


def reserved_room_counts(reservations: Iterable[ReservationSnapshot]) -> dict[str, int]:
    """Rooms held by confirmed reservations, per room type."""
    counts: dict[str, int] = {}
    for res in reservations:
        if res.status != CONFIRMED:
            continue
        for room in res.requested_rooms:
            counts[room.room_type_id] = counts.get(room.room_type_id, 0) + room.number_of_rooms
    return counts


def _inventory_by_room(hotel_inventory: Iterable[HotelInventoryItem]) -> dict[str, int]:
    # first entry wins, mirroring a find() over the hotel's list
    out: dict[str, int] = {}
    for item in hotel_inventory:
        out.setdefault(item.room_type_id, item.count)
    return out


def should_mark_trip_full(
    offered_room_type_ids: Sequence[str],
    hotel_inventory: Sequence[HotelInventoryItem],
    reservations: Iterable[ReservationSnapshot],
) -> bool:
    reserved = reserved_room_counts(reservations)
    inventory = _inventory_by_room(hotel_inventory)

    for room_type_id in offered_room_type_ids:
        count = inventory.get(room_type_id)
        if count is None:
            continue
        if reserved.get(room_type_id, 0) >= count:
            return True
    return False


def capacity_snapshot(
    offered_room_type_ids: Sequence[str],
    hotel_inventory: Sequence[HotelInventoryItem],
    reservations: Iterable[ReservationSnapshot],
) -> list[RoomCapacity]:
    """Per offered room type: inventory, confirmed rooms and what is left."""
    reserved = reserved_room_counts(reservations)
    inventory = _inventory_by_room(hotel_inventory)
    return [
        RoomCapacity(
            room_type_id=room_type_id,
            inventory=inventory.get(room_type_id),
            reserved=reserved.get(room_type_id, 0),
        )
        for room_type_id in offered_room_type_ids
    ]
