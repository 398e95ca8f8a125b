"""Bridges trip/reservation documents to the pure pricing and capacity code."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from tripdesk.domain.capacity import HotelInventoryItem, ReservationSnapshot
from tripdesk.domain.pricing import (
    ExtraFeeOffer,
    PriceBreakdown,
    RequestedRoom,
    ReservationPriceInput,
    RoomTypeOffer,
    SelectedExtraFee,
    UnmatchedReference,
    UnmatchedReferenceError,
    clamp_guests_for_fee,
    compute_price_breakdown,
)
from tripdesk.errors import AppError, ErrorCode
from tripdesk.utils import as_count, as_price

logger = logging.getLogger("pricing")


def room_offers_for_trip(trip: Dict[str, Any], room_types: Dict[str, Dict[str, Any]]) -> List[RoomTypeOffer]:
    """Trip room prices joined with master room type capacity.

    Offers whose room type no longer exists cannot be priced and are left out.
    """

    offers: List[RoomTypeOffer] = []
    for item in trip.get("room_offers") or []:
        room_type_id = str(item.get("room_type_id"))
        room_type = room_types.get(room_type_id)
        if room_type is None:
            continue
        offers.append(
            RoomTypeOffer(
                room_type_id=room_type_id,
                price_per_person=as_price(item.get("price_per_person")),
                capacity=as_count(room_type.get("capacity")),
            )
        )
    return offers


def offered_room_type_ids(trip: Dict[str, Any]) -> List[str]:
    """Room types the trip sells, straight from its offers.

    Capacity only needs the ids, so an offer stays constrainable even when its
    master room type has been deleted.
    """
    ids = (str(item.get("room_type_id")) for item in trip.get("room_offers") or [])
    return list(dict.fromkeys(ids))


def extra_fee_offers_for_trip(trip: Dict[str, Any]) -> List[ExtraFeeOffer]:
    return [
        ExtraFeeOffer(
            fee_id=str(fee.get("id")),
            name=fee.get("name") or "",
            price_per_person=as_price(fee.get("price_per_person")),
        )
        for fee in trip.get("extra_fees") or []
    ]


def transportation_price(trip: Dict[str, Any]) -> Optional[float]:
    raw = trip.get("transportation_price_per_person")
    if raw is None:
        return None
    return as_price(raw)


def hotel_inventory(hotel: Dict[str, Any]) -> List[HotelInventoryItem]:
    return [
        HotelInventoryItem(room_type_id=str(item.get("room_type_id")), count=as_count(item.get("count")))
        for item in hotel.get("room_inventory") or []
    ]


def requested_rooms_from(lines: Iterable[Dict[str, Any]]) -> List[RequestedRoom]:
    return [
        RequestedRoom(room_type_id=str(line.get("room_type_id")), number_of_rooms=as_count(line.get("number_of_rooms")))
        for line in lines or []
    ]


def reservation_snapshot(doc: Dict[str, Any]) -> ReservationSnapshot:
    return ReservationSnapshot(
        status=str(doc.get("status") or ""),
        requested_rooms=requested_rooms_from(doc.get("requested_rooms") or []),
    )


def build_price_input(
    trip: Dict[str, Any],
    room_types: Dict[str, Dict[str, Any]],
    payload: Dict[str, Any],
) -> ReservationPriceInput:
    guests = as_count(payload.get("number_of_guests"), 1)
    fees = [
        SelectedExtraFee(
            fee_id=str(sel.get("fee_id")),
            number_of_guests_for_fee=clamp_guests_for_fee(sel.get("number_of_guests_for_fee"), guests),
        )
        for sel in payload.get("selected_extra_fees") or []
    ]
    return ReservationPriceInput(
        requested_rooms=requested_rooms_from(payload.get("requested_rooms") or []),
        selected_extra_fees=fees,
        transportation_seats=as_count(payload.get("number_of_transportation_seats")),
        room_offers=room_offers_for_trip(trip, room_types),
        extra_fee_offers=extra_fee_offers_for_trip(trip),
        transportation_price_per_person=transportation_price(trip),
    )


def price_reservation(
    trip: Dict[str, Any],
    price_input: ReservationPriceInput,
    *,
    strict: bool = False,
) -> PriceBreakdown:
    trip_id = str(trip.get("_id"))

    def _log_unmatched(ref: UnmatchedReference) -> None:
        logger.warning("Unknown %s %s on trip %s priced at 0", ref.kind, ref.ref_id, trip_id)

    try:
        return compute_price_breakdown(price_input, strict=strict, on_unmatched=_log_unmatched)
    except UnmatchedReferenceError as exc:
        raise AppError(
            422,
            ErrorCode.UNKNOWN_REFERENCE.value,
            str(exc),
            {"kind": exc.reference.kind, "ref_id": exc.reference.ref_id, "trip_id": trip_id},
        )
