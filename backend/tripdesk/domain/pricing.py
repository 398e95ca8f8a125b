"""Reservation price estimate.

Rooms are charged per person at full occupancy: a room line costs
``number_of_rooms * price_per_person * capacity``. Transportation is charged
per seat and extra fees per guest they apply to. Unknown room types or fee ids
contribute nothing unless the caller asks for strict mode.

Everything here is pure and safe to recompute on every input change.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Literal, Optional, Sequence


ReferenceKind = Literal["room_type", "extra_fee"]


@dataclass(frozen=True)
class RoomTypeOffer:
    room_type_id: str
    price_per_person: float
    capacity: int


@dataclass(frozen=True)
class RequestedRoom:
    room_type_id: str
    number_of_rooms: int


@dataclass(frozen=True)
class ExtraFeeOffer:
    fee_id: str
    name: str
    price_per_person: float


@dataclass(frozen=True)
class SelectedExtraFee:
    fee_id: str
    number_of_guests_for_fee: int


@dataclass(frozen=True)
class ReservationPriceInput:
    requested_rooms: Sequence[RequestedRoom] = ()
    selected_extra_fees: Sequence[SelectedExtraFee] = ()
    transportation_seats: Optional[int] = 0
    room_offers: Sequence[RoomTypeOffer] = ()
    extra_fee_offers: Sequence[ExtraFeeOffer] = ()
    # None: the trip sells no transportation
    transportation_price_per_person: Optional[float] = None


@dataclass(frozen=True)
class UnmatchedReference:
    kind: ReferenceKind
    ref_id: str


@dataclass
class PriceBreakdown:
    rooms: float
    transportation: float
    extra_fees: float
    unmatched: list[UnmatchedReference] = field(default_factory=list)

    @property
    def total(self) -> float:
        return self.rooms + self.transportation + self.extra_fees


class UnmatchedReferenceError(ValueError):
    """Raised in strict mode when a selection points at an unknown offer."""

    def __init__(self, reference: UnmatchedReference) -> None:
        super().__init__(f"Unknown {reference.kind} reference: {reference.ref_id}")
        self.reference = reference


UnmatchedHook = Callable[[UnmatchedReference], None]


def clamp_guests_for_fee(value: Optional[int], number_of_guests: int) -> int:
    """Clamp a fee's guest count into [1, number_of_guests]."""
    upper = max(1, int(number_of_guests or 1))
    return max(1, min(int(value or 1), upper))


def drop_empty_rooms(rooms: Iterable[RequestedRoom]) -> list[RequestedRoom]:
    return [r for r in rooms if r.number_of_rooms > 0]


def compute_price_breakdown(
    price_input: ReservationPriceInput,
    *,
    strict: bool = False,
    on_unmatched: Optional[UnmatchedHook] = None,
) -> PriceBreakdown:
    """Compute the room, transportation and extra-fee subtotals.

    Unknown references are collected on ``PriceBreakdown.unmatched`` and
    passed to ``on_unmatched``. With ``strict=True`` the first one raises
    :class:`UnmatchedReferenceError` instead.
    """

    unmatched: list[UnmatchedReference] = []

    def _miss(kind: ReferenceKind, ref_id: str) -> None:
        ref = UnmatchedReference(kind=kind, ref_id=ref_id)
        if strict:
            raise UnmatchedReferenceError(ref)
        unmatched.append(ref)
        if on_unmatched is not None:
            on_unmatched(ref)

    offers_by_room = {o.room_type_id: o for o in price_input.room_offers}
    rooms_total = 0.0
    for room in price_input.requested_rooms:
        if room.number_of_rooms <= 0:
            continue
        offer = offers_by_room.get(room.room_type_id)
        if offer is None:
            _miss("room_type", room.room_type_id)
            continue
        rooms_total += room.number_of_rooms * offer.price_per_person * offer.capacity

    seats = price_input.transportation_seats or 0
    transport_price = price_input.transportation_price_per_person
    transportation_total = seats * transport_price if (seats > 0 and transport_price) else 0.0

    offers_by_fee = {o.fee_id: o for o in price_input.extra_fee_offers}
    fees_total = 0.0
    for selected in price_input.selected_extra_fees:
        fee = offers_by_fee.get(selected.fee_id)
        if fee is None:
            _miss("extra_fee", selected.fee_id)
            continue
        fees_total += fee.price_per_person * (selected.number_of_guests_for_fee or 0)

    return PriceBreakdown(
        rooms=rooms_total,
        transportation=transportation_total,
        extra_fees=fees_total,
        unmatched=unmatched,
    )


def compute_estimated_total(
    price_input: ReservationPriceInput,
    *,
    strict: bool = False,
    on_unmatched: Optional[UnmatchedHook] = None,
) -> float:
    return compute_price_breakdown(price_input, strict=strict, on_unmatched=on_unmatched).total
