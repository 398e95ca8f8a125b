from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from tripdesk.domain.reservation_state_machine import ReservationStatus


class RequestedRoomIn(BaseModel):
    room_type_id: str
    number_of_rooms: int = Field(default=0, ge=0)


class SelectedExtraFeeIn(BaseModel):
    fee_id: str
    number_of_guests_for_fee: int = Field(default=1, ge=1)


class QuoteIn(BaseModel):
    number_of_guests: int = Field(default=1, ge=1)
    requested_rooms: list[RequestedRoomIn] = Field(default_factory=list)
    selected_extra_fees: list[SelectedExtraFeeIn] = Field(default_factory=list)
    number_of_transportation_seats: int = Field(default=0, ge=0)


class UnmatchedReferenceOut(BaseModel):
    kind: str
    ref_id: str


class QuoteOut(BaseModel):
    trip_id: str
    currency: str
    rooms: float
    transportation: float
    extra_fees: float
    total: float
    unmatched: list[UnmatchedReferenceOut] = Field(default_factory=list)


class ReservationCreateIn(QuoteIn):
    guest_name: str = Field(min_length=2)
    guest_phone: str = Field(min_length=7)
    guest_email: Optional[str] = None
    notes: Optional[str] = None


class ReservationStatusUpdateIn(BaseModel):
    status: ReservationStatus
    notes: Optional[str] = None
    deposit_amount: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


class PaymentIn(BaseModel):
    amount: float = Field(allow_inf_nan=False)


class DepositIn(BaseModel):
    deposit_amount: float = Field(allow_inf_nan=False)


class RoomCapacityOut(BaseModel):
    room_type_id: str
    room_type_name: Optional[str] = None
    inventory: Optional[int] = None
    reserved: int
    remaining: Optional[int] = None


class TripCapacityOut(BaseModel):
    trip_id: str
    status: str
    should_be_full: bool
    rooms: list[RoomCapacityOut]


class ReconcileOut(BaseModel):
    trip_id: str
    mode: str
    previous_status: Optional[str] = None
    status: Optional[str] = None
    should_be_full: bool
    changed: bool
