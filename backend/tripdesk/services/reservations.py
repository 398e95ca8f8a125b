from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from tripdesk import config
from tripdesk.domain.pricing import PriceBreakdown, ReservationPriceInput, drop_empty_rooms
from tripdesk.domain.reservation_state_machine import (
    CONFIRMED,
    CONTACTED,
    ReservationStatusTransitionError,
    enters_confirmed,
    leaves_confirmed,
    validate_transition,
)
from tripdesk.domain.trip_status import ACTIVE, RECOMPUTE
from tripdesk.errors import AppError, ErrorCode, not_found
from tripdesk.repositories.reservation_repository import ReservationRepository
from tripdesk.repositories.trip_repository import CatalogRepository, TripRepository
from tripdesk.services.capacity_reconciler import CapacityReconciliation, reconcile_trip_capacity
from tripdesk.services.notifications import push_notification
from tripdesk.services.pricing_service import build_price_input, offered_room_type_ids, price_reservation
from tripdesk.utils import as_money, now_utc

logger = logging.getLogger(__name__)


async def _load_trip_for_pricing(
    db: AsyncIOMotorDatabase,
    trip_id: str,
) -> tuple[Dict[str, Any], Dict[str, Dict[str, Any]]]:
    trip = await TripRepository(db).get_by_id(trip_id)
    if not trip:
        raise not_found(ErrorCode.TRIP_NOT_FOUND, "Trip not found", trip_id=trip_id)

    room_type_ids = offered_room_type_ids(trip)
    room_types = await CatalogRepository(db).room_types_by_id(room_type_ids)
    return trip, room_types


async def quote_trip(
    db: AsyncIOMotorDatabase,
    trip_id: str,
    payload: Dict[str, Any],
) -> tuple[ReservationPriceInput, PriceBreakdown]:
    trip, room_types = await _load_trip_for_pricing(db, trip_id)
    price_input = build_price_input(trip, room_types, payload)
    breakdown = price_reservation(trip, price_input, strict=config.PRICING_STRICT_REFERENCES)
    return price_input, breakdown


async def create_reservation(
    db: AsyncIOMotorDatabase,
    trip_id: str,
    payload: Dict[str, Any],
    user: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    trip, room_types = await _load_trip_for_pricing(db, trip_id)
    if trip.get("status") != ACTIVE:
        raise AppError(
            409,
            ErrorCode.TRIP_NOT_BOOKABLE.value,
            "Trip is not open for reservations",
            {"trip_id": trip_id, "status": trip.get("status")},
        )

    price_input = build_price_input(trip, room_types, payload)
    breakdown = price_reservation(trip, price_input, strict=config.PRICING_STRICT_REFERENCES)

    requested_rooms: List[Dict[str, Any]] = []
    for room in drop_empty_rooms(price_input.requested_rooms):
        room_type = room_types.get(room.room_type_id) or {}
        requested_rooms.append(
            {
                "room_type_id": room.room_type_id,
                "room_type_name": room_type.get("name"),
                "number_of_rooms": room.number_of_rooms,
            }
        )

    # Fee name and price are frozen on the reservation at booking time
    fees_by_id = {f.fee_id: f for f in price_input.extra_fee_offers}
    selected_fees: List[Dict[str, Any]] = []
    for sel in price_input.selected_extra_fees:
        fee = fees_by_id.get(sel.fee_id)
        if fee is None:
            continue
        selected_fees.append(
            {
                "id": fee.fee_id,
                "name": fee.name,
                "price_per_person": fee.price_per_person,
                "number_of_guests_for_fee": sel.number_of_guests_for_fee,
            }
        )

    doc = await ReservationRepository(db).create(
        {
            "trip_id": str(trip["_id"]),
            "hotel_id": str(trip.get("hotel_id")) if trip.get("hotel_id") is not None else None,
            "destination_id": str(trip.get("destination_id")) if trip.get("destination_id") is not None else None,
            "user_id": (user or {}).get("id"),
            "guest_name": payload.get("guest_name"),
            "guest_phone": payload.get("guest_phone"),
            "guest_email": payload.get("guest_email") or None,
            "number_of_guests": int(payload.get("number_of_guests") or 1),
            "requested_rooms": requested_rooms,
            "selected_extra_fees": selected_fees,
            "number_of_transportation_seats": int(price_input.transportation_seats or 0),
            "notes": payload.get("notes"),
            "total_calculated_price": breakdown.total,
            "deposit_amount": 0.0,
        }
    )

    reservation_id = str(doc["_id"])
    await push_notification(
        db,
        message=f"New reservation from {doc.get('guest_name')} for trip {doc['trip_id']}.",
        type="new_reservation",
        link=f"/admin/reservations/{reservation_id}",
        reservation_id=reservation_id,
        trip_id=doc["trip_id"],
        target_roles=config.NEW_RESERVATION_NOTIFY_ROLES,
    )
    logger.info("Reservation %s created for trip %s (total=%.2f)", reservation_id, doc["trip_id"], breakdown.total)
    return doc


async def get_reservation_or_404(db: AsyncIOMotorDatabase, reservation_id: str) -> Dict[str, Any]:
    doc = await ReservationRepository(db).get_by_id(reservation_id)
    if not doc:
        raise not_found(ErrorCode.RESERVATION_NOT_FOUND, "Reservation not found", reservation_id=reservation_id)
    return doc


def remaining_amount(doc: Dict[str, Any]) -> float:
    total = as_money(doc.get("total_calculated_price"))
    paid = as_money(doc.get("deposit_amount"))
    return max(0.0, round(total - paid, 2))


def _actor_name(actor: Dict[str, Any]) -> str:
    return actor.get("name") or actor.get("email") or "System"


async def update_reservation_status(
    db: AsyncIOMotorDatabase,
    reservation_id: str,
    payload: Dict[str, Any],
    actor: Dict[str, Any],
    *,
    mode: Optional[str] = None,
) -> tuple[Dict[str, Any], Optional[CapacityReconciliation]]:
    """Move a reservation to a new status and reconcile trip capacity.

    Returns the updated reservation and the reconciliation outcome (None when
    the change does not call for a capacity check).
    """

    mode = mode or config.CAPACITY_RECONCILE_MODE
    doc = await get_reservation_or_404(db, reservation_id)
    current = str(doc.get("status") or "")
    target = payload["status"]

    try:
        validate_transition(current, target)
    except ReservationStatusTransitionError as exc:
        raise AppError(
            422,
            ErrorCode.INVALID_STATUS_TRANSITION.value,
            str(exc),
            {"current": exc.current, "target": exc.target},
        )

    updates: Dict[str, Any] = {"status": target}
    if "notes" in payload and payload.get("notes") is not None:
        updates["notes"] = payload["notes"]

    now = now_utc()
    if target == CONFIRMED:
        deposit = payload.get("deposit_amount")
        if deposit is not None:
            _check_deposit_bounds(doc, as_money(deposit))
            updates["deposit_amount"] = as_money(deposit)
        if current != CONFIRMED:
            updates["confirmed_by"] = actor.get("id")
            updates["confirmed_by_name"] = _actor_name(actor)
            updates["confirmed_at"] = now
    elif current == CONFIRMED:
        updates["confirmed_by"] = None
        updates["confirmed_by_name"] = None
        updates["confirmed_at"] = None

    if target == CONTACTED and current != CONTACTED:
        updates["contacted_by"] = actor.get("id")
        updates["contacted_by_name"] = _actor_name(actor)
        updates["contacted_at"] = now
    elif current == CONTACTED and target != CONTACTED:
        updates["contacted_by"] = None
        updates["contacted_by_name"] = None
        updates["contacted_at"] = None

    updated = await ReservationRepository(db).compare_and_set_status(doc["_id"], expected=current, updates=updates)
    if updated is None:
        # Someone else moved or removed the reservation since we validated
        await get_reservation_or_404(db, reservation_id)
        raise AppError(
            409,
            ErrorCode.STATUS_CONCURRENCY_CONFLICT.value,
            "Reservation status changed concurrently",
            {"reservation_id": reservation_id, "expected": current, "target": target},
            retryable=True,
        )

    logger.info("Reservation %s status %s -> %s by %s", reservation_id, current, target, actor.get("email"))

    needs_check = enters_confirmed(current, target) or (
        mode == RECOMPUTE and leaves_confirmed(current, target)
    )
    reconciliation: Optional[CapacityReconciliation] = None
    trip_id = updated.get("trip_id")
    if needs_check and trip_id:
        try:
            reconciliation = await reconcile_trip_capacity(db, str(trip_id), mode=mode)
        except Exception:
            # The status change is already stored; capacity can be re-run from the admin endpoint
            logger.exception("Capacity check failed for trip %s", trip_id)

    return updated, reconciliation


def _check_finite(amount: float) -> None:
    if not math.isfinite(amount):
        raise AppError(422, ErrorCode.INVALID_AMOUNT.value, "Amount must be a finite number")


def _check_deposit_bounds(doc: Dict[str, Any], amount: float) -> None:
    total = as_money(doc.get("total_calculated_price"))
    _check_finite(amount)
    if amount < 0:
        raise AppError(422, ErrorCode.INVALID_AMOUNT.value, "Deposit must be non-negative", {"amount": amount})
    if amount > total:
        raise AppError(
            422,
            ErrorCode.PAYMENT_EXCEEDS_TOTAL.value,
            "Paid amount would exceed the reservation total",
            {"amount": amount, "total": total},
        )


async def record_payment(db: AsyncIOMotorDatabase, reservation_id: str, amount: float) -> Dict[str, Any]:
    """Add a payment to the reservation deposit (compare-and-swap with 1 retry)."""

    _check_finite(amount)
    if amount <= 0:
        raise AppError(422, ErrorCode.INVALID_AMOUNT.value, "Payment amount must be positive", {"amount": amount})

    repo = ReservationRepository(db)
    for _attempt in range(2):
        doc = await get_reservation_or_404(db, reservation_id)
        current = doc.get("deposit_amount")
        new_amount = round(as_money(current) + amount, 2)
        _check_deposit_bounds(doc, new_amount)

        updated = await repo.compare_and_set_deposit(doc["_id"], expected=current, new_amount=new_amount)
        if updated is not None:
            logger.info("Payment of %.2f recorded for reservation %s", amount, reservation_id)
            return updated

    raise AppError(
        409,
        ErrorCode.PAYMENT_CONCURRENCY_CONFLICT.value,
        "Concurrent modification detected for reservation payment",
        {"reservation_id": reservation_id},
        retryable=True,
    )


async def set_deposit(db: AsyncIOMotorDatabase, reservation_id: str, amount: float) -> Dict[str, Any]:
    doc = await get_reservation_or_404(db, reservation_id)
    _check_deposit_bounds(doc, amount)
    updated = await ReservationRepository(db).update_fields(doc["_id"], {"deposit_amount": round(amount, 2)})
    if updated is None:
        raise not_found(ErrorCode.RESERVATION_NOT_FOUND, "Reservation not found", reservation_id=reservation_id)
    return updated
