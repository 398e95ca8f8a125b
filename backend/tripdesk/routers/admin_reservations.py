from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from tripdesk import config
from tripdesk.auth import require_roles
from tripdesk.db import get_db
from tripdesk.repositories.reservation_repository import ReservationRepository
from tripdesk.schemas import DepositIn, PaymentIn, ReservationStatusUpdateIn
from tripdesk.services.reservations import (
    get_reservation_or_404,
    record_payment,
    remaining_amount,
    set_deposit,
    update_reservation_status,
)
from tripdesk.utils import serialize_doc

router = APIRouter(prefix="/api/admin/reservations", tags=["admin_reservations"])

StaffDep = Depends(require_roles(config.STAFF_ROLES))
PaymentsDep = Depends(require_roles(config.PAYMENT_ROLES))


def _reservation_out(doc: dict) -> dict:
    out = serialize_doc(doc)
    out["remaining_amount"] = remaining_amount(doc)
    return out


@router.get("", dependencies=[StaffDep])
async def list_reservations(status: Optional[str] = None, trip_id: Optional[str] = None, db=Depends(get_db)):
    docs = await ReservationRepository(db).list_reservations(status=status, trip_id=trip_id)
    return [_reservation_out(d) for d in docs]


@router.get("/{reservation_id}", dependencies=[StaffDep])
async def get_reservation(reservation_id: str, db=Depends(get_db)):
    doc = await get_reservation_or_404(db, reservation_id)
    return _reservation_out(doc)


@router.patch("/{reservation_id}/status")
async def change_status(
    reservation_id: str,
    payload: ReservationStatusUpdateIn,
    user=StaffDep,
    db=Depends(get_db),
):
    doc, reconciliation = await update_reservation_status(
        db,
        reservation_id,
        payload.model_dump(exclude_unset=True),
        actor=user,
    )
    out = _reservation_out(doc)
    out["trip_capacity"] = (
        {
            "mode": reconciliation.mode,
            "should_be_full": reconciliation.should_be_full,
            "changed": reconciliation.changed,
            "status": reconciliation.status,
        }
        if reconciliation is not None
        else None
    )
    return out


@router.post("/{reservation_id}/payments", dependencies=[PaymentsDep])
async def add_payment(reservation_id: str, payload: PaymentIn, db=Depends(get_db)):
    doc = await record_payment(db, reservation_id, payload.amount)
    return _reservation_out(doc)


@router.put("/{reservation_id}/deposit", dependencies=[PaymentsDep])
async def edit_deposit(reservation_id: str, payload: DepositIn, db=Depends(get_db)):
    doc = await set_deposit(db, reservation_id, payload.deposit_amount)
    return _reservation_out(doc)
