from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends

from tripdesk import config
from tripdesk.auth import get_optional_user
from tripdesk.db import get_db
from tripdesk.schemas import QuoteIn, QuoteOut, ReservationCreateIn, UnmatchedReferenceOut
from tripdesk.services.reservations import create_reservation, quote_trip
from tripdesk.utils import serialize_doc

router = APIRouter(prefix="/api/trips", tags=["trips"])


@router.post("/{trip_id}/quote", response_model=QuoteOut)
async def quote(trip_id: str, payload: QuoteIn, db=Depends(get_db)) -> QuoteOut:
    _, breakdown = await quote_trip(db, trip_id, payload.model_dump())
    return QuoteOut(
        trip_id=trip_id,
        currency=config.CURRENCY,
        rooms=breakdown.rooms,
        transportation=breakdown.transportation,
        extra_fees=breakdown.extra_fees,
        total=breakdown.total,
        unmatched=[UnmatchedReferenceOut(kind=u.kind, ref_id=u.ref_id) for u in breakdown.unmatched],
    )


@router.post("/{trip_id}/reservations", status_code=201)
async def reserve(
    trip_id: str,
    payload: ReservationCreateIn,
    user: Optional[dict[str, Any]] = Depends(get_optional_user),
    db=Depends(get_db),
):
    doc = await create_reservation(db, trip_id, payload.model_dump(), user=user)
    return serialize_doc(doc)
