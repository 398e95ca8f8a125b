from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response

from tripdesk import config
from tripdesk.auth import require_roles
from tripdesk.db import get_db
from tripdesk.services.reports import housing_roster, payment_summary, payment_summary_csv
from tripdesk.utils import serialize_doc

router = APIRouter(prefix="/api/admin/reports", tags=["admin_reports"])

ReportsDep = Depends(require_roles(config.REPORT_ROLES))
StaffDep = Depends(require_roles(config.STAFF_ROLES))


@router.get("/payments", dependencies=[ReportsDep])
async def payments(include_cancelled: bool = False, db=Depends(get_db)):
    return await payment_summary(db, include_cancelled=include_cancelled)


@router.get("/payments.csv", dependencies=[ReportsDep])
async def payments_csv(include_cancelled: bool = False, db=Depends(get_db)):
    summary = await payment_summary(db, include_cancelled=include_cancelled)
    csv_str = payment_summary_csv(summary)
    return Response(content=csv_str, media_type="text/csv")


@router.get("/housing", dependencies=[StaffDep])
async def housing(trip_id: Optional[str] = None, db=Depends(get_db)):
    return serialize_doc(await housing_roster(db, trip_id=trip_id))
