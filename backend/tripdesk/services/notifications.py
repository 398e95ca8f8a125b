from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from tripdesk.utils import now_utc

NotificationType = Literal["new_reservation", "status_update", "general"]


async def push_notification(
    db: AsyncIOMotorDatabase,
    *,
    message: str,
    type: NotificationType,
    link: Optional[str] = None,
    reservation_id: Optional[str] = None,
    trip_id: Optional[str] = None,
    target_roles: Optional[List[str]] = None,
) -> str:
    doc: Dict[str, Any] = {
        "message": message,
        "type": type,
        "link": link,
        "reservation_id": reservation_id,
        "trip_id": trip_id,
        "target_roles": target_roles or [],
        "created_at": now_utc(),
    }
    res = await db.notifications.insert_one(doc)
    return str(res.inserted_id)
