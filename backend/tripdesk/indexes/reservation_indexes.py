"""
Indexes for trips, reservations and notifications.
Capacity checks query confirmed reservations per trip on every confirmation.
"""
from __future__ import annotations

import logging

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import OperationFailure

logger = logging.getLogger(__name__)


async def ensure_reservation_indexes(db) -> None:
    """Ensure indexes used by booking, capacity and report queries.

    An index that already exists with different options is kept as is and
    logged, so startup is not blocked by a legacy definition.
    """

    async def _safe_create(collection, *args, **kwargs):
        try:
            await collection.create_index(*args, **kwargs)
        except OperationFailure as e:
            msg = str(e).lower()
            if (
                "indexoptionsconflict" in msg
                or "indexkeyspecsconflict" in msg
                or "already exists" in msg
            ):
                logger.warning(
                    "[reservation_indexes] Keeping legacy index for %s (name=%s): %s",
                    collection.name,
                    kwargs.get("name"),
                    msg,
                )
                return
            raise

    await _safe_create(
        db.reservations,
        [("trip_id", ASCENDING), ("status", ASCENDING)],
        name="reservations_by_trip_status",
    )
    await _safe_create(
        db.reservations,
        [("status", ASCENDING), ("created_at", DESCENDING)],
        name="reservations_list",
    )
    await _safe_create(
        db.trips,
        [("status", ASCENDING), ("start_date", DESCENDING)],
        name="trips_by_status",
    )
    await _safe_create(
        db.notifications,
        [("created_at", DESCENDING)],
        name="notifications_recent",
    )
    await _safe_create(db.users, [("email", ASCENDING)], unique=True, name="uniq_user_email")
