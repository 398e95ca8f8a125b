from __future__ import annotations

from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase

from tripdesk.utils import id_variants


def get_collection(db: AsyncIOMotorDatabase, name: str) -> AsyncIOMotorCollection:
    """Return a Motor collection from the given database.

    This is the only place where services should obtain collections.
    """

    return db[name]


def by_id_filter(doc_id: Any, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Filter matching `_id` whether it was stored as ObjectId or plain string."""

    f: Dict[str, Any] = {"_id": {"$in": id_variants(doc_id)}}
    if extra:
        f.update(extra)
    return f
