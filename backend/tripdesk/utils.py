"""Small helpers shared by repositories, services and routers."""
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from bson import ObjectId


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def serialize_doc(doc: Any) -> Any:
    """Make a Mongo document JSON-ready.

    ``_id`` is exposed as ``id``; ObjectIds and dates become strings.
    """
    if isinstance(doc, dict):
        return {("id" if key == "_id" else key): serialize_doc(value) for key, value in doc.items()}
    if isinstance(doc, (list, tuple)):
        return [serialize_doc(item) for item in doc]
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, (datetime, date)):
        return doc.isoformat()
    if isinstance(doc, Decimal):
        return float(doc)
    return doc


def id_variants(value: Any) -> list[Any]:
    """Both the string and ObjectId form of an id, for matching refs stored either way."""
    out: list[Any] = [str(value)]
    if isinstance(value, ObjectId):
        out.append(value)
    elif ObjectId.is_valid(str(value)):
        out.append(ObjectId(str(value)))
    return out


def as_money(value: Any) -> float:
    """Amount rounded to cents; missing or malformed values count as 0."""
    try:
        return round(float(value), 2)
    except (TypeError, ValueError):
        return 0.0


def as_count(value: Any, default: int = 0) -> int:
    """Whole quantity (rooms, seats, guests) from a loosely typed field."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def as_price(value: Any) -> float:
    """Unit price as stored on the trip, unrounded; malformed values count as 0."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
