"""Service-level errors and the JSON envelope every error response uses:

    {"error": {"code": ..., "message": ..., "details": {...}, "retryable": ...}}
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    TRIP_NOT_FOUND = "trip_not_found"
    TRIP_NOT_BOOKABLE = "trip_not_bookable"
    RESERVATION_NOT_FOUND = "reservation_not_found"
    INVALID_STATUS_TRANSITION = "invalid_status_transition"
    INVALID_MODE = "invalid_mode"
    UNKNOWN_REFERENCE = "unknown_reference"
    INVALID_AMOUNT = "invalid_amount"
    PAYMENT_EXCEEDS_TOTAL = "payment_exceeds_total"
    PAYMENT_CONCURRENCY_CONFLICT = "payment_concurrency_conflict"
    STATUS_CONCURRENCY_CONFLICT = "status_concurrency_conflict"


@dataclass
class AppError(Exception):
    """Raised by services and turned into an error envelope by the app."""

    status_code: int
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    retryable: Optional[bool] = None


def not_found(code: ErrorCode, message: str, **details: Any) -> AppError:
    return AppError(404, code.value, message, details)


def error_response(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    *,
    retryable: Optional[bool] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"code": code, "message": message, "details": details or {}}
    if retryable is not None:
        body["retryable"] = retryable
    return {"error": body}
