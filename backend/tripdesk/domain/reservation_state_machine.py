from __future__ import annotations

from typing import Literal


ReservationStatus = Literal["pending", "contacted", "confirmed", "cancelled"]

PENDING = "pending"
CONTACTED = "contacted"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"


_ALLOWED_TRANSITIONS = {
    PENDING: {CONTACTED, CONFIRMED, CANCELLED},
    CONTACTED: {CONFIRMED, CANCELLED},
    CONFIRMED: {CANCELLED},
    CANCELLED: set(),
}


class ReservationStatusTransitionError(ValueError):
    """Raised when an invalid reservation status transition is requested."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Invalid reservation status transition: {current} -> {target}")
        self.current = current
        self.target = target


def validate_transition(current: str, target: str) -> None:
    """Validate that a transition from current -> target is allowed.

    Re-applying the current status is accepted so notes and deposits can be
    edited without moving the reservation. Raises
    ReservationStatusTransitionError otherwise.
    """

    if current == target and current in _ALLOWED_TRANSITIONS:
        return
    allowed = _ALLOWED_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise ReservationStatusTransitionError(current=current, target=target)


def enters_confirmed(current: str, target: str) -> bool:
    return target == CONFIRMED and current != CONFIRMED


def leaves_confirmed(current: str, target: str) -> bool:
    return current == CONFIRMED and target != CONFIRMED
