from __future__ import annotations

from typing import Optional


ACTIVE = "active"
FULL = "full"
CANCELLED = "cancelled"

ONE_WAY = "one_way"
RECOMPUTE = "recompute"


def capacity_target_status(current: str, is_full: bool, mode: str = ONE_WAY) -> Optional[str]:
    """Status a trip should move to after a capacity check, or None to stay.

    ``one_way`` only ever promotes ``active`` to ``full``. ``recompute`` also
    returns a ``full`` trip to ``active`` once rooms free up. A cancelled trip
    is never touched by capacity.
    """

    if current == ACTIVE and is_full:
        return FULL
    if mode == RECOMPUTE and current == FULL and not is_full:
        return ACTIVE
    return None
