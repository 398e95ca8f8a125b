"""Application-level configuration.

Everything is read from the environment once at import time. Boolean flags
accept "0", "false", "off", "no" (and their truthy counterparts); anything
else falls back to the default.
"""
from __future__ import annotations

import os

from tripdesk.domain.trip_status import ONE_WAY, RECOMPUTE


def _env_flag(name: str, default: bool = True) -> bool:
    """Read a boolean-like flag from environment.

    Accepted falsy values: "0", "false", "off", "no" (case-insensitive).
    Anything else (or unset) falls back to `default`.
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in {"0", "false", "off", "no"}:
        return False
    if value in {"1", "true", "on", "yes"}:
        return True
    return default


def _env_choice(name: str, choices: set[str], default: str) -> str:
    raw = (os.environ.get(name) or "").strip().lower()
    return raw if raw in choices else default


# Application constants
API_PREFIX = "/api"
APP_NAME = "Trip Desk API"
APP_VERSION = "1.0.0"
CURRENCY = os.environ.get("CURRENCY", "EGP")

# Capacity reconciliation
CAPACITY_RECONCILE_MODE: str = _env_choice(
    "CAPACITY_RECONCILE_MODE",
    {ONE_WAY, RECOMPUTE},
    ONE_WAY,
)

# Reject quotes/reservations that reference unknown room types or fees
PRICING_STRICT_REFERENCES: bool = _env_flag("PRICING_STRICT_REFERENCES", default=False)

# Roles
ROLE_SUPER_ADMIN = "super_admin"
ROLE_ADMIN = "admin"
ROLE_SALES = "sales"
ROLE_ACCOUNTANT = "accountant"
ROLE_SUPERVISOR = "supervisor"
ROLE_RECEPTIONIST = "receptionist"
ROLE_AUTHENTICATED_USER = "authenticated_user"

ADMIN_ROLES = [ROLE_SUPER_ADMIN, ROLE_ADMIN]
STAFF_ROLES = [ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_SALES, ROLE_SUPERVISOR]
PAYMENT_ROLES = [ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_SALES, ROLE_ACCOUNTANT]
REPORT_ROLES = [ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_SALES, ROLE_ACCOUNTANT]

# Who gets the "new reservation" notification
NEW_RESERVATION_NOTIFY_ROLES = [ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_SALES]
