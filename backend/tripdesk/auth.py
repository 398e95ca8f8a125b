"""Bearer-token authentication for staff endpoints.

Tokens are issued elsewhere; this module only verifies them (HS256, shared
``JWT_SECRET``) and resolves the ``sub`` claim to a user document.
"""
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from motor.motor_asyncio import AsyncIOMotorDatabase

from tripdesk.db import get_db
from tripdesk.utils import serialize_doc

bearer_scheme = HTTPBearer(auto_error=False)

TOKEN_ALGORITHM = "HS256"
_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def _jwt_secret() -> str:
    return os.environ.get("JWT_SECRET", "dev_jwt_secret_change_me")


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(status_code=401, detail=message, headers=_CHALLENGE)


def create_access_token(*, subject: str, roles: list[str], minutes: int = 60 * 12) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": subject,
        "roles": list(roles),
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=minutes)).timestamp()),
    }
    return jwt.encode(claims, _jwt_secret(), algorithm=TOKEN_ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, _jwt_secret(), algorithms=[TOKEN_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid token")


async def _resolve_user(token: str, db: AsyncIOMotorDatabase) -> dict[str, Any]:
    claims = decode_token(token)
    user = await db.users.find_one({"email": claims.get("sub")})
    if user is None or user.get("is_active") is False:
        raise _unauthorized("User not found")
    return serialize_doc(user)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> dict[str, Any]:
    if credentials is None:
        raise _unauthorized("Login required")
    return await _resolve_user(credentials.credentials, db)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> Optional[dict[str, Any]]:
    """Current user when a bearer token is sent, None for anonymous guests."""
    if credentials is None:
        return None
    return await _resolve_user(credentials.credentials, db)


def has_any_role(user: dict[str, Any], roles: Iterable[str]) -> bool:
    return bool(set(user.get("roles") or []) & set(roles))


def require_roles(required: list[str]):
    async def _dep(user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
        if not has_any_role(user, required):
            raise HTTPException(status_code=403, detail={"message": "Forbidden", "required_roles": required})
        return user

    return _dep
