"""Process-wide Motor database handle, opened at startup and shared by requests."""
from __future__ import annotations

import logging
import os
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


async def connect_mongo(url: Optional[str] = None, db_name: Optional[str] = None) -> AsyncIOMotorDatabase:
    """Open the client once; later calls return the same database."""
    global _client, _database

    if _database is None:
        url = url or os.environ.get("MONGO_URL", "mongodb://localhost:27017")
        db_name = db_name or os.environ.get("DB_NAME", "tripdesk")
        _client = AsyncIOMotorClient(url, tz_aware=True)
        _database = _client[db_name]
        logger.info("MongoDB client opened for database %s", db_name)
    return _database


async def close_mongo() -> None:
    global _client, _database

    if _client is not None:
        _client.close()
        logger.info("MongoDB client closed")
    _client, _database = None, None


async def get_db() -> AsyncIOMotorDatabase:
    """FastAPI dependency for the shared database (tests override it)."""
    if _database is not None:
        return _database
    return await connect_mongo()


async def ping(db: AsyncIOMotorDatabase) -> bool:
    try:
        await db.command("ping")
    except PyMongoError:
        logger.warning("MongoDB ping failed", exc_info=True)
        return False
    return True
