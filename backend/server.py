from __future__ import annotations

import os
import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi import Depends, FastAPI
from starlette.middleware.cors import CORSMiddleware

from tripdesk import config
from tripdesk.db import close_mongo, connect_mongo, get_db, ping
from tripdesk.exception_handlers import register_exception_handlers
from tripdesk.indexes.reservation_indexes import ensure_reservation_indexes
from tripdesk.middleware.correlation_id import CorrelationIdMiddleware
from tripdesk.routers.admin_reports import router as admin_reports_router
from tripdesk.routers.admin_reservations import router as admin_reservations_router
from tripdesk.routers.admin_trips import router as admin_trips_router
from tripdesk.routers.trips import router as trips_router

ROOT_DIR = Path(__file__).parent

# Load .env only if exists (development fallback)
env_path = ROOT_DIR / ".env"
if env_path.exists():
    load_dotenv(env_path)

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("tripdesk")

app = FastAPI(title=config.APP_NAME, version=config.APP_VERSION)

app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get("CORS_ORIGINS", "*").split(","),
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Routers (/api prefix is on each router)
app.include_router(trips_router)
app.include_router(admin_reservations_router)
app.include_router(admin_trips_router)
app.include_router(admin_reports_router)


@app.get("/api/health")
async def health(db=Depends(get_db)) -> dict[str, Any]:
    """Health check with database ping"""
    return {"ok": await ping(db), "service": "tripdesk"}


@app.get("/health")
async def deployment_health() -> dict[str, Any]:
    return {"ok": True, "service": "tripdesk", "status": "healthy"}


@app.on_event("startup")
async def _startup() -> None:
    db = await connect_mongo()
    await ensure_reservation_indexes(db)
    logger.info(
        "Startup complete (reconcile_mode=%s, strict_pricing=%s)",
        config.CAPACITY_RECONCILE_MODE,
        config.PRICING_STRICT_REFERENCES,
    )


@app.on_event("shutdown")
async def _shutdown() -> None:
    await close_mongo()
    logger.info("Shutdown complete")
