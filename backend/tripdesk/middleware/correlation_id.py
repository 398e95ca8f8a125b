from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("access")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach X-Correlation-Id to every request/response and log one access line."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        incoming = request.headers.get("X-Correlation-Id")
        if incoming and incoming.strip():
            cid = incoming.strip()
        else:
            cid = str(uuid.uuid4())

        request.state.correlation_id = cid
        start = time.monotonic()

        response: Response = await call_next(request)

        latency_ms = round((time.monotonic() - start) * 1000, 2)
        if not request.url.path.startswith("/health"):
            logger.info(
                "%s %s -> %s in %sms cid=%s",
                request.method,
                request.url.path,
                response.status_code,
                latency_ms,
                cid,
            )

        response.headers["X-Correlation-Id"] = cid
        return response
