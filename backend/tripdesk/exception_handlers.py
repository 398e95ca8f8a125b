from __future__ import annotations

import logging
import math
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tripdesk.errors import AppError, error_response

logger = logging.getLogger("errors")

_HTTP_CODES = {
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}


def _details_with_cid(request: Request, details: Any = None) -> Dict[str, Any]:
    out: Dict[str, Any] = dict(details) if isinstance(details, dict) else {}
    cid = getattr(request.state, "correlation_id", None)
    if cid:
        out.setdefault("correlation_id", cid)
    return out


def _json(status_code: int, payload: Dict[str, Any], headers: Any = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload), headers=headers)


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    payload = error_response(exc.code, exc.message, _details_with_cid(request, exc.details), retryable=exc.retryable)
    return _json(exc.status_code, payload)


def _json_safe_error(err: Dict[str, Any]) -> Dict[str, Any]:
    # NaN and Infinity inputs cannot be echoed back in strict JSON
    out = jsonable_encoder(err)
    value = out.get("input")
    if isinstance(value, float) and not math.isfinite(value):
        out["input"] = str(value)
    return out


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = _details_with_cid(request, {"errors": [_json_safe_error(err) for err in exc.errors()]})
    return _json(422, error_response("validation_error", "Request validation failed", details))


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail: Any = exc.detail
    if isinstance(detail, dict):
        message = str(detail.get("message", "HTTP error"))
        details = _details_with_cid(request, {k: v for k, v in detail.items() if k != "message"})
    else:
        message = str(detail) if detail else "HTTP error"
        details = _details_with_cid(request)
    code = _HTTP_CODES.get(exc.status_code, "http_error")
    return _json(exc.status_code, error_response(code, message, details), headers=getattr(exc, "headers", None))


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _json(500, error_response("internal_error", "Unexpected server error", _details_with_cid(request)))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, handle_app_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected)
