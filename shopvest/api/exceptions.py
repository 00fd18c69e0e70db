"""
Global exception handlers

Every error leaves the API as {"error": {"code", "message", "retryable", "trace_id"}}.
"""

import logging
from typing import Any, Dict

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shopvest.services.exceptions import EngineError
from shopvest.utils.trace_id import get_trace_id

logger = logging.getLogger(__name__)


async def engine_exception_handler(request: Request, exc: EngineError) -> JSONResponse:
    """Map typed engine errors to their HTTP status"""
    trace_id = get_trace_id(request)
    error = exc.to_dict()
    error["trace_id"] = trace_id

    if exc.http_status >= 500:
        logger.error("Engine error", extra={"code": exc.code, "error_message": exc.message, "trace_id": trace_id})
    else:
        logger.info("Request rejected", extra={"code": exc.code, "error_message": exc.message, "trace_id": trace_id})

    return JSONResponse(status_code=exc.http_status, content=jsonable_encoder({"error": error}))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions"""
    trace_id = get_trace_id(request)

    # Keep custom codes from dependencies that already raise {"error": {...}}
    if isinstance(exc.detail, dict) and isinstance(exc.detail.get("error"), dict):
        error = dict(exc.detail["error"])
    else:
        error = {
            "code": f"HTTP_{exc.status_code}",
            "message": exc.detail if isinstance(exc.detail, str) else str(exc.detail),
        }
    error.setdefault("retryable", False)
    error.setdefault("trace_id", trace_id)

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": error},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation exceptions"""
    error_response: Dict[str, Any] = {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "retryable": False,
            "details": jsonable_encoder(exc.errors(), custom_encoder={Exception: str}),
            "trace_id": get_trace_id(request),
        }
    }
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=error_response)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without leaking details"""
    trace_id = get_trace_id(request)
    logger.exception("Unhandled exception", exc_info=exc, extra={"trace_id": trace_id})

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An internal error occurred",
                "retryable": False,
                "trace_id": trace_id,
            }
        },
    )
