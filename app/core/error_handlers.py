# app/core/error_handlers.py
"""Translate domain errors into JSON responses"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.exceptions import AccessDeniedError, BusyError, SchedulingError

logger = logging.getLogger(__name__)


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    logger.info(
        f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
        extra={"correlation_id": correlation_id, "status_code": exc.status_code},
    )

    body = {"detail": exc.message, "code": exc.code}
    headers = {}

    if isinstance(exc, AccessDeniedError):
        body["reason"] = exc.reason
    if isinstance(exc, BusyError):
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(status_code=exc.status_code, content=body, headers=headers or None)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SchedulingError, scheduling_error_handler)
