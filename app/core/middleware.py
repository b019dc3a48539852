# app/core/middleware.py
"""HTTP middleware: correlation ids and request logging"""
import uuid
import time
import logging
from starlette.requests import Request

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
MAX_CORRELATION_ID_LENGTH = 128


async def correlation_id_middleware(request: Request, call_next):
    """Reuse the caller's correlation id when sane, otherwise mint one"""
    incoming = request.headers.get(CORRELATION_HEADER)
    if incoming and len(incoming) <= MAX_CORRELATION_ID_LENGTH:
        correlation_id = incoming
    else:
        correlation_id = str(uuid.uuid4())
    request.state.correlation_id = correlation_id

    response = await call_next(request)
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


async def request_logging_middleware(request: Request, call_next):
    """Log every request with its outcome and duration"""
    start_time = time.perf_counter()
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    route = f"{request.method} {request.url.path}"

    logger.debug(
        f"Request started: {route}",
        extra={
            "correlation_id": correlation_id,
            "client": request.client.host if request.client else "unknown",
        }
    )

    try:
        response = await call_next(request)
    except Exception:
        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        logger.error(
            f"Request failed: {route} after {duration_ms}ms",
            extra={"correlation_id": correlation_id},
            exc_info=True,
        )
        raise

    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    logger.info(
        f"{route} -> {response.status_code} ({duration_ms}ms)",
        extra={
            "correlation_id": correlation_id,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
    )

    return response
