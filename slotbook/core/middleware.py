# slotbook/core/middleware.py
"""Request middleware: correlation ids and per-business request logging"""
import re
import uuid
import time
import logging
from typing import Optional

from starlette.requests import Request

from slotbook.config.settings import get_settings

logger = logging.getLogger(__name__)

BUSINESS_PATH = re.compile(r"/businesses/([0-9a-fA-F-]{36})(?:/|$)")


def business_id_from_path(path: str) -> Optional[str]:
    """Tenant id from an ``/api/v1/businesses/{business_id}/...`` path"""
    match = BUSINESS_PATH.search(path)
    return match.group(1).lower() if match else None


async def correlation_id_middleware(request: Request, call_next):
    """Add correlation ID to all requests for tracing"""
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    request.state.correlation_id = correlation_id

    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


async def request_logging_middleware(request: Request, call_next):
    """Log each request with its business, status and duration.

    Requests slower than SLOW_REQUEST_MS are logged as warnings.
    """
    start_time = time.time()
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    business_id = business_id_from_path(request.url.path)
    request.state.business_id = business_id

    logger.debug(
        f"Request started: {request.method} {request.url.path}",
        extra={
            "correlation_id": correlation_id,
            "business_id": business_id,
            "method": request.method,
            "client": request.client.host if request.client else "unknown",
        }
    )

    response = await call_next(request)

    duration_ms = round((time.time() - start_time) * 1000, 2)
    slow = duration_ms > get_settings().SLOW_REQUEST_MS
    logger.log(
        logging.WARNING if slow else logging.INFO,
        f"{request.method} {request.url.path} -> {response.status_code} in {duration_ms}ms"
        f"{' (slow)' if slow else ''} business={business_id or '-'}",
        extra={
            "correlation_id": correlation_id,
            "business_id": business_id,
            "method": request.method,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
    )

    return response
