"""
HTTP Middleware and Error Handlers
===================================

- ``RequestContextMiddleware``: assigns (or propagates) ``X-Correlation-ID``,
  times the request, reports it in ``X-Response-Time`` and logs one line per
  request.
- ``not_found_exception_handler``: unknown ticket ids become a 404.
- ``global_exception_handler``: anything else becomes a 500 with the
  correlation id, so the request can be found in the logs.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from helpdesk.config import settings
from helpdesk.core import ResourceNotFoundException
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "unknown")


class RequestContextMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        context: Dict[str, Any] = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
        }
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            logger.error("Request failed", extra={**context, "error": str(e), "response_time_ms": elapsed_ms})
            raise

        elapsed = time.perf_counter() - started
        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"
        logger.info(
            "Request completed",
            extra={**context, "status_code": response.status_code, "response_time_ms": int(elapsed * 1000)}
        )
        return response


async def not_found_exception_handler(request: Request, exc: ResourceNotFoundException) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={
            "detail": exc.message,
            "resource_type": exc.resource_type,
            "resource_id": exc.resource_id,
            "correlation_id": _correlation_id(request),
        }
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    correlation_id = _correlation_id(request)
    logger.error(
        "Unhandled exception",
        extra={
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error": str(exc),
        }
    )

    body: Dict[str, Any] = {
        "detail": "Internal server error",
        "correlation_id": correlation_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if settings.environment == "development":
        body["debug_info"] = str(exc)
    return JSONResponse(status_code=500, content=body)
