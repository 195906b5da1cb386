"""Request logging middleware.

Each request runs inside its own span and request context; the site named
by the X-Site-ID header is carried on both the span and the log lines.
"""

import logging
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from subnetly.utils.context import clear_context, set_context
from subnetly.utils.telemetry import add_span_attributes, trace_operation

logger = logging.getLogger(__name__)


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def _span_attributes(request: Request, site_id: Optional[str]) -> dict:
    return {
        "http.method": request.method,
        "http.url": str(request.url),
        "http.path": request.url.path,
        "http.client_ip": _client_ip(request),
        "http.user_agent": request.headers.get("user-agent"),
        "site.id": site_id,
    }


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log, trace and tag every HTTP request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        site_id = request.headers.get("X-Site-ID")
        base = {"method": request.method, "path": request.url.path, "site_id": site_id}

        set_context(request_id=request_id, action="http.request")
        try:
            with trace_operation(
                f"{request.method} {request.url.path}",
                _span_attributes(request, site_id),
            ):
                logger.info(
                    "Request started",
                    extra={
                        **base,
                        "query_params": str(request.query_params) or None,
                        "client_ip": _client_ip(request),
                        "user_agent": request.headers.get("user-agent"),
                    },
                )
                start = time.perf_counter()
                try:
                    response = await call_next(request)
                except Exception as e:
                    logger.error(
                        "Request failed",
                        extra={
                            **base,
                            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                            "error": str(e),
                            "error_type": type(e).__name__,
                        },
                    )
                    raise

                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                add_span_attributes(
                    **{"http.status_code": response.status_code, "http.duration_ms": duration_ms}
                )
                response.headers["X-Request-ID"] = request_id
                response.headers["X-Process-Time"] = f"{duration_ms:.2f}ms"
                logger.info(
                    "Request completed",
                    extra={**base, "status_code": response.status_code, "duration_ms": duration_ms},
                )
                return response
        finally:
            clear_context()
