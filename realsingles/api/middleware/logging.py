"""
Request Logging Middleware
One line per request with a request id that is echoed back to the client.
"""

import logging
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Hit by load balancers every few seconds
QUIET_PATHS = frozenset({"/health"})


def _level_for_status(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status, duration and client address.

    The request id comes from the X-Request-ID header when the caller (the
    web app or mobile client) supplies one, and is generated otherwise. It is
    stored on `request.state.request_id` for handlers and error logging.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.exception(
                f"[{request_id}] {request.method} {request.url.path} raised after {duration_ms:.0f}ms"
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        level = _level_for_status(response.status_code)
        if request.url.path in QUIET_PATHS and level == logging.INFO:
            level = logging.DEBUG

        logger.log(
            level,
            f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} "
            f"{duration_ms:.0f}ms client={_client_ip(request)}",
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
