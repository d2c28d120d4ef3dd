"""
Error Handlers
Domain exceptions and the handlers that render every failure as
`{"error": message, "details": ...}`.
"""

import logging
from typing import Any, Optional, Union

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class APIError(Exception):
    """
    Base class for errors that map to an HTTP status.

    Subclasses set `status_code` and `default_message`; services raise them
    and the handler below turns them into the error envelope.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Any] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class InvalidRequestError(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthenticationError(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class PermissionDeniedError(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class ResourceNotFoundError(APIError):
    """`ResourceNotFoundError("Product", product_id)` -> 404 "Product not found"."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, resource_id: Union[int, str, None] = None):
        details = {"resource": resource}
        if resource_id is not None:
            details["id"] = str(resource_id)
        super().__init__(f"{resource} not found", details)


class ConflictError(APIError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class UpstreamServiceError(APIError):
    """Supabase or Stripe returned an error or could not be reached."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service error"


class ServiceUnavailableError(APIError):
    """An optional integration (Stripe) is not configured."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service unavailable"


def error_body(message: str, details: Optional[Any] = None) -> dict:
    body = {"error": message}
    if details:
        body["details"] = details
    return body


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-")


def _validation_details(exc: RequestValidationError) -> list:
    return [
        {
            "loc": [str(part) for part in error.get("loc", [])],
            "msg": str(error.get("msg", "")),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]


def setup_error_handlers(app: FastAPI) -> None:
    """Register the envelope handlers on `app`."""

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        level = logging.ERROR if exc.status_code >= 500 else logging.INFO
        logger.log(
            level,
            f"[{_request_id(request)}] {request.method} {request.url.path} -> "
            f"{exc.status_code} {exc.message}",
        )
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.details))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = _validation_details(exc)
        message = details[0]["msg"] if details else "Request validation failed"
        logger.info(f"[{_request_id(request)}] {request.url.path} validation failed: {message}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(message, details))

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        logger.info(f"[{_request_id(request)}] {request.url.path} rejected: {exc}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(str(exc)))

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        # Unique constraints back up the duplicate checks done in services
        logger.warning(f"[{_request_id(request)}] {request.url.path} integrity error: {exc.orig}")
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=error_body("Resource already exists"))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"[{_request_id(request)}] Unhandled error on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("Internal server error"),
        )
