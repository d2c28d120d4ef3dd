"""
Common response schemas.
Every successful route returns `{success, data?, msg?}`; failures are rendered
by the error handlers as `{error, details?}`.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    """Success envelope."""

    success: bool = Field(default=True)
    data: Optional[Any] = Field(None, description="Route payload")
    msg: Optional[str] = Field(None, description="Human readable message")


class ErrorResponse(BaseModel):
    """Error envelope."""

    error: str = Field(..., description="Error message")
    details: Optional[Any] = Field(None, description="Additional error details")


def ok(data: Any = None, msg: Optional[str] = None) -> dict:
    """Build a success envelope, leaving out empty keys."""
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if msg is not None:
        body["msg"] = msg
    return body


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    401: {"model": ErrorResponse, "description": "Not authenticated"},
    403: {"model": ErrorResponse, "description": "Not allowed"},
    404: {"model": ErrorResponse, "description": "Not found"},
}
