"""
Middleware
Custom middleware for FastAPI application.
"""

from .logging import RequestLoggingMiddleware
from .timing import RequestTimingMiddleware

__all__ = [
    "RequestLoggingMiddleware",
    "RequestTimingMiddleware",
]
