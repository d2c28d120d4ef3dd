"""
Health Check Endpoints
Endpoints for health checks and status monitoring.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import APISettings, get_settings
from ..dependencies import get_db
from ..middleware.timing import get_latency_tracker
from ..services.cache_service import CacheService, get_cache_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, str]:
    """
    Basic health check.

    Returns:
        Simple health status
    """
    return {"status": "healthy", "timestamp": _now()}


@router.get("/status", status_code=status.HTTP_200_OK)
async def status_check(
    settings: APISettings = Depends(get_settings),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
) -> Dict[str, Any]:
    """
    Detailed status check.

    Checks status of:
    - Database connection
    - Redis cache
    - Request latency

    Returns:
        Detailed status information
    """
    status_info = {
        "status": "healthy",
        "timestamp": _now(),
        "version": settings.version,
        "environment": settings.environment,
        "components": {},
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        status_info["components"]["database"] = {"status": "healthy"}
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        status_info["components"]["database"] = {"status": "unhealthy", "error": str(e)}
        status_info["status"] = "degraded"

    # Redis is optional; an unreachable cache degrades performance only
    if cache.enabled:
        redis_healthy = cache.ping()
        status_info["components"]["cache"] = {"status": "healthy" if redis_healthy else "unhealthy"}
        if not redis_healthy:
            status_info["status"] = "degraded"
    else:
        status_info["components"]["cache"] = {"status": "disabled"}
    status_info["cache"] = cache.get_statistics()

    status_info["components"]["payments"] = {
        "status": "configured" if settings.stripe_enabled else "not_configured"
    }

    latency_stats = get_latency_tracker().get_stats()
    status_info["performance"] = {
        "request_count": latency_stats["count"],
        "latency_p50_ms": round(latency_stats["p50"], 2),
        "latency_p95_ms": round(latency_stats["p95"], 2),
        "latency_p99_ms": round(latency_stats["p99"], 2),
        "slow_requests": latency_stats["slow_requests"],
        "slow_request_threshold_ms": settings.slow_request_ms,
        "by_area": {
            area: {"count": s["count"], "p95_ms": round(s["p95"], 2)}
            for area, s in get_latency_tracker().get_area_stats().items()
        },
    }

    return status_info
