"""
FastAPI Main Application
Entry point for the RealSingles API.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from .config import APISettings, get_settings
from .errors import setup_error_handlers
from .middleware import RequestLoggingMiddleware, RequestTimingMiddleware
from .routers import (
    admin_router,
    auth_router,
    billing_router,
    blocks_router,
    conversations_router,
    discover_router,
    events_router,
    favorites_router,
    filters_router,
    health_router,
    matches_router,
    matchmakers_router,
    notifications_router,
    profile_completion_router,
    referrals_router,
    reports_router,
    rewards_router,
    speed_dating_router,
    users_router,
)
from ..db.session import dispose_engine


logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api"

API_ROUTERS = (
    auth_router,
    users_router,
    profile_completion_router,
    discover_router,
    matches_router,
    blocks_router,
    favorites_router,
    filters_router,
    rewards_router,
    notifications_router,
    conversations_router,
    matchmakers_router,
    events_router,
    speed_dating_router,
    referrals_router,
    reports_router,
    billing_router,
    admin_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(f"Starting RealSingles API ({settings.environment}), {len(API_ROUTERS)} API routers")
    if not settings.supabase_anon_key:
        logger.warning("SUPABASE_ANON_KEY not set; auth requests to GoTrue will be rejected")
    if not settings.stripe_enabled:
        logger.warning("STRIPE_SECRET_KEY not set; billing endpoints will return 503")
    if not settings.enable_cache:
        logger.info("Redis caching disabled")

    yield

    logger.info("Shutting down RealSingles API")
    dispose_engine()


def add_middleware(app: FastAPI, settings: APISettings) -> None:
    """
    Install middleware. Starlette runs the last one added first, so request
    logging wraps timing, which wraps compression and CORS.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)


def api_areas() -> list:
    """Mounted API path prefixes, e.g. ["/api/auth", "/api/billing", ...]."""
    return sorted({f"{API_PREFIX}{router.prefix}" for router in API_ROUTERS if router.prefix})


def create_app() -> FastAPI:
    """Build the application: middleware, error envelope and routers."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=settings.description,
        version=settings.version,
        lifespan=lifespan,
    )
    add_middleware(app, settings)
    setup_error_handlers(app)

    # Health checks stay outside /api
    app.include_router(health_router)
    for router in API_ROUTERS:
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.version,
            "endpoints": {
                "health": "/health",
                "status": "/status",
                "api": API_PREFIX,
                "docs": app.docs_url,
            },
            "areas": api_areas(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "realsingles.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
