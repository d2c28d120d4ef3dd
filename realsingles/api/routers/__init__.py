"""
API Routers
FastAPI route handlers for different endpoints.
"""

from .admin import router as admin_router
from .auth import router as auth_router
from .billing import router as billing_router
from .blocks import router as blocks_router
from .conversations import router as conversations_router
from .discover import router as discover_router
from .events import router as events_router
from .favorites import router as favorites_router
from .filters import router as filters_router
from .health import router as health_router
from .matches import router as matches_router
from .matchmakers import router as matchmakers_router
from .notifications import router as notifications_router
from .profile_completion import router as profile_completion_router
from .referrals import router as referrals_router
from .reports import router as reports_router
from .rewards import router as rewards_router
from .speed_dating import router as speed_dating_router
from .users import router as users_router

__all__ = [
    "health_router",
    "auth_router",
    "users_router",
    "profile_completion_router",
    "discover_router",
    "matches_router",
    "blocks_router",
    "favorites_router",
    "filters_router",
    "rewards_router",
    "notifications_router",
    "conversations_router",
    "matchmakers_router",
    "events_router",
    "speed_dating_router",
    "referrals_router",
    "reports_router",
    "billing_router",
    "admin_router",
]
