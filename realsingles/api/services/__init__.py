"""
API Services
Business logic services for API endpoints.
"""

from .billing import BillingService, get_billing_service
from .cache_service import CacheService, get_cache_service
from .discovery import DiscoveryService
from .matches import MatchService
from .matchmakers import MatchmakerService
from .messaging import MessagingService
from .profiles import ProfileService
from .referrals import ReferralService
from .rewards import RewardsService
from .supabase_auth import SupabaseAuthClient, get_auth_client

__all__ = [
    "BillingService",
    "get_billing_service",
    "CacheService",
    "get_cache_service",
    "DiscoveryService",
    "MatchService",
    "MatchmakerService",
    "MessagingService",
    "ProfileService",
    "ReferralService",
    "RewardsService",
    "SupabaseAuthClient",
    "get_auth_client",
]
