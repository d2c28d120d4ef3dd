"""
Database ORM Models
SQLAlchemy ORM models for database tables.
"""

from .models import (
    Base,
    Block,
    Conversation,
    ConversationParticipant,
    Event,
    EventAttendee,
    Favorite,
    Match,
    Matchmaker,
    MatchmakerClient,
    MatchmakerIntroduction,
    Message,
    Notification,
    Order,
    PointTransaction,
    Product,
    Profile,
    Referral,
    Report,
    SpeedDatingRegistration,
    SpeedDatingSession,
    StripeWebhookEvent,
    SubscriptionPlan,
    User,
    UserFilters,
    UserGallery,
)

__all__ = [
    "Base",
    "Block",
    "Conversation",
    "ConversationParticipant",
    "Event",
    "EventAttendee",
    "Favorite",
    "Match",
    "Matchmaker",
    "MatchmakerClient",
    "MatchmakerIntroduction",
    "Message",
    "Notification",
    "Order",
    "PointTransaction",
    "Product",
    "Profile",
    "Referral",
    "Report",
    "SpeedDatingRegistration",
    "SpeedDatingSession",
    "StripeWebhookEvent",
    "SubscriptionPlan",
    "User",
    "UserFilters",
    "UserGallery",
]
