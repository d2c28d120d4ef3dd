"""
SQLAlchemy ORM Models
Database table definitions for the RealSingles Postgres schema.

Types are kept portable (generic Uuid, JSON with a JSONB variant) so the same
models bind to Supabase Postgres in production and SQLite in tests.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Integer, Float, Boolean, TIMESTAMP, Date, JSON, Uuid,
    ForeignKey, Numeric, Text, Index, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# JSONB on Postgres, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the TIMESTAMP columns below."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """
    Account row.

    The id matches the Supabase auth user id (the JWT `sub`).
    """
    __tablename__ = 'users'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String(50), nullable=True,
                          comment='Name shown to other members')
    role = Column(String(20), nullable=False, default='user',
                  comment='user, admin or moderator')
    status = Column(String(20), nullable=False, default='active',
                    comment='active, suspended or deleted')
    points_balance = Column(Integer, nullable=False, default=0)
    referral_code = Column(String(16), unique=True, index=True, nullable=True)
    referred_by = Column(Uuid, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    stripe_customer_id = Column(String(255), nullable=True)
    subscription_tier = Column(String(20), nullable=False, default='free')
    subscription_plan_id = Column(Uuid, ForeignKey('subscription_plans.id', ondelete='SET NULL'), nullable=True)
    subscription_expires_at = Column(TIMESTAMP, nullable=True)
    last_active_at = Column(TIMESTAMP, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow, onupdate=utcnow)

    profile = relationship("Profile", back_populates="user", uselist=False,
                           cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role in ("admin", "moderator")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class Profile(Base):
    """
    Dating profile.

    One per user. Columns are filled progressively by the onboarding steps.
    """
    __tablename__ = 'profiles'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False)

    # Basics
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True, comment='male, female, non-binary, other')
    looking_for = Column(JSONType, nullable=True, comment='Genders the member wants to see')
    profile_image_url = Column(Text, nullable=True)
    verification_selfie_url = Column(Text, nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)

    # About
    bio = Column(Text, nullable=True)
    looking_for_description = Column(Text, nullable=True)

    # Physical
    height_inches = Column(Integer, nullable=True)
    body_type = Column(String(20), nullable=True)
    ethnicity = Column(JSONType, nullable=True)

    # Relationship
    marital_status = Column(String(20), nullable=True)
    dating_intentions = Column(String(30), nullable=True)

    # Location
    country = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Lifestyle
    occupation = Column(String(100), nullable=True)
    company = Column(String(100), nullable=True)
    education = Column(String(30), nullable=True)
    religion = Column(String(30), nullable=True)
    political_views = Column(String(30), nullable=True)
    exercise = Column(String(20), nullable=True)
    languages = Column(JSONType, nullable=True)
    zodiac_sign = Column(String(20), nullable=True)

    # Habits
    smoking = Column(String(20), nullable=True)
    drinking = Column(String(20), nullable=True)
    marijuana = Column(String(20), nullable=True)

    # Family
    has_kids = Column(String(30), nullable=True)
    wants_kids = Column(String(30), nullable=True)
    pets = Column(JSONType, nullable=True)

    # Personality
    interests = Column(JSONType, nullable=True)
    life_goals = Column(JSONType, nullable=True)

    # Prompts
    ideal_first_date = Column(Text, nullable=True)
    non_negotiables = Column(Text, nullable=True)
    way_to_heart = Column(Text, nullable=True)
    after_work = Column(Text, nullable=True)
    nightclub_or_home = Column(Text, nullable=True)
    pet_peeves = Column(Text, nullable=True)
    craziest_travel_story = Column(Text, nullable=True)
    weirdest_gift = Column(Text, nullable=True)
    worst_job = Column(Text, nullable=True)
    dream_job = Column(Text, nullable=True)

    # Social
    social_link_1 = Column(String(255), nullable=True)
    social_link_2 = Column(String(255), nullable=True)

    # Visibility and onboarding progress
    profile_hidden = Column(Boolean, nullable=False, default=False)
    can_start_matching = Column(Boolean, nullable=False, default=False)
    profile_completion_percentage = Column(Integer, nullable=False, default=0)
    profile_completion_step = Column(Integer, nullable=True)
    profile_completion_skipped = Column(JSONType, nullable=True,
                                        comment='Fields the member skipped')
    profile_completion_prefer_not = Column(JSONType, nullable=True,
                                           comment='Fields answered "prefer not to say"')
    onboarding_completed_at = Column(TIMESTAMP, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="profile")

    def __repr__(self):
        return f"<Profile(user_id={self.user_id})>"


class UserGallery(Base):
    """Uploaded photos. The files live in Supabase storage."""
    __tablename__ = 'user_gallery'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    media_url = Column(Text, nullable=False)
    media_type = Column(String(10), nullable=False, default='image')
    is_primary = Column(Boolean, nullable=False, default=False)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)


class UserFilters(Base):
    """Saved discovery filters, one row per user."""
    __tablename__ = 'user_filters'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False)
    min_age = Column(Integer, nullable=True)
    max_age = Column(Integer, nullable=True)
    min_height = Column(Integer, nullable=True, comment='Inches')
    max_height = Column(Integer, nullable=True, comment='Inches')
    max_distance_miles = Column(Integer, nullable=True)
    body_types = Column(JSONType, nullable=True)
    ethnicities = Column(JSONType, nullable=True)
    religions = Column(JSONType, nullable=True)
    education_levels = Column(JSONType, nullable=True)
    zodiac_signs = Column(JSONType, nullable=True)
    smoking = Column(String(20), nullable=True)
    drinking = Column(String(20), nullable=True)
    marijuana = Column(String(20), nullable=True)
    has_kids = Column(String(30), nullable=True)
    wants_kids = Column(String(30), nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow, onupdate=utcnow)


class Match(Base):
    """
    One member's action on another (like, pass or super_like).

    A mutual match is two rows liking each other.
    """
    __tablename__ = 'matches'
    __table_args__ = (
        UniqueConstraint('user_id', 'target_user_id', name='uq_matches_pair'),
        Index('idx_matches_target', 'target_user_id', 'action'),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    target_user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    action = Column(String(20), nullable=False, comment='like, pass or super_like')
    is_unmatched = Column(Boolean, nullable=False, default=False)
    unmatched_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)


class Block(Base):
    __tablename__ = 'blocks'
    __table_args__ = (UniqueConstraint('blocker_id', 'blocked_id', name='uq_blocks_pair'),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    blocker_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    blocked_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)


class Favorite(Base):
    __tablename__ = 'favorites'
    __table_args__ = (UniqueConstraint('user_id', 'favorite_user_id', name='uq_favorites_pair'),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    favorite_user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)


class Notification(Base):
    __tablename__ = 'notifications'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    type = Column(String(40), nullable=False, comment='match, message, matchmaker_introduction, ...')
    title = Column(String(200), nullable=False)
    body = Column(Text, nullable=True)
    data = Column(JSONType, nullable=True, comment='Deep-link payload')
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)


class Product(Base):
    """Rewards catalog item redeemable with points."""
    __tablename__ = 'products'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    points_cost = Column(Integer, nullable=False, default=0)
    dollar_price = Column(Numeric(10, 2), nullable=True)
    retail_value = Column(Numeric(10, 2), nullable=True)
    category = Column(String(30), nullable=False,
                      comment='gift_card, merchandise, experience or subscription')
    stock_quantity = Column(Integer, nullable=True, comment='NULL means unlimited')
    is_active = Column(Boolean, nullable=False, default=True)
    is_public = Column(Boolean, nullable=False, default=True)
    requires_shipping = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow, onupdate=utcnow)


class Order(Base):
    __tablename__ = 'orders'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Uuid, ForeignKey('products.id'), nullable=False)
    points_spent = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default='pending',
                    comment='pending, processing, shipped, completed, cancelled')
    shipping_address = Column(JSONType, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow, onupdate=utcnow)

    product = relationship("Product")


class PointTransaction(Base):
    """Ledger row. `balance_after` snapshots the balance once applied."""
    __tablename__ = 'point_transactions'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)
    transaction_type = Column(String(30), nullable=False,
                              comment='redemption, referral, admin_adjustment, ...')
    description = Column(Text, nullable=True)
    reference_id = Column(Uuid, nullable=True)
    reference_type = Column(String(30), nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)


class Conversation(Base):
    __tablename__ = 'conversations'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    type = Column(String(10), nullable=False, default='direct', comment='direct or group')
    status = Column(String(20), nullable=False, default='active', comment='active or archived')
    group_name = Column(String(100), nullable=True)
    created_by = Column(Uuid, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    participants = relationship("ConversationParticipant", back_populates="conversation",
                                cascade="all, delete-orphan")


class ConversationParticipant(Base):
    __tablename__ = 'conversation_participants'
    __table_args__ = (UniqueConstraint('conversation_id', 'user_id', name='uq_participant'),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(Uuid, ForeignKey('conversations.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    role = Column(String(20), nullable=False, default='member')
    joined_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    conversation = relationship("Conversation", back_populates="participants")


class Message(Base):
    __tablename__ = 'messages'
    __table_args__ = (Index('idx_messages_conversation', 'conversation_id', 'created_at'),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(Uuid, ForeignKey('conversations.id', ondelete='CASCADE'), nullable=False)
    sender_id = Column(Uuid, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    content = Column(Text, nullable=False)
    message_type = Column(String(20), nullable=False, default='text')
    client_message_id = Column(String(64), nullable=True, index=True)
    status = Column(String(20), nullable=False, default='sent')
    deleted_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)


class Matchmaker(Base):
    __tablename__ = 'matchmakers'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False)
    bio = Column(Text, nullable=True)
    specialties = Column(JSONType, nullable=True)
    years_experience = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default='pending',
                    comment='pending, approved, suspended, inactive')
    approved_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User")


class MatchmakerClient(Base):
    __tablename__ = 'matchmaker_clients'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    matchmaker_id = Column(Uuid, ForeignKey('matchmakers.id', ondelete='CASCADE'), nullable=False, index=True)
    client_user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    status = Column(String(20), nullable=False, default='active', comment='active, paused or ended')
    notes = Column(Text, nullable=True)
    started_at = Column(TIMESTAMP, nullable=False, default=utcnow)


class MatchmakerIntroduction(Base):
    __tablename__ = 'matchmaker_introductions'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    matchmaker_id = Column(Uuid, ForeignKey('matchmakers.id', ondelete='CASCADE'), nullable=False, index=True)
    user_a_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    user_b_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    intro_message = Column(Text, nullable=False)
    status = Column(String(30), nullable=False, default='pending')
    user_a_response_at = Column(TIMESTAMP, nullable=True)
    user_b_response_at = Column(TIMESTAMP, nullable=True)
    conversation_id = Column(Uuid, ForeignKey('conversations.id', ondelete='SET NULL'), nullable=True)
    outcome = Column(String(20), nullable=True)
    outcome_updated_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)


class Referral(Base):
    __tablename__ = 'referrals'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    referrer_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    referred_user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False)
    status = Column(String(20), nullable=False, default='pending',
                    comment='pending, completed or rewarded')
    points_awarded = Column(Integer, nullable=False, default=0)
    completed_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)


class Report(Base):
    __tablename__ = 'reports'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    reporter_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    reported_user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    reason = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default='pending',
                    comment='pending, reviewed, resolved, dismissed')
    admin_notes = Column(Text, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow, onupdate=utcnow)


class SubscriptionPlan(Base):
    __tablename__ = 'subscription_plans'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    tier = Column(String(20), nullable=False, comment='Tier granted on purchase')
    description = Column(Text, nullable=True)
    price_cents = Column(Integer, nullable=False)
    interval = Column(String(10), nullable=False, default='month')
    stripe_price_id = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)


class StripeWebhookEvent(Base):
    """Processed Stripe events; Stripe retries deliveries, so ids are unique."""
    __tablename__ = 'stripe_webhook_events'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    stripe_event_id = Column(String(255), unique=True, nullable=False)
    event_type = Column(String(100), nullable=False)
    payload = Column(JSONType, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)


class Event(Base):
    """In-person or virtual community event."""
    __tablename__ = 'events'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    event_type = Column(String(20), nullable=False, default='in_person',
                        comment='in_person or virtual')
    image_url = Column(Text, nullable=True)
    venue_name = Column(String(200), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    start_datetime = Column(TIMESTAMP, nullable=False)
    end_datetime = Column(TIMESTAMP, nullable=True)
    max_attendees = Column(Integer, nullable=True, comment='NULL means no cap')
    current_attendees = Column(Integer, nullable=False, default=0)
    is_public = Column(Boolean, nullable=False, default=True)
    status = Column(String(20), nullable=False, default='upcoming',
                    comment='upcoming, ongoing, completed or cancelled')
    created_by = Column(Uuid, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow, onupdate=utcnow)

    creator = relationship("User")


class EventAttendee(Base):
    __tablename__ = 'event_attendees'
    __table_args__ = (UniqueConstraint('event_id', 'user_id', name='uq_event_attendee'),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id = Column(Uuid, ForeignKey('events.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    status = Column(String(20), nullable=False, default='registered',
                    comment='interested, registered or attended')
    registered_at = Column(TIMESTAMP, nullable=False, default=utcnow)


class SpeedDatingSession(Base):
    """Virtual speed dating round; video rooms are hosted externally."""
    __tablename__ = 'virtual_speed_dating'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    scheduled_datetime = Column(TIMESTAMP, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=45)
    round_duration_seconds = Column(Integer, nullable=False, default=180)
    min_participants = Column(Integer, nullable=False, default=6)
    max_participants = Column(Integer, nullable=True, default=20)
    gender_preference = Column(String(20), nullable=False, default='mixed',
                               comment='mixed, men_only or women_only')
    age_min = Column(Integer, nullable=True)
    age_max = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default='scheduled',
                    comment='scheduled, in_progress, completed or cancelled')
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=utcnow, onupdate=utcnow)


class SpeedDatingRegistration(Base):
    __tablename__ = 'speed_dating_registrations'
    __table_args__ = (UniqueConstraint('session_id', 'user_id', name='uq_speed_dating_registration'),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey('virtual_speed_dating.id', ondelete='CASCADE'),
                        nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    status = Column(String(20), nullable=False, default='registered')
    registered_at = Column(TIMESTAMP, nullable=False, default=utcnow)
