"""
Pytest configuration and shared fixtures
"""

import hashlib
import hmac
import os
import time
import uuid
from datetime import date
from typing import Optional

import pytest

# Settings are read once; pin the test environment before the app is imported
os.environ.setdefault("API_ENABLE_CACHE", "false")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length-000")
os.environ.setdefault("ENVIRONMENT", "test")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from realsingles.api.config import APISettings, get_settings
from realsingles.api.dependencies import get_db
from realsingles.api.main import app
from realsingles.api.security import create_access_token
from realsingles.api.services.billing import BillingService, get_billing_service
from realsingles.api.services.cache_service import CacheService, get_cache_service, reset_cache_service
from realsingles.api.services.supabase_auth import AuthSession, get_auth_client
from realsingles.api.errors import AuthenticationError
from realsingles.db.models import Base, Profile, User, UserGallery


class FakeAuthClient:
    """In-memory stand-in for GoTrue; passwords are stored in a dict."""

    def __init__(self):
        self.accounts = {}
        self.signed_out = []

    def _session(self, user_id: str, email: str) -> AuthSession:
        return AuthSession(
            user_id=user_id,
            email=email,
            access_token=create_access_token(user_id, email),
            refresh_token=f"refresh-{user_id}",
            expires_in=3600,
        )

    async def sign_up(self, email, password, metadata=None):
        user_id = str(uuid.uuid4())
        self.accounts[email] = (user_id, password)
        return self._session(user_id, email)

    async def sign_in_with_password(self, email, password):
        account = self.accounts.get(email)
        if account is None or account[1] != password:
            raise AuthenticationError("Invalid email or password")
        return self._session(account[0], email)

    async def refresh_session(self, refresh_token):
        for email, (user_id, _) in self.accounts.items():
            if refresh_token == f"refresh-{user_id}":
                return self._session(user_id, email)
        raise AuthenticationError("Invalid refresh token")

    async def sign_out(self, access_token):
        self.signed_out.append(access_token)


class FakeBillingService(BillingService):
    """Returns canned Stripe URLs without calling Stripe."""

    def __init__(self):
        super().__init__(APISettings(STRIPE_SECRET_KEY="sk_test_fake", STRIPE_WEBHOOK_SECRET="whsec_test"))

    def ensure_customer(self, db, user):
        if not user.stripe_customer_id:
            user.stripe_customer_id = f"cus_{user.id.hex[:12]}"
            db.commit()
        return user.stripe_customer_id

    def create_portal_session(self, db, user, return_url=None):
        customer_id = self.ensure_customer(db, user)
        return f"https://billing.stripe.test/portal/{customer_id}"

    def create_checkout_session(self, db, user, plan):
        self.ensure_customer(db, user)
        return {"url": f"https://checkout.stripe.test/{plan.stripe_price_id}", "session_id": "cs_test_1"}


@pytest.fixture
def db_session():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def auth_client():
    return FakeAuthClient()


@pytest.fixture
def billing_service():
    return FakeBillingService()


@pytest.fixture
def client(db_session, auth_client, billing_service):
    """TestClient wired to the SQLite session and the fakes."""
    reset_cache_service()
    disabled_cache = CacheService(APISettings(API_ENABLE_CACHE=False))

    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_auth_client] = lambda: auth_client
    app.dependency_overrides[get_billing_service] = lambda: billing_service
    app.dependency_overrides[get_cache_service] = lambda: disabled_cache
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def make_user(db_session):
    """Factory for users with a profile that is ready for discovery."""

    def _make_user(
        email: Optional[str] = None,
        display_name: str = "Alex",
        gender: str = "female",
        looking_for=("male",),
        date_of_birth: date = date(1995, 5, 20),
        role: str = "user",
        status: str = "active",
        points_balance: int = 0,
        complete: bool = True,
        **profile_fields,
    ) -> User:
        user = User(
            email=email or f"{uuid.uuid4().hex[:10]}@example.com",
            display_name=display_name,
            role=role,
            status=status,
            points_balance=points_balance,
            referral_code=uuid.uuid4().hex[:8].upper(),
        )
        db_session.add(user)
        db_session.flush()

        fields = dict(profile_fields)
        if complete:
            fields.setdefault("profile_image_url", f"https://img.test/{user.id}.jpg")
            fields.setdefault("can_start_matching", True)
        profile = Profile(
            user_id=user.id,
            first_name=display_name,
            date_of_birth=date_of_birth if complete else None,
            gender=gender if complete else None,
            looking_for=list(looking_for) if complete else None,
            **fields,
        )
        db_session.add(profile)
        if complete:
            db_session.add(UserGallery(user_id=user.id, media_url=fields["profile_image_url"],
                                       is_primary=True))
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_headers():
    """Bearer header for a user, signed like a Supabase access token."""

    def _auth_headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(str(user.id), user.email)}"}

    return _auth_headers


@pytest.fixture
def stripe_signature():
    """Stripe-Signature header value for a webhook payload."""

    def _sign(payload: bytes, secret: str = "whsec_test") -> str:
        timestamp = int(time.time())
        signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
        digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"

    return _sign
