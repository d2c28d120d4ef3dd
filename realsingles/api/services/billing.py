"""
Billing Service
Stripe customer, billing portal and subscription checkout sessions.
"""

import json
import logging
from typing import Any, Dict, Optional

import stripe
from sqlalchemy.orm import Session

from ...db.models import SubscriptionPlan, User
from ..config import APISettings, get_settings
from ..errors import InvalidRequestError, ServiceUnavailableError, UpstreamServiceError

logger = logging.getLogger(__name__)


class BillingService:
    """Wraps the Stripe SDK calls the API needs."""

    def __init__(self, settings: Optional[APISettings] = None):
        self.settings = settings or get_settings()

    def _require_stripe(self) -> None:
        if not self.settings.stripe_enabled:
            raise ServiceUnavailableError("Payments are not configured")
        stripe.api_key = self.settings.stripe_secret_key

    def ensure_customer(self, db: Session, user: User) -> str:
        """Return the user's Stripe customer id, creating the customer if needed."""
        self._require_stripe()

        if user.stripe_customer_id:
            return user.stripe_customer_id

        try:
            customer = stripe.Customer.create(
                email=user.email,
                name=user.display_name or None,
                metadata={"user_id": str(user.id)},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe customer creation failed for {user.id}: {e}")
            raise UpstreamServiceError("Could not create billing customer")

        user.stripe_customer_id = customer.id
        db.commit()
        logger.info(f"Created Stripe customer {customer.id} for {user.id}")
        return customer.id

    def create_portal_session(self, db: Session, user: User, return_url: Optional[str] = None) -> str:
        """Billing portal URL for managing payment methods and subscriptions."""
        customer_id = self.ensure_customer(db, user)
        target = (
            return_url
            or self.settings.stripe_portal_return_url
            or f"{self.settings.app_url.rstrip('/')}/settings"
        )
        try:
            session = stripe.billing_portal.Session.create(customer=customer_id, return_url=target)
        except stripe.StripeError as e:
            logger.error(f"Stripe portal session failed for {user.id}: {e}")
            raise UpstreamServiceError("Could not create billing portal session")
        return session.url

    def create_checkout_session(self, db: Session, user: User, plan: SubscriptionPlan) -> Dict[str, Any]:
        """Subscription checkout for a plan with a Stripe price."""
        customer_id = self.ensure_customer(db, user)
        base = self.settings.app_url.rstrip("/")
        try:
            session = stripe.checkout.Session.create(
                mode="subscription",
                customer=customer_id,
                line_items=[{"price": plan.stripe_price_id, "quantity": 1}],
                success_url=f"{base}/subscription/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{base}/subscription",
                metadata={"user_id": str(user.id), "plan_id": str(plan.id), "tier": plan.tier},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout failed for {user.id}: {e}")
            raise UpstreamServiceError("Could not create checkout session")
        logger.info(f"Checkout session {session.id} created for {user.id} ({plan.tier})")
        return {"url": session.url, "session_id": session.id}

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify a webhook delivery against the endpoint secret and return the
        event as a plain dict.

        Raises:
            ServiceUnavailableError: webhook secret not configured
            InvalidRequestError: signature missing or invalid, or body is not JSON
        """
        if not self.settings.stripe_webhook_secret:
            raise ServiceUnavailableError("Webhooks are not configured")
        if not signature:
            raise InvalidRequestError("Missing signature")

        try:
            stripe.Webhook.construct_event(payload, signature, self.settings.stripe_webhook_secret)
        except ValueError:
            raise InvalidRequestError("Invalid payload")
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Stripe webhook signature rejected: {e}")
            raise InvalidRequestError("Invalid signature")
        return json.loads(payload)


def get_billing_service() -> BillingService:
    """FastAPI dependency; overridden in tests."""
    return BillingService()
