"""
Stripe webhook processing.

Deliveries are verified by `BillingService.construct_event` before they reach
this module. Each event id is recorded in stripe_webhook_events so Stripe's
retries are acknowledged without being applied twice.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ...db.models import StripeWebhookEvent, SubscriptionPlan, User
from ..errors import InvalidRequestError
from .notifications import create_notification

logger = logging.getLogger(__name__)

# Stripe keeps these subscriptions billable
LIVE_SUBSCRIPTION_STATUSES = ("active", "trialing", "past_due")
FREE_TIER = "free"


def from_unix(timestamp: Optional[int]) -> Optional[datetime]:
    if not timestamp:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).replace(tzinfo=None)


def _as_uuid(value: Optional[str]) -> Optional[UUID]:
    try:
        return UUID(str(value)) if value else None
    except ValueError:
        return None


def _first_item(subscription: Dict[str, Any]) -> Dict[str, Any]:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


class StripeWebhookHandler:
    """Applies subscription changes from Stripe events to member accounts."""

    def __init__(self, db: Session):
        self.db = db
        self.handlers = {
            "checkout.session.completed": self.checkout_completed,
            "customer.subscription.created": self.subscription_changed,
            "customer.subscription.updated": self.subscription_changed,
            "customer.subscription.deleted": self.subscription_deleted,
        }

    def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        event_id = event.get("id")
        event_type = event.get("type")
        if not event_id or not event_type:
            raise InvalidRequestError("Invalid payload")

        seen = (
            self.db.query(StripeWebhookEvent.id)
            .filter(StripeWebhookEvent.stripe_event_id == event_id)
            .first()
        )
        if seen is not None:
            logger.info(f"Duplicate Stripe event {event_id} ({event_type})")
            return {"received": True, "duplicate": True}

        obj = (event.get("data") or {}).get("object") or {}
        self.db.add(StripeWebhookEvent(stripe_event_id=event_id, event_type=event_type, payload=obj))

        handler = self.handlers.get(event_type)
        if handler is None:
            logger.info(f"Stripe event {event_id} ({event_type}) recorded without action")
        else:
            handler(obj)

        self.db.commit()
        return {"received": True}

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _user_for_customer(self, customer_id: Optional[str]) -> Optional[User]:
        if not customer_id:
            return None
        return self.db.query(User).filter(User.stripe_customer_id == customer_id).first()

    def _plan_for_price(self, price_id: Optional[str]) -> Optional[SubscriptionPlan]:
        if not price_id:
            return None
        return self.db.query(SubscriptionPlan).filter(SubscriptionPlan.stripe_price_id == price_id).first()

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def checkout_completed(self, session: Dict[str, Any]) -> None:
        if session.get("mode") != "subscription":
            logger.info(f"Checkout {session.get('id')} is not a subscription, ignoring")
            return

        metadata = session.get("metadata") or {}
        user_id = _as_uuid(metadata.get("user_id") or session.get("client_reference_id"))
        user = self._user_for_customer(session.get("customer"))
        if user is None and user_id:
            user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            logger.error(f"No member for checkout {session.get('id')}")
            return

        plan = None
        plan_id = _as_uuid(metadata.get("plan_id"))
        if plan_id:
            plan = self.db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()
        if plan is None:
            logger.error(f"No plan for checkout {session.get('id')}")
            return

        if not user.stripe_customer_id and session.get("customer"):
            user.stripe_customer_id = session["customer"]
        self._set_tier(user, plan)
        create_notification(
            self.db,
            user.id,
            "system",
            "Subscription Active",
            f"Welcome to {plan.name}!",
            {"plan_id": str(plan.id), "tier": plan.tier},
        )

    def subscription_changed(self, subscription: Dict[str, Any]) -> None:
        user = self._user_for_customer(subscription.get("customer"))
        if user is None:
            logger.error(f"No member for Stripe customer {subscription.get('customer')}")
            return

        item = _first_item(subscription)
        price_id = (item.get("price") or {}).get("id")
        plan = self._plan_for_price(price_id)
        if plan is None:
            logger.error(f"No plan for Stripe price {price_id}")
            return

        status = subscription.get("status")
        if status not in LIVE_SUBSCRIPTION_STATUSES:
            self._downgrade(user, f"subscription {status}")
            return

        period_end = subscription.get("current_period_end") or item.get("current_period_end")
        self._set_tier(user, plan, from_unix(period_end))

    def subscription_deleted(self, subscription: Dict[str, Any]) -> None:
        user = self._user_for_customer(subscription.get("customer"))
        if user is None:
            logger.warning(f"Subscription {subscription.get('id')} deleted for unknown customer")
            return
        self._downgrade(user, "subscription deleted")

    def _set_tier(self, user: User, plan: SubscriptionPlan, expires_at: Optional[datetime] = None) -> None:
        user.subscription_tier = plan.tier
        user.subscription_plan_id = plan.id
        if expires_at is not None:
            user.subscription_expires_at = expires_at
        logger.info(f"Member {user.id} now on {plan.tier} ({plan.name})")

    def _downgrade(self, user: User, reason: str) -> None:
        user.subscription_tier = FREE_TIER
        user.subscription_plan_id = None
        user.subscription_expires_at = None
        logger.info(f"Member {user.id} downgraded to free: {reason}")
