"""
Stripe webhook deliveries.
"""

import json

import pytest

from realsingles.db.models import Notification, StripeWebhookEvent, SubscriptionPlan


@pytest.fixture
def premium(db_session):
    plan = SubscriptionPlan(name="Premium", tier="premium", price_cents=1999, stripe_price_id="price_premium")
    db_session.add(plan)
    db_session.commit()
    return plan


@pytest.fixture
def deliver(client, stripe_signature):
    def _deliver(event_id, event_type, obj, signature=None):
        payload = json.dumps({"id": event_id, "type": event_type, "data": {"object": obj}}).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        headers["stripe-signature"] = signature or stripe_signature(payload)
        return client.post("/api/billing/webhook", content=payload, headers=headers)

    return _deliver


def subscription(status="active", price="price_premium", customer="cus_member", period_end=1893456000):
    return {
        "id": "sub_1",
        "customer": customer,
        "status": status,
        "current_period_end": period_end,
        "items": {"data": [{"price": {"id": price}}]},
    }


def test_subscription_created_sets_tier(db_session, make_user, premium, deliver):
    user = make_user()
    user.stripe_customer_id = "cus_member"
    db_session.commit()

    response = deliver("evt_1", "customer.subscription.created", subscription())
    assert response.status_code == 200
    assert response.json() == {"received": True}

    db_session.expire_all()
    assert user.subscription_tier == "premium"
    assert user.subscription_plan_id == premium.id
    assert user.subscription_expires_at.year == 2030
    assert db_session.query(StripeWebhookEvent).one().event_type == "customer.subscription.created"


def test_duplicate_event_is_acknowledged_once(db_session, make_user, premium, deliver):
    user = make_user()
    user.stripe_customer_id = "cus_member"
    db_session.commit()

    deliver("evt_dup", "customer.subscription.created", subscription())
    user.subscription_tier = "free"
    db_session.commit()

    again = deliver("evt_dup", "customer.subscription.created", subscription())
    assert again.json() == {"received": True, "duplicate": True}
    db_session.expire_all()
    assert user.subscription_tier == "free"
    assert db_session.query(StripeWebhookEvent).count() == 1


def test_canceled_or_deleted_subscription_downgrades(db_session, make_user, premium, deliver):
    user = make_user()
    user.stripe_customer_id = "cus_member"
    db_session.commit()

    deliver("evt_a", "customer.subscription.created", subscription())
    deliver("evt_b", "customer.subscription.updated", subscription(status="unpaid"))
    db_session.expire_all()
    assert user.subscription_tier == "free"

    deliver("evt_c", "customer.subscription.updated", subscription(status="trialing"))
    db_session.expire_all()
    assert user.subscription_tier == "premium"

    deliver("evt_d", "customer.subscription.deleted", subscription(status="canceled"))
    db_session.expire_all()
    assert user.subscription_tier == "free"
    assert user.subscription_plan_id is None
    assert user.subscription_expires_at is None


def test_checkout_completed_links_customer(db_session, make_user, premium, deliver):
    user = make_user()
    session = {
        "id": "cs_1",
        "mode": "subscription",
        "customer": "cus_new",
        "metadata": {"user_id": str(user.id), "plan_id": str(premium.id), "tier": "premium"},
    }

    assert deliver("evt_checkout", "checkout.session.completed", session).status_code == 200

    db_session.expire_all()
    assert user.stripe_customer_id == "cus_new"
    assert user.subscription_tier == "premium"
    assert db_session.query(Notification).filter(Notification.user_id == user.id).count() == 1


def test_unhandled_event_is_recorded(db_session, deliver):
    response = deliver("evt_invoice", "invoice.paid", {"id": "in_1"})
    assert response.json() == {"received": True}
    assert db_session.query(StripeWebhookEvent).count() == 1


def test_bad_signature_rejected(client, db_session, deliver):
    response = deliver("evt_x", "invoice.paid", {}, signature="t=1,v1=deadbeef")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid signature"}

    missing = client.post("/api/billing/webhook", content=b"{}")
    assert missing.status_code == 400
    assert missing.json() == {"error": "Missing signature"}
    assert db_session.query(StripeWebhookEvent).count() == 0
