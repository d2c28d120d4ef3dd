"""
BillingService against a patched Stripe SDK.
"""

import json
from types import SimpleNamespace

import pytest
import stripe

from realsingles.api.config import APISettings
from realsingles.api.errors import InvalidRequestError, ServiceUnavailableError, UpstreamServiceError
from realsingles.api.services.billing import BillingService
from realsingles.db.models import SubscriptionPlan

WEBHOOK_SECRET = "whsec_unit"


@pytest.fixture
def billing():
    return BillingService(APISettings(
        STRIPE_SECRET_KEY="sk_test_unit",
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        APP_URL="https://app.test/",
    ))


@pytest.fixture
def stripe_calls(monkeypatch):
    """Record SDK calls and answer with canned objects."""
    calls = {}

    def create_customer(**kwargs):
        calls["customer"] = kwargs
        return SimpleNamespace(id="cus_unit")

    def create_portal(**kwargs):
        calls["portal"] = kwargs
        return SimpleNamespace(url="https://billing.stripe.test/p/session")

    def create_checkout(**kwargs):
        calls["checkout"] = kwargs
        return SimpleNamespace(id="cs_unit", url="https://checkout.stripe.test/c/cs_unit")

    monkeypatch.setattr(stripe.Customer, "create", create_customer)
    monkeypatch.setattr(stripe.billing_portal.Session, "create", create_portal)
    monkeypatch.setattr(stripe.checkout.Session, "create", create_checkout)
    return calls


def _fail(**kwargs):
    raise stripe.StripeError("boom")


def test_customer_created_once(db_session, make_user, billing, stripe_calls):
    user = make_user(display_name="Ava")

    assert billing.ensure_customer(db_session, user) == "cus_unit"
    assert stripe_calls["customer"]["email"] == user.email
    assert stripe_calls["customer"]["metadata"] == {"user_id": str(user.id)}
    assert stripe.api_key == "sk_test_unit"

    stripe_calls.clear()
    db_session.refresh(user)
    assert user.stripe_customer_id == "cus_unit"
    assert billing.ensure_customer(db_session, user) == "cus_unit"
    assert "customer" not in stripe_calls


def test_customer_failure_is_upstream_error(db_session, make_user, billing, monkeypatch):
    monkeypatch.setattr(stripe.Customer, "create", _fail)
    user = make_user()

    with pytest.raises(UpstreamServiceError) as exc:
        billing.ensure_customer(db_session, user)
    assert exc.value.status_code == 502
    assert exc.value.message == "Could not create billing customer"
    assert user.stripe_customer_id is None


def test_portal_session_return_url(db_session, make_user, billing, stripe_calls):
    user = make_user()

    url = billing.create_portal_session(db_session, user)
    assert url == "https://billing.stripe.test/p/session"
    assert stripe_calls["portal"] == {"customer": "cus_unit", "return_url": "https://app.test/settings"}

    billing.create_portal_session(db_session, user, "https://app.test/account")
    assert stripe_calls["portal"]["return_url"] == "https://app.test/account"


def test_portal_failure_is_upstream_error(db_session, make_user, billing, stripe_calls, monkeypatch):
    monkeypatch.setattr(stripe.billing_portal.Session, "create", _fail)
    user = make_user()

    with pytest.raises(UpstreamServiceError) as exc:
        billing.create_portal_session(db_session, user)
    assert exc.value.message == "Could not create billing portal session"


def test_checkout_session_metadata(db_session, make_user, billing, stripe_calls):
    plan = SubscriptionPlan(name="Premium", tier="premium", price_cents=2999, stripe_price_id="price_p")
    db_session.add(plan)
    db_session.commit()
    user = make_user()

    session = billing.create_checkout_session(db_session, user, plan)
    assert session == {"url": "https://checkout.stripe.test/c/cs_unit", "session_id": "cs_unit"}
    checkout = stripe_calls["checkout"]
    assert checkout["mode"] == "subscription"
    assert checkout["line_items"] == [{"price": "price_p", "quantity": 1}]
    assert checkout["metadata"] == {"user_id": str(user.id), "plan_id": str(plan.id), "tier": "premium"}
    assert checkout["cancel_url"] == "https://app.test/subscription"


def test_unconfigured_stripe(db_session, make_user):
    billing = BillingService(APISettings(STRIPE_SECRET_KEY=None))
    with pytest.raises(ServiceUnavailableError):
        billing.ensure_customer(db_session, make_user())


def test_construct_event_verifies_signature(billing, stripe_signature):
    payload = json.dumps({"id": "evt_1", "type": "invoice.paid", "data": {"object": {}}}).encode("utf-8")

    event = billing.construct_event(payload, stripe_signature(payload, WEBHOOK_SECRET))
    assert event["id"] == "evt_1"
    assert event["type"] == "invoice.paid"

    with pytest.raises(InvalidRequestError) as exc:
        billing.construct_event(payload, stripe_signature(payload, "whsec_other"))
    assert exc.value.message == "Invalid signature"

    with pytest.raises(InvalidRequestError) as exc:
        billing.construct_event(payload, None)
    assert exc.value.message == "Missing signature"


def test_construct_event_requires_secret():
    billing = BillingService(APISettings(STRIPE_SECRET_KEY="sk_test_unit", STRIPE_WEBHOOK_SECRET=None))
    with pytest.raises(ServiceUnavailableError):
        billing.construct_event(b"{}", "t=1,v1=abc")
