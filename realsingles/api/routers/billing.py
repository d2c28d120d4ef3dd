"""
Billing routes.
Stripe billing portal, subscription checkout and the Stripe webhook.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from ...db.models import SubscriptionPlan, User
from ..dependencies import get_current_user, get_db
from ..errors import InvalidRequestError, ResourceNotFoundError
from ..schemas.common import ERROR_RESPONSES, ok
from ..schemas.billing import CheckoutRequest, PortalRequest
from ..services.billing import BillingService, get_billing_service
from ..services.stripe_webhooks import StripeWebhookHandler

router = APIRouter(prefix="/billing", tags=["Billing"])


def serialize_plan(plan: SubscriptionPlan) -> dict:
    return {
        "id": str(plan.id),
        "name": plan.name,
        "tier": plan.tier,
        "description": plan.description,
        "price_cents": plan.price_cents,
        "interval": plan.interval,
    }


@router.post("/portal", responses=ERROR_RESPONSES)
async def create_portal_session(
    request: Optional[PortalRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
):
    """Stripe billing portal URL; the Stripe customer is created on first use."""
    return_url = request.return_url if request else None
    url = billing.create_portal_session(db, current_user, return_url)
    return ok({"url": url})


@router.get("/plans")
async def list_plans(db: Session = Depends(get_db)):
    plans = (
        db.query(SubscriptionPlan)
        .filter(SubscriptionPlan.is_active.is_(True))
        .order_by(SubscriptionPlan.price_cents)
        .all()
    )
    return ok({"plans": [serialize_plan(p) for p in plans]})


@router.post("/checkout", responses=ERROR_RESPONSES)
async def create_checkout_session(
    request: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
):
    plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.id == request.plan_id).first()
    if plan is None or not plan.is_active:
        raise ResourceNotFoundError("Plan", request.plan_id)
    if not plan.stripe_price_id:
        raise InvalidRequestError("Plan is not available for purchase")

    session = billing.create_checkout_session(db, current_user, plan)
    return ok(session)


@router.post("/webhook", responses=ERROR_RESPONSES)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    db: Session = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
):
    """
    Stripe event receiver.

    The raw body is verified against the endpoint secret; the response is
    not wrapped in the success envelope because only Stripe reads it.
    """
    payload = await request.body()
    event = billing.construct_event(payload, stripe_signature)
    return StripeWebhookHandler(db).handle(event)
