"""
Referral routes.
"""

import logging

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...db.models import User
from ..config import get_settings
from ..dependencies import get_current_user, get_db
from ..schemas.common import ERROR_RESPONSES, ok
from ..schemas.referrals import ReferralApply
from ..services.referrals import ReferralService, generate_referral_code, referral_link
from .auth import REFERRAL_COOKIE, get_cookie_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/referrals", tags=["Referrals"])


@router.get("/capture")
async def capture_referral(
    response: Response,
    ref: str = Query(..., min_length=1, max_length=16),
):
    """Remember a referral code in a cookie until the visitor signs up."""
    max_age = get_settings().referral_cookie_days * 24 * 60 * 60
    response.set_cookie(
        key=REFERRAL_COOKIE,
        value=ref.strip().upper(),
        max_age=max_age,
        **get_cookie_settings(),
    )
    return ok(msg="Referral code saved")


@router.get("", responses=ERROR_RESPONSES)
async def get_referrals(
    limit: int = Query(20, ge=1, le=50),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The caller's referral code and link, the people they referred, and totals."""
    if not current_user.referral_code:
        current_user.referral_code = generate_referral_code(db)
        db.commit()

    service = ReferralService(db)
    return ok({
        "referral_code": current_user.referral_code,
        "referral_link": referral_link(get_settings().app_url, current_user.referral_code),
        "referrals": service.list_referrals(current_user.id, limit, offset),
        "stats": service.stats(current_user.id),
    })


@router.post("", responses=ERROR_RESPONSES)
async def apply_referral(
    request: ReferralApply,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    referral = ReferralService(db).apply_code(current_user, request.referral_code)
    db.commit()
    return ok({"id": str(referral.id), "status": referral.status}, msg="Referral code applied")
