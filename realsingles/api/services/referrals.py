"""
Referral Service
Referral codes, tracking who referred whom, and the reward once the referred
member finishes the required onboarding steps.
"""

import logging
import secrets
import string
from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...db.models import Referral, User, utcnow
from ..errors import InvalidRequestError
from .notifications import create_notification
from .points import apply_points

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8
COMPLETED_STATUSES = ("completed", "rewarded")


def generate_referral_code(db: Session) -> str:
    """Random unused 8-character code."""
    while True:
        code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
        if not db.query(User.id).filter(User.referral_code == code).first():
            return code


def referral_link(app_url: str, code: str) -> str:
    return f"{app_url.rstrip('/')}/join?ref={code}"


class ReferralService:
    def __init__(self, db: Session):
        self.db = db

    def apply_code(self, user: User, code: str) -> Referral:
        """
        Record that `user` was referred by the owner of `code`.

        The caller commits.
        """
        code = (code or "").strip().upper()
        if not code:
            raise InvalidRequestError("Referral code is required")

        referrer = self.db.query(User).filter(User.referral_code == code).first()
        if referrer is None:
            raise InvalidRequestError("Invalid referral code")
        if referrer.id == user.id:
            raise InvalidRequestError("You cannot refer yourself")

        existing = self.db.query(Referral).filter(Referral.referred_user_id == user.id).first()
        if existing is not None or user.referred_by is not None:
            raise InvalidRequestError("Referral already recorded")

        referral = Referral(referrer_id=referrer.id, referred_user_id=user.id, status="pending")
        self.db.add(referral)
        user.referred_by = referrer.id
        logger.info(f"Referral tracked: {referrer.id} -> {user.id}")
        return referral

    def reward_if_eligible(self, user: User, reward_points: int) -> bool:
        """
        Reward the referrer the first time the referred member can match.

        The caller commits.
        """
        referral = (
            self.db.query(Referral)
            .filter(Referral.referred_user_id == user.id, Referral.status == "pending")
            .first()
        )
        if referral is None:
            return False

        referrer = self.db.query(User).filter(User.id == referral.referrer_id).first()
        if referrer is None or referrer.status != "active":
            return False

        apply_points(
            self.db,
            referrer,
            reward_points,
            "referral",
            description="Referral reward",
            reference_id=referral.id,
            reference_type="referral",
        )
        referral.status = "rewarded"
        referral.points_awarded = reward_points
        referral.completed_at = utcnow()
        create_notification(
            self.db,
            referrer.id,
            "referral_reward",
            "Referral Reward!",
            f"You earned {reward_points} points for a referral",
            {"referral_id": str(referral.id)},
        )
        return True

    def list_referrals(self, user_id: UUID, limit: int = 20, offset: int = 0) -> List[Dict[str, Any]]:
        rows = (
            self.db.query(Referral, User)
            .join(User, User.id == Referral.referred_user_id)
            .filter(Referral.referrer_id == user_id)
            .order_by(Referral.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [
            {
                "id": str(referral.id),
                "referred_user_id": str(referred.id),
                "display_name": referred.display_name,
                "status": referral.status,
                "points_awarded": referral.points_awarded,
                "created_at": referral.created_at.isoformat(),
                "completed_at": referral.completed_at.isoformat() if referral.completed_at else None,
            }
            for referral, referred in rows
        ]

    def stats(self, user_id: UUID) -> Dict[str, int]:
        base = self.db.query(Referral).filter(Referral.referrer_id == user_id)
        earned = (
            self.db.query(func.coalesce(func.sum(Referral.points_awarded), 0))
            .filter(Referral.referrer_id == user_id, Referral.status == "rewarded")
            .scalar()
        )
        return {
            "total_referrals": base.count(),
            "completed_referrals": base.filter(Referral.status.in_(COMPLETED_STATUSES)).count(),
            "total_points_earned": int(earned or 0),
        }
