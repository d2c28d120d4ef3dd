"""
Matchmaker Service
Matchmaker applications, client rosters and introductions between members.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...db.models import (
    Match,
    Matchmaker,
    MatchmakerClient,
    MatchmakerIntroduction,
    Profile,
    User,
    utcnow,
)
from ..errors import (
    ConflictError,
    InvalidRequestError,
    PermissionDeniedError,
    ResourceNotFoundError,
)
from .discovery import DiscoveryService
from .matching import calculate_age
from .messaging import MessagingService
from .notifications import create_notification
from .profile_options import POSITIVE_ACTIONS

logger = logging.getLogger(__name__)

OPEN_INTRO_STATUSES = ("pending", "user_a_accepted", "user_b_accepted")

RESPONSE_MESSAGES = {
    "user_a_accepted": "You accepted! Waiting for the other person to respond.",
    "user_b_accepted": "You accepted! Waiting for the other person to respond.",
    "both_accepted": "Both of you accepted! A group chat has been created.",
    "user_a_declined": "You declined this introduction.",
    "user_b_declined": "You declined this introduction.",
}


def next_intro_status(current: str, is_user_a: bool, action: str) -> Tuple[str, bool]:
    """
    Status after one side responds.

    Returns:
        (new_status, should_create_conversation)
    """
    side = "user_a" if is_user_a else "user_b"
    if action == "decline":
        return f"{side}_declined", False

    if current == "pending":
        return f"{side}_accepted", False
    if (current == "user_a_accepted" and not is_user_a) or (current == "user_b_accepted" and is_user_a):
        return "both_accepted", True
    return current, False


def member_response(intro: MatchmakerIntroduction, is_user_a: bool) -> Optional[str]:
    """accepted, declined or None for one side of an introduction."""
    side = "user_a" if is_user_a else "user_b"
    if intro.status == f"{side}_declined":
        return "declined"
    responded_at = intro.user_a_response_at if is_user_a else intro.user_b_response_at
    return "accepted" if responded_at is not None else None


def serialize_matchmaker(matchmaker: Matchmaker) -> Dict[str, Any]:
    return {
        "id": str(matchmaker.id),
        "user_id": str(matchmaker.user_id),
        "display_name": matchmaker.user.display_name if matchmaker.user else None,
        "bio": matchmaker.bio,
        "specialties": matchmaker.specialties or [],
        "years_experience": matchmaker.years_experience,
        "status": matchmaker.status,
        "approved_at": matchmaker.approved_at.isoformat() if matchmaker.approved_at else None,
    }


def serialize_introduction(intro: MatchmakerIntroduction) -> Dict[str, Any]:
    return {
        "id": str(intro.id),
        "matchmaker_id": str(intro.matchmaker_id),
        "user_a_id": str(intro.user_a_id),
        "user_b_id": str(intro.user_b_id),
        "intro_message": intro.intro_message,
        "status": intro.status,
        "outcome": intro.outcome,
        "conversation_id": str(intro.conversation_id) if intro.conversation_id else None,
        "created_at": intro.created_at.isoformat() if intro.created_at else None,
    }


class MatchmakerService:
    def __init__(self, db: Session):
        self.db = db
        self.discovery = DiscoveryService(db)
        self.messaging = MessagingService(db)

    def list_approved(self) -> List[Matchmaker]:
        return (
            self.db.query(Matchmaker)
            .filter(Matchmaker.status == "approved")
            .order_by(Matchmaker.approved_at.desc())
            .all()
        )

    def apply(self, user: User, bio: Optional[str], specialties: List[str],
              years_experience: Optional[int]) -> Matchmaker:
        if self.db.query(Matchmaker.id).filter(Matchmaker.user_id == user.id).first():
            raise ConflictError("You have already applied to be a matchmaker")
        matchmaker = Matchmaker(
            user_id=user.id,
            bio=bio,
            specialties=specialties,
            years_experience=years_experience,
            status="pending",
        )
        self.db.add(matchmaker)
        self.db.commit()
        self.db.refresh(matchmaker)
        logger.info(f"Matchmaker application {matchmaker.id} from {user.id}")
        return matchmaker

    @staticmethod
    def require_approved(matchmaker: Matchmaker) -> None:
        if matchmaker.status != "approved":
            raise InvalidRequestError("Matchmaker is not approved")

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    def list_clients(self, matchmaker: Matchmaker) -> List[Dict[str, Any]]:
        rows = (
            self.db.query(MatchmakerClient, User)
            .join(User, User.id == MatchmakerClient.client_user_id)
            .filter(MatchmakerClient.matchmaker_id == matchmaker.id)
            .order_by(MatchmakerClient.started_at.desc())
            .all()
        )
        return [
            {
                "id": str(client.id),
                "client_user_id": str(user.id),
                "display_name": user.display_name,
                "status": client.status,
                "notes": client.notes,
                "started_at": client.started_at.isoformat(),
            }
            for client, user in rows
        ]

    def add_client(self, matchmaker: Matchmaker, client_user_id: UUID,
                   notes: Optional[str] = None) -> MatchmakerClient:
        self.require_approved(matchmaker)
        if client_user_id == matchmaker.user_id:
            raise InvalidRequestError("You cannot be your own client")

        client_user = self.db.query(User).filter(User.id == client_user_id).first()
        if client_user is None or client_user.status != "active":
            raise ResourceNotFoundError("User", client_user_id)

        existing = (
            self.db.query(MatchmakerClient.id)
            .filter(
                MatchmakerClient.matchmaker_id == matchmaker.id,
                MatchmakerClient.client_user_id == client_user_id,
                MatchmakerClient.status == "active",
            )
            .first()
        )
        if existing:
            raise ConflictError("User is already an active client")

        client = MatchmakerClient(matchmaker_id=matchmaker.id, client_user_id=client_user_id, notes=notes)
        self.db.add(client)
        self.db.commit()
        self.db.refresh(client)
        return client

    # ------------------------------------------------------------------
    # Introductions
    # ------------------------------------------------------------------

    def list_introductions(self, matchmaker: Matchmaker) -> List[MatchmakerIntroduction]:
        return (
            self.db.query(MatchmakerIntroduction)
            .filter(MatchmakerIntroduction.matchmaker_id == matchmaker.id)
            .order_by(MatchmakerIntroduction.created_at.desc())
            .all()
        )

    def list_for_member(self, user: User, status: Optional[str] = None, limit: int = 20,
                        offset: int = 0) -> List[Dict[str, Any]]:
        """Introductions the member is part of, newest first, with the other person's card."""
        query = self.db.query(MatchmakerIntroduction).filter(
            or_(MatchmakerIntroduction.user_a_id == user.id, MatchmakerIntroduction.user_b_id == user.id)
        )
        if status:
            query = query.filter(MatchmakerIntroduction.status == status)
        intros = query.order_by(MatchmakerIntroduction.created_at.desc()).offset(offset).limit(limit).all()

        results = []
        for intro in intros:
            is_user_a = intro.user_a_id == user.id
            other_id = intro.user_b_id if is_user_a else intro.user_a_id
            other = self.db.query(User).filter(User.id == other_id).first()
            profile = self.db.query(Profile).filter(Profile.user_id == other_id).first()
            matchmaker = self.db.query(Matchmaker).filter(Matchmaker.id == intro.matchmaker_id).first()

            entry = serialize_introduction(intro)
            entry["my_response"] = member_response(intro, is_user_a)
            entry["other_user"] = {
                "id": str(other_id),
                "display_name": other.display_name if other else None,
                "first_name": profile.first_name if profile else None,
                "last_name": profile.last_name if profile else None,
                "profile_image_url": profile.profile_image_url if profile else None,
                "city": profile.city if profile else None,
                "state": profile.state if profile else None,
                "age": calculate_age(profile.date_of_birth) if profile else None,
                "bio": profile.bio if profile else None,
                "occupation": profile.occupation if profile else None,
            }
            entry["matchmaker"] = {
                "id": str(intro.matchmaker_id),
                "name": matchmaker.user.display_name if matchmaker and matchmaker.user else None,
            }
            results.append(entry)
        return results

    def _mutually_matched(self, a: UUID, b: UUID) -> bool:
        likes = (
            self.db.query(Match.user_id)
            .filter(
                or_(
                    (Match.user_id == a) & (Match.target_user_id == b),
                    (Match.user_id == b) & (Match.target_user_id == a),
                ),
                Match.action.in_(POSITIVE_ACTIONS),
                Match.is_unmatched.is_(False),
            )
            .all()
        )
        return len({row[0] for row in likes}) == 2

    def create_introduction(self, matchmaker: Matchmaker, user_a_id: UUID, user_b_id: UUID,
                            intro_message: str) -> MatchmakerIntroduction:
        """
        Introduce two members.

        Raises:
            InvalidRequestError: unapproved matchmaker, self-intro or inactive users
            ConflictError: already matched, or an open intro exists
            PermissionDeniedError: one member blocked the other
        """
        self.require_approved(matchmaker)
        if user_a_id == user_b_id:
            raise InvalidRequestError("Cannot introduce a user to themselves")

        users = self.db.query(User).filter(User.id.in_([user_a_id, user_b_id])).all()
        if len(users) != 2 or any(u.status != "active" for u in users):
            raise InvalidRequestError("Both users must exist and be active")

        if self._mutually_matched(user_a_id, user_b_id):
            raise ConflictError("These users are already matched")
        if self.discovery.is_blocked_between(user_a_id, user_b_id):
            raise PermissionDeniedError("Cannot introduce users who have blocked each other")

        open_intro = (
            self.db.query(MatchmakerIntroduction.id)
            .filter(
                or_(
                    (MatchmakerIntroduction.user_a_id == user_a_id)
                    & (MatchmakerIntroduction.user_b_id == user_b_id),
                    (MatchmakerIntroduction.user_a_id == user_b_id)
                    & (MatchmakerIntroduction.user_b_id == user_a_id),
                ),
                MatchmakerIntroduction.status.in_(OPEN_INTRO_STATUSES),
            )
            .first()
        )
        if open_intro:
            raise ConflictError("An introduction between these users is already pending")

        intro = MatchmakerIntroduction(
            matchmaker_id=matchmaker.id,
            user_a_id=user_a_id,
            user_b_id=user_b_id,
            intro_message=intro_message,
            status="pending",
        )
        self.db.add(intro)
        self.db.flush()

        matchmaker_name = matchmaker.user.display_name if matchmaker.user else None
        for recipient in (user_a_id, user_b_id):
            create_notification(
                self.db,
                recipient,
                "matchmaker_introduction",
                "New Introduction!",
                f"{matchmaker_name or 'A matchmaker'} thinks you should meet someone",
                {"introduction_id": str(intro.id), "matchmaker_id": str(matchmaker.id)},
            )
        self.db.commit()
        self.db.refresh(intro)
        logger.info(f"Matchmaker {matchmaker.id} introduced {user_a_id} and {user_b_id}")
        return intro

    def get_introduction(self, matchmaker_id: UUID, intro_id: UUID) -> MatchmakerIntroduction:
        intro = (
            self.db.query(MatchmakerIntroduction)
            .filter(
                MatchmakerIntroduction.id == intro_id,
                MatchmakerIntroduction.matchmaker_id == matchmaker_id,
            )
            .first()
        )
        if intro is None:
            raise ResourceNotFoundError("Introduction", intro_id)
        return intro

    def respond(self, intro: MatchmakerIntroduction, user: User, action: str) -> Dict[str, Any]:
        """Record a member's accept/decline and open the group chat once both accept."""
        if user.id not in (intro.user_a_id, intro.user_b_id):
            raise PermissionDeniedError("Not authorized")

        is_user_a = user.id == intro.user_a_id
        if (intro.user_a_response_at if is_user_a else intro.user_b_response_at) is not None:
            raise ConflictError("You have already responded to this introduction")

        new_status, create_conversation = next_intro_status(intro.status, is_user_a, action)
        intro.status = new_status
        if is_user_a:
            intro.user_a_response_at = utcnow()
        else:
            intro.user_b_response_at = utcnow()

        if create_conversation:
            matchmaker = self.db.query(Matchmaker).filter(Matchmaker.id == intro.matchmaker_id).first()
            conversation = self.messaging.create_group_conversation(
                created_by=matchmaker.user_id,
                members=[matchmaker.user_id, intro.user_a_id, intro.user_b_id],
                group_name="Introduction",
            )
            intro.conversation_id = conversation.id
            for recipient in (matchmaker.user_id, intro.user_a_id, intro.user_b_id):
                create_notification(
                    self.db,
                    recipient,
                    "introduction_accepted",
                    "Introduction Accepted!",
                    "Your group chat is ready",
                    {"introduction_id": str(intro.id), "conversation_id": str(conversation.id)},
                )

        self.db.commit()
        return {
            "new_status": new_status,
            "conversation_id": str(intro.conversation_id) if intro.conversation_id else None,
            "msg": RESPONSE_MESSAGES.get(new_status, "Response recorded"),
        }

    def set_outcome(self, intro: MatchmakerIntroduction, outcome: str) -> MatchmakerIntroduction:
        intro.outcome = outcome
        intro.outcome_updated_at = utcnow()
        self.db.commit()
        return intro
