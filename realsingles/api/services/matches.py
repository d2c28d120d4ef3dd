"""
Match Service
Likes, passes and super likes between members, mutual-match detection,
undo and unmatch.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...db.models import Match, Profile, User, utcnow
from ..errors import (
    InvalidRequestError,
    PermissionDeniedError,
    ResourceNotFoundError,
)
from .discovery import DiscoveryService, profile_card
from .messaging import MessagingService
from .notifications import create_notification
from .profile_options import POSITIVE_ACTIONS

logger = logging.getLogger(__name__)

INACTIVE_STATUSES = ("suspended", "deleted")


@dataclass
class ActionResult:
    match: Match
    is_mutual: bool
    conversation_id: Optional[UUID] = None


class MatchService:
    """Member-to-member actions for one session."""

    def __init__(self, db: Session):
        self.db = db
        self.discovery = DiscoveryService(db)
        self.messaging = MessagingService(db)

    def _get(self, user_id: UUID, target_id: UUID) -> Optional[Match]:
        return (
            self.db.query(Match)
            .filter(Match.user_id == user_id, Match.target_user_id == target_id)
            .first()
        )

    def record_action(self, user: User, target_id: UUID, action: str) -> ActionResult:
        """
        Upsert the caller's action on a target and detect a mutual like.

        Raises:
            InvalidRequestError: self-action or inactive target
            ResourceNotFoundError: unknown target
            PermissionDeniedError: a block exists between the two
        """
        if target_id == user.id:
            raise InvalidRequestError("Cannot perform action on yourself")

        target = self.db.query(User).filter(User.id == target_id).first()
        if target is None:
            raise ResourceNotFoundError("User", target_id)
        if target.status in INACTIVE_STATUSES:
            raise InvalidRequestError("User is not available")
        if self.discovery.is_blocked_between(user.id, target_id):
            raise PermissionDeniedError("Cannot interact with this user")

        now = utcnow()
        match = self._get(user.id, target_id)
        if match is None:
            match = Match(user_id=user.id, target_user_id=target_id, action=action, created_at=now)
            self.db.add(match)
        else:
            match.action = action
            match.is_unmatched = False
            match.unmatched_at = None
            match.created_at = now

        result = ActionResult(match=match, is_mutual=False)
        if action in POSITIVE_ACTIONS:
            reverse = self._get(target_id, user.id)
            if reverse is not None and reverse.action in POSITIVE_ACTIONS and not reverse.is_unmatched:
                conversation = self.messaging.get_or_create_direct_conversation(user.id, target_id)
                result.is_mutual = True
                result.conversation_id = conversation.id
                for recipient, other in ((user, target), (target, user)):
                    create_notification(
                        self.db,
                        recipient.id,
                        "match",
                        "New Match!",
                        f"You and {other.display_name or 'someone'} liked each other",
                        {"user_id": str(other.id), "conversation_id": str(conversation.id)},
                    )

        user.last_active_at = now
        self.db.commit()
        self.db.refresh(match)

        logger.info(
            f"User {user.id} -> {target_id}: {action}"
            + (" (mutual match)" if result.is_mutual else "")
        )
        return result

    def _active_users(self, user_ids) -> Dict[UUID, User]:
        """Loaded users among `user_ids`, without suspended or deleted accounts."""
        if not user_ids:
            return {}
        users = (
            self.db.query(User)
            .filter(User.id.in_(list(user_ids)), User.status.notin_(INACTIVE_STATUSES))
            .all()
        )
        return {u.id: u for u in users}

    def _card(self, other: User) -> Dict[str, Any]:
        profile = self.db.query(Profile).filter(Profile.user_id == other.id).first()
        entry = profile_card(profile, other) if profile else {
            "user_id": str(other.id), "display_name": other.display_name,
        }
        entry["primary_photo"] = (
            self.discovery.primary_photo(other.id)
            or (profile.profile_image_url if profile else None)
        )
        return entry

    def get_mutual_matches(self, user_id: UUID, limit: int = 20, offset: int = 0) -> List[Dict[str, Any]]:
        """Members who liked the caller back, most recent match first."""
        mine = {
            m.target_user_id: m for m in self.db.query(Match).filter(
                Match.user_id == user_id,
                Match.action.in_(POSITIVE_ACTIONS),
                Match.is_unmatched.is_(False),
            )
        }
        if not mine:
            return []

        theirs = (
            self.db.query(Match)
            .filter(
                Match.target_user_id == user_id,
                Match.user_id.in_(list(mine.keys())),
                Match.action.in_(POSITIVE_ACTIONS),
                Match.is_unmatched.is_(False),
            )
            .all()
        )
        blocked = self.discovery.blocked_ids(user_id)
        active = self._active_users([r.user_id for r in theirs if r.user_id not in blocked])

        matched = []
        for reverse in theirs:
            if reverse.user_id not in active:
                continue
            matched_at = max(mine[reverse.user_id].created_at, reverse.created_at)
            matched.append((reverse.user_id, matched_at))
        matched.sort(key=lambda item: item[1], reverse=True)

        results = []
        for other_id, matched_at in matched[offset:offset + limit]:
            conversation = self.messaging.find_direct_conversation(user_id, other_id)
            entry = self._card(active[other_id])
            entry["matched_at"] = matched_at.isoformat()
            entry["conversation_id"] = str(conversation.id) if conversation else None
            results.append(entry)
        return results

    def get_likes_received(self, user_id: UUID, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
        """Likes waiting on the caller; super likes first, then newest."""
        acted = {
            target for (target,) in self.db.query(Match.target_user_id).filter(Match.user_id == user_id)
        }
        blocked = self.discovery.blocked_ids(user_id)

        likes = (
            self.db.query(Match)
            .filter(
                Match.target_user_id == user_id,
                Match.action.in_(POSITIVE_ACTIONS),
                Match.is_unmatched.is_(False),
            )
            .all()
        )
        candidates = [m for m in likes if m.user_id not in acted and m.user_id not in blocked]
        active = self._active_users([m.user_id for m in candidates])
        pending = [m for m in candidates if m.user_id in active]
        pending.sort(key=lambda m: m.created_at, reverse=True)
        pending.sort(key=lambda m: m.action != "super_like")

        results = []
        for like in pending[offset:offset + limit]:
            entry = self._card(active[like.user_id])
            entry["action"] = like.action
            entry["liked_at"] = like.created_at.isoformat()
            results.append(entry)
        return results

    def get_likes_sent(self, user_id: UUID, limit: int = 20, offset: int = 0,
                       include_super: bool = True) -> Dict[str, Any]:
        """
        The caller's likes that have not been returned yet.

        Super likes sort first, then newest. Unmatched pairs, blocked members
        and inactive accounts are left out.
        """
        actions = POSITIVE_ACTIONS if include_super else ("like",)
        sent = (
            self.db.query(Match)
            .filter(
                Match.user_id == user_id,
                Match.action.in_(actions),
                Match.is_unmatched.is_(False),
            )
            .all()
        )
        if not sent:
            return {"likes": [], "total": 0}

        returned = {
            liker for (liker,) in self.db.query(Match.user_id).filter(
                Match.target_user_id == user_id,
                Match.user_id.in_([m.target_user_id for m in sent]),
                Match.action.in_(POSITIVE_ACTIONS),
            )
        }
        blocked = self.discovery.blocked_ids(user_id)
        candidates = [m for m in sent if m.target_user_id not in returned and m.target_user_id not in blocked]
        active = self._active_users([m.target_user_id for m in candidates])
        pending = [m for m in candidates if m.target_user_id in active]
        pending.sort(key=lambda m: m.created_at, reverse=True)
        pending.sort(key=lambda m: m.action != "super_like")

        results = []
        for like in pending[offset:offset + limit]:
            entry = self._card(active[like.target_user_id])
            entry["action"] = like.action
            entry["is_super_like"] = like.action == "super_like"
            entry["liked_at"] = like.created_at.isoformat()
            results.append(entry)
        return {"likes": results, "total": len(pending)}

    def get_undoable_action(self, user_id: UUID, window_minutes: int) -> Optional[Match]:
        cutoff = utcnow() - timedelta(minutes=window_minutes)
        return (
            self.db.query(Match)
            .filter(Match.user_id == user_id, Match.created_at >= cutoff, Match.is_unmatched.is_(False))
            .order_by(Match.created_at.desc())
            .first()
        )

    def undo_action(self, user: User, target_id: UUID, window_minutes: int) -> str:
        """Delete the caller's recent action on a target; returns the undone action."""
        match = self._get(user.id, target_id)
        if match is None:
            raise ResourceNotFoundError("Action")
        if utcnow() - match.created_at > timedelta(minutes=window_minutes):
            raise InvalidRequestError(
                f"Action is too old to undo (max {window_minutes} minutes)"
            )

        action = match.action
        self.db.delete(match)
        user.last_active_at = utcnow()
        self.db.commit()
        logger.info(f"User {user.id} undid {action} on {target_id}")
        return action

    def unmatch(self, user: User, target_id: UUID) -> None:
        """Mark both directions unmatched and archive the direct conversation."""
        if target_id == user.id:
            raise InvalidRequestError("Cannot unmatch yourself")

        rows = (
            self.db.query(Match)
            .filter(
                or_(
                    (Match.user_id == user.id) & (Match.target_user_id == target_id),
                    (Match.user_id == target_id) & (Match.target_user_id == user.id),
                ),
                Match.is_unmatched.is_(False),
            )
            .all()
        )
        if not rows:
            raise ResourceNotFoundError("Match")

        now = utcnow()
        for row in rows:
            row.is_unmatched = True
            row.unmatched_at = now
        self.messaging.archive_direct_conversation(user.id, target_id)
        self.db.commit()
        logger.info(f"User {user.id} unmatched {target_id}")
