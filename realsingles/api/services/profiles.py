"""
Profile Service
Profile updates and the completion columns derived from them.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from ...db.models import Profile, User, UserGallery, utcnow
from ..config import APISettings, get_settings
from ..errors import InvalidRequestError
from .completion import (
    CompletionStatus,
    build_profile_record,
    calculate_completion,
    get_resume_step,
)
from .formatting import capitalize_name
from .onboarding_steps import get_required_fields, get_step_for_field
from .referrals import ReferralService

logger = logging.getLogger(__name__)

NAME_FIELDS = ("first_name", "last_name")

# Columns a member may never set directly
PROTECTED_FIELDS = {
    "id", "user_id", "is_verified", "can_start_matching", "profile_completion_percentage",
    "profile_completion_skipped", "profile_completion_prefer_not", "onboarding_completed_at",
    "created_at", "updated_at",
}


class ProfileService:
    def __init__(self, db: Session, settings: Optional[APISettings] = None):
        self.db = db
        self.settings = settings or get_settings()

    def get_or_create_profile(self, user: User) -> Profile:
        profile = self.db.query(Profile).filter(Profile.user_id == user.id).first()
        if profile is None:
            profile = Profile(user_id=user.id)
            self.db.add(profile)
            self.db.flush()
        return profile

    def photo_count(self, user: User) -> int:
        return self.db.query(UserGallery).filter(UserGallery.user_id == user.id).count()

    def completion_status(self, user: User, profile: Optional[Profile] = None) -> CompletionStatus:
        profile = profile or self.get_or_create_profile(user)
        return calculate_completion(
            build_profile_record(user, profile),
            photo_count=self.photo_count(user),
            min_photos=self.settings.min_photos_required,
        )

    def completion_payload(self, user: User, profile: Optional[Profile] = None) -> Dict[str, Any]:
        profile = profile or self.get_or_create_profile(user)
        record = build_profile_record(user, profile)
        photos = self.photo_count(user)
        status = calculate_completion(record, photos, self.settings.min_photos_required)
        payload = status.to_dict()
        payload["resume_step"] = get_resume_step(record, photos)
        return payload

    def refresh_completion(self, user: User, profile: Profile) -> CompletionStatus:
        """
        Recompute the cached completion columns.

        Rewards a pending referral the first time the member can match. The
        caller commits.
        """
        status = self.completion_status(user, profile)
        became_ready = status.can_start_matching and not profile.can_start_matching

        profile.profile_completion_percentage = status.percentage
        profile.can_start_matching = status.can_start_matching
        if status.is_complete and profile.onboarding_completed_at is None:
            profile.onboarding_completed_at = utcnow()

        if became_ready:
            logger.info(f"User {user.id} can now start matching")
            ReferralService(self.db).reward_if_eligible(user, self.settings.referral_reward_points)
        return status

    def update_profile(self, user: User, changes: Dict[str, Any]) -> Profile:
        """Apply a partial update from a validated request body."""
        profile = self.get_or_create_profile(user)

        protected = PROTECTED_FIELDS.intersection(changes)
        if protected:
            raise InvalidRequestError(f"Field cannot be updated: {sorted(protected)[0]}")

        if "display_name" in changes:
            user.display_name = capitalize_name(changes.pop("display_name")) or None
        for key in NAME_FIELDS:
            if key in changes and changes[key] is not None:
                changes[key] = capitalize_name(changes[key])

        for key, value in changes.items():
            if not hasattr(Profile, key):
                raise InvalidRequestError(f"Unknown profile field: {key}")
            setattr(profile, key, value)

        # Answering a field clears an earlier skip for it
        answered = {k for k, v in changes.items() if v not in (None, "", [])}
        if answered and profile.profile_completion_skipped:
            profile.profile_completion_skipped = [
                f for f in profile.profile_completion_skipped if f not in answered
            ]

        self.refresh_completion(user, profile)
        self.db.commit()
        self.db.refresh(profile)
        return profile

    def _validate_completion_fields(self, fields: Iterable[str]) -> list:
        fields = list(dict.fromkeys(fields))
        unknown = [f for f in fields if get_step_for_field(f) is None]
        if unknown:
            raise InvalidRequestError(f"Unknown profile field: {unknown[0]}")
        return fields

    def skip_fields(self, user: User, fields: Iterable[str]) -> Profile:
        fields = self._validate_completion_fields(fields)
        required = set(get_required_fields()) | {"profile_image_url"}
        blocked = [f for f in fields if f in required]
        if blocked:
            raise InvalidRequestError(f"Required field cannot be skipped: {blocked[0]}")

        profile = self.get_or_create_profile(user)
        current = list(profile.profile_completion_skipped or [])
        profile.profile_completion_skipped = current + [f for f in fields if f not in current]
        self.refresh_completion(user, profile)
        self.db.commit()
        return profile

    def prefer_not(self, user: User, field: str) -> Profile:
        self._validate_completion_fields([field])
        step = get_step_for_field(field)
        if not step.allow_prefer_not:
            raise InvalidRequestError(f"'Prefer not to say' is not available for {field}")

        profile = self.get_or_create_profile(user)
        current = list(profile.profile_completion_prefer_not or [])
        if field not in current:
            current.append(field)
        profile.profile_completion_prefer_not = current
        profile.profile_completion_skipped = [
            f for f in (profile.profile_completion_skipped or []) if f != field
        ]
        self.refresh_completion(user, profile)
        self.db.commit()
        return profile
