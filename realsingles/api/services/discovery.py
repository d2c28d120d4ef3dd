"""
Discovery Service
Builds the candidate list a member browses: who is eligible, who is excluded,
which saved filters apply, and how the page is sorted.

Scalar filters run in SQL. Array filters (mutual gender preference, ethnicity
overlap) and distance run in Python over the SQL result because the columns
are JSON arrays and coordinates are plain floats.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...db.models import Block, Favorite, Match, Profile, User, UserFilters, UserGallery
from .matching import calculate_age, distance_km, rank_top_matches
from .profile_options import POSITIVE_ACTIONS

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 40
SORT_OPTIONS = ("recent", "distance", "random")
MILES_TO_KM = 1.60934
INACTIVE_STATUSES = ("suspended", "deleted")

FILTER_COLUMNS = (
    "min_age", "max_age", "min_height", "max_height", "max_distance_miles",
    "body_types", "ethnicities", "religions", "education_levels", "zodiac_signs",
    "smoking", "drinking", "marijuana", "has_kids", "wants_kids",
)

CONTEXT_COLUMNS = (
    "gender", "looking_for", "date_of_birth", "latitude", "longitude", "interests",
    "smoking", "drinking", "wants_kids", "exercise", "is_verified", "can_start_matching",
)


@dataclass
class DiscoveryResult:
    profiles: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    empty_reason: Optional[str] = None
    debug: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"profiles": self.profiles, "total": self.total, "empty_reason": self.empty_reason}
        if self.debug is not None:
            data["debug"] = self.debug
        return data


def filters_to_dict(filters: Optional[UserFilters]) -> Dict[str, Any]:
    """Saved filters as a plain dict; absent keys mean no constraint."""
    if filters is None:
        return {}
    return {
        column: getattr(filters, column)
        for column in FILTER_COLUMNS
        if getattr(filters, column) not in (None, [], "")
    }


def years_before(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # Feb 29 on a non-leap target year
        return today.replace(year=today.year - years, day=28)


def profile_card(profile: Profile, user: User, distance: Optional[float] = None,
                 today: Optional[date] = None) -> Dict[str, Any]:
    """Public subset of a profile shown on discovery cards."""
    return {
        "user_id": str(user.id),
        "display_name": user.display_name,
        "first_name": profile.first_name,
        "age": calculate_age(profile.date_of_birth, today),
        "gender": profile.gender,
        "city": profile.city,
        "state": profile.state,
        "country": profile.country,
        "bio": profile.bio,
        "profile_image_url": profile.profile_image_url,
        "height_inches": profile.height_inches,
        "body_type": profile.body_type,
        "occupation": profile.occupation,
        "education": profile.education,
        "religion": profile.religion,
        "dating_intentions": profile.dating_intentions,
        "interests": profile.interests or [],
        "is_verified": bool(profile.is_verified),
        "distance_km": distance,
        "last_active_at": user.last_active_at.isoformat() if user.last_active_at else None,
        "updated_at": profile.updated_at.isoformat() if profile.updated_at else None,
    }


def profile_context(profile: Profile) -> Dict[str, Any]:
    """Fields of a profile the ranking code reads."""
    context = {column: getattr(profile, column) for column in CONTEXT_COLUMNS}
    context["user_id"] = str(profile.user_id)
    return context


class DiscoveryService:
    """
    Candidate discovery for one viewer.

    Usage:
        service = DiscoveryService(db)
        result = service.get_discoverable_candidates(user, limit=40)
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Viewer context
    # ------------------------------------------------------------------

    def get_profile(self, user_id: UUID) -> Optional[Profile]:
        return self.db.query(Profile).filter(Profile.user_id == user_id).first()

    def get_filters(self, user_id: UUID) -> Dict[str, Any]:
        row = self.db.query(UserFilters).filter(UserFilters.user_id == user_id).first()
        return filters_to_dict(row)

    def get_profile_context(self, user: User) -> Optional[Dict[str, Any]]:
        profile = self.get_profile(user.id)
        if profile is None:
            return None
        context = profile_context(profile)
        context["status"] = user.status
        context["filters"] = self.get_filters(user.id)
        return context

    # ------------------------------------------------------------------
    # Exclusions
    # ------------------------------------------------------------------

    def blocked_ids(self, user_id: UUID) -> Set[UUID]:
        rows = (
            self.db.query(Block.blocker_id, Block.blocked_id)
            .filter(or_(Block.blocker_id == user_id, Block.blocked_id == user_id))
            .all()
        )
        return {blocked if blocker == user_id else blocker for blocker, blocked in rows}

    def exclusion_sets(self, user_id: UUID) -> Dict[str, Set[UUID]]:
        acted = {
            target for (target,) in self.db.query(Match.target_user_id)
            .filter(Match.user_id == user_id, Match.is_unmatched.is_(False))
        }
        passed_on_me = {
            liker for (liker,) in self.db.query(Match.user_id)
            .filter(Match.target_user_id == user_id, Match.action == "pass")
        }
        unmatched_rows = (
            self.db.query(Match.user_id, Match.target_user_id)
            .filter(
                Match.is_unmatched.is_(True),
                or_(Match.user_id == user_id, Match.target_user_id == user_id),
            )
            .all()
        )
        unmatched = {target if owner == user_id else owner for owner, target in unmatched_rows}
        return {
            "blocked": self.blocked_ids(user_id),
            "acted": acted,
            "passed_on_me": passed_on_me,
            "unmatched": unmatched,
        }

    def is_blocked_between(self, a: UUID, b: UUID) -> bool:
        return (
            self.db.query(Block.id)
            .filter(
                or_(
                    (Block.blocker_id == a) & (Block.blocked_id == b),
                    (Block.blocker_id == b) & (Block.blocked_id == a),
                )
            )
            .first()
            is not None
        )

    # ------------------------------------------------------------------
    # Candidate pool
    # ------------------------------------------------------------------

    def _base_query(self, viewer: Dict[str, Any], excluded: Set[UUID], filters: Dict[str, Any],
                    today: date):
        query = (
            self.db.query(Profile, User)
            .join(User, User.id == Profile.user_id)
            .filter(
                Profile.can_start_matching.is_(True),
                Profile.profile_hidden.is_(False),
                User.status.notin_(INACTIVE_STATUSES),
                Profile.gender.in_(viewer["looking_for"]),
                Profile.user_id.notin_(excluded),
            )
        )

        if filters.get("max_age") is not None:
            query = query.filter(Profile.date_of_birth >= years_before(today, filters["max_age"] + 1))
        if filters.get("min_age") is not None:
            query = query.filter(Profile.date_of_birth <= years_before(today, filters["min_age"]))
        if filters.get("min_height") is not None:
            query = query.filter(Profile.height_inches >= filters["min_height"])
        if filters.get("max_height") is not None:
            query = query.filter(Profile.height_inches <= filters["max_height"])

        for key, column in (
            ("body_types", Profile.body_type),
            ("religions", Profile.religion),
            ("education_levels", Profile.education),
            ("zodiac_signs", Profile.zodiac_sign),
        ):
            if filters.get(key):
                query = query.filter(column.in_(filters[key]))

        for key in ("smoking", "drinking", "marijuana"):
            if filters.get(key):
                query = query.filter(getattr(Profile, key) == filters[key])
        for key in ("has_kids", "wants_kids"):
            if filters.get(key) and filters[key] != "any":
                query = query.filter(getattr(Profile, key) == filters[key])

        return query.order_by(Profile.updated_at.desc())

    def candidate_pool(
        self,
        user: User,
        viewer: Dict[str, Any],
        today: Optional[date] = None,
        debug: Optional[Dict[str, Any]] = None,
    ) -> List[Tuple[Profile, User, Optional[float]]]:
        """
        Every eligible candidate for the viewer, most recently updated first.

        Returns:
            (profile, user, distance_km) tuples
        """
        today = today or date.today()
        filters = viewer.get("filters") or {}
        exclusions = self.exclusion_sets(user.id)
        excluded = set().union(*exclusions.values()) | {user.id}

        rows = self._base_query(viewer, excluded, filters, today).all()
        sql_count = len(rows)

        my_gender = viewer["gender"]
        ethnicities = set(filters.get("ethnicities") or [])
        max_km = (
            filters["max_distance_miles"] * MILES_TO_KM
            if filters.get("max_distance_miles") else None
        )

        pool = []
        after_arrays = 0
        for profile, candidate in rows:
            if my_gender not in (profile.looking_for or []):
                continue
            if ethnicities and not ethnicities.intersection(profile.ethnicity or []):
                continue
            after_arrays += 1

            distance = distance_km(
                viewer.get("latitude"), viewer.get("longitude"),
                profile.latitude, profile.longitude,
            )
            # Candidates without coordinates are kept
            if max_km is not None and distance is not None and distance > max_km:
                continue
            pool.append((profile, candidate, distance))

        if debug is not None:
            debug.update({
                "excluded": {name: len(ids) for name, ids in exclusions.items()},
                "filters_applied": sorted(filters.keys()),
                "sql_candidates": sql_count,
                "after_array_filters": after_arrays,
                "after_distance_filter": len(pool),
            })
        return pool

    def _empty_reason(self, viewer: Optional[Dict[str, Any]]) -> Optional[str]:
        if viewer is None:
            return "profile_not_found"
        if viewer.get("status") != "active":
            return "user_inactive"
        if not viewer.get("gender") or not viewer.get("looking_for"):
            return "incomplete_profile"
        return None

    def _flags(self, user_id: UUID, candidate_ids: List[UUID]) -> Tuple[Set[UUID], Set[UUID]]:
        if not candidate_ids:
            return set(), set()
        favorites = {
            fid for (fid,) in self.db.query(Favorite.favorite_user_id).filter(
                Favorite.user_id == user_id, Favorite.favorite_user_id.in_(candidate_ids)
            )
        }
        liked_me = {
            uid for (uid,) in self.db.query(Match.user_id).filter(
                Match.target_user_id == user_id,
                Match.user_id.in_(candidate_ids),
                Match.action.in_(POSITIVE_ACTIONS),
                Match.is_unmatched.is_(False),
            )
        }
        return favorites, liked_me

    def get_discoverable_candidates(
        self,
        user: User,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        sort_by: str = "recent",
        include_debug: bool = False,
        today: Optional[date] = None,
    ) -> DiscoveryResult:
        """
        One page of discovery candidates, or an empty reason.

        Args:
            user: Viewer
            limit: Page size
            offset: Page offset
            sort_by: recent, distance or random
            include_debug: Attach exclusion/filter counts (admins only)
            today: Reference date for age filters

        Returns:
            DiscoveryResult
        """
        viewer = self.get_profile_context(user)
        reason = self._empty_reason(viewer)
        debug: Optional[Dict[str, Any]] = {} if include_debug else None
        if reason:
            logger.info(f"Discovery for {user.id} returned empty: {reason}")
            return DiscoveryResult(empty_reason=reason, debug=debug)

        pool = self.candidate_pool(user, viewer, today=today, debug=debug)
        if not pool:
            return DiscoveryResult(empty_reason="no_matches", debug=debug)

        if sort_by == "distance":
            pool.sort(key=lambda row: (row[2] is None, row[2] or 0.0))
        elif sort_by == "random":
            random.shuffle(pool)

        page = pool[offset:offset + limit]
        favorites, liked_me = self._flags(user.id, [candidate.id for _, candidate, _ in page])

        profiles = []
        for profile, candidate, distance in page:
            card = profile_card(profile, candidate, distance, today)
            card["is_favorite"] = candidate.id in favorites
            card["has_liked_me"] = candidate.id in liked_me
            profiles.append(card)

        return DiscoveryResult(profiles=profiles, total=len(pool), debug=debug)

    def get_top_matches(self, user: User, limit: int = 20) -> List[Dict[str, Any]]:
        """Candidates ranked by compatibility score."""
        viewer = self.get_profile_context(user)
        if self._empty_reason(viewer):
            return []

        pool = self.candidate_pool(user, viewer)
        candidates = []
        for profile, candidate, distance in pool:
            record = profile_context(profile)
            record["card"] = profile_card(profile, candidate, distance)
            candidates.append(record)

        ranked = rank_top_matches(viewer, candidates, viewer.get("filters"), limit=limit)
        return [{**entry["card"], "compatibility": entry["compatibility"]} for entry in ranked]

    def primary_photo(self, user_id: UUID) -> Optional[str]:
        row = (
            self.db.query(UserGallery.media_url)
            .filter(UserGallery.user_id == user_id)
            .order_by(UserGallery.is_primary.desc(), UserGallery.display_order)
            .first()
        )
        return row[0] if row else None
