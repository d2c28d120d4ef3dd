"""
User routes.
The caller's own account, profile, gallery and introductions, and public
views of other members.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...db.models import Favorite, Match, Profile, User, UserGallery
from ..config import APISettings, get_settings
from ..dependencies import get_current_user, get_db
from ..errors import ResourceNotFoundError
from ..schemas.auth import UserResponse
from ..schemas.common import ERROR_RESPONSES, ok
from ..schemas.profile import GalleryItemCreate, GalleryUpdate, ProfileResponse, ProfileUpdate
from ..services.discovery import DiscoveryService, profile_card
from ..services.gallery import GalleryService, serialize_gallery_item
from ..services.matching import distance_km
from ..services.matchmakers import MatchmakerService
from ..services.profile_options import POSITIVE_ACTIONS
from ..services.profiles import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

PUBLIC_DETAIL_FIELDS = (
    "looking_for_description", "ethnicity", "marital_status", "company", "political_views",
    "exercise", "languages", "zodiac_sign", "smoking", "drinking", "marijuana", "has_kids",
    "wants_kids", "pets", "life_goals", "ideal_first_date", "non_negotiables", "way_to_heart",
    "after_work", "nightclub_or_home", "pet_peeves", "craziest_travel_story", "weirdest_gift",
    "worst_job", "dream_job",
)

INTRO_STATUS_PATTERN = (
    "^(pending|user_a_accepted|user_b_accepted|both_accepted|user_a_declined|user_b_declined)$"
)


def me_payload(service: ProfileService, user: User) -> dict:
    profile = service.get_or_create_profile(user)
    return {
        "user": UserResponse.model_validate(user).model_dump(mode="json"),
        "profile": ProfileResponse.model_validate(profile).model_dump(mode="json"),
        "completion": service.completion_payload(user, profile),
    }


@router.get("/me", responses=ERROR_RESPONSES)
async def get_me(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: APISettings = Depends(get_settings),
):
    """Account, profile and completion summary for the caller."""
    service = ProfileService(db, settings)
    payload = me_payload(service, current_user)
    db.commit()
    return ok(payload)


@router.patch("/me", responses=ERROR_RESPONSES)
async def update_me(
    request: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: APISettings = Depends(get_settings),
):
    """
    Partially update the caller's profile.

    Names are normalized, enumerated fields validated, and the completion
    columns recomputed.
    """
    service = ProfileService(db, settings)
    service.update_profile(current_user, request.changes())
    return ok(me_payload(service, current_user), msg="Profile updated")


@router.get("/me/gallery", responses=ERROR_RESPONSES)
async def list_gallery(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items = GalleryService(db).list_items(current_user)
    return ok({"items": [serialize_gallery_item(i) for i in items]})


@router.post("/me/gallery", status_code=status.HTTP_201_CREATED, responses=ERROR_RESPONSES)
async def add_gallery_item(
    request: GalleryItemCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: APISettings = Depends(get_settings),
):
    """Record a photo or video already uploaded to storage."""
    item = GalleryService(db, settings).add_item(current_user, request.media_url, request.media_type)
    return ok(serialize_gallery_item(item), msg="Added to gallery")


@router.put("/me/gallery", responses=ERROR_RESPONSES)
async def update_gallery(
    request: GalleryUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: APISettings = Depends(get_settings),
):
    """Reorder items and/or choose the primary photo."""
    items = GalleryService(db, settings).update_items(
        current_user,
        order=[entry.model_dump() for entry in request.order],
        primary_id=request.primary_id,
    )
    return ok({"items": [serialize_gallery_item(i) for i in items]}, msg="Gallery updated")


@router.delete("/me/gallery/{gallery_id}", responses=ERROR_RESPONSES)
async def delete_gallery_item(
    gallery_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: APISettings = Depends(get_settings),
):
    GalleryService(db, settings).delete_item(current_user, gallery_id)
    return ok(msg="Removed from gallery")


@router.get("/me/introductions", responses=ERROR_RESPONSES)
async def my_introductions(
    intro_status: Optional[str] = Query(None, alias="status", pattern=INTRO_STATUS_PATTERN),
    limit: int = Query(20, ge=1, le=50),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Matchmaker introductions that include the caller."""
    intros = MatchmakerService(db).list_for_member(current_user, intro_status, limit, offset)
    return ok({"introductions": intros, "limit": limit, "offset": offset})


@router.get("/{user_id}", responses=ERROR_RESPONSES)
async def get_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Public view of another member.

    Missing, inactive, hidden and blocked members all look the same: 404.
    """
    discovery = DiscoveryService(db)
    user = db.query(User).filter(User.id == user_id).first()
    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    if (
        user is None
        or profile is None
        or user.status != "active"
        or (profile.profile_hidden and user_id != current_user.id)
        or discovery.is_blocked_between(current_user.id, user_id)
    ):
        raise ResourceNotFoundError("User", user_id)

    viewer = discovery.get_profile(current_user.id)
    distance = None
    if viewer is not None:
        distance = distance_km(viewer.latitude, viewer.longitude, profile.latitude, profile.longitude)

    data = profile_card(profile, user, distance)
    data.update({field: getattr(profile, field) for field in PUBLIC_DETAIL_FIELDS})
    data["photos"] = [
        row.media_url for row in db.query(UserGallery)
        .filter(UserGallery.user_id == user_id)
        .order_by(UserGallery.is_primary.desc(), UserGallery.display_order)
    ]
    data["is_favorite"] = (
        db.query(Favorite.id)
        .filter(Favorite.user_id == current_user.id, Favorite.favorite_user_id == user_id)
        .first()
        is not None
    )
    data["has_liked_me"] = (
        db.query(Match.id)
        .filter(
            Match.user_id == user_id,
            Match.target_user_id == current_user.id,
            Match.action.in_(POSITIVE_ACTIONS),
            Match.is_unmatched.is_(False),
        )
        .first()
        is not None
    )
    return ok(data)
