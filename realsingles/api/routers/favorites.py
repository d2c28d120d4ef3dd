"""
Favorite routes.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...db.models import Favorite, Profile, User
from ..dependencies import get_current_user, get_db
from ..errors import InvalidRequestError, ResourceNotFoundError
from ..schemas.common import ERROR_RESPONSES, ok
from ..schemas.matches import FavoriteRequest
from ..services.discovery import profile_card

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.get("", responses=ERROR_RESPONSES)
async def list_favorites(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Favorited members who are still active, newest first."""
    rows = (
        db.query(Favorite, User, Profile)
        .join(User, User.id == Favorite.favorite_user_id)
        .outerjoin(Profile, Profile.user_id == User.id)
        .filter(Favorite.user_id == current_user.id, User.status == "active")
        .order_by(Favorite.created_at.desc())
        .all()
    )

    favorites = []
    for favorite, user, profile in rows:
        entry = profile_card(profile, user) if profile else {
            "user_id": str(user.id), "display_name": user.display_name,
        }
        entry["favorited_at"] = favorite.created_at.isoformat()
        favorites.append(entry)
    return ok({"favorites": favorites, "total": len(favorites)})


@router.post("", responses=ERROR_RESPONSES)
async def add_favorite(
    request: FavoriteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Favorite a member. Favoriting twice succeeds without a second row."""
    if request.favorite_user_id == current_user.id:
        raise InvalidRequestError("Cannot favorite yourself")
    if not db.query(User.id).filter(User.id == request.favorite_user_id).first():
        raise ResourceNotFoundError("User", request.favorite_user_id)

    existing = (
        db.query(Favorite.id)
        .filter(Favorite.user_id == current_user.id, Favorite.favorite_user_id == request.favorite_user_id)
        .first()
    )
    if existing:
        return ok(msg="Already favorited")

    db.add(Favorite(user_id=current_user.id, favorite_user_id=request.favorite_user_id))
    db.commit()
    logger.info(f"User {current_user.id} favorited {request.favorite_user_id}")
    return ok(msg="Added to favorites")


@router.delete("/{user_id}", responses=ERROR_RESPONSES)
async def remove_favorite(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Remove a favorite. Succeeds even if it was not there."""
    db.query(Favorite).filter(
        Favorite.user_id == current_user.id, Favorite.favorite_user_id == user_id
    ).delete(synchronize_session=False)
    db.commit()
    return ok(msg="Removed from favorites")
